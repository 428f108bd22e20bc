"""Tests for lenient JSON decoding of model output."""

from roundtable_mcp.core.json_utils import (
    balanced_span,
    extract_json_object,
    loads_lenient,
    loads_repaired,
    parse_partial_json,
    sanitize_json,
    strip_code_fences,
)


class TestStripCodeFences:
    """Tests for strip_code_fences."""

    def test_complete_fence(self):
        """Content inside a json fence is returned."""
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_open_fence(self):
        """A fence left open by truncation is still removed."""
        assert strip_code_fences('```json\n{"a": 1, "b": ') == '{"a": 1, "b":'

    def test_leading_prose(self):
        """Commentary before the object is dropped."""
        assert strip_code_fences('Sure! Here you go: {"a": 1}') == '{"a": 1}'


class TestBalancedSpan:
    """Tests for balanced_span and extract_json_object."""

    def test_nested_and_escaped(self):
        """Braces in strings and escaped quotes do not confuse the scan."""
        text = 'prefix {"a": {"b": "}\\"{"}} trailing }'
        assert balanced_span(text) == '{"a": {"b": "}\\"{"}}'

    def test_unbalanced(self):
        """An unterminated object has no span."""
        assert balanced_span('{"a": {') is None

    def test_extract_non_object(self):
        """Only objects are returned."""
        assert extract_json_object("no braces [1, 2]") is None
        assert extract_json_object('x {"a": [1, 2]} y') == {"a": [1, 2]}


class TestRepair:
    """Tests for sanitize_json, loads_repaired and loads_lenient."""

    def test_sanitize(self):
        """Invisible characters and trailing commas are removed."""
        assert sanitize_json('\ufeff{"a": [1,\u200b 2,],}') == '{"a": [1, 2]}'

    def test_missing_comma_keeps_every_field(self):
        """A dropped comma between fields does not lose the later fields."""
        raw = '{"agreementLevel": 0.7 "commonGround": ["shared"], "summary": "ok"}'
        assert loads_repaired(raw) == {"agreementLevel": 0.7, "commonGround": ["shared"], "summary": "ok"}

    def test_non_object(self):
        """Repaired arrays or scalars are not objects."""
        assert loads_repaired("[1, 2,]") is None

    def test_strings_untouched(self):
        """Content inside double-quoted strings is not rewritten."""
        assert loads_lenient('{"note": "True: it is None",}') == {"note": "True: it is None"}

    def test_loads_lenient_fenced_repair(self):
        """Fences, bare keys, single quotes and trailing commas together."""
        raw = "Result:\n```json\n{position: 'Yes', confidence: 0.8,}\n```"
        assert loads_lenient(raw) == {"position": "Yes", "confidence": 0.8}

    def test_loads_lenient_gives_up(self):
        """Text without an object gives None."""
        assert loads_lenient("no json at all") is None


class TestParsePartialJson:
    """Tests for parse_partial_json."""

    def test_unterminated_array(self):
        """Open arrays and objects are closed."""
        assert parse_partial_json('{"a": 1, "b": [1, 2') == {"a": 1, "b": [1, 2]}

    def test_unterminated_string(self):
        """A string cut mid-value is closed and kept."""
        assert parse_partial_json('{"a": 1, "b": "hel') == {"a": 1, "b": "hel"}

    def test_dangling_key(self):
        """A key without a value is dropped."""
        assert parse_partial_json('{"a": 1, "b":') == {"a": 1}

    def test_complete_document(self):
        """Complete documents parse unchanged."""
        assert parse_partial_json('{"a": {"b": 2}}') == {"a": {"b": 2}}

    def test_no_object(self):
        """Text without an object gives None."""
        assert parse_partial_json("plain text") is None
