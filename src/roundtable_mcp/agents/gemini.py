"""Gemini-backed debate agent using the google-genai SDK."""

import asyncio
import json
import logging
import os
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any

from google import genai
from google.genai import types
from google.oauth2.credentials import Credentials

from ..config import config
from ..core.retry import with_retry
from ..core.types import AgentResponse, Citation, DebateContext, ToolCallRecord
from .base import BaseAgent
from .errors import normalize_error

if TYPE_CHECKING:
    from ..tools.toolkit import RoundToolkit

logger = logging.getLogger(__name__)

PROVIDER = "gemini"


# =============================================================================
# Authentication
# =============================================================================
def _load_cli_credentials() -> Credentials | None:
    """Load OAuth credentials from Gemini CLI storage."""
    creds_path = Path.home() / ".gemini" / "oauth_creds.json"
    if not creds_path.exists():
        return None
    try:
        with open(creds_path) as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Failed to load Gemini CLI credentials: {e}")
        return None

    return Credentials(
        token=data.get("access_token"),
        refresh_token=data.get("refresh_token"),
        token_uri="https://oauth2.googleapis.com/token",
        client_id=None,
        client_secret=None,
        scopes=data.get("scope", "").split(),
    )


def _fetch_project_id(creds: Credentials) -> str | None:
    """Fetch the first available project ID using credentials."""
    import requests
    from google.auth.transport.requests import Request

    try:
        if not creds.valid:
            logger.info("Refreshing OAuth credentials...")
            creds.refresh(Request())

        url = "https://cloudresourcemanager.googleapis.com/v1/projects"
        headers = {"Authorization": f"Bearer {creds.token}"}

        # Short timeout so startup is not blocked
        resp = requests.get(url, headers=headers, timeout=3.0)
        if resp.status_code == 200:
            projects = resp.json().get("projects", [])
            if projects:
                return projects[0]["projectId"]
        else:
            logger.warning(f"Failed to list projects: {resp.status_code}")
    except Exception as e:
        logger.warning(f"Project auto-discovery failed: {e}")

    return None


def has_credentials() -> bool:
    """Whether any Gemini authentication source is available."""
    if os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY"):
        return True
    return (Path.home() / ".gemini" / "oauth_creds.json").exists()


def create_genai_client() -> genai.Client:
    """Build a ``genai.Client`` from the first available credential source.

    Order: API key, Gemini CLI OAuth credentials (Vertex AI when a project is
    known), then Application Default Credentials.
    """
    api_key = os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY")
    if api_key:
        logger.info("Authenticated using API key (Developer API)")
        return genai.Client(api_key=api_key)

    credentials = _load_cli_credentials()
    if credentials is None:
        logger.info("Initialized client with Application Default Credentials")
        return genai.Client()

    logger.info("Loaded Gemini CLI OAuth credentials")
    project_id = os.getenv("GOOGLE_CLOUD_PROJECT")
    if not project_id and config.auto_discover_project:
        project_id = _fetch_project_id(credentials)

    if project_id:
        logger.info(f"Using Vertex AI with project: {project_id}")
        return genai.Client(
            credentials=credentials,
            vertexai=True,
            project=project_id,
            location=os.getenv("GOOGLE_CLOUD_LOCATION", "us-central1"),
        )

    logger.warning("Could not determine Project ID. OAuth may fail if Vertex AI is required.")
    return genai.Client(credentials=credentials)


_client: genai.Client | None = None


def get_client() -> genai.Client:
    """Get or create the shared genai client."""
    global _client
    if _client is None:
        _client = create_genai_client()
    return _client


# =============================================================================
# Agent
# =============================================================================
def _citations_from_tool_result(name: str, result: dict) -> list[Citation]:
    if not result.get("success"):
        return []
    data = result.get("data") or {}
    if name == "search_web":
        items = data.get("results", [])
    elif name == "fact_check":
        items = data.get("web_evidence", [])
    else:
        return []
    return [
        Citation(title=i.get("title") or "Untitled", url=i.get("url", ""), snippet=i.get("snippet", ""))
        for i in items
        if isinstance(i, dict)
    ]


class GeminiAgent(BaseAgent):
    """Debate agent backed by a Gemini model.

    Supports function calling against the toolkit, citation tracking from
    tool results, and a raw-completion passthrough for consensus analysis.
    """

    def __init__(
        self,
        agent_id: str,
        name: str,
        model: str | None = None,
        *,
        client: genai.Client | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(agent_id, name, PROVIDER, model or config.default_model, **kwargs)
        self._client = client

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            self._client = get_client()
        return self._client

    async def _generate(self, contents: Any, gen_config: types.GenerateContentConfig) -> Any:
        """One backend call with timeout, error normalisation and retry."""

        async def attempt() -> Any:
            try:
                return await asyncio.wait_for(
                    self.client.aio.models.generate_content(
                        model=self.model,
                        contents=contents,
                        config=gen_config,
                    ),
                    timeout=config.request_timeout,
                )
            except Exception as e:
                raise normalize_error(e, PROVIDER) from e

        return await with_retry(attempt)

    def _function_declarations(self, toolkit: "RoundToolkit") -> list[types.Tool]:
        declarations = [
            types.FunctionDeclaration(
                name=tool.name,
                description=tool.description,
                parameters_json_schema=tool.parameters,
            )
            for tool in toolkit.get_tools()
        ]
        return [types.Tool(function_declarations=declarations)] if declarations else []

    async def generate_response(
        self, context: DebateContext, toolkit: "RoundToolkit | None" = None
    ) -> AgentResponse:
        start = time.time()
        logger.info(f"[{context.session_id}] {self.id} generating round {context.current_round} response")

        gen_config = types.GenerateContentConfig(
            system_instruction=self.build_system_prompt(context),
            temperature=self.temperature,
            max_output_tokens=self.max_output_tokens,
            tools=self._function_declarations(toolkit) if toolkit else None,
            automatic_function_calling=types.AutomaticFunctionCallingConfig(disable=True),
        )
        contents: list[types.Content] = [
            types.Content(role="user", parts=[types.Part.from_text(text=self.build_user_message(context))])
        ]

        tool_calls: list[ToolCallRecord] = []
        citations: list[Citation] = []
        submitted: dict | None = None

        response = await self._generate(contents, gen_config)

        for _ in range(config.max_tool_iterations):
            calls = response.function_calls or []
            if not calls or toolkit is None:
                break

            contents.append(response.candidates[0].content)
            reply_parts = []
            for call in calls:
                args = dict(call.args or {})
                result = await toolkit.execute_tool(call.name, args, agent_id=self.id)
                tool_calls.append(ToolCallRecord(name=call.name, input=args, output=result))
                citations.extend(_citations_from_tool_result(call.name, result))
                if call.name == "submit_response" and result.get("success"):
                    submitted = result["data"]
                reply_parts.append(types.Part.from_function_response(name=call.name, response=result))
            contents.append(types.Content(role="user", parts=reply_parts))

            response = await self._generate(contents, gen_config)

        if submitted is not None:
            fields = self.parse_response(json.dumps(submitted))
        else:
            fields = self.parse_response(response.text or "")

        elapsed = time.time() - start
        logger.info(
            f"[{context.session_id}] {self.id} responded in {elapsed:.1f}s "
            f"({len(tool_calls)} tool calls, {len(citations)} citations)"
        )
        return self.build_response(fields, citations=citations, tool_calls=tool_calls)

    async def generate_raw_completion(self, prompt: str, system_prompt: str | None = None) -> str:
        logger.debug(f"Raw completion via {self.id}")
        gen_config = types.GenerateContentConfig(
            system_instruction=system_prompt or "You are a helpful AI assistant. Respond exactly as instructed.",
            temperature=self.temperature,
            max_output_tokens=config.analysis_max_output_tokens,
        )
        response = await self._generate(prompt, gen_config)
        return response.text or ""

    async def _perform_health_check(self) -> None:
        gen_config = types.GenerateContentConfig(
            max_output_tokens=10,
            thinking_config=types.ThinkingConfig(thinking_budget=0),
        )
        response = await self._generate("test", gen_config)
        if response.text is None:
            raise RuntimeError("No response text")


# =============================================================================
# Web search via Google Search grounding
# =============================================================================
class GeminiSearchProvider:
    """Web search backed by Gemini's Google Search grounding."""

    def __init__(self, client: genai.Client | None = None, model: str | None = None) -> None:
        self._client = client
        self.model = model or config.light_model

    async def search(self, query: str, max_results: int = 5) -> list[dict]:
        client = self._client or get_client()
        try:
            response = await asyncio.wait_for(
                client.aio.models.generate_content(
                    model=self.model,
                    contents=f"Search the web for current information about: {query}\n\nCite sources.",
                    config=types.GenerateContentConfig(
                        tools=[types.Tool(google_search=types.GoogleSearch())],
                    ),
                ),
                timeout=config.request_timeout,
            )
        except Exception as e:
            raise normalize_error(e, PROVIDER) from e

        results: list[dict] = []
        summary = (response.text or "")[:300]
        for candidate in response.candidates or []:
            metadata = getattr(candidate, "grounding_metadata", None)
            for chunk in getattr(metadata, "grounding_chunks", None) or []:
                web = getattr(chunk, "web", None)
                if web is None or not web.uri:
                    continue
                results.append({"title": web.title or "Untitled", "url": web.uri, "snippet": summary})
                if len(results) >= max_results:
                    return results
        return results
