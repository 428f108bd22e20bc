"""Post-generation response validators.

Validators never drop a response. They return a (possibly replaced)
response plus a list of human-readable issues, which the caller logs.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace

from ..core.types import AgentResponse, Stance, clamp_unit

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    response: AgentResponse
    issues: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.issues


class ResponseValidator(ABC):
    @abstractmethod
    def validate(self, response: AgentResponse) -> ValidationResult: ...


class StanceValidator(ResponseValidator):
    """Flag responses whose declared stance differs from the expected one.

    The declared stance is kept; the response gains ``expected_stance`` and
    ``stance_mismatch`` so callers can see prompt-adherence failures.
    """

    def __init__(self, expected: Stance, role: str | None = None) -> None:
        self.expected = expected
        self.role = role

    def validate(self, response: AgentResponse) -> ValidationResult:
        mismatch = response.stance != self.expected
        updated = replace(
            response,
            role=self.role or response.role,
            expected_stance=self.expected,
            stance_mismatch=mismatch,
        )
        if not mismatch:
            return ValidationResult(updated)
        declared = response.stance.value if response.stance else "none"
        issue = f"{response.agent_id} declared stance {declared}, expected {self.expected.value}"
        return ValidationResult(updated, [issue])


class ConfidenceRangeValidator(ResponseValidator):
    def validate(self, response: AgentResponse) -> ValidationResult:
        clamped = clamp_unit(response.confidence)
        if clamped == response.confidence:
            return ValidationResult(response)
        return ValidationResult(
            replace(response, confidence=clamped),
            [f"confidence {response.confidence} outside [0, 1], clamped to {clamped}"],
        )


class RequiredFieldsValidator(ResponseValidator):
    def validate(self, response: AgentResponse) -> ValidationResult:
        issues = []
        if not response.position.strip():
            issues.append("No position provided")
        if not response.reasoning.strip():
            issues.append("No reasoning provided")
        return ValidationResult(response, issues)


class ValidatorChain(ResponseValidator):
    """Run validators in order, threading the response through each."""

    def __init__(self, validators: list[ResponseValidator] | None = None) -> None:
        self.validators = list(validators or [])

    def add(self, validator: ResponseValidator) -> "ValidatorChain":
        self.validators.append(validator)
        return self

    def validate(self, response: AgentResponse) -> ValidationResult:
        issues: list[str] = []
        for validator in self.validators:
            result = validator.validate(response)
            response = result.response
            issues.extend(result.issues)
        return ValidationResult(response, issues)


def default_validator_chain() -> ValidatorChain:
    return ValidatorChain([RequiredFieldsValidator(), ConfidenceRangeValidator()])
