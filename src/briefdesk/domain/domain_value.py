"""Value Layer - Outcomes and Usage Records.

Small immutable values passed between the bounded call, the tools and the
orchestrator.

CallOutcome follows the discriminated-union pattern: pydantic dispatches on
the ``status`` field, and ``isinstance`` narrows to the concrete variant so a
caller can only reach ``payload`` on a success and ``message`` on a failure.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .domain_type import CallStatus, FailureKind


class CallSuccess(BaseModel):
    """Bounded call that returned a usable body.

    Attributes:
        status: Always SUCCESS (discriminator field)
        payload: Parsed JSON, or ``{"content": text}`` when the body was not JSON
        elapsed_ms: Wall-clock time until the body was read
    """

    status: Literal[CallStatus.SUCCESS] = CallStatus.SUCCESS
    payload: Any
    elapsed_ms: float = Field(default=0.0, ge=0)

    model_config = ConfigDict(frozen=True)


class CallFailure(BaseModel):
    """Bounded call that failed, with a message fit to show the model.

    Attributes:
        status: Always FAILED (discriminator field)
        kind: Why it failed (timeout, transport, http_status)
        message: Human-readable description; never empty
        elapsed_ms: Time until the failure was observed
    """

    status: Literal[CallStatus.FAILED] = CallStatus.FAILED
    kind: FailureKind
    message: str = Field(min_length=1)
    elapsed_ms: float = Field(default=0.0, ge=0)

    model_config = ConfigDict(frozen=True)


CallOutcome = CallSuccess | CallFailure


class TokenUsage(BaseModel):
    """Token accounting reported by the model runtime for one generation."""

    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


__all__ = ["CallFailure", "CallOutcome", "CallSuccess", "TokenUsage"]
