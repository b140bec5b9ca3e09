"""Generation Trace - Immutable Record of One Orchestrated Generation.

Accumulates one ``StepRecord`` per model step while the generation runs, then
records the terminal outcome. The trace exists for operators: it is logged
when the request ends and is never sent to the client.

Key Concepts:
    - A step is one model turn: text, tool-call requests, or both, followed by
      the results of those calls
    - Steps are strictly ordered; records are appended as steps finish
    - ``finish`` stamps exactly one ``GenerationOutcome`` on the trace

Example:
    >>> trace = GenerationTrace()
    >>> trace = trace.append(StepRecord(index=0, text_chars=0, tool_calls=(call,)))
    >>> trace = trace.finish(GenerationOutcome.COMPLETED, finish_reason="stop")
    >>> logger.info("Generation finished: %s", trace.to_log_attributes())
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .domain_type import GenerationOutcome
from .domain_value import TokenUsage


class ToolCallRecord(BaseModel):
    """A tool call the model requested during a step."""

    tool_name: str
    tool_call_id: str

    model_config = ConfigDict(frozen=True)


class ToolResultRecord(BaseModel):
    """Result of a tool call, reduced to what is useful in logs."""

    tool_name: str
    tool_call_id: str
    result_chars: int = Field(ge=0)
    is_error: bool = False

    model_config = ConfigDict(frozen=True)


class StepRecord(BaseModel):
    """One finished model step.

    Attributes:
        index: Zero-based position of the step within the generation
        text_chars: Characters of text the model emitted in this step
        tool_calls: Calls requested by the model in this step
        tool_results: Results fed back before the next step
        finish_reason: Reason the model gave for ending its response
    """

    index: int = Field(ge=0)
    text_chars: int = Field(default=0, ge=0)
    tool_calls: tuple[ToolCallRecord, ...] = ()
    tool_results: tuple[ToolResultRecord, ...] = ()
    finish_reason: str | None = None

    model_config = ConfigDict(frozen=True)


class GenerationTrace(BaseModel):
    """Steps of one generation plus how it ended.

    Immutable: ``append`` and ``finish`` return new instances.
    """

    steps: tuple[StepRecord, ...] = ()
    outcome: GenerationOutcome | None = None
    finish_reason: str | None = None
    usage: TokenUsage | None = None
    error: str | None = None

    model_config = ConfigDict(frozen=True)

    def append(self, step: StepRecord) -> GenerationTrace:
        return self.model_copy(update={"steps": (*self.steps, step)})

    def finish(
        self,
        outcome: GenerationOutcome,
        *,
        finish_reason: str | None = None,
        usage: TokenUsage | None = None,
        error: str | None = None,
    ) -> GenerationTrace:
        """Record the terminal path.

        Raises:
            ValueError: If an outcome was already recorded.
        """
        if self.outcome is not None:
            raise ValueError(f"Generation already finished as {self.outcome}")
        return self.model_copy(
            update={"outcome": outcome, "finish_reason": finish_reason, "usage": usage, "error": error}
        )

    @computed_field
    @property
    def total_text_chars(self) -> int:
        return sum(step.text_chars for step in self.steps)

    @computed_field
    @property
    def total_tool_calls(self) -> int:
        return sum(len(step.tool_calls) for step in self.steps)

    @computed_field
    @property
    def tools_used(self) -> tuple[str, ...]:
        """Distinct tool names in first-use order."""
        seen: dict[str, None] = {}
        for step in self.steps:
            for call in step.tool_calls:
                seen.setdefault(call.tool_name, None)
        return tuple(seen)

    @property
    def truncated(self) -> bool:
        """True when the model stopped because it ran out of output tokens."""
        return self.finish_reason == "length"

    def to_log_attributes(self) -> dict[str, Any]:
        """Flat, JSON-friendly summary keyed under ``generation.``."""
        return {
            "generation.outcome": self.outcome.value if self.outcome else None,
            "generation.steps": len(self.steps),
            "generation.finish_reason": self.finish_reason,
            "generation.text_chars": self.total_text_chars,
            "generation.tool_calls": self.total_tool_calls,
            "generation.tools_used": list(self.tools_used),
            "generation.input_tokens": self.usage.input_tokens if self.usage else None,
            "generation.output_tokens": self.usage.output_tokens if self.usage else None,
            "generation.error": self.error,
        }


__all__ = [
    "GenerationTrace",
    "StepRecord",
    "ToolCallRecord",
    "ToolResultRecord",
]
