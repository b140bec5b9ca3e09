# src/briefdesk/api/contracts/briefing.py
"""Briefing API contracts."""

from __future__ import annotations

from pydantic import BaseModel, Field


class BriefingRequest(BaseModel):
    """Request to generate a streamed briefing."""

    prompt: str = Field(
        min_length=1,
        description="Assembled prompt: LANG_MODE and URL lines, a blank line, then MISSION",
        examples=["LANG_MODE=EN\nURL=https://example.com/post\n\nMISSION:\nBrief me on this post."],
    )


class ErrorResponse(BaseModel):
    """JSON body returned whenever a briefing is refused before streaming starts."""

    error: str = Field(description="Short error label")
    message: str | None = Field(
        default=None,
        description="Diagnostic message safe to show to the user",
    )
