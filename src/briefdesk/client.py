"""Briefing stream consumer.

Reads the plain-text body of ``POST /api/briefing`` incrementally and reports
the accumulated briefing after every chunk, the way the browser page renders
partial output while the model is still writing.

The body has no framing: the whole body is the answer. A stream that breaks
off after some text has arrived is reported as a partial briefing rather than
an error.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

import httpx
from pydantic import BaseModel, ConfigDict

from .domain.domain_type import LangMode
from .domain.errors import BriefingRequestError
from .domain.prompt import build_prompt

logger = logging.getLogger(__name__)

BRIEFING_PATH = "/api/briefing"


def progress_status(text_length: int) -> str:
    """Status label shown next to a briefing that is still streaming."""
    if text_length < 100:
        return "thinking"
    if text_length < 300:
        return "searching"
    return "generating"


class BriefingProgress(BaseModel):
    """Snapshot of a briefing stream.

    Attributes:
        text: Everything received so far
        chunks: Number of non-empty chunks received
        status: Progress label, "complete" or "partial" once the stream ended
        done: The stream has ended
        partial: The stream ended early after some text arrived
    """

    text: str = ""
    chunks: int = 0
    status: str = "connecting"
    done: bool = False
    partial: bool = False

    model_config = ConfigDict(frozen=True)


class BriefingClient:
    """Async consumer of the briefing endpoint.

    Args:
        base_url: Server root, e.g. ``http://localhost:8000``
        client: Optional ``httpx.AsyncClient``; tests inject one bound to the
            ASGI app or a ``MockTransport``
        timeout: Read timeout for the streamed body, in seconds
    """

    def __init__(self, base_url: str = "", client: httpx.AsyncClient | None = None, timeout: float = 300.0):
        self.base_url = base_url.rstrip("/")
        self._client = client
        self.timeout = timeout

    async def stream(self, prompt: str) -> AsyncIterator[BriefingProgress]:
        """Yield a snapshot per received chunk, then a final ``done`` snapshot.

        Raises:
            BriefingRequestError: The server answered with a non-success status.
            httpx.HTTPError: The connection failed before any text arrived.
        """
        if self._client is not None:
            async for progress in self._stream_with(self._client, prompt):
                yield progress
            return

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            async for progress in self._stream_with(client, prompt):
                yield progress

    async def _stream_with(self, client: httpx.AsyncClient, prompt: str) -> AsyncIterator[BriefingProgress]:
        text = ""
        chunks = 0
        async with client.stream("POST", f"{self.base_url}{BRIEFING_PATH}", json={"prompt": prompt}) as response:
            logger.debug("Briefing response status %s", response.status_code)
            if not response.is_success:
                body = (await response.aread()).decode("utf-8", errors="replace")
                raise BriefingRequestError(response.status_code, body or response.reason_phrase)

            try:
                async for chunk in response.aiter_text():
                    if not chunk:
                        continue
                    text += chunk
                    chunks += 1
                    yield BriefingProgress(text=text, chunks=chunks, status=progress_status(len(text)))
            except httpx.HTTPError:
                if not text:
                    raise
                logger.warning("Briefing stream ended early after %d chars", len(text), exc_info=True)
                yield BriefingProgress(text=text, chunks=chunks, status="partial", done=True, partial=True)
                return

        logger.debug("Briefing stream complete: %d chunks, %d chars", chunks, len(text))
        yield BriefingProgress(text=text, chunks=chunks, status="complete", done=True)

    async def brief(self, lang_mode: LangMode | str, url: str | None, mission: str) -> BriefingProgress:
        """Assemble the prompt, consume the whole stream and return the final snapshot."""
        final = BriefingProgress()
        async for progress in self.stream(build_prompt(lang_mode, url, mission)):
            final = progress
        return final


__all__ = ["BRIEFING_PATH", "BriefingClient", "BriefingProgress", "progress_status"]
