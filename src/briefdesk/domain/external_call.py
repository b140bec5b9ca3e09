"""Bounded External Call - POST to a remote tool endpoint under a hard time budget.

Every outcome is data: the caller gets a ``CallSuccess`` or a ``CallFailure``
and never a transport exception. The only thing raised is
``MissingCredentialError``, because without a credential no call can succeed
and retrying or waiting would not help.

Timeout Semantics:
    The HTTP request runs as its own task and is raced against the budget
    with ``asyncio.wait``. Whichever settles first decides the outcome. When
    the budget wins, the request task is cancelled so the abandoned call does
    not keep a connection open; its late result, if any, is discarded.

Content Negotiation:
    - JSON content type: parsed and returned as-is
    - Anything else: body read as text, parsed as JSON if possible,
      otherwise wrapped as ``{"content": text}``
    - Non-success status: always a failure carrying the response body
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any

import httpx

from .domain_type import FailureKind
from .domain_value import CallFailure, CallOutcome, CallSuccess
from .errors import MissingCredentialError

logger = logging.getLogger(__name__)

ACCEPT_HEADER = "application/json, text/event-stream"


def _elapsed_ms(started: float) -> float:
    return (time.monotonic() - started) * 1000


def _format_seconds(seconds: float) -> str:
    return f"{seconds:g}s"


def parse_text_body(text: str) -> Any:
    """Parse a non-JSON-typed body, falling back to a single-field object."""
    try:
        return json.loads(text)
    except ValueError:
        return {"content": text}


class ExternalCaller:
    """Issues bearer-authenticated JSON POSTs with a wall-clock budget.

    Args:
        api_key: Bearer credential; checked on every call
        client: Optional shared ``httpx.AsyncClient`` (tests inject one backed
            by ``httpx.MockTransport``). When omitted a client is created per
            call and closed with it.
    """

    def __init__(self, api_key: str | None, client: httpx.AsyncClient | None = None):
        self.api_key = api_key
        self._client = client

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": ACCEPT_HEADER,
        }

    async def call(self, endpoint: str, payload: dict[str, Any], timeout_seconds: float) -> CallOutcome:
        """POST ``payload`` to ``endpoint`` and settle within ``timeout_seconds``.

        Raises:
            MissingCredentialError: No bearer credential is configured.
        """
        if not self.api_key:
            raise MissingCredentialError()

        logger.debug("Calling %s with body keys %s", endpoint, sorted(payload))
        started = time.monotonic()
        request = asyncio.create_task(self._post(endpoint, payload, started))

        try:
            done, _ = await asyncio.wait({request}, timeout=timeout_seconds)
        except asyncio.CancelledError:
            request.cancel()
            raise

        if request not in done:
            request.cancel()
            # Late result or exception is consumed and dropped
            request.add_done_callback(lambda task: task.cancelled() or task.exception())
            logger.warning("Call to %s timed out after %s", endpoint, _format_seconds(timeout_seconds))
            return CallFailure(
                kind=FailureKind.TIMEOUT,
                message=f"timeout after {_format_seconds(timeout_seconds)}",
                elapsed_ms=_elapsed_ms(started),
            )

        try:
            return request.result()
        except httpx.HTTPError as exc:
            logger.warning("Call to %s failed: %r", endpoint, exc)
            return CallFailure(
                kind=FailureKind.TRANSPORT,
                message=str(exc) or type(exc).__name__,
                elapsed_ms=_elapsed_ms(started),
            )

    async def _post(self, endpoint: str, payload: dict[str, Any], started: float) -> CallOutcome:
        if self._client is not None:
            response = await self._client.post(endpoint, json=payload, headers=self._headers(), timeout=None)
        else:
            async with httpx.AsyncClient(timeout=None) as client:
                response = await client.post(endpoint, json=payload, headers=self._headers())

        logger.info(
            "Endpoint %s answered %s after %.0f ms", endpoint, response.status_code, _elapsed_ms(started)
        )

        if not response.is_success:
            body = response.text or "Unknown error"
            logger.warning("Endpoint %s error response: %s", endpoint, body)
            return CallFailure(
                kind=FailureKind.HTTP_STATUS,
                message=f"endpoint failed: {response.status_code} {body}",
                elapsed_ms=_elapsed_ms(started),
            )

        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            try:
                body_payload = response.json()
            except ValueError:
                body_payload = parse_text_body(response.text)
        else:
            body_payload = parse_text_body(response.text)

        return CallSuccess(payload=body_payload, elapsed_ms=_elapsed_ms(started))


__all__ = ["ACCEPT_HEADER", "ExternalCaller", "parse_text_body"]
