"""Briefing API Router - thin HTTP layer over the generation orchestrator."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import ValidationError

from ...config import Settings
from ...domain.errors import MissingCredentialError, NoToolsAvailableError
from ...domain.orchestrator import BriefingOrchestrator
from ..contracts import BriefingRequest, ErrorResponse
from ..deps import get_orchestrator, get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["briefing"])


def _error_response(status_code: int, error: str, message: str | None = None) -> JSONResponse:
    body = ErrorResponse(error=error, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@router.post(
    "/briefing",
    response_class=StreamingResponse,
    responses={
        200: {"content": {"text/plain": {}}, "description": "Briefing text, streamed as it is generated"},
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def create_briefing(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
    orchestrator: Annotated[BriefingOrchestrator, Depends(get_orchestrator)],
) -> Response:
    """
    Stream a briefing for the assembled prompt.

    Thin orchestration layer:
    1. Refuse early when the credential is missing (500, nothing spawned)
    2. Validate the body (400 for invalid JSON or a missing prompt)
    3. Start the orchestrator (providers, tools); failures here are 500 JSON
    4. Relay the text stream; later failures just end the stream
    """
    logger.info("Briefing request received from %s", request.client.host if request.client else "unknown")

    if not settings.has_api_key:
        logger.error("Z_AI_API_KEY or ZAI_API_KEY is not set")
        return _error_response(
            500,
            "Z_AI_API_KEY is not set",
            "Please configure Z_AI_API_KEY or ZAI_API_KEY in your environment variables",
        )

    raw_body = await request.body()
    try:
        briefing = BriefingRequest.model_validate_json(raw_body)
    except ValidationError as exc:
        if any(error["type"] == "json_invalid" for error in exc.errors()):
            logger.warning("Failed to parse request body")
            return _error_response(400, "Invalid request", "Request body must be valid JSON")
        logger.warning("Missing prompt in body")
        return _error_response(400, "Missing prompt", "Request body must include a prompt field")

    logger.info("Prompt received, length %d", len(briefing.prompt))

    try:
        run = await orchestrator.start(briefing.prompt)
    except MissingCredentialError as exc:
        return _error_response(500, "Tool provider initialization failed", str(exc))
    except NoToolsAvailableError:
        return _error_response(500, "No tools available")
    except Exception as exc:
        logger.error("Briefing failed before streaming: %s (%s)", exc, type(exc).__name__)
        return _error_response(500, "Briefing ran into a problem.", str(exc))

    return StreamingResponse(run.text_stream(), media_type="text/plain; charset=utf-8")
