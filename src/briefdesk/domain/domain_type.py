"""Domain Type System - Core Enumerations.

Defines type-safe constants using Python's StrEnum for domain concepts.
Using StrEnum instead of plain Enum provides automatic string coercion
and better JSON serialization without custom encoders.
"""

from enum import StrEnum


class LangMode(StrEnum):
    """Output Language for a Briefing.

    Carried verbatim in the ``LANG_MODE=`` line of the assembled prompt; the
    system instruction tells the model how to honour each value.

    Values:
        BILINGUAL: English first, then Simplified Chinese
        EN: English only
        ZH: Simplified Chinese only
    """

    BILINGUAL = "BILINGUAL"
    EN = "EN"
    ZH = "ZH"


class CallStatus(StrEnum):
    """Outcome of a bounded external call."""

    SUCCESS = "success"
    FAILED = "failed"


class FailureKind(StrEnum):
    """Why a bounded external call failed.

    TIMEOUT: the time budget elapsed before the endpoint answered
    TRANSPORT: connection, TLS or protocol error
    HTTP_STATUS: the endpoint answered with a non-success status
    """

    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    HTTP_STATUS = "http_status"


class GenerationOutcome(StrEnum):
    """Terminal path taken by one orchestrated generation.

    Exactly one of these is recorded per request.
    """

    COMPLETED = "completed"
    STREAM_ERROR = "stream_error"
    PRE_STREAM_ERROR = "pre_stream_error"


__all__ = [
    "CallStatus",
    "FailureKind",
    "GenerationOutcome",
    "LangMode",
]
