from .briefing import BriefingRequest, ErrorResponse
from .health import HealthResponse

__all__ = [
    "BriefingRequest",
    "ErrorResponse",
    "HealthResponse",
]
