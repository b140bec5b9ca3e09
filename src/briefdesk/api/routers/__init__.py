"""API router exports"""

from .briefing import router as briefing_router
from .health import router as health_router

__all__ = ["briefing_router", "health_router"]
