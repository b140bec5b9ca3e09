"""Briefing Desk package exports."""

from .config import Settings, settings
from .domain import BriefingOrchestrator, LangMode, build_prompt

__all__ = [
    "BriefingOrchestrator",
    "LangMode",
    "Settings",
    "build_prompt",
    "settings",
]
