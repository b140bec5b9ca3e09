"""API dependency wiring.

Everything here is request-scoped except the settings, which are a cached
process-wide singleton. Tests swap either via ``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends

from ..config import Settings, get_settings
from ..domain.orchestrator import BriefingOrchestrator
from ..domain.providers import ToolProviderRegistry


def get_provider_registry(settings: Annotated[Settings, Depends(get_settings)]) -> ToolProviderRegistry:
    """Registry spawning the configured providers over stdio."""
    return ToolProviderRegistry(settings)


def get_orchestrator(
    settings: Annotated[Settings, Depends(get_settings)],
    registry: Annotated[ToolProviderRegistry, Depends(get_provider_registry)],
) -> BriefingOrchestrator:
    """
    Fresh orchestrator per request.

    Construction does no I/O: providers are only spawned once ``start()`` runs,
    after the request body has been validated.
    """
    return BriefingOrchestrator(settings=settings, registry=registry)


__all__ = ["get_orchestrator", "get_provider_registry", "get_settings"]
