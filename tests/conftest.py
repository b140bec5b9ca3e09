"""
Shared test fixtures and configuration.

Environment strategy:
- Unit tests: Use .env.test (isolated, no real infra needed)
- Every test builds its own Settings with ``_env_file=None`` so nothing
  leaks in from a developer's .env
- No test touches the network: endpoints go through httpx.MockTransport,
  the model is a Pydantic AI FunctionModel, providers are in-memory fakes
"""

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from dotenv import load_dotenv

ENV_FILE = Path(__file__).parent.parent / ".env.test"

load_dotenv(ENV_FILE, override=True)

from briefdesk.config import Settings
from briefdesk.domain.providers import ProviderSpec
from tests.fakes import FakeProviderConnection


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    """Settings factory with test-friendly defaults, overridable by env alias."""

    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "Z_AI_API_KEY": "test-key",
            "VISION_ENABLED": False,
            "SEARCH_TIMEOUT_SECONDS": 2.0,
            "READER_TIMEOUT_SECONDS": 2.0,
            "MAX_STREAM_SECONDS": 10.0,
            "PROVIDER_CONNECT_TIMEOUT_SECONDS": 1.0,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def settings(make_settings: Callable[..., Settings]) -> Settings:
    return make_settings()


@pytest.fixture
def vision_settings(make_settings: Callable[..., Settings]) -> Settings:
    return make_settings(VISION_ENABLED=True)


@pytest.fixture
def connector_for() -> Callable[..., Callable[[ProviderSpec], Any]]:
    """Build a connector returning the given connection, or raising ``error``."""

    def _build(connection: FakeProviderConnection | None = None, error: BaseException | None = None):
        specs: list[ProviderSpec] = []

        async def connector(spec: ProviderSpec) -> FakeProviderConnection:
            specs.append(spec)
            if error is not None:
                raise error
            assert connection is not None
            return connection

        connector.specs = specs  # type: ignore[attr-defined]
        return connector

    return _build
