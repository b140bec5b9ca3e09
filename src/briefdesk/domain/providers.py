"""Tool Provider Registry - Lifecycle of Process-Backed Tool Providers.

A provider is an external MCP server whose tools are discovered at request
time. Each request opens its own ``ToolProviderSet`` (one slot per provider,
in a fixed order) and closes it exactly once when the request is done.

Lifecycle Rules:
    - open(): fatal only when the credential is missing. A provider that fails
      to start, handshake or connect in time is logged and left as an empty
      slot; the other providers and the request carry on.
    - close(): every live slot is closed and every failure is logged and
      swallowed, so one stuck provider cannot keep the others open. Closing a
      set twice is a no-op.

Task Affinity:
    The stdio transport (child process plus reader/writer streams) is bound to
    the task that entered it. The orchestrator opens and closes a set from the
    same task, and slots are closed one after another from that task rather
    than fanned out to new tasks.
"""

from __future__ import annotations

import asyncio
import logging
import shlex
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import AbstractAsyncContextManager, AsyncExitStack, asynccontextmanager
from typing import Any, Protocol

from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client
from mcp.types import CallToolResult, TextContent
from mcp.types import Tool as McpTool
from pydantic import BaseModel, ConfigDict

from ..config import Settings
from .errors import MissingCredentialError
from .tools import ToolDescriptor

logger = logging.getLogger(__name__)

VISION_PROVIDER = "vision"


class ProviderSpec(BaseModel):
    """How to spawn one provider process."""

    name: str
    command: str
    args: tuple[str, ...] = ()
    env: dict[str, str] = {}

    model_config = ConfigDict(frozen=True)


class ProviderConnection(Protocol):
    """Live connection to a provider; what the registry and orchestrator rely on."""

    name: str

    async def list_tools(self) -> list[ToolDescriptor]: ...

    async def close(self) -> None: ...


ProviderConnector = Callable[[ProviderSpec], Awaitable[ProviderConnection]]


def shape_call_result(result: CallToolResult) -> Any:
    """Turn an MCP tool result into data for the model.

    Error results become ``{"error": text}``; structured results are passed
    through; plain text blocks are joined under ``content``.
    """
    text = "\n".join(block.text for block in result.content if isinstance(block, TextContent))
    if result.isError:
        return {"error": text or "Tool call failed"}
    if result.structuredContent:
        return result.structuredContent
    return {"content": text}


@asynccontextmanager
async def stdio_session(spec: ProviderSpec) -> AsyncIterator[ClientSession]:
    """Spawn the provider process and yield an initialized MCP session over its stdio."""
    params = StdioServerParameters(command=spec.command, args=list(spec.args), env=dict(spec.env))
    async with stdio_client(params) as (read, write):
        async with ClientSession(read, write) as session:
            await session.initialize()
            yield session


class McpProviderConnection:
    """Provider reached through an MCP client session.

    Owns an ``AsyncExitStack`` holding the session and its transport; for a
    stdio provider, closing the stack terminates the child process.
    """

    def __init__(self, name: str, session: ClientSession, exit_stack: AsyncExitStack):
        self.name = name
        self.session = session
        self._exit_stack = exit_stack
        self._closed = False

    @classmethod
    async def open(
        cls, name: str, session_context: AbstractAsyncContextManager[ClientSession]
    ) -> McpProviderConnection:
        """Enter ``session_context`` and keep it open until ``close``."""
        exit_stack = AsyncExitStack()
        session = await exit_stack.enter_async_context(session_context)
        return cls(name, session, exit_stack)

    @property
    def closed(self) -> bool:
        return self._closed

    async def list_tools(self) -> list[ToolDescriptor]:
        response = await self.session.list_tools()
        return [self._describe(tool) for tool in response.tools]

    def _describe(self, tool: McpTool) -> ToolDescriptor:
        session = self.session
        provider = self.name

        async def execute(arguments: dict[str, Any]) -> Any:
            logger.info("%s tool %s called", provider, tool.name)
            try:
                result = await session.call_tool(tool.name, arguments=arguments)
            except Exception as exc:
                logger.error("%s tool %s failed: %s", provider, tool.name, exc)
                return {"error": f"{tool.name} failed: {exc}"}
            return shape_call_result(result)

        return ToolDescriptor(
            name=tool.name,
            description=tool.description or "",
            input_schema=dict(tool.inputSchema),
            execute=execute,
            source=provider,
        )

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._exit_stack.aclose()


async def connect_stdio_provider(spec: ProviderSpec) -> ProviderConnection:
    connection = await McpProviderConnection.open(spec.name, stdio_session(spec))
    logger.info("Connected to %s provider (%s)", spec.name, spec.command)
    return connection


class ToolProviderSet:
    """Per-request provider slots: name -> live connection, or None when unavailable."""

    def __init__(self, slots: dict[str, ProviderConnection | None]):
        self.slots = dict(slots)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def mark_closed(self) -> None:
        self._closed = True

    def get(self, name: str) -> ProviderConnection | None:
        return self.slots.get(name)

    def live(self) -> list[tuple[str, ProviderConnection]]:
        """Live connections in slot order."""
        return [(name, conn) for name, conn in self.slots.items() if conn is not None]


class ToolProviderRegistry:
    """Opens and closes the per-request provider set.

    Args:
        settings: Credential, provider commands and the connect timeout
        connector: Factory establishing one connection from a ``ProviderSpec``;
            defaults to spawning an MCP server over stdio
    """

    def __init__(self, settings: Settings, connector: ProviderConnector | None = None):
        self.settings = settings
        self._connector = connector or connect_stdio_provider

    def provider_specs(self, api_key: str) -> list[ProviderSpec]:
        """Providers in their fixed slot order."""
        specs: list[ProviderSpec] = []
        if self.settings.vision_enabled:
            specs.append(
                ProviderSpec(
                    name=VISION_PROVIDER,
                    command=self.settings.vision_command,
                    args=tuple(shlex.split(self.settings.vision_args)),
                    env={"Z_AI_API_KEY": api_key, "Z_AI_MODE": self.settings.vision_mode},
                )
            )
        return specs

    async def open(self) -> ToolProviderSet:
        """Connect every configured provider, tolerating individual failures.

        Raises:
            MissingCredentialError: No credential; nothing is spawned.
        """
        api_key = self.settings.zai_api_key
        if not api_key:
            raise MissingCredentialError()

        slots: dict[str, ProviderConnection | None] = {}
        for spec in self.provider_specs(api_key):
            slots[spec.name] = await self._connect(spec)
        return ToolProviderSet(slots)

    async def _connect(self, spec: ProviderSpec) -> ProviderConnection | None:
        try:
            async with asyncio.timeout(self.settings.provider_connect_timeout_seconds):
                return await self._connector(spec)
        except Exception as exc:
            logger.warning("%s provider initialization failed (continuing without it): %r", spec.name, exc)
            return None

    async def close(self, provider_set: ToolProviderSet) -> None:
        """Close every live slot; never raises."""
        if provider_set.closed:
            return
        provider_set.mark_closed()
        for name, connection in provider_set.live():
            try:
                await connection.close()
            except Exception:
                logger.warning("Failed to close %s provider", name, exc_info=True)


__all__ = [
    "VISION_PROVIDER",
    "ProviderConnection",
    "ProviderConnector",
    "ProviderSpec",
    "McpProviderConnection",
    "ToolProviderRegistry",
    "ToolProviderSet",
    "connect_stdio_provider",
    "shape_call_result",
    "stdio_session",
]
