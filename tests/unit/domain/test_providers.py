"""
Tests for the tool provider registry.

Registry lifecycle rules are checked against in-memory fakes. The MCP connection itself is
driven through a real client session against a small FastMCP server, in memory
and once over stdio with a spawned Python process.
"""

import asyncio
import sys
import textwrap

import pytest
from mcp.server.fastmcp import FastMCP
from mcp.shared.memory import create_connected_server_and_client_session
from mcp.types import CallToolResult, TextContent

from briefdesk.domain.errors import MissingCredentialError
from briefdesk.domain.providers import (
    VISION_PROVIDER,
    McpProviderConnection,
    ProviderSpec,
    ToolProviderRegistry,
    ToolProviderSet,
    connect_stdio_provider,
    shape_call_result,
)
from tests.fakes import FakeProviderConnection, make_tool


def test_vision_spec_carries_credential_and_mode(vision_settings):
    registry = ToolProviderRegistry(vision_settings)

    [spec] = registry.provider_specs("secret")

    assert spec.name == VISION_PROVIDER
    assert spec.command == "npx"
    assert spec.args == ("-y", "@z_ai/mcp-server")
    assert spec.env == {"Z_AI_API_KEY": "secret", "Z_AI_MODE": "ZAI"}


def test_disabled_vision_has_no_specs(settings):
    assert ToolProviderRegistry(settings).provider_specs("secret") == []


@pytest.mark.asyncio
async def test_open_connects_configured_providers(vision_settings, connector_for):
    connection = FakeProviderConnection(tools=[make_tool("analyze_image", source="vision")])
    connector = connector_for(connection)
    registry = ToolProviderRegistry(vision_settings, connector=connector)

    provider_set = await registry.open()

    assert provider_set.get(VISION_PROVIDER) is connection
    assert provider_set.live() == [(VISION_PROVIDER, connection)]
    assert [spec.name for spec in connector.specs] == [VISION_PROVIDER]


@pytest.mark.asyncio
async def test_open_without_credential_spawns_nothing(make_settings, connector_for):
    connector = connector_for(FakeProviderConnection())
    registry = ToolProviderRegistry(make_settings(Z_AI_API_KEY="", VISION_ENABLED=True), connector=connector)

    with pytest.raises(MissingCredentialError):
        await registry.open()

    assert connector.specs == []


@pytest.mark.asyncio
async def test_failed_provider_leaves_empty_slot(vision_settings, connector_for):
    registry = ToolProviderRegistry(vision_settings, connector=connector_for(error=OSError("npx not found")))

    provider_set = await registry.open()

    assert provider_set.slots == {VISION_PROVIDER: None}
    assert provider_set.live() == []


@pytest.mark.asyncio
async def test_slow_provider_times_out_to_empty_slot(make_settings):
    async def connector(spec):
        await asyncio.sleep(5)

    settings = make_settings(VISION_ENABLED=True, PROVIDER_CONNECT_TIMEOUT_SECONDS=0.05)
    provider_set = await ToolProviderRegistry(settings, connector=connector).open()

    assert provider_set.get(VISION_PROVIDER) is None


@pytest.mark.asyncio
async def test_close_is_idempotent(vision_settings, connector_for):
    connection = FakeProviderConnection()
    registry = ToolProviderRegistry(vision_settings, connector=connector_for(connection))
    provider_set = await registry.open()

    await registry.close(provider_set)
    await registry.close(provider_set)

    assert provider_set.closed
    assert connection.close_calls == 1


@pytest.mark.asyncio
async def test_close_swallows_provider_failures(settings):
    failing = FakeProviderConnection(name="first", fail_close=True)
    healthy = FakeProviderConnection(name="second")
    provider_set = ToolProviderSet({"first": failing, "empty": None, "second": healthy})

    await ToolProviderRegistry(settings).close(provider_set)

    assert failing.close_calls == 1
    assert healthy.close_calls == 1


def test_error_result_becomes_error_field():
    result = CallToolResult(content=[TextContent(type="text", text="image too large")], isError=True)

    assert shape_call_result(result) == {"error": "image too large"}


def test_error_result_without_text_has_default_message():
    assert shape_call_result(CallToolResult(content=[], isError=True)) == {"error": "Tool call failed"}


def test_text_blocks_are_joined():
    result = CallToolResult(
        content=[TextContent(type="text", text="line one"), TextContent(type="text", text="line two")]
    )

    assert shape_call_result(result) == {"content": "line one\nline two"}


def test_structured_content_is_passed_through():
    result = CallToolResult(content=[], structuredContent={"labels": ["cat"]})

    assert shape_call_result(result) == {"labels": ["cat"]}


# Real MCP sessions


def vision_server() -> FastMCP:
    server = FastMCP("vision-test")

    @server.tool(description="Describe the image at a URL", structured_output=False)
    def analyze_image(image_url: str) -> str:
        return f"saw {image_url}"

    @server.tool(description="Always fails", structured_output=False)
    def broken_decoder(image_url: str) -> str:
        raise ValueError("decoder crashed")

    return server


async def open_in_memory(name: str = VISION_PROVIDER) -> McpProviderConnection:
    session_context = create_connected_server_and_client_session(vision_server()._mcp_server)
    return await McpProviderConnection.open(name, session_context)


@pytest.mark.asyncio
async def test_session_tools_become_descriptors():
    connection = await open_in_memory()
    try:
        tools = {tool.name: tool for tool in await connection.list_tools()}
    finally:
        await connection.close()

    assert sorted(tools) == ["analyze_image", "broken_decoder"]
    analyze = tools["analyze_image"]
    assert analyze.description == "Describe the image at a URL"
    assert analyze.source == VISION_PROVIDER
    assert analyze.input_schema["properties"]["image_url"]["type"] == "string"
    assert analyze.input_schema["required"] == ["image_url"]


@pytest.mark.asyncio
async def test_session_tool_call_returns_text_content():
    connection = await open_in_memory()
    try:
        tools = {tool.name: tool for tool in await connection.list_tools()}
        result = await tools["analyze_image"].execute({"image_url": "https://x.test/cat.png"})
    finally:
        await connection.close()

    assert result == {"content": "saw https://x.test/cat.png"}


@pytest.mark.asyncio
async def test_failing_session_tool_becomes_error_field():
    connection = await open_in_memory()
    try:
        tools = {tool.name: tool for tool in await connection.list_tools()}
        result = await tools["broken_decoder"].execute({"image_url": "https://x.test/cat.png"})
    finally:
        await connection.close()

    assert "decoder crashed" in result["error"]


@pytest.mark.asyncio
async def test_call_tool_exception_becomes_error_field(monkeypatch):
    connection = await open_in_memory()
    try:
        tools = {tool.name: tool for tool in await connection.list_tools()}

        async def lost_connection(name, arguments=None, *args, **kwargs):
            raise ConnectionError("provider went away")

        monkeypatch.setattr(connection.session, "call_tool", lost_connection)
        result = await tools["analyze_image"].execute({"image_url": "https://x.test/cat.png"})
    finally:
        await connection.close()

    assert result == {"error": "analyze_image failed: provider went away"}


@pytest.mark.asyncio
async def test_session_connection_closes_once():
    connection = await open_in_memory()

    await connection.close()
    await connection.close()

    assert connection.closed


@pytest.mark.asyncio
async def test_stdio_provider_spawns_and_stops_a_process(tmp_path):
    script = tmp_path / "echo_server.py"
    script.write_text(
        textwrap.dedent(
            """
            from mcp.server.fastmcp import FastMCP

            server = FastMCP("echo")


            @server.tool(description="Echo text back", structured_output=False)
            def echo(text: str) -> str:
                return text


            server.run()
            """
        )
    )
    spec = ProviderSpec(name=VISION_PROVIDER, command=sys.executable, args=(str(script),))

    connection = await connect_stdio_provider(spec)
    try:
        [echo] = await connection.list_tools()
        result = await echo.execute({"text": "hello"})
    finally:
        await connection.close()

    assert echo.name == "echo"
    assert result == {"content": "hello"}
