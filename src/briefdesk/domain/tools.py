"""Domain Tools - LLM-Callable Functions for Briefing Research.

Defines the statically known tools the briefing model can call mid-generation.
Each tool is described by a ``ToolDescriptor``: a name, a model-facing
description, a JSON input schema and an async ``execute`` function. Provider
tools discovered at request time use the same descriptor, so the orchestrator
merges both kinds into one name-keyed set.

Tools:
    search: Web search through the Z.AI search endpoint (30s budget)
    page_read: Fetch and parse one web page through the Z.AI reader (45s budget)

Error Contract:
    Tool results are fed back to the model as data. A tool never raises for
    a runtime failure (network error, non-success status, timeout, missing
    credential); it returns an ``error`` field next to empty fallback data so
    the model can carry on without it. The one exception is malformed
    arguments from the model, which raise ``ModelRetry`` so the model sees the
    validation error and corrects its call.

Reference: https://ai.pydantic.dev/tools/
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, TypeAdapter, ValidationError, field_validator
from pydantic_ai import ModelRetry, Tool

from ..config import Settings
from .domain_value import CallFailure
from .external_call import ExternalCaller

logger = logging.getLogger(__name__)

ToolExecute = Callable[[dict[str, Any]], Awaitable[Any]]

SEARCH_TOOL_NAME = "search"
PAGE_READ_TOOL_NAME = "page_read"

# Source field names tried in order for each normalized search field
TITLE_FIELDS = ("title", "name")
URL_FIELDS = ("url", "link")
SUMMARY_FIELDS = ("summary", "snippet", "description")


class ToolDescriptor(BaseModel):
    """Named, Schema-Typed Tool the Model May Invoke.

    Attributes:
        name: Unique within an assembled tool set
        description: Natural-language guidance the model uses to pick the tool
        input_schema: JSON schema advertised to the model
        execute: Async function receiving the model's arguments as a dict
        source: Where the tool came from ("domain" or a provider slot name)
    """

    name: str = Field(min_length=1)
    description: str = ""
    input_schema: dict[str, Any]
    execute: ToolExecute
    source: str = "domain"

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    def to_agent_tool(self) -> Tool[Any]:
        """Expose this descriptor to a Pydantic AI agent with its own schema."""
        execute = self.execute

        async def run(**arguments: Any) -> Any:
            return await execute(arguments)

        return Tool.from_schema(
            run,
            name=self.name,
            description=self.description,
            json_schema=self.input_schema,
        )


class SearchInput(BaseModel):
    """Arguments for the search tool."""

    query: str = Field(min_length=1, description="Search query string")
    lang: str | None = Field(
        default=None,
        description='Language code (optional, e.g., "en", "zh")',
    )


_HTTP_URL = TypeAdapter(HttpUrl)


class PageReadInput(BaseModel):
    """Arguments for the page_read tool."""

    url: str = Field(description="URL of the web page to read", json_schema_extra={"format": "uri"})

    @field_validator("url")
    @classmethod
    def _absolute_http_url(cls, value: str) -> str:
        # Checked as http(s), forwarded as written
        _HTTP_URL.validate_python(value)
        return value


def _validate_arguments(model: type[BaseModel], arguments: dict[str, Any]) -> Any:
    try:
        return model.model_validate(arguments)
    except ValidationError as exc:
        raise ModelRetry(f"Invalid arguments: {exc}") from exc


def _first_non_empty(item: dict[str, Any], fields: Sequence[str]) -> str:
    for field in fields:
        value = item.get(field)
        if value:
            return str(value)
    return ""


def normalize_search_payload(payload: Any) -> dict[str, Any]:
    """Shape a search endpoint payload into ``{"results": ...}``.

    A sequence becomes a list of ``{title, url, summary}`` triples using the
    first non-empty source field for each; anything else is passed through.

    Example:
        >>> normalize_search_payload([{"name": "A", "link": "u1"}])
        {'results': [{'title': 'A', 'url': 'u1', 'summary': ''}]}
    """
    if isinstance(payload, list):
        results = []
        for entry in payload:
            item = entry if isinstance(entry, dict) else {}
            results.append(
                {
                    "title": _first_non_empty(item, TITLE_FIELDS),
                    "url": _first_non_empty(item, URL_FIELDS),
                    "summary": _first_non_empty(item, SUMMARY_FIELDS),
                }
            )
        return {"results": results}
    return {"results": payload}


def normalize_reader_payload(payload: Any) -> dict[str, Any]:
    """Shape a page reader payload into ``{"content": ...}``.

    Precedence: raw text, then a ``content`` field, then a ``text`` field,
    then the whole payload pretty-printed as JSON.
    """
    if isinstance(payload, str):
        return {"content": payload}
    if isinstance(payload, dict):
        if payload.get("content"):
            return {"content": payload["content"]}
        if payload.get("text"):
            return {"content": payload["text"]}
    return {"content": json.dumps(payload, indent=2, ensure_ascii=False)}


async def web_search(
    caller: ExternalCaller,
    settings: Settings,
    query: str,
    lang: str | None = None,
) -> dict[str, Any]:
    """Search the web and return normalized results, or an error field."""
    logger.info("search called with query=%r lang=%r", query, lang)
    body: dict[str, Any] = {"query": query}
    if lang:
        body["lang"] = lang

    try:
        outcome = await caller.call(settings.search_url, body, settings.search_timeout_seconds)
    except Exception as exc:
        logger.error("search failed: %s", exc)
        return {"error": f"Search failed: {exc}", "results": []}

    if isinstance(outcome, CallFailure):
        logger.error("search failed: %s", outcome.message)
        return {"error": f"Search failed: {outcome.message}", "results": []}

    logger.debug("search payload type=%s", type(outcome.payload).__name__)
    return normalize_search_payload(outcome.payload)


async def read_page(caller: ExternalCaller, settings: Settings, url: str) -> dict[str, Any]:
    """Fetch one page's main content, or an error field with empty content."""
    logger.info("page_read called with url=%s", url)

    try:
        outcome = await caller.call(settings.reader_url, {"url": url}, settings.reader_timeout_seconds)
    except Exception as exc:
        logger.error("page_read failed: %s", exc)
        return {"error": f"Reader failed: {exc}", "content": ""}

    if isinstance(outcome, CallFailure):
        logger.error("page_read failed: %s", outcome.message)
        return {"error": f"Reader failed: {outcome.message}", "content": ""}

    return normalize_reader_payload(outcome.payload)


def build_domain_tools(settings: Settings, caller: ExternalCaller | None = None) -> list[ToolDescriptor]:
    """Build the static tools in their fixed order: search, then page_read.

    Args:
        settings: Endpoint URLs, time budgets and the bearer credential
        caller: Bounded caller to share; defaults to one using the configured key

    Returns:
        Descriptors ready to be merged with provider tools
    """
    caller = caller or ExternalCaller(api_key=settings.zai_api_key)

    async def execute_search(arguments: dict[str, Any]) -> dict[str, Any]:
        params = _validate_arguments(SearchInput, arguments)
        return await web_search(caller, settings, params.query, params.lang)

    async def execute_page_read(arguments: dict[str, Any]) -> dict[str, Any]:
        params = _validate_arguments(PageReadInput, arguments)
        return await read_page(caller, settings, params.url)

    return [
        ToolDescriptor(
            name=SEARCH_TOOL_NAME,
            description=(
                "High-quality web search via Z.AI. Use this to find relevant information, "
                "articles, or resources on the web."
            ),
            input_schema=SearchInput.model_json_schema(),
            execute=execute_search,
        ),
        ToolDescriptor(
            name=PAGE_READ_TOOL_NAME,
            description=(
                "Fetch and parse the content of a web page. Use this to read and understand "
                "the content of a specific URL."
            ),
            input_schema=PageReadInput.model_json_schema(),
            execute=execute_page_read,
        ),
    ]


__all__ = [
    "PAGE_READ_TOOL_NAME",
    "SEARCH_TOOL_NAME",
    "PageReadInput",
    "SearchInput",
    "ToolDescriptor",
    "ToolExecute",
    "build_domain_tools",
    "normalize_reader_payload",
    "normalize_search_payload",
    "read_page",
    "web_search",
]
