"""Generation Orchestrator - Streaming Tool-Augmented Briefing Generation.

Drives one briefing request from provider acquisition to cleanup while text is
relayed to the client as it is produced.

Request Lifecycle:
    1. Acquire providers: open the per-request ``ToolProviderSet``
    2. Assemble tools: domain tools first, then each live provider's tools in
       slot order; on a name collision the later tool replaces the earlier one
    3. Stream generation: a Pydantic AI agent is driven node by node with
       ``Agent.iter``; model request nodes are streamed and their text deltas
       pushed to the run's queue, tool-call nodes are streamed for the trace
    4. Finalize: exactly one of completed, stream error or pre-stream error

Relay Architecture:
    All of the above runs in one background task per request. That task owns
    the provider set, so the stdio transports are entered and exited from the
    same task, and its ``finally`` block is the single place providers are
    released. ``start()`` only returns once the agent is built; if anything
    fails before that, providers are released first and the error is raised
    from ``start()`` so the API can answer with JSON instead of a stream. After
    that point the HTTP body is already a plain text stream, so a generation
    failure is logged and the stream simply ends.

Example:
    >>> orchestrator = BriefingOrchestrator(settings=settings)
    >>> run = await orchestrator.start(prompt)
    >>> async for chunk in run.text_stream():
    ...     print(chunk, end="")
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Callable, Iterable
from typing import Any

from pydantic_ai import Agent
from pydantic_ai.messages import (
    AgentStreamEvent,
    FunctionToolCallEvent,
    FunctionToolResultEvent,
    PartDeltaEvent,
    PartStartEvent,
    RetryPromptPart,
    TextPart,
    TextPartDelta,
)
from pydantic_ai.models import Model
from pydantic_ai.settings import ModelSettings

from ..config import Settings
from .domain_type import GenerationOutcome
from .domain_value import TokenUsage
from .errors import NoToolsAvailableError, ProviderInitializationError
from .prompt import BRIEFING_SYSTEM_PROMPT
from .providers import ToolProviderRegistry, ToolProviderSet
from .tools import ToolDescriptor, build_domain_tools
from .trace import GenerationTrace, StepRecord, ToolCallRecord, ToolResultRecord

logger = logging.getLogger(__name__)

_END_OF_STREAM = object()


def merge_tools(
    merged: dict[str, ToolDescriptor],
    tools: Iterable[ToolDescriptor],
) -> dict[str, ToolDescriptor]:
    """Merge ``tools`` into ``merged`` in order; a repeated name replaces the earlier tool."""
    for tool in tools:
        previous = merged.get(tool.name)
        if previous is not None:
            logger.warning(
                "Tool %r from %s overrides the one from %s", tool.name, tool.source, previous.source
            )
        merged[tool.name] = tool
    return merged


async def assemble_tools(
    domain_tools: Iterable[ToolDescriptor],
    provider_set: ToolProviderSet,
) -> dict[str, ToolDescriptor]:
    """Build the name-keyed tool set for one generation.

    Precedence (later wins): domain tools, then providers in slot order.
    Failing to enumerate a provider's tools is logged and that provider
    contributes nothing.
    """
    merged = merge_tools({}, domain_tools)
    for name, connection in provider_set.live():
        try:
            provider_tools = await connection.list_tools()
        except Exception as exc:
            logger.warning("Failed to get %s provider tools: %r", name, exc)
            continue
        merge_tools(merged, provider_tools)
    return merged


def build_chat_model(settings: Settings) -> Model:
    """OpenAI-compatible chat model for the configured GLM endpoint."""
    from pydantic_ai.models.openai import OpenAIChatModel
    from pydantic_ai.providers.openai import OpenAIProvider

    provider = OpenAIProvider(base_url=settings.llm_base_url, api_key=settings.zai_api_key)
    return OpenAIChatModel(settings.llm_model, provider=provider)


def _text_delta(event: AgentStreamEvent) -> str:
    if isinstance(event, PartStartEvent) and isinstance(event.part, TextPart):
        return event.part.content
    if isinstance(event, PartDeltaEvent) and isinstance(event.delta, TextPartDelta):
        return event.delta.content_delta
    return ""


def _result_chars(content: Any) -> int:
    if isinstance(content, str):
        return len(content)
    return len(json.dumps(content, default=str, ensure_ascii=False))


class BriefingRun:
    """Handle on one in-flight generation.

    Text produced by the model is queued as it arrives; ``text_stream`` drains
    the queue until the generation task signals the end. ``trace`` is updated
    as steps finish and carries the terminal outcome once the task is done.
    """

    def __init__(self, prompt: str):
        self.prompt = prompt
        self.trace = GenerationTrace()
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None

    def emit(self, text: str) -> None:
        if text:
            self._queue.put_nowait(text)

    def end_stream(self) -> None:
        self._queue.put_nowait(_END_OF_STREAM)

    async def text_stream(self) -> AsyncIterator[str]:
        """Yield text deltas until the generation ends, normally or not."""
        while True:
            chunk = await self._queue.get()
            if chunk is _END_OF_STREAM:
                return
            yield chunk

    async def wait_closed(self) -> GenerationTrace:
        """Wait for the generation task (including provider cleanup) to finish."""
        if self._task is not None:
            await self._task
        return self.trace


class BriefingOrchestrator:
    """Per-request driver of the model/tool step loop.

    Args:
        settings: Model endpoint, sampling budget and stream ceiling
        registry: Provider registry; defaults to one built from settings
        model: Pydantic AI model; defaults to the configured OpenAI-compatible
            GLM model (tests pass a ``FunctionModel``)
        domain_tools: Factory for the static tools; defaults to search and page_read
    """

    def __init__(
        self,
        settings: Settings,
        registry: ToolProviderRegistry | None = None,
        model: Model | None = None,
        domain_tools: Callable[[], list[ToolDescriptor]] | None = None,
    ):
        self.settings = settings
        self.registry = registry or ToolProviderRegistry(settings)
        self._model = model
        self._domain_tools = domain_tools or (lambda: build_domain_tools(settings))

    @property
    def model(self) -> Model:
        if self._model is None:
            self._model = build_chat_model(self.settings)
        return self._model

    @property
    def model_settings(self) -> ModelSettings:
        return ModelSettings(
            max_tokens=self.settings.max_output_tokens,
            temperature=self.settings.temperature,
        )

    async def start(self, prompt: str) -> BriefingRun:
        """Acquire providers, assemble tools and begin generating.

        Returns once the text stream is ready to be relayed.

        Raises:
            MissingCredentialError: The registry could not be opened.
            NoToolsAvailableError: Tool assembly produced nothing.
            Exception: Any other failure before generation started; providers
                are already released when it propagates.
        """
        run = BriefingRun(prompt)
        ready: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        run._task = asyncio.create_task(self._drive(run, ready))
        await ready
        return run

    async def _drive(self, run: BriefingRun, ready: asyncio.Future[None]) -> None:
        provider_set: ToolProviderSet | None = None
        pre_stream_failure: Exception | None = None
        try:
            provider_set = await self.registry.open()
            tools = await assemble_tools(self._domain_tools(), provider_set)
            if not tools:
                raise NoToolsAvailableError()

            logger.info("Total tools available: %d %s", len(tools), sorted(tools))
            agent = self.build_agent(tools)
            ready.set_result(None)
            await self._generate(run, agent)
        except Exception as exc:
            if ready.done():
                run.trace = run.trace.finish(GenerationOutcome.STREAM_ERROR, error=str(exc))
                logger.exception("Stream error during briefing generation")
            else:
                pre_stream_failure = exc
                run.trace = run.trace.finish(GenerationOutcome.PRE_STREAM_ERROR, error=str(exc))
                logger.exception("Briefing failed before streaming started")
        finally:
            if provider_set is not None:
                await self.registry.close(provider_set)
            run.end_stream()
            if not ready.done():
                ready.set_exception(
                    pre_stream_failure or ProviderInitializationError("Briefing run was cancelled before streaming")
                )
            logger.info("Briefing run closed: %s", run.trace.to_log_attributes())

    def build_agent(self, tools: dict[str, ToolDescriptor]) -> Agent[None, str]:
        """Agent for one run: configured model, fixed system instruction, merged tools."""
        return Agent(
            self.model,
            output_type=str,
            system_prompt=BRIEFING_SYSTEM_PROMPT,
            tools=[tool.to_agent_tool() for tool in tools.values()],
        )

    async def _generate(self, run: BriefingRun, agent: Agent[None, str]) -> None:
        logger.info("Starting generation, prompt length %d", len(run.prompt))

        async with asyncio.timeout(self.settings.max_stream_seconds):
            async with agent.iter(run.prompt, model_settings=self.model_settings) as agent_run:
                text_chars = 0
                async for node in agent_run:
                    if Agent.is_model_request_node(node):
                        text_chars = 0
                        async with node.stream(agent_run.ctx) as request_stream:
                            async for event in request_stream:
                                delta = _text_delta(event)
                                if delta:
                                    text_chars += len(delta)
                                    run.emit(delta)
                    elif Agent.is_call_tools_node(node):
                        step = await self._run_tool_step(run, node, agent_run.ctx, text_chars)
                        run.trace = run.trace.append(step)
                        text_chars = 0

                run_usage = agent_run.usage()

        usage = TokenUsage(input_tokens=run_usage.input_tokens, output_tokens=run_usage.output_tokens)
        finish_reason = run.trace.steps[-1].finish_reason if run.trace.steps else None
        run.trace = run.trace.finish(GenerationOutcome.COMPLETED, finish_reason=finish_reason, usage=usage)

        if run.trace.truncated:
            logger.warning("Briefing was truncated by the max_output_tokens limit (%d)", self.settings.max_output_tokens)
        logger.info(
            "Stream finished: reason=%s text_chars=%d input_tokens=%d output_tokens=%d",
            finish_reason,
            run.trace.total_text_chars,
            usage.input_tokens,
            usage.output_tokens,
        )

    async def _run_tool_step(self, run: BriefingRun, node: Any, ctx: Any, text_chars: int) -> StepRecord:
        """Stream one tool-call node and summarize the step it closes."""
        calls: list[ToolCallRecord] = []
        results: list[ToolResultRecord] = []
        async with node.stream(ctx) as handle_stream:
            async for event in handle_stream:
                if isinstance(event, FunctionToolCallEvent):
                    calls.append(ToolCallRecord(tool_name=event.part.tool_name, tool_call_id=event.part.tool_call_id))
                    logger.info("Tool call: %s (%s)", event.part.tool_name, event.part.tool_call_id)
                elif isinstance(event, FunctionToolResultEvent):
                    part = event.part
                    results.append(
                        ToolResultRecord(
                            tool_name=part.tool_name or "",
                            tool_call_id=part.tool_call_id,
                            result_chars=_result_chars(part.content),
                            is_error=isinstance(part, RetryPromptPart)
                            or (isinstance(part.content, dict) and "error" in part.content),
                        )
                    )

        step = StepRecord(
            index=len(run.trace.steps),
            text_chars=text_chars,
            tool_calls=tuple(calls),
            tool_results=tuple(results),
            finish_reason=node.model_response.finish_reason,
        )
        logger.info(
            "Step %d finished: text_chars=%d tool_calls=%d tool_results=%d finish_reason=%s",
            step.index,
            step.text_chars,
            len(step.tool_calls),
            len(step.tool_results),
            step.finish_reason,
        )
        return step


__all__ = [
    "BriefingOrchestrator",
    "BriefingRun",
    "assemble_tools",
    "build_chat_model",
    "merge_tools",
]
