"""Domain Layer - Briefing Generation Core.

Key Components:
    - BriefingOrchestrator: Drives one streamed, tool-augmented generation
    - ToolProviderRegistry: Per-request lifecycle of process-backed tool providers
    - ExternalCaller: Bounded POST to remote tool endpoints, failures as data
    - Domain tools: search and page_read with result normalization
    - GenerationTrace: Immutable record of steps and the terminal outcome
    - build_prompt: The LANG_MODE / URL / MISSION prompt grammar

Design Principles:
    - Failures become data wherever the model can react to them
    - Provider resources are released exactly once per request
    - Immutable values, explicit dependencies, no shared mutable state
"""

from .domain_type import CallStatus, FailureKind, GenerationOutcome, LangMode
from .domain_value import CallFailure, CallOutcome, CallSuccess, TokenUsage
from .errors import (
    BriefingError,
    BriefingRequestError,
    MissingCredentialError,
    NoToolsAvailableError,
    ProviderInitializationError,
)
from .external_call import ExternalCaller
from .orchestrator import BriefingOrchestrator, BriefingRun, assemble_tools, merge_tools
from .prompt import BRIEFING_SYSTEM_PROMPT, build_prompt
from .providers import ProviderSpec, ToolProviderRegistry, ToolProviderSet
from .tools import ToolDescriptor, build_domain_tools
from .trace import GenerationTrace, StepRecord

__all__ = [
    "BRIEFING_SYSTEM_PROMPT",
    "BriefingError",
    "BriefingOrchestrator",
    "BriefingRequestError",
    "BriefingRun",
    "CallFailure",
    "CallOutcome",
    "CallStatus",
    "CallSuccess",
    "ExternalCaller",
    "FailureKind",
    "GenerationOutcome",
    "GenerationTrace",
    "LangMode",
    "MissingCredentialError",
    "NoToolsAvailableError",
    "ProviderInitializationError",
    "ProviderSpec",
    "StepRecord",
    "TokenUsage",
    "ToolDescriptor",
    "ToolProviderRegistry",
    "ToolProviderSet",
    "assemble_tools",
    "build_domain_tools",
    "build_prompt",
    "merge_tools",
]
