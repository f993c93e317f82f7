"""Text generation boundary and provider adapters."""

from deliberate.llm.base import (
    PLAIN,
    REASONING,
    BaseLLMProvider,
    CallStats,
    GenerationOptions,
    LLMResponse,
    ProviderTextService,
    TextGenerationService,
)
from deliberate.llm.mock import ScriptedCall, ScriptedProvider, demo_provider
from deliberate.llm.types import Message, ModelConfig

__all__ = [
    "BaseLLMProvider",
    "CallStats",
    "GenerationOptions",
    "LLMResponse",
    "Message",
    "ModelConfig",
    "PLAIN",
    "ProviderTextService",
    "REASONING",
    "ScriptedCall",
    "ScriptedProvider",
    "TextGenerationService",
    "demo_provider",
]
