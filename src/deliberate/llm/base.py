"""Text generation boundary for the reasoning core.

Two layers live here:

- ``TextGenerationService`` -- the single collaborator the reasoning engine
  depends on: ``await service.generate(prompt, options) -> str``.  A failure
  is always a ``GenerationError``.
- ``BaseLLMProvider`` -- the message-oriented provider protocol (Anthropic,
  OpenAI, Ollama, ... implementations live outside this package).
  ``ProviderTextService`` adapts any provider to the service interface and
  keeps call/token statistics.

Example::

    from deliberate.llm import ProviderTextService, ScriptedProvider

    service = ProviderTextService(ScriptedProvider(default="Therefore, use Redis."))
    text = await service.generate("Choose a cache", GenerationOptions(use_reasoning_mode=True))
    print(service.stats.calls)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from deliberate.exceptions import GenerationError
from deliberate.llm.types import Message, ModelConfig

logger = logging.getLogger(__name__)


@dataclass
class GenerationOptions:
    """Per-call options for ``TextGenerationService.generate``."""

    use_reasoning_mode: bool = False
    """Ask the service for step-by-step reasoning output."""

    system_prompt: str | None = None
    """Optional system prompt override."""

    temperature: float | None = None
    """Optional temperature override."""


REASONING = GenerationOptions(use_reasoning_mode=True)
PLAIN = GenerationOptions()


class TextGenerationService(ABC):
    """Turns a prompt into natural-language text.

    Implementations must raise ``GenerationError`` (or a subclass) on
    failure and never return partial output.
    """

    @abstractmethod
    async def generate(self, prompt: str, options: GenerationOptions | None = None) -> str:
        """Generate text for *prompt*.

        Args:
            prompt: The full prompt text.
            options: Per-call options; ``None`` means defaults.

        Returns:
            The generated text.

        Raises:
            GenerationError: If the underlying service fails.
        """
        ...


@dataclass
class LLMResponse:
    """What a provider returns for one call.

    Token counts feed ``CallStats``; ``raw_response`` keeps the vendor payload
    for debugging and is never inspected by the reasoning core.
    """

    content: str
    stop_reason: str = "end_turn"
    input_tokens: int = 0
    output_tokens: int = 0
    model_id: str = ""
    raw_response: Any = None

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class BaseLLMProvider(ABC):
    """Message-oriented model backend.

    Vendor adapters (Anthropic, OpenAI, Ollama ...) implement this outside the
    package; ``ScriptedProvider`` is the in-tree implementation.

    Example:
        provider = ScriptedProvider(default="Use Redis.")
        response = await provider.generate(
            messages=[Message.user("Which cache?")],
            config=ModelConfig(model_id="mock"),
        )
        print(response.content, response.total_tokens)
    """

    @abstractmethod
    async def generate(
        self,
        messages: list[Message],
        config: ModelConfig,
        system_prompt: str | None = None,
    ) -> LLMResponse:
        """Run one completion.

        Args:
            messages: The conversation; the service always sends a single
                user message.
            config: Sampling parameters.
            system_prompt: Instruction sent ahead of the conversation.

        Raises:
            Exception: Anything; ``ProviderTextService`` wraps it into
                ``GenerationError``.
        """
        ...

    @abstractmethod
    def count_tokens(self, text: str, model_id: str) -> int:
        """Estimate the token count of *text* for *model_id*."""
        ...

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Short identifier reported in ``GenerationError.provider``."""
        ...

    @property
    def default_model(self) -> str:
        """Model used when the caller does not pick one."""
        return "default"


@dataclass
class CallStats:
    """Running totals for a ``ProviderTextService``."""

    calls: int = 0
    failures: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    prompts: list[str] = field(default_factory=list)

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class ProviderTextService(TextGenerationService):
    """Adapts a ``BaseLLMProvider`` to ``TextGenerationService``.

    This is the only path through which the reasoning engine reaches a
    provider, so ``stats`` is always accurate.  Provider exceptions that are
    not already ``GenerationError`` are wrapped exactly once here.

    Args:
        provider: Any ``BaseLLMProvider``.
        model_id: Model to request; defaults to the provider's default model.
        temperature: Default temperature when the call does not override it.
        reasoning_system_prompt: System prompt used for reasoning-mode calls
            that do not bring their own.
        record_prompts: Keep every prompt in ``stats.prompts``.
    """

    def __init__(
        self,
        provider: BaseLLMProvider,
        model_id: str | None = None,
        temperature: float | None = None,
        reasoning_system_prompt: str | None = None,
        record_prompts: bool = False,
    ) -> None:
        from deliberate.config.settings import get_settings

        generation = get_settings().generation
        self.provider = provider
        self.model_id = model_id or provider.default_model or generation.default_model
        self.temperature = (
            temperature if temperature is not None else generation.default_temperature
        )
        self.max_tokens = generation.default_max_tokens
        self.reasoning_system_prompt = (
            reasoning_system_prompt or generation.reasoning_system_prompt
        )
        self.record_prompts = record_prompts
        self.stats = CallStats()

    async def generate(self, prompt: str, options: GenerationOptions | None = None) -> str:
        options = options or PLAIN

        config = ModelConfig(
            model_id=self.model_id,
            temperature=(
                options.temperature if options.temperature is not None else self.temperature
            ),
            max_tokens=self.max_tokens,
        )
        system_prompt = options.system_prompt
        if system_prompt is None and options.use_reasoning_mode:
            system_prompt = self.reasoning_system_prompt

        self.stats.calls += 1
        if self.record_prompts:
            self.stats.prompts.append(prompt)

        try:
            result = await self.provider.generate(
                messages=[Message.user(prompt)],
                config=config,
                system_prompt=system_prompt,
            )
        except GenerationError:
            self.stats.failures += 1
            raise
        except Exception as e:
            self.stats.failures += 1
            raise GenerationError(
                "Text generation failed",
                provider=self.provider.provider_name,
                model=self.model_id,
                cause=e,
            ) from e

        self.stats.input_tokens += result.input_tokens
        self.stats.output_tokens += result.output_tokens
        logger.debug(
            "%s generated %d chars (%d tokens)",
            self.provider.provider_name,
            len(result.content),
            result.total_tokens,
        )
        return result.content
