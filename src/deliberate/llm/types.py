"""
Shapes exchanged with a ``BaseLLMProvider``.

The reasoning core never builds these itself; ``ProviderTextService`` turns a
prompt string plus ``GenerationOptions`` into one user ``Message`` and a
``ModelConfig``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

Role = Literal["system", "user", "assistant"]


@dataclass
class ModelConfig:
    """Sampling parameters for a single provider call."""

    model_id: str
    temperature: float = 0.7
    max_tokens: int = 4096
    # Passed through untouched for provider-specific knobs
    extra_params: dict[str, Any] = field(default_factory=dict)


@dataclass
class Message:
    """One turn of the conversation sent to a provider."""

    role: Role
    content: str

    @classmethod
    def system(cls, content: str) -> Message:
        return cls("system", content)

    @classmethod
    def user(cls, content: str) -> Message:
        return cls("user", content)

    @classmethod
    def assistant(cls, content: str) -> Message:
        return cls("assistant", content)
