"""
Exception hierarchy for Deliberate.

All exceptions inherit from DeliberateError for easy catching.

Parsing never raises: a reply that does not match the expected marker
grammar degrades to default values instead (see ``deliberate.reasoning.parser``).
"""

from __future__ import annotations

from typing import Any


class DeliberateError(Exception):
    """Base exception for all Deliberate errors."""

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message} (caused by: {self.cause})"
        return self.message


# Configuration Errors
class ConfigurationError(DeliberateError):
    """Error in configuration or in a bounded argument (paths, depth)."""

    pass


# Generation Errors
class GenerationError(DeliberateError):
    """The text generation service failed.

    Fatal to the enclosing operation. The reasoning core never retries.
    """

    def __init__(
        self,
        message: str,
        *,
        provider: str | None = None,
        model: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.provider = provider
        self.model = model


class GenerationUnavailableError(GenerationError):
    """The text generation service could not be reached."""

    pass


# Reasoning Errors
class ReasoningError(DeliberateError):
    """Base exception for reasoning-layer errors."""

    pass


class ConsensusError(ReasoningError):
    """Every self-consistency path failed."""

    def __init__(
        self,
        message: str,
        *,
        num_paths: int | None = None,
        failures: int | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.num_paths = num_paths
        self.failures = failures


class DecisionError(ReasoningError):
    """Invalid decision tree operation (unknown node, invalid selection)."""

    def __init__(
        self,
        message: str,
        *,
        node_id: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.node_id = node_id


class AssumptionError(ReasoningError):
    """Unknown assumption id or a dependency edge that would close a cycle."""

    def __init__(
        self,
        message: str,
        *,
        assumption_id: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.assumption_id = assumption_id
