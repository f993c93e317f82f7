"""
Configuration settings for Deliberate.

Uses Pydantic Settings for environment variable and file-based configuration.
Every bound the reasoning engine relies on (self-consistency paths, tree
depth, branching factor, fan-out) lives here so callers never have to rely
on convention.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from deliberate.exceptions import ConfigurationError

DEFAULT_REASONING_SYSTEM_PROMPT = (
    "You are a careful analyst. Reason step by step, state your assumptions "
    "explicitly and finish with a clear conclusion."
)


class GenerationSettings(BaseSettings):
    """Text generation defaults."""

    model_config = SettingsConfigDict(
        env_prefix="DELIBERATE_GENERATION_",
        env_file=".env",
        extra="ignore",
    )

    default_model: str = "mock"
    default_temperature: float = 0.7
    default_max_tokens: int = 4096

    # Used when a call asks for reasoning mode without its own system prompt
    reasoning_system_prompt: str = DEFAULT_REASONING_SYSTEM_PROMPT


class ReasoningSettings(BaseSettings):
    """Bounds and tuning knobs for the reasoning engine."""

    model_config = SettingsConfigDict(
        env_prefix="DELIBERATE_REASONING_",
        env_file=".env",
        extra="ignore",
    )

    # Self-consistency
    default_num_paths: int = Field(default=3, ge=2)
    max_num_paths: int = Field(default=10, ge=2)

    # Concurrent generation calls per fan-out
    max_concurrency: int = Field(default=4, ge=1)

    # Decision trees (worst case is roughly max_options ** max_depth calls)
    default_max_depth: int = Field(default=3, ge=1)
    max_tree_depth: int = Field(default=4, ge=1)
    min_options: int = Field(default=2, ge=1)
    max_options: int = Field(default=4, ge=1)
    concurrent_siblings: bool = False

    # Chain confidence scoring
    minimum_confidence: float = 0.1
    low_confidence_assumption_threshold: float = 0.7
    assumption_penalty_weight: float = 0.2
    structure_bonus: float = 0.1
    consensus_boost_weight: float = 0.2

    # Assumption validation
    partial_validation_threshold: float = 0.3

    @model_validator(mode="after")
    def _check_bounds(self) -> ReasoningSettings:
        if self.default_num_paths > self.max_num_paths:
            raise ValueError("default_num_paths cannot exceed max_num_paths")
        if self.default_max_depth > self.max_tree_depth:
            raise ValueError("default_max_depth cannot exceed max_tree_depth")
        if self.min_options > self.max_options:
            raise ValueError("min_options cannot exceed max_options")
        return self

    def check_num_paths(self, num_paths: int) -> int:
        """Validate a self-consistency path count against the configured bounds."""
        if num_paths < 2 or num_paths > self.max_num_paths:
            raise ConfigurationError(
                f"num_paths must be between 2 and {self.max_num_paths}, got {num_paths}",
                details={"num_paths": num_paths, "max_num_paths": self.max_num_paths},
            )
        return num_paths

    def check_max_depth(self, max_depth: int) -> int:
        """Validate a decision tree depth against the configured bounds."""
        if max_depth < 1 or max_depth > self.max_tree_depth:
            raise ConfigurationError(
                f"max_depth must be between 1 and {self.max_tree_depth}, got {max_depth}",
                details={"max_depth": max_depth, "max_tree_depth": self.max_tree_depth},
            )
        return max_depth


class DeliberateSettings(BaseSettings):
    """
    Main configuration for Deliberate.

    Supports loading from:
    - Environment variables (DELIBERATE_* prefix)
    - .env file
    - YAML/JSON config files
    """

    model_config = SettingsConfigDict(
        env_prefix="DELIBERATE_",
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    project_name: str = "deliberate"
    environment: str = "development"
    debug: bool = False

    # Nested configurations
    generation: GenerationSettings = Field(default_factory=GenerationSettings)
    reasoning: ReasoningSettings = Field(default_factory=ReasoningSettings)

    # Logging
    log_level: str = "INFO"
    log_format: Literal["text", "json"] = "text"
    log_file: Path | None = None

    @classmethod
    def from_file(cls, path: str | Path) -> DeliberateSettings:
        """Load settings from a YAML or JSON file."""
        import json

        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        content = path.read_text()

        if path.suffix in (".yaml", ".yml"):
            import yaml

            data = yaml.safe_load(content) or {}
        elif path.suffix == ".json":
            data = json.loads(content)
        else:
            raise ConfigurationError(f"Unsupported config file format: {path.suffix}")

        return cls(**data)

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to a plain dictionary."""
        return self.model_dump(mode="json")


# Global settings instance (lazy-loaded)
_settings: DeliberateSettings | None = None


def get_settings() -> DeliberateSettings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = DeliberateSettings()
    return _settings


def configure(
    settings: DeliberateSettings | None = None,
    *,
    max_num_paths: int | None = None,
    max_tree_depth: int | None = None,
    max_concurrency: int | None = None,
    log_level: str | None = None,
    debug: bool | None = None,
) -> DeliberateSettings:
    """
    Configure Deliberate.

    Simple usage - tweak a bound:
        import deliberate
        deliberate.configure(max_num_paths=5)

    Full settings:
        from deliberate.config import DeliberateSettings
        deliberate.configure(settings=DeliberateSettings(...))

    Args:
        settings: Full settings object (optional)
        max_num_paths: Upper bound on self-consistency paths
        max_tree_depth: Upper bound on decision tree depth
        max_concurrency: Concurrent generation calls per fan-out
        log_level: Logging level name
        debug: Enable debug mode

    Returns:
        The active settings.
    """
    global _settings

    if settings is not None:
        _settings = settings
        return _settings

    current = get_settings()
    reasoning_updates: dict[str, Any] = {}
    if max_num_paths is not None:
        reasoning_updates["max_num_paths"] = max_num_paths
    if max_tree_depth is not None:
        reasoning_updates["max_tree_depth"] = max_tree_depth
    if max_concurrency is not None:
        reasoning_updates["max_concurrency"] = max_concurrency

    top_updates: dict[str, Any] = {}
    if reasoning_updates:
        merged = {**current.reasoning.model_dump(), **reasoning_updates}
        top_updates["reasoning"] = ReasoningSettings(**merged)
    if log_level is not None:
        top_updates["log_level"] = log_level
    if debug is not None:
        top_updates["debug"] = debug

    if top_updates:
        _settings = current.model_copy(update=top_updates)
    return get_settings()


def reset_settings() -> None:
    """Drop the cached global settings (mainly for tests)."""
    global _settings
    _settings = None


def load_dotenv(path: str | Path | None = None) -> bool:
    """
    Load environment variables from a .env file.

    Args:
        path: Path to .env file. Defaults to .env in current directory.

    Returns:
        True if file was loaded, False otherwise.
    """
    from dotenv import load_dotenv as _load_dotenv

    if path:
        return _load_dotenv(path)
    return _load_dotenv()
