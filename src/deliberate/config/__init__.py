"""Configuration module for Deliberate."""

from deliberate.config.logging import configure_logging
from deliberate.config.settings import (
    DeliberateSettings,
    GenerationSettings,
    ReasoningSettings,
    configure,
    get_settings,
    load_dotenv,
    reset_settings,
)

__all__ = [
    "DeliberateSettings",
    "GenerationSettings",
    "ReasoningSettings",
    "configure",
    "configure_logging",
    "get_settings",
    "load_dotenv",
    "reset_settings",
]
