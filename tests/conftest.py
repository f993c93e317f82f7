"""Pytest configuration and fixtures for Deliberate tests."""

from __future__ import annotations

import asyncio

import pytest

from deliberate.config.settings import ReasoningSettings, reset_settings
from deliberate.llm.base import GenerationOptions, ProviderTextService, TextGenerationService
from deliberate.llm.mock import ScriptedProvider, demo_provider


@pytest.fixture(autouse=True)
def fresh_settings():
    """Drop cached global settings around every test."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def make_service():
    """Factory for a ProviderTextService over a ScriptedProvider."""

    def factory(**kwargs) -> ProviderTextService:
        return ProviderTextService(ScriptedProvider(**kwargs), record_prompts=True)

    return factory


@pytest.fixture
def demo_service() -> ProviderTextService:
    """Service answering every reasoning prompt with canned caching advice."""
    return ProviderTextService(demo_provider(), record_prompts=True)


@pytest.fixture
def settings() -> ReasoningSettings:
    """Default reasoning settings, independent of the environment."""
    return ReasoningSettings()


REASONING_REPLY = """\
Observation: traffic is read heavy.

We assume the data set is small.

A cache layer is likely to cut latency.

Therefore, add a read-through cache."""


@pytest.fixture
def reasoning_reply() -> str:
    """Four paragraphs: observation, assumption, reasoning, conclusion."""
    return REASONING_REPLY


class PacedService(TextGenerationService):
    """Wraps a scripted service, yielding before each call and tracking overlap."""

    def __init__(self, inner: ProviderTextService, delay: float = 0.01) -> None:
        self.inner = inner
        self.delay = delay
        self.in_flight = 0
        self.peak = 0

    @property
    def provider(self) -> ScriptedProvider:
        return self.inner.provider

    async def generate(self, prompt: str, options: GenerationOptions | None = None) -> str:
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            return await self.inner.generate(prompt, options)
        finally:
            self.in_flight -= 1


@pytest.fixture
def make_paced_service(make_service):
    """Factory for a PacedService over a scripted service."""

    def factory(delay: float = 0.01, **kwargs) -> PacedService:
        return PacedService(make_service(**kwargs), delay=delay)

    return factory
