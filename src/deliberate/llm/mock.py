"""Scripted LLM provider for testing and development.

This provider answers from a list of rules instead of a model. It can be used to:
- Test reasoning workflows deterministically
- Run demos and the HTTP surface without API keys
- Simulate provider failures
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Union

from deliberate.llm.base import BaseLLMProvider, LLMResponse
from deliberate.llm.types import Message, ModelConfig

logger = logging.getLogger(__name__)

Reply = Union[str, list[str], Callable[[str], str]]


@dataclass
class ScriptedCall:
    """One recorded call to a ``ScriptedProvider``."""

    prompt: str
    system_prompt: str | None
    response: str | None
    failed: bool = False


class ScriptedProvider(BaseLLMProvider):
    """Deterministic provider driven by substring rules.

    Rules are checked in order against the last user message; the first rule
    whose pattern occurs in the prompt wins. A pattern is a plain substring or
    a compiled regular expression. A reply is either a string, a list of
    strings consumed round-robin, or a callable receiving the prompt.

    Example:
        provider = ScriptedProvider(
            rules=[
                ("Extract assumptions", "ASSUMPTION: Reads dominate\\nCONFIDENCE: 0.8"),
                ("Generate 2-4 options", ["OPTION: A\\nPROBABILITY: 0.6", "OPTION: B"]),
            ],
            default="Therefore, use a cache.",
        )

    Args:
        rules: Ordered ``(pattern, reply)`` pairs.
        default: Reply used when no rule matches.
        fail_on: Prompts containing this substring raise ``error``.
        fail_calls: 1-based call numbers that raise ``error``.
        error: Exception raised for a scripted failure.
    """

    def __init__(
        self,
        rules: list[tuple[str | re.Pattern[str], Reply]] | None = None,
        default: Reply = "",
        fail_on: str | None = None,
        fail_calls: set[int] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.rules = list(rules or [])
        self.default = default
        self.fail_on = fail_on
        self.fail_calls = set(fail_calls or ())
        self.error = error or ConnectionError("scripted provider failure")
        self.calls: list[ScriptedCall] = []
        self._cursors: dict[int, int] = {}

    @property
    def provider_name(self) -> str:
        return "mock"

    @property
    def default_model(self) -> str:
        return "mock"

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def add_rule(self, pattern: str | re.Pattern[str], reply: Reply) -> None:
        """Append a rule; earlier rules keep precedence."""
        self.rules.append((pattern, reply))

    def prompts(self) -> list[str]:
        """All prompts seen so far, in call order."""
        return [call.prompt for call in self.calls]

    async def generate(
        self,
        messages: list[Message],
        config: ModelConfig,
        system_prompt: str | None = None,
    ) -> LLMResponse:
        prompt = next(
            (msg.content for msg in reversed(messages) if msg.role == "user"), ""
        )
        call_number = len(self.calls) + 1

        if call_number in self.fail_calls or (self.fail_on and self.fail_on in prompt):
            self.calls.append(ScriptedCall(prompt, system_prompt, None, failed=True))
            logger.debug("Scripted failure on call #%d", call_number)
            raise self.error

        text = self._reply_for(prompt)
        self.calls.append(ScriptedCall(prompt, system_prompt, text))

        return LLMResponse(
            content=text,
            stop_reason="end_turn",
            input_tokens=self.count_tokens(prompt, config.model_id),
            output_tokens=self.count_tokens(text, config.model_id),
            model_id=config.model_id,
        )

    def count_tokens(self, text: str, model_id: str) -> int:
        # Rough estimate: ~4 characters per token
        return len(text) // 4

    def _reply_for(self, prompt: str) -> str:
        for index, (pattern, reply) in enumerate(self.rules):
            if isinstance(pattern, re.Pattern):
                matched = pattern.search(prompt) is not None
            else:
                matched = pattern in prompt
            if matched:
                return self._resolve(index, reply, prompt)
        return self._resolve(-1, self.default, prompt)

    def _resolve(self, key: int, reply: Reply, prompt: str) -> str:
        if callable(reply):
            return reply(prompt)
        if isinstance(reply, list):
            if not reply:
                return ""
            cursor = self._cursors.get(key, 0)
            self._cursors[key] = cursor + 1
            return reply[cursor % len(reply)]
        return reply


DEMO_REASONING = """\
Observation: the problem involves repeated reads of data that rarely changes.

Assuming the working set fits in memory, an in-process cache is the simplest option.

The read/write ratio suggests that most requests could be served from a cache layer.

A risk is serving stale data when the underlying records change.

Therefore, a read-through cache with a short TTL is the most likely fit."""

DEMO_ASSUMPTIONS = """\
ASSUMPTION: The working set fits in memory
CATEGORY: PERFORMANCE
CONFIDENCE: 0.6
IMPACT: HIGH"""

DEMO_OPTIONS = """\
OPTION: In-process LRU cache
PROS: No network hop, simple
CONS: Not shared between instances
PROBABILITY: 0.6
RISK: LOW

OPTION: Shared Redis cache
PROS: Shared across instances, mature tooling
CONS: Extra infrastructure to run
PROBABILITY: 0.7
RISK: MEDIUM

OPTION: CDN edge caching
PROS: Offloads traffic entirely
CONS: Hard to invalidate, only for public content
PROBABILITY: 0.4
RISK: HIGH"""

DEMO_VALIDATION = """\
VALID: PARTIAL
EVIDENCE: Holds for current traffic but not for projected growth
CONFIDENCE: 0.5
IMPLICATIONS: Revisit once the data set doubles"""

DEMO_IMPACT = """\
SCOPE: MODULE
SEVERITY: MEDIUM
AFFECTED: cache layer, read API
MITIGATION: Add metrics on hit ratio and memory use"""


def demo_provider() -> ScriptedProvider:
    """A ``ScriptedProvider`` that answers every prompt the reasoning engine sends."""
    return ScriptedProvider(
        rules=[
            ("assumptions from this", DEMO_ASSUMPTIONS),
            ("Validate this assumption", DEMO_VALIDATION),
            ("Assess the impact", DEMO_IMPACT),
            ("contradictions in these assumptions", ""),
            ("Create the first decision question", "Which caching approach should we adopt?"),
            ("Generate 2-4 options", DEMO_OPTIONS),
            ("next decision", "Final decision, no follow-up needed."),
            ("alternative approaches", ""),
            ("Which option would you recommend", "Shared Redis cache"),
            ("Explain this decision", "It balances probability against risk."),
        ],
        default=DEMO_REASONING,
    )
