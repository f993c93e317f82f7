"""Explicit, request-scoped reasoning history.

Nothing in the reasoning components accumulates state between calls on
its own.  Callers that want a running history create a ``ReasoningSession``
and hand it to ``ChainOfThought``; every finished chain is appended through
``append``, which is serialised with an ``asyncio.Lock`` so concurrent
``think_through`` calls never interleave partial updates.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from deliberate.reasoning.types import Assumption, DetectedPattern, ThoughtChain

logger = logging.getLogger(__name__)

MAX_PATTERNS_IN_SUMMARY = 5


class ReasoningSession:
    """Append-only history of thought chains plus the last detected patterns."""

    def __init__(self) -> None:
        self._chains: list[ThoughtChain] = []
        self._patterns: list[DetectedPattern] = []
        self._lock = asyncio.Lock()

    @property
    def chains(self) -> tuple[ThoughtChain, ...]:
        return tuple(self._chains)

    @property
    def assumptions(self) -> tuple[Assumption, ...]:
        return tuple(a for chain in self._chains for a in chain.assumptions)

    @property
    def patterns(self) -> tuple[DetectedPattern, ...]:
        return tuple(self._patterns)

    def __len__(self) -> int:
        return len(self._chains)

    async def append(self, chain: ThoughtChain) -> None:
        async with self._lock:
            self._chains.append(chain)
        logger.debug("Session now holds %d chain(s)", len(self._chains))

    def record_patterns(self, patterns: list[DetectedPattern]) -> None:
        self._patterns = list(patterns)

    async def reset(self) -> None:
        """Drop all chains and patterns."""
        async with self._lock:
            self._chains.clear()
            self._patterns.clear()

    def average_confidence(self) -> float:
        if not self._chains:
            return 0.0
        return sum(c.confidence for c in self._chains) / len(self._chains)

    def summary(self) -> str:
        """Human-readable summary of the session."""
        lines = [
            "=== Chain of Thought Summary ===",
            f"Thought Chains: {len(self._chains)}",
            f"Total Assumptions: {len(self.assumptions)}",
        ]
        if self._patterns:
            lines.append("Patterns Detected:")
            for pattern in self._patterns[:MAX_PATTERNS_IN_SUMMARY]:
                lines.append(f"  - {pattern.name}: {pattern.description}")
        lines.append(f"Average Confidence: {self.average_confidence():.2f}")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "chains": [c.to_dict() for c in self._chains],
            "patterns": [p.to_dict() for p in self._patterns],
            "average_confidence": self.average_confidence(),
        }
