"""Tests for the reasoning session."""

from __future__ import annotations

import asyncio

import pytest

from deliberate.reasoning.session import ReasoningSession
from deliberate.reasoning.types import Assumption, DetectedPattern, ThoughtChain


class TestReasoningSession:
    """Tests for ReasoningSession."""

    @pytest.mark.asyncio
    async def test_concurrent_appends(self):
        """Test concurrent appends all land."""
        session = ReasoningSession()
        chains = [ThoughtChain(problem=f"p{i}", confidence=0.5) for i in range(10)]

        await asyncio.gather(*(session.append(c) for c in chains))

        assert len(session) == 10
        assert {c.id for c in session.chains} == {c.id for c in chains}

    @pytest.mark.asyncio
    async def test_summary(self):
        """Test the summary lists counts, patterns and average confidence."""
        session = ReasoningSession()
        await session.append(
            ThoughtChain(problem="a", confidence=0.4, assumptions=(Assumption("x"),))
        )
        await session.append(ThoughtChain(problem="b", confidence=0.8))
        session.record_patterns([DetectedPattern("Low Confidence Pattern", "3 weak", 3)])

        lines = session.summary().splitlines()

        assert lines[0] == "=== Chain of Thought Summary ==="
        assert "Thought Chains: 2" in lines
        assert "Total Assumptions: 1" in lines
        assert "  - Low Confidence Pattern: 3 weak" in lines
        assert lines[-1] == "Average Confidence: 0.60"

    @pytest.mark.asyncio
    async def test_reset(self):
        """Test reset drops chains and patterns."""
        session = ReasoningSession()
        await session.append(ThoughtChain(problem="a"))
        session.record_patterns([DetectedPattern("n", "d", 3)])

        await session.reset()

        assert len(session) == 0
        assert session.patterns == ()
        assert session.average_confidence() == 0.0

    def test_empty_to_dict(self):
        """Test serialisation of an empty session."""
        assert ReasoningSession().to_dict() == {
            "chains": [],
            "patterns": [],
            "average_confidence": 0.0,
        }
