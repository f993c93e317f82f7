"""Tests for reasoning record types and bounded gathering."""

from __future__ import annotations

import asyncio
import json

import pytest

from deliberate.reasoning.base import gather_bounded
from deliberate.reasoning.types import (
    Assumption,
    ConsensusInfo,
    RiskLevel,
    Thought,
    ThoughtChain,
    ThoughtType,
    ValidationPlan,
    ValidationReport,
    clamp,
    new_id,
)


class TestHelpers:
    """Tests for id and clamp helpers."""

    def test_new_id_is_short_and_unique(self):
        """Test ids are 8 characters and distinct."""
        ids = {new_id() for _ in range(100)}
        assert len(ids) == 100
        assert all(len(i) == 8 for i in ids)

    def test_clamp(self):
        """Test clamping to bounds."""
        assert clamp(1.5) == 1.0
        assert clamp(-1) == 0.0
        assert clamp(0.3, 0.5) == 0.5

    def test_risk_ordinal(self):
        """Test risk ordering."""
        assert [r.ordinal for r in RiskLevel] == [1, 2, 3, 4]


class TestThoughtChain:
    """Tests for ThoughtChain."""

    def _chain(self) -> ThoughtChain:
        first = Thought("a", ThoughtType.OBSERVATION)
        second = Thought("b", ThoughtType.REASONING, parent_id=first.id)
        third = Thought("c", ThoughtType.CONCLUSION, parent_id=second.id)
        return ThoughtChain(problem="p", thoughts=(first, second, third), conclusion="c")

    def test_get_path_walks_to_root(self):
        """Test parent links are followed root-first."""
        chain = self._chain()
        path = chain.get_path(chain.thoughts[2].id)
        assert [t.content for t in path] == ["a", "b", "c"]
        assert chain.get_path("missing") == []

    def test_thoughts_of_type(self):
        """Test filtering by thought type."""
        chain = self._chain()
        assert [t.content for t in chain.thoughts_of_type(ThoughtType.REASONING)] == ["b"]

    def test_to_dict_is_json_safe(self):
        """Test serialisation produces plain data."""
        chain = self._chain()
        data = json.loads(json.dumps(chain.to_dict()))
        assert data["problem"] == "p"
        assert [t["type"] for t in data["thoughts"]] == ["observation", "reasoning", "conclusion"]
        assert data["consensus"] is None

    def test_chain_is_immutable(self):
        """Test frozen dataclass."""
        chain = self._chain()
        with pytest.raises(AttributeError):
            chain.confidence = 0.9  # type: ignore[misc]


class TestRecords:
    """Tests for smaller records."""

    def test_assumption_dependencies_sorted_in_dict(self):
        """Test dependency sets serialise sorted."""
        assumption = Assumption("x", dependencies={"b", "a"})
        assert assumption.to_dict()["dependencies"] == ["a", "b"]

    def test_consensus_agreement(self):
        """Test agreement ratio."""
        info = ConsensusInfo(
            num_paths=4, successful_paths=3, group_size=2, num_groups=2, boost=0.1, cluster_key="k"
        )
        assert info.agreement == 0.5

    def test_report_summary(self):
        """Test validation report summary line."""
        report = ValidationReport(total_assumptions=3, validated=2, valid=1, invalid=1)
        assert report.summary() == "Validated 2 of 3 assumptions: 1 valid (50%), 1 invalid"
        empty = ValidationReport(total_assumptions=0, validated=0, valid=0, invalid=0)
        assert "0 valid (0%)" in empty.summary()

    def test_plan_all_ids(self):
        """Test plan flattening keeps priority order."""
        plan = ValidationPlan(priority1=["a"], priority3=["b"], priority4=["c"])
        assert plan.all_ids() == ["a", "b", "c"]


class TestGatherBounded:
    """Tests for gather_bounded."""

    @pytest.mark.asyncio
    async def test_keeps_order_and_limit(self):
        """Test results keep input order and concurrency stays bounded."""
        in_flight = 0
        peak = 0

        async def work(i: int) -> int:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01 * (5 - i))
            in_flight -= 1
            return i

        results = await gather_bounded((work(i) for i in range(5)), limit=2)

        assert results == [0, 1, 2, 3, 4]
        assert peak <= 2

    @pytest.mark.asyncio
    async def test_return_exceptions(self):
        """Test failures are returned in place when requested."""

        async def ok() -> str:
            return "ok"

        async def fail() -> str:
            raise ValueError("bad")

        results = await gather_bounded([ok(), fail(), ok()], limit=3, return_exceptions=True)

        assert results[0] == "ok"
        assert isinstance(results[1], ValueError)
        assert results[2] == "ok"

    @pytest.mark.asyncio
    async def test_first_failure_propagates(self):
        """Test failures propagate without return_exceptions."""

        async def fail() -> None:
            raise ValueError("bad")

        with pytest.raises(ValueError):
            await gather_bounded([fail()], limit=1)

    @pytest.mark.asyncio
    async def test_failure_cancels_queued_work(self):
        """Test queued awaitables never start after the first failure."""
        started: list[int] = []

        async def work(i: int) -> int:
            started.append(i)
            await asyncio.sleep(0.01)
            if i == 0:
                raise ValueError("bad")
            return i

        with pytest.raises(ValueError):
            await gather_bounded((work(i) for i in range(4)), limit=1)
        await asyncio.sleep(0.05)

        assert started == [0]

    @pytest.mark.asyncio
    async def test_failure_cancels_running_work(self):
        """Test siblings still running are cancelled and awaited."""
        cancelled: list[int] = []

        async def slow(i: int) -> int:
            try:
                await asyncio.sleep(1)
            except asyncio.CancelledError:
                cancelled.append(i)
                raise
            return i

        async def fail() -> int:
            raise ValueError("bad")

        with pytest.raises(ValueError):
            await gather_bounded([slow(1), fail(), slow(2)], limit=3)

        assert sorted(cancelled) == [1, 2]

    @pytest.mark.asyncio
    async def test_empty_input(self):
        """Test nothing to await yields an empty list."""
        assert await gather_bounded([], limit=2) == []
