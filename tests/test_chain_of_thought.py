"""Tests for chain of thought reasoning."""

from __future__ import annotations

import asyncio

import pytest

from deliberate.config.settings import ReasoningSettings
from deliberate.exceptions import GenerationError
from deliberate.reasoning.chain_of_thought import (
    NO_CONCLUSION,
    ChainOfThought,
    ThoughtChainBuilder,
    analyze_chain,
    build_prompt,
    classify_paragraph,
    detect_patterns,
    pick_conclusion,
    score_chain,
    score_confidence,
    split_paragraphs,
)
from deliberate.reasoning.session import ReasoningSession
from deliberate.reasoning.types import (
    Assumption,
    AssumptionCategory,
    Severity,
    Thought,
    ThoughtChain,
    ThoughtType,
)

EXTRACT = "Extract assumptions from this text"


class TestPromptAndParagraphs:
    """Tests for prompt building and paragraph handling."""

    def test_build_prompt_plain(self):
        """Test a bare problem gets the step-by-step suffix."""
        assert build_prompt("Pick a cache") == "Pick a cache\n\nLet's think step by step."

    def test_build_prompt_with_context_and_constraints(self):
        """Test context and considerations are included."""
        prompt = build_prompt("Pick a cache", "Read heavy API", ["Low budget", "Small team"])
        assert prompt.startswith("Context: Read heavy API\n\nProblem: Pick a cache")
        assert "Considerations:\n• Low budget\n• Small team\n" in prompt
        assert prompt.endswith("Let's think step by step.")

    def test_split_paragraphs(self):
        """Test blank lines (including whitespace-only) separate paragraphs."""
        assert split_paragraphs("a\nb\n\nc\n   \nd") == ["a\nb", "c", "d"]
        assert split_paragraphs("") == []

    @pytest.mark.parametrize(
        "text,index,expected",
        [
            ("anything", 0, ThoughtType.OBSERVATION),
            ("I observed a spike", 3, ThoughtType.OBSERVATION),
            ("Is the data shared?", 1, ThoughtType.QUESTION),
            ("We assume low churn", 1, ThoughtType.ASSUMPTION),
            ("Another option is a CDN", 1, ThoughtType.ALTERNATIVE),
            ("The main risk is staleness", 1, ThoughtType.WARNING),
            ("Therefore, use Redis", 1, ThoughtType.CONCLUSION),
            ("Reads outnumber writes", 1, ThoughtType.REASONING),
        ],
    )
    def test_classify_paragraph(self, text, index, expected):
        """Test keyword classification order."""
        assert classify_paragraph(text, index) is expected

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("This is certain", 0.85),
            ("It might work", 0.4),
            ("Redis is likely enough", 0.65),
            ("Reads outnumber writes", 0.5),
        ],
    )
    def test_score_confidence(self, text, expected):
        """Test hedging vocabulary scores."""
        assert score_confidence(text) == expected


class TestScoring:
    """Tests for conclusion picking and chain scoring."""

    def test_pick_conclusion_preference(self):
        """Test conclusion, then reasoning, then last thought."""
        obs = Thought("obs", ThoughtType.OBSERVATION)
        reasoning = Thought("why", ThoughtType.REASONING)
        warning = Thought("careful", ThoughtType.WARNING)
        conclusion = Thought("so", ThoughtType.CONCLUSION)

        assert pick_conclusion([obs, conclusion, reasoning]) == "so"
        assert pick_conclusion([obs, reasoning, warning]) == "why"
        assert pick_conclusion([obs, warning]) == "careful"
        assert pick_conclusion([]) == NO_CONCLUSION

    def test_score_chain_empty(self, settings):
        """Test an empty chain gets the minimum confidence."""
        assert score_chain([], [], settings) == settings.minimum_confidence

    def test_score_chain_penalty_and_bonus(self, settings):
        """Test weak assumptions lower and structure raises the score."""
        thoughts = [
            Thought("r", ThoughtType.REASONING, confidence=0.6),
            Thought("c", ThoughtType.CONCLUSION, confidence=0.6),
        ]
        weak = [Assumption("a", confidence=0.2), Assumption("b", confidence=0.9)]

        # 0.6 - 1/2 * 0.2 + 0.1
        assert score_chain(thoughts, weak, settings) == pytest.approx(0.6)
        assert score_chain(thoughts[:1], [], settings) == pytest.approx(0.6)

    def test_score_chain_floor(self, settings):
        """Test the score never drops below the minimum."""
        thoughts = [Thought("o", ThoughtType.OBSERVATION, confidence=0.0)]
        assert score_chain(thoughts, [Assumption("a", confidence=0.0)], settings) == 0.1


class TestThoughtChainBuilder:
    """Tests for a single reasoning pass."""

    @pytest.mark.asyncio
    async def test_build_chain(self, make_service, reasoning_reply):
        """Test a pass produces typed, linked thoughts and assumptions."""
        service = make_service(
            rules=[(EXTRACT, "ASSUMPTION: Small data set\nCATEGORY: DATA\nCONFIDENCE: 0.9\nIMPACT: high")],
            default=reasoning_reply,
        )

        chain = await ThoughtChainBuilder(service).build("Pick a cache")

        assert [t.type for t in chain.thoughts] == [
            ThoughtType.OBSERVATION,
            ThoughtType.ASSUMPTION,
            ThoughtType.REASONING,
            ThoughtType.CONCLUSION,
        ]
        assert chain.thoughts[0].parent_id is None
        for previous, thought in zip(chain.thoughts, chain.thoughts[1:]):
            assert thought.parent_id == previous.id

        assert chain.conclusion == "Therefore, add a read-through cache."
        assert chain.confidence == pytest.approx(0.6375)
        assert service.stats.calls == 3

        assert len(chain.assumptions) == 2
        assumption = chain.assumptions[0]
        assert assumption.statement == "Small data set"
        assert assumption.category is AssumptionCategory.DATA
        assert assumption.impact is not None
        assert assumption.impact.severity is Severity.HIGH
        assert assumption.context == "We assume the data set is small."

    @pytest.mark.asyncio
    async def test_weak_assumptions_lower_confidence(self, make_service, reasoning_reply):
        """Test the assumption penalty applies."""
        service = make_service(
            rules=[(EXTRACT, "ASSUMPTION: Small data set\nCONFIDENCE: 0.5")],
            default=reasoning_reply,
        )

        chain = await ThoughtChainBuilder(service).build("Pick a cache")

        assert chain.confidence == pytest.approx(0.4375)

    @pytest.mark.asyncio
    async def test_reasoning_call_uses_reasoning_mode(self, make_service, reasoning_reply):
        """Test only the first call carries the reasoning system prompt."""
        service = make_service(default=reasoning_reply)

        await ThoughtChainBuilder(service).build("Pick a cache")

        calls = service.provider.calls
        assert calls[0].system_prompt == service.reasoning_system_prompt
        assert all(c.system_prompt is None for c in calls[1:])
        assert calls[0].prompt.endswith("Let's think step by step.")

    @pytest.mark.asyncio
    async def test_alternatives(self, make_service, reasoning_reply):
        """Test alternative approaches are parsed when requested."""
        service = make_service(
            rules=[
                ("alternative approaches", "APPROACH: Use a CDN\nPROBABILITY: 0.3\nPROS: cheap\nCONS: stale"),
            ],
            default=reasoning_reply,
        )

        chain = await ThoughtChainBuilder(service).build("Pick a cache", generate_alternatives=True)

        assert len(chain.alternatives) == 1
        assert chain.alternatives[0].description == "Use a CDN"
        assert chain.alternatives[0].probability == 0.3
        assert chain.alternatives[0].pros == ["cheap"]
        assert service.stats.calls == 4

    @pytest.mark.asyncio
    async def test_empty_reply(self, make_service):
        """Test an empty reply yields an empty chain at minimum confidence."""
        service = make_service(default="")

        chain = await ThoughtChainBuilder(service).build("Pick a cache")

        assert chain.thoughts == ()
        assert chain.conclusion == NO_CONCLUSION
        assert chain.confidence == 0.1
        assert service.stats.calls == 1

    @pytest.mark.asyncio
    async def test_extraction_failure_fails_pass(self, make_service, reasoning_reply):
        """Test a failed extraction call fails the whole pass."""
        service = make_service(default=reasoning_reply, fail_on=EXTRACT)

        with pytest.raises(GenerationError):
            await ThoughtChainBuilder(service).build("Pick a cache")

    @pytest.mark.asyncio
    async def test_failed_extraction_cancels_queued_ones(self, make_paced_service, reasoning_reply):
        """Test no extraction call starts once the pass has failed."""
        service = make_paced_service(default=reasoning_reply, fail_calls={2})
        builder = ThoughtChainBuilder(service, ReasoningSettings(max_concurrency=1))

        with pytest.raises(GenerationError):
            await builder.build("Pick a cache")
        calls_at_failure = service.provider.call_count
        await asyncio.sleep(0.05)

        assert calls_at_failure == 2
        assert service.provider.call_count == 2
        assert service.in_flight == 0


class TestChainOfThought:
    """Tests for the ChainOfThought facade."""

    @pytest.mark.asyncio
    async def test_think_through_records_session(self, make_service, reasoning_reply):
        """Test finished chains are appended to the session."""
        session = ReasoningSession()
        cot = ChainOfThought(make_service(default=reasoning_reply), session=session)

        chain = await cot.think_through("Pick a cache", context="API")

        assert session.chains == (chain,)
        assert "=== Chain of Thought Summary ===" in cot.generate_summary()

    @pytest.mark.asyncio
    async def test_failed_pass_leaves_session_untouched(self, make_service):
        """Test no partial chain is recorded."""
        cot = ChainOfThought(make_service(fail_calls={1}))

        with pytest.raises(GenerationError):
            await cot.think_through("Pick a cache")

        assert len(cot.session) == 0

    @pytest.mark.asyncio
    async def test_self_consistency(self, make_service, reasoning_reply):
        """Test self-consistency runs several passes and boosts agreement."""
        service = make_service(default=reasoning_reply)
        cot = ChainOfThought(service)

        chain = await cot.think_through("Pick a cache", use_self_consistency=True, num_paths=2)

        assert chain.consensus is not None
        assert chain.consensus.group_size == 2
        assert service.stats.calls == 6
        assert len(cot.session) == 1

    @pytest.mark.asyncio
    async def test_self_consistency_shares_call_limit(self, make_paced_service, reasoning_reply):
        """Test paths and their extractions together stay under max_concurrency."""
        service = make_paced_service(default=reasoning_reply)
        cot = ChainOfThought(service, settings=ReasoningSettings(max_concurrency=2))

        chain = await cot.think_through("Pick a cache", use_self_consistency=True, num_paths=4)

        assert chain.consensus.group_size == 4
        assert service.provider.call_count == 12
        assert service.peak == 2

    @pytest.mark.asyncio
    async def test_reset(self, make_service, reasoning_reply):
        """Test reset clears the history."""
        cot = ChainOfThought(make_service(default=reasoning_reply))
        await cot.think_through("Pick a cache")

        await cot.reset()

        assert len(cot.session) == 0

    def test_detect_patterns_records_to_session(self, make_service):
        """Test facade pattern detection stores patterns."""
        cot = ChainOfThought(make_service())
        chains = [ThoughtChain(problem=f"p{i}", confidence=0.2) for i in range(3)]

        patterns = cot.detect_patterns(chains)

        assert [p.name for p in patterns] == ["Low Confidence Pattern"]
        assert cot.session.patterns == tuple(patterns)


class TestDetectPatterns:
    """Tests for cross-chain pattern detection."""

    @staticmethod
    def _chain(statements, confidence=0.8, problem="p"):
        return ThoughtChain(
            problem=problem,
            confidence=confidence,
            assumptions=tuple(Assumption(s) for s in statements),
        )

    def test_repeated_assumption(self):
        """Test an assumption in more than two chains is a pattern."""
        chains = [self._chain(["Reads dominate"]) for _ in range(3)]

        [pattern] = detect_patterns(chains)

        assert pattern.name == "Repeated Assumption"
        assert pattern.occurrences == 3
        assert not pattern.is_anti_pattern
        assert pattern.examples == ["Reads dominate"]

    def test_two_chains_are_not_a_pattern(self):
        """Test the threshold is strictly greater than two."""
        assert detect_patterns([self._chain(["X"]) for _ in range(2)]) == []

    def test_repeats_within_one_chain_count_once(self):
        """Test duplicates inside a chain count as one occurrence."""
        chains = [self._chain(["X", "X", "X"]), self._chain(["X"])]
        assert detect_patterns(chains) == []

    def test_frequent_assumption_is_anti_pattern(self):
        """Test more than five occurrences flags an anti-pattern."""
        [pattern] = detect_patterns([self._chain(["X"]) for _ in range(6)])
        assert pattern.is_anti_pattern

    def test_low_confidence_pattern(self):
        """Test several weak chains are reported with example problems."""
        chains = [self._chain([], confidence=0.2, problem=f"p{i}") for i in range(4)]

        [pattern] = detect_patterns(chains)

        assert pattern.name == "Low Confidence Pattern"
        assert pattern.occurrences == 4
        assert pattern.is_anti_pattern
        assert pattern.examples == ["p0", "p1", "p2"]


class TestAnalyzeChain:
    """Tests for chain analysis text."""

    def test_analyze_chain(self):
        """Test the analysis lists problem, conclusion and assumptions."""
        chain = ThoughtChain(
            problem="Pick a cache",
            conclusion="Use Redis",
            confidence=0.75,
            assumptions=(Assumption("Reads dominate", confidence=0.8),),
        )

        text = analyze_chain(chain)

        assert text.splitlines()[0] == "=== Thought Chain Analysis ==="
        assert "Problem: Pick a cache" in text
        assert "Conclusion: Use Redis" in text
        assert "Confidence: 0.75" in text
        assert "Number of thoughts: 0" in text
        assert "  - Reads dominate (confidence: 0.80)" in text
