"""Chain of thought -- decompose a problem into typed reasoning steps.

One reasoning pass works as follows:

1. Send the problem (with optional context and considerations) to the text
   generation service in reasoning mode, ending with "Let's think step by
   step."
2. Split the reply into paragraphs and classify each one as an
   observation, question, assumption, alternative, warning, conclusion or
   plain reasoning step, scoring its confidence from hedging language.
3. For every assumption and reasoning step, ask the service to extract
   the premises it rests on.
4. Pick the conclusion and score the chain as a whole.

``ChainOfThought`` is the orchestrator-facing entry point: it runs single
passes or self-consistency (see ``deliberate.reasoning.consensus``), keeps an
explicit ``ReasoningSession`` and offers pattern detection across chains.

Example::

    from deliberate.reasoning import ChainOfThought

    cot = ChainOfThought(service)
    chain = await cot.think_through(
        "Choose a caching strategy",
        context="Read-heavy REST API",
        constraints=["Budget is limited"],
    )
    print(chain.conclusion, chain.confidence)
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Sequence

from deliberate.config.settings import ReasoningSettings
from deliberate.llm.base import TextGenerationService
from deliberate.reasoning.base import ReasoningComponent, gather_bounded
from deliberate.reasoning.parser import (
    ALTERNATIVE_GRAMMAR,
    ASSUMPTION_GRAMMAR,
    ResponseParser,
)
from deliberate.reasoning.session import ReasoningSession
from deliberate.reasoning.types import (
    Alternative,
    Assumption,
    DetectedPattern,
    ImpactAssessment,
    Thought,
    ThoughtChain,
    ThoughtType,
    clamp,
)

logger = logging.getLogger(__name__)

NO_CONCLUSION = "No conclusion reached"

EXTRACT_ASSUMPTIONS_PROMPT = """\
Extract assumptions from this text:
{text}
Format each assumption as:
ASSUMPTION: [statement]
CATEGORY: [TECHNICAL/BUSINESS/USER/PERFORMANCE/SECURITY/DATA]
CONFIDENCE: [0.0-1.0]
IMPACT: [CRITICAL/HIGH/MEDIUM/LOW]"""

ALTERNATIVES_PROMPT = """\
Suggest 2-3 alternative approaches to this problem:
{problem}
Format each as:
APPROACH: [description]
PROBABILITY: [0.0-1.0]
PROS: [comma separated]
CONS: [comma separated]"""

HIGH_CONFIDENCE_TERMS = ("certain", "clear", "definite", "obvious", "confirmed")
LOW_CONFIDENCE_TERMS = ("uncertain", "unclear", "possible", "might", "could")
MEDIUM_CONFIDENCE_TERMS = ("likely", "probable", "suggests", "indicates")

# Repeated assumptions and low-confidence chains
PATTERN_THRESHOLD = 2
ANTI_PATTERN_THRESHOLD = 5
LOW_CONFIDENCE_THRESHOLD = 0.4
MAX_PATTERN_EXAMPLES = 3

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def build_prompt(
    problem: str,
    context: str | None = None,
    constraints: Sequence[str] = (),
) -> str:
    """Build the open-ended reasoning prompt for one pass."""
    prompt = f"Context: {context}\n\nProblem: {problem}" if context else problem
    if constraints:
        prompt += "\n\nConsiderations:\n"
        prompt += "".join(f"• {c}\n" for c in constraints)
    prompt += "\n\nLet's think step by step."
    return prompt


def split_paragraphs(text: str) -> list[str]:
    return [p.strip() for p in _PARAGRAPH_BREAK.split(text or "") if p.strip()]


def classify_paragraph(text: str, index: int) -> ThoughtType:
    """Assign a thought type by keyword, first match wins."""
    lower = text.lower()
    if "observ" in lower or index == 0:
        return ThoughtType.OBSERVATION
    if "?" in lower or "question" in lower:
        return ThoughtType.QUESTION
    if "assum" in lower:
        return ThoughtType.ASSUMPTION
    if "alternative" in lower or "another" in lower:
        return ThoughtType.ALTERNATIVE
    if any(term in lower for term in ("risk", "warning", "concern")):
        return ThoughtType.WARNING
    if any(term in lower for term in ("conclusion", "therefore", "final")):
        return ThoughtType.CONCLUSION
    return ThoughtType.REASONING


def score_confidence(text: str) -> float:
    """Confidence of a paragraph from its hedging vocabulary."""
    lower = text.lower()
    if any(term in lower for term in HIGH_CONFIDENCE_TERMS):
        return 0.85
    if any(term in lower for term in LOW_CONFIDENCE_TERMS):
        return 0.4
    if any(term in lower for term in MEDIUM_CONFIDENCE_TERMS):
        return 0.65
    return 0.5


def pick_conclusion(thoughts: Sequence[Thought]) -> str:
    for wanted in (ThoughtType.CONCLUSION, ThoughtType.REASONING):
        for thought in reversed(thoughts):
            if thought.type is wanted:
                return thought.content
    if thoughts:
        return thoughts[-1].content
    return NO_CONCLUSION


def score_chain(
    thoughts: Sequence[Thought],
    assumptions: Sequence[Assumption],
    settings: ReasoningSettings,
) -> float:
    """Overall chain confidence.

    Mean thought confidence, minus a penalty proportional to the share of
    weak assumptions, plus a bonus when the chain both reasons and concludes.
    """
    if not thoughts:
        return settings.minimum_confidence

    score = sum(t.confidence for t in thoughts) / len(thoughts)

    if assumptions:
        weak = sum(
            1 for a in assumptions
            if a.confidence < settings.low_confidence_assumption_threshold
        )
        score -= weak / len(assumptions) * settings.assumption_penalty_weight

    types = {t.type for t in thoughts}
    if ThoughtType.REASONING in types and ThoughtType.CONCLUSION in types:
        score += settings.structure_bonus

    return clamp(score, settings.minimum_confidence, 1.0)


def detect_patterns(chains: Sequence[ThoughtChain]) -> list[DetectedPattern]:
    """Find assumptions repeated across chains and clusters of weak chains."""
    patterns: list[DetectedPattern] = []

    frequency: Counter[str] = Counter()
    for chain in chains:
        for statement in {a.statement for a in chain.assumptions}:
            frequency[statement] += 1

    for statement, count in frequency.items():
        if count > PATTERN_THRESHOLD:
            patterns.append(
                DetectedPattern(
                    name="Repeated Assumption",
                    description=f"Assumption '{statement}' appears in {count} chains",
                    occurrences=count,
                    is_anti_pattern=count > ANTI_PATTERN_THRESHOLD,
                    recommendation="Validate this assumption explicitly before proceeding",
                    examples=[statement],
                )
            )

    weak_chains = [c for c in chains if c.confidence < LOW_CONFIDENCE_THRESHOLD]
    if len(weak_chains) > PATTERN_THRESHOLD:
        patterns.append(
            DetectedPattern(
                name="Low Confidence Pattern",
                description=f"{len(weak_chains)} chains have low confidence",
                occurrences=len(weak_chains),
                is_anti_pattern=True,
                recommendation=(
                    "Increase confidence by gathering more information or adding validation"
                ),
                examples=[c.problem for c in weak_chains[:MAX_PATTERN_EXAMPLES]],
            )
        )

    return patterns


def analyze_chain(chain: ThoughtChain) -> str:
    """Readable breakdown of a single chain."""
    lines = [
        "=== Thought Chain Analysis ===",
        f"Problem: {chain.problem}",
        f"Conclusion: {chain.conclusion}",
        f"Confidence: {chain.confidence:.2f}",
        f"Number of thoughts: {len(chain.thoughts)}",
    ]
    if chain.assumptions:
        lines.append("Assumptions:")
        for assumption in chain.assumptions:
            lines.append(f"  - {assumption.statement} (confidence: {assumption.confidence:.2f})")
    if chain.consensus:
        info = chain.consensus
        lines.append(
            f"Consensus: {info.group_size}/{info.num_paths} paths agreed "
            f"(boost +{info.boost:.2f})"
        )
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


class ThoughtChainBuilder(ReasoningComponent):
    """Runs one reasoning pass and turns the reply into a ``ThoughtChain``."""

    async def build(
        self,
        problem: str,
        context: str | None = None,
        constraints: Sequence[str] = (),
        generate_alternatives: bool = False,
    ) -> ThoughtChain:
        """Run a single reasoning pass.

        Args:
            problem: The problem statement.
            context: Optional background for the problem.
            constraints: Considerations listed in the prompt.
            generate_alternatives: Also ask for alternative approaches.

        Returns:
            A complete ``ThoughtChain``.

        Raises:
            GenerationError: If any service call fails; no partial chain is
                returned.
        """
        reply = await self._generate(build_prompt(problem, context, constraints), reasoning=True)
        thoughts = self._to_thoughts(reply)

        extractable = [
            t for t in thoughts
            if t.type in (ThoughtType.ASSUMPTION, ThoughtType.REASONING)
        ]
        batches = await gather_bounded(
            (self._extract_assumptions(t) for t in extractable),
            self.settings.max_concurrency,
        )
        assumptions = [a for batch in batches for a in batch]

        alternatives: list[Alternative] = []
        if generate_alternatives:
            alternatives = await self._generate_alternatives(problem)

        chain = ThoughtChain(
            problem=problem,
            thoughts=tuple(thoughts),
            conclusion=pick_conclusion(thoughts),
            confidence=score_chain(thoughts, assumptions, self.settings),
            alternatives=tuple(alternatives),
            assumptions=tuple(assumptions),
        )
        logger.debug(
            "Built chain %s: %d thoughts, %d assumptions, confidence %.2f",
            chain.id,
            len(thoughts),
            len(assumptions),
            chain.confidence,
        )
        return chain

    def _to_thoughts(self, reply: str) -> list[Thought]:
        thoughts: list[Thought] = []
        parent_id: str | None = None
        for index, paragraph in enumerate(split_paragraphs(reply)):
            thought = Thought(
                content=paragraph,
                type=classify_paragraph(paragraph, index),
                confidence=score_confidence(paragraph),
                parent_id=parent_id,
            )
            thoughts.append(thought)
            parent_id = thought.id
        return thoughts

    async def _extract_assumptions(self, thought: Thought) -> list[Assumption]:
        reply = await self._generate(EXTRACT_ASSUMPTIONS_PROMPT.format(text=thought.content))
        assumptions = []
        for record in self.parser.parse(reply, ASSUMPTION_GRAMMAR):
            impact = None
            if record["impact"] is not None:
                impact = ImpactAssessment(severity=record["impact"])
            assumptions.append(
                Assumption(
                    statement=record["statement"],
                    context=thought.content,
                    confidence=record["confidence"],
                    category=record["category"],
                    impact=impact,
                )
            )
        return assumptions

    async def _generate_alternatives(self, problem: str) -> list[Alternative]:
        reply = await self._generate(ALTERNATIVES_PROMPT.format(problem=problem))
        return [
            Alternative(
                description=record["description"],
                probability=record["probability"],
                pros=record["pros"],
                cons=record["cons"],
            )
            for record in self.parser.parse(reply, ALTERNATIVE_GRAMMAR)
        ]


# ---------------------------------------------------------------------------
# Orchestrator-facing facade
# ---------------------------------------------------------------------------


class ChainOfThought:
    """Entry point for single-pass and self-consistent reasoning.

    Args:
        service: The text generation service.
        settings: Reasoning bounds; defaults to the global settings.
        session: History to append finished chains to.  A fresh session is
            created when omitted.
        parser: Response parser shared by the builder and consensus engine.
    """

    def __init__(
        self,
        service: TextGenerationService,
        settings: ReasoningSettings | None = None,
        session: ReasoningSession | None = None,
        parser: ResponseParser | None = None,
    ) -> None:
        from deliberate.reasoning.consensus import ConsensusEngine

        self.builder = ThoughtChainBuilder(service, settings, parser)
        self.settings = self.builder.settings
        self.consensus = ConsensusEngine(self.builder)
        self.session = session if session is not None else ReasoningSession()

    async def think_through(
        self,
        problem: str,
        context: str | None = None,
        constraints: Sequence[str] = (),
        use_self_consistency: bool = False,
        num_paths: int | None = None,
        generate_alternatives: bool = False,
    ) -> ThoughtChain:
        """Reason about *problem* and record the resulting chain in the session.

        Raises:
            ConfigurationError: If ``num_paths`` is out of bounds.
            ConsensusError: If every self-consistency path fails.
            GenerationError: If a single pass fails.
        """
        logger.info(
            "Thinking through problem (self_consistency=%s): %.80s",
            use_self_consistency,
            problem,
        )
        if use_self_consistency:
            chain = await self.consensus.build_with_consensus(
                problem,
                context,
                constraints,
                num_paths=num_paths,
                generate_alternatives=generate_alternatives,
            )
        else:
            chain = await self.builder.build(
                problem, context, constraints, generate_alternatives=generate_alternatives
            )
        await self.session.append(chain)
        return chain

    def detect_patterns(self, chains: Sequence[ThoughtChain] | None = None) -> list[DetectedPattern]:
        """Detect patterns in *chains* (default: the session history)."""
        patterns = detect_patterns(self.session.chains if chains is None else chains)
        self.session.record_patterns(patterns)
        return patterns

    def analyze(self, chain: ThoughtChain) -> str:
        return analyze_chain(chain)

    def generate_summary(self) -> str:
        return self.session.summary()

    async def reset(self) -> None:
        await self.session.reset()
