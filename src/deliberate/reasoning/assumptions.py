"""Assumption tracking -- record premises, validate them and analyse their impact.

``AssumptionTracker`` keeps an ordered, append-only registry of
``Assumption`` records with dependency edges between them.  Dependency
edges always point at assumptions recorded earlier or added explicitly via
``add_dependency``, which rejects edges that would close a cycle.

Operations that need judgement (validation, impact assessment, extraction,
contradiction search) make exactly one text generation call each and parse
the reply with the marker grammars from ``deliberate.reasoning.parser``.

Example::

    tracker = AssumptionTracker(service)
    cache = tracker.record_assumption("Reads dominate writes", confidence=0.8)
    ttl = tracker.record_assumption(
        "A 60s TTL is acceptable", dependencies=[cache.id]
    )
    report = await tracker.validate_all()
    print(report.summary())
    plan = tracker.generate_validation_plan()
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Any, Iterable

from deliberate.config.settings import ReasoningSettings
from deliberate.exceptions import AssumptionError
from deliberate.llm.base import TextGenerationService
from deliberate.reasoning.base import ReasoningComponent, gather_bounded
from deliberate.reasoning.parser import (
    ASSUMPTION_GRAMMAR,
    CONTRADICTION_GRAMMAR,
    IMPACT_GRAMMAR,
    VALIDATION_GRAMMAR,
    ResponseParser,
)
from deliberate.reasoning.types import (
    Assumption,
    AssumptionCategory,
    Contradiction,
    ImpactAssessment,
    Severity,
    ValidationPlan,
    ValidationReport,
    ValidationResult,
    ValidationStatus,
    Verdict,
)

logger = logging.getLogger(__name__)

# Shorter references (list numbering, single letters) are never treated as ids
MIN_ID_PREFIX = 4

EXTRACT_PROMPT = """\
Extract all assumptions from this reasoning:
{reasoning}

For each assumption identify:
ASSUMPTION: [the assumption being made]
CATEGORY: [TECHNICAL/BUSINESS/USER/PERFORMANCE/SECURITY/DATA]
CONFIDENCE: [0.0-1.0]
DEPENDS_ON: [other assumptions it depends on, if any]
IF_WRONG: [what happens if this is incorrect]"""

VALIDATE_PROMPT = """\
Validate this assumption:
Assumption: {statement}
Context: {context}
Category: {category}
{evidence}

Determine:
1. Is this assumption valid? (YES/NO/PARTIAL)
2. What evidence supports or contradicts it?
3. What's the confidence level? (0.0-1.0)
4. What are the implications if wrong?

Format:
VALID: [YES/NO/PARTIAL]
EVIDENCE: [supporting or contradicting evidence]
CONFIDENCE: [0.0-1.0]
IMPLICATIONS: [what happens if wrong]"""

IMPACT_PROMPT = """\
Assess the impact if this assumption is wrong:
Assumption: {statement}
Context: {context}
Category: {category}

Determine:
SCOPE: [LOCAL/MODULE/SYSTEM/CRITICAL]
SEVERITY: [LOW/MEDIUM/HIGH/CRITICAL]
AFFECTED: [comma-separated affected components]
MITIGATION: [how to handle if wrong]"""

CONTRADICTIONS_PROMPT = """\
Find any contradictions in these assumptions:
{listing}

For each contradiction:
ASSUMPTION1: [ID of first assumption]
ASSUMPTION2: [ID of second assumption]
CONFLICT: [why they contradict]
RESOLUTION: [how to resolve]"""


class AssumptionTracker(ReasoningComponent):
    """Registry of assumptions with dependency, validation and impact analysis.

    Args:
        service: The text generation service.
        settings: Reasoning settings; defaults to the global settings.
        parser: Response parser; defaults to ``MarkerResponseParser``.
    """

    def __init__(
        self,
        service: TextGenerationService,
        settings: ReasoningSettings | None = None,
        parser: ResponseParser | None = None,
    ) -> None:
        super().__init__(service, settings, parser)
        self._assumptions: dict[str, Assumption] = {}
        self.validation_history: list[ValidationResult] = []

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    @property
    def assumptions(self) -> list[Assumption]:
        """All assumptions in record order."""
        return list(self._assumptions.values())

    def __len__(self) -> int:
        return len(self._assumptions)

    def __contains__(self, assumption_id: object) -> bool:
        return assumption_id in self._assumptions

    def get(self, assumption_id: str) -> Assumption:
        try:
            return self._assumptions[assumption_id]
        except KeyError:
            raise AssumptionError(
                f"Unknown assumption: {assumption_id}", assumption_id=assumption_id
            ) from None

    def record_assumption(
        self,
        statement: str,
        context: str = "",
        confidence: float = 0.5,
        category: AssumptionCategory = AssumptionCategory.TECHNICAL,
        dependencies: Iterable[str] = (),
    ) -> Assumption:
        """Record a new assumption.

        Raises:
            AssumptionError: If a dependency id is not recorded yet.
        """
        deps = set(dependencies)
        unknown = sorted(d for d in deps if d not in self._assumptions)
        if unknown:
            raise AssumptionError(
                f"Unknown dependencies: {', '.join(unknown)}",
                details={"unknown": unknown},
            )
        if not 0.0 <= confidence <= 1.0:
            raise AssumptionError(f"Confidence must be within [0, 1], got {confidence}")

        assumption = Assumption(
            statement=statement,
            context=context,
            confidence=confidence,
            category=category,
            dependencies=deps,
        )
        self._assumptions[assumption.id] = assumption
        logger.debug(
            "Assumption recorded %s (%s, %.2f): %s",
            assumption.id,
            category.value,
            confidence,
            statement,
        )
        return assumption

    def add_dependency(self, assumption_id: str, depends_on_id: str) -> None:
        """Add an edge ``assumption_id -> depends_on_id``.

        Raises:
            AssumptionError: Unknown id, self-dependency, or an edge that
                would close a cycle.
        """
        assumption = self.get(assumption_id)
        self.get(depends_on_id)
        if assumption_id == depends_on_id or self._reaches(depends_on_id, assumption_id):
            raise AssumptionError(
                f"Dependency {assumption_id} -> {depends_on_id} would create a cycle",
                assumption_id=assumption_id,
            )
        assumption.dependencies.add(depends_on_id)

    def _reaches(self, start_id: str, target_id: str) -> bool:
        return any(a.id == target_id for a in self._walk(start_id))

    def _walk(self, start_id: str) -> list[Assumption]:
        # Breadth-first over dependencies; the visited set also guards cycles
        # introduced by mutating ``Assumption.dependencies`` directly.
        order: list[Assumption] = []
        visited = {start_id}
        queue = deque([start_id])
        while queue:
            current = self._assumptions.get(queue.popleft())
            if current is None:
                continue
            order.append(current)
            for dep in sorted(current.dependencies):
                if dep not in visited:
                    visited.add(dep)
                    queue.append(dep)
        return order

    def dependency_chain(self, assumption: Assumption | str) -> list[Assumption]:
        """The assumption followed by everything it transitively depends on.

        Each assumption appears once; unknown ids are skipped.
        """
        assumption_id = assumption if isinstance(assumption, str) else assumption.id
        self.get(assumption_id)
        return self._walk(assumption_id)

    def dependents(self, assumption: Assumption | str) -> list[Assumption]:
        """Assumptions that list *assumption* as a direct dependency."""
        assumption_id = assumption if isinstance(assumption, str) else assumption.id
        return [a for a in self._assumptions.values() if assumption_id in a.dependencies]

    # ------------------------------------------------------------------
    # Generation-backed operations
    # ------------------------------------------------------------------

    async def extract_assumptions(self, reasoning: str) -> list[Assumption]:
        """Extract assumptions from free text and record them.

        ``DEPENDS_ON`` entries are resolved against statements or ids of
        assumptions already tracked; unresolved entries are ignored.
        """
        reply = await self._generate(EXTRACT_PROMPT.format(reasoning=reasoning))
        recorded = []
        for record in self.parser.parse(reply, ASSUMPTION_GRAMMAR):
            deps = [
                dep_id
                for ref in record["depends_on"]
                if (dep_id := self._resolve_reference(ref)) is not None
            ]
            assumption = self.record_assumption(
                statement=record["statement"],
                context=reasoning,
                confidence=record["confidence"],
                category=record["category"],
                dependencies=deps,
            )
            if record["if_wrong"]:
                assumption.evidence.append(f"If wrong: {record['if_wrong']}")
            recorded.append(assumption)
        logger.info("Extracted %d assumption(s)", len(recorded))
        return recorded

    def _resolve_reference(self, ref: str) -> str | None:
        resolved = self._resolve_id(ref)
        if resolved is not None:
            return resolved
        lowered = ref.strip().lower()
        for assumption in self._assumptions.values():
            if assumption.statement.strip().lower() == lowered:
                return assumption.id
        return None

    def _resolve_id(self, ref: str) -> str | None:
        """Match a full id or an unambiguous prefix of ``MIN_ID_PREFIX``+ chars."""
        token = ref.strip().strip("[]()").strip()
        if not token:
            return None
        if token in self._assumptions:
            return token
        if len(token) < MIN_ID_PREFIX:
            return None
        matches = [aid for aid in self._assumptions if aid.startswith(token)]
        return matches[0] if len(matches) == 1 else None

    async def validate_assumption(
        self,
        assumption: Assumption | str,
        evidence: str | None = None,
    ) -> ValidationResult:
        """Validate one assumption and update its status and evidence."""
        if isinstance(assumption, str):
            assumption = self.get(assumption)

        reply = await self._generate(
            VALIDATE_PROMPT.format(
                statement=assumption.statement,
                context=assumption.context,
                category=assumption.category.value,
                evidence=f"Evidence: {evidence}" if evidence else "",
            )
        )
        record = self.parser.parse_one(reply, VALIDATION_GRAMMAR)
        verdict: Verdict = record["verdict"]
        result = ValidationResult(
            assumption_id=assumption.id,
            is_valid=verdict is Verdict.YES,
            confidence=record["confidence"],
            verdict=verdict,
            evidence=[record["evidence"]] if record["evidence"] else [],
            implications=record["implications"],
        )

        if result.is_valid:
            assumption.status = ValidationStatus.VERIFIED
        elif result.confidence > self.settings.partial_validation_threshold:
            assumption.status = ValidationStatus.PARTIAL
        else:
            assumption.status = ValidationStatus.INVALIDATED
        assumption.evidence.extend(result.evidence)

        self.validation_history.append(result)
        logger.debug(
            "Validated %s: %s (confidence %.2f)",
            assumption.id,
            verdict.value,
            result.confidence,
        )
        return result

    async def validate_all(self) -> ValidationReport:
        """Validate every unverified assumption concurrently."""
        pending = [
            a for a in self._assumptions.values()
            if a.status is ValidationStatus.UNVERIFIED
        ]
        logger.info("Validating %d unverified assumption(s)", len(pending))
        results: list[ValidationResult] = await gather_bounded(
            (self.validate_assumption(a) for a in pending),
            self.settings.max_concurrency,
        )
        valid = sum(1 for r in results if r.is_valid)
        return ValidationReport(
            total_assumptions=len(self._assumptions),
            validated=len(results),
            valid=valid,
            invalid=len(results) - valid,
            results=list(results),
        )

    async def assess_impact(self, assumption: Assumption | str) -> ImpactAssessment:
        """Assess what breaks if *assumption* is wrong; stored on the assumption."""
        if isinstance(assumption, str):
            assumption = self.get(assumption)

        reply = await self._generate(
            IMPACT_PROMPT.format(
                statement=assumption.statement,
                context=assumption.context,
                category=assumption.category.value,
            )
        )
        record = self.parser.parse_one(reply, IMPACT_GRAMMAR)
        impact = ImpactAssessment(
            scope=record["scope"],
            severity=record["severity"],
            affected_components=record["affected"],
            mitigation=record["mitigation"] or None,
        )
        assumption.impact = impact
        return impact

    async def find_contradictions(self) -> list[Contradiction]:
        """Ask for pairs of tracked assumptions that cannot both hold.

        Entries referring to unknown ids are dropped.  No call is made with
        fewer than two assumptions.
        """
        if len(self._assumptions) < 2:
            return []

        listing = "\n".join(f"{a.id}: {a.statement}" for a in self._assumptions.values())
        reply = await self._generate(CONTRADICTIONS_PROMPT.format(listing=listing))

        contradictions = []
        for record in self.parser.parse(reply, CONTRADICTION_GRAMMAR):
            first = self._resolve_id(record["assumption_a"])
            second = self._resolve_id(record["assumption_b"])
            if first is None or second is None or first == second:
                logger.debug(
                    "Dropping contradiction between %r and %r",
                    record["assumption_a"],
                    record["assumption_b"],
                )
                continue
            contradictions.append(
                Contradiction(
                    assumption_a=first,
                    assumption_b=second,
                    conflict=record["conflict"],
                    resolution=record["resolution"] or None,
                )
            )
        return contradictions

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def generate_validation_plan(self) -> ValidationPlan:
        """Bucket assumptions by validation priority.

        Critical severity first, then high severity, then assumptions other
        assumptions depend on, then the rest.  Every assumption lands in
        exactly one bucket.
        """
        depended_on = {d for a in self._assumptions.values() for d in a.dependencies}
        plan = ValidationPlan()
        for assumption in self._assumptions.values():
            severity = assumption.impact.severity if assumption.impact else None
            if severity is Severity.CRITICAL:
                plan.priority1.append(assumption.id)
            elif severity is Severity.HIGH:
                plan.priority2.append(assumption.id)
            elif assumption.id in depended_on:
                plan.priority3.append(assumption.id)
            else:
                plan.priority4.append(assumption.id)
        return plan

    def to_dict(self) -> dict[str, Any]:
        return {
            "assumptions": [a.to_dict() for a in self._assumptions.values()],
            "validation_history": [r.to_dict() for r in self.validation_history],
        }
