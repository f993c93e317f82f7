"""Record types shared by the reasoning components.

Provides:

- ``Thought`` / ``ThoughtChain`` -- the immutable result of one reasoning
  pass.  Thoughts are linked sequentially via ``parent_id``.
- ``Assumption`` -- a tracked premise with status, evidence, dependencies
  and an optional ``ImpactAssessment``.
- ``DecisionNode`` / ``Option`` -- decision tree members.  They reference
  each other by id only; the ``DecisionTree`` arena owns them.
- Validation records: ``ValidationResult``, ``ValidationReport``,
  ``Contradiction``, ``ValidationPlan``.

All types are pure-stdlib dataclasses.  Every record offers ``to_dict()``
returning JSON-safe data.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def new_id() -> str:
    """Short unique identifier."""
    return str(uuid.uuid4())[:8]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Clamp *value* into ``[low, high]``."""
    return max(low, min(high, value))


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ThoughtType(Enum):
    """Role of a single paragraph in a reasoning pass."""

    OBSERVATION = "observation"
    ASSUMPTION = "assumption"
    REASONING = "reasoning"
    QUESTION = "question"
    CONCLUSION = "conclusion"
    WARNING = "warning"
    ALTERNATIVE = "alternative"


class AssumptionCategory(Enum):
    """What an assumption is about."""

    TECHNICAL = "technical"
    BUSINESS = "business"
    USER = "user"
    PERFORMANCE = "performance"
    SECURITY = "security"
    DATA = "data"


class ValidationStatus(Enum):
    """Lifecycle of a tracked assumption."""

    UNVERIFIED = "unverified"
    VERIFIED = "verified"
    PARTIAL = "partial"
    INVALIDATED = "invalidated"
    NEEDS_REVIEW = "needs_review"


class ImpactScope(Enum):
    """How far a wrong assumption reaches."""

    LOCAL = "local"
    MODULE = "module"
    SYSTEM = "system"
    CRITICAL = "critical"


class Severity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RiskLevel(Enum):
    """Risk attached to a decision option."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def ordinal(self) -> int:
        """1 for low up to 4 for critical."""
        return _RISK_ORDINALS[self]


_RISK_ORDINALS = {
    RiskLevel.LOW: 1,
    RiskLevel.MEDIUM: 2,
    RiskLevel.HIGH: 3,
    RiskLevel.CRITICAL: 4,
}


class Verdict(Enum):
    """Raw verdict of an assumption validation."""

    YES = "yes"
    NO = "no"
    PARTIAL = "partial"


# ---------------------------------------------------------------------------
# Chains of thought
# ---------------------------------------------------------------------------


@dataclass
class Alternative:
    """An alternative approach to a problem."""

    description: str
    probability: float = 0.5
    pros: list[str] = field(default_factory=list)
    cons: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "description": self.description,
            "probability": self.probability,
            "pros": list(self.pros),
            "cons": list(self.cons),
        }


@dataclass
class ImpactAssessment:
    """What breaks if an assumption turns out to be wrong."""

    scope: ImpactScope = ImpactScope.LOCAL
    severity: Severity = Severity.LOW
    affected_components: list[str] = field(default_factory=list)
    mitigation: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "scope": self.scope.value,
            "severity": self.severity.value,
            "affected_components": list(self.affected_components),
            "mitigation": self.mitigation,
        }


@dataclass
class Assumption:
    """A premise made during reasoning.

    Assumptions are mutable: ``status``, ``evidence`` and ``impact`` are
    updated by ``AssumptionTracker`` as validation progresses.

    Attributes:
        id: Short unique identifier.
        statement: The assumption itself.
        context: Text the assumption was made in.
        confidence: Confidence in the assumption, 0.0--1.0.
        category: What the assumption is about.
        status: Validation status.
        evidence: Evidence collected while validating.
        dependencies: Ids of assumptions this one relies on.
        impact: Impact assessment, once computed.
        made_at: UTC creation time.
    """

    statement: str
    context: str = ""
    confidence: float = 0.5
    category: AssumptionCategory = AssumptionCategory.TECHNICAL
    status: ValidationStatus = ValidationStatus.UNVERIFIED
    evidence: list[str] = field(default_factory=list)
    dependencies: set[str] = field(default_factory=set)
    impact: ImpactAssessment | None = None
    id: str = field(default_factory=new_id)
    made_at: datetime = field(default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "statement": self.statement,
            "context": self.context,
            "confidence": self.confidence,
            "category": self.category.value,
            "status": self.status.value,
            "evidence": list(self.evidence),
            "dependencies": sorted(self.dependencies),
            "impact": self.impact.to_dict() if self.impact else None,
            "made_at": self.made_at.isoformat(),
        }


@dataclass(frozen=True)
class Thought:
    """One typed paragraph of a reasoning pass."""

    content: str
    type: ThoughtType
    confidence: float = 0.5
    parent_id: str | None = None
    id: str = field(default_factory=new_id)
    timestamp: datetime = field(default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "type": self.type.value,
            "confidence": self.confidence,
            "parent_id": self.parent_id,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class ConsensusInfo:
    """How a chain was selected among self-consistency paths."""

    num_paths: int
    successful_paths: int
    group_size: int
    num_groups: int
    boost: float
    cluster_key: str

    @property
    def agreement(self) -> float:
        """Share of requested paths that reached the winning conclusion."""
        return self.group_size / self.num_paths if self.num_paths else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "num_paths": self.num_paths,
            "successful_paths": self.successful_paths,
            "group_size": self.group_size,
            "num_groups": self.num_groups,
            "agreement": self.agreement,
            "boost": self.boost,
            "cluster_key": self.cluster_key,
        }


@dataclass(frozen=True)
class ThoughtChain:
    """The complete, immutable result of one reasoning pass.

    Built atomically once the pass finishes.  Consensus selection derives a
    boosted copy with ``dataclasses.replace`` instead of mutating.

    Example::

        chain = await builder.build("Choose a caching strategy")
        for thought in chain.thoughts:
            print(thought.type.value, thought.content)
        print(chain.conclusion, chain.confidence)
    """

    problem: str
    thoughts: tuple[Thought, ...] = ()
    conclusion: str = ""
    confidence: float = 0.1
    alternatives: tuple[Alternative, ...] = ()
    assumptions: tuple[Assumption, ...] = ()
    consensus: ConsensusInfo | None = None
    id: str = field(default_factory=new_id)
    timestamp: datetime = field(default_factory=_now)

    def thoughts_of_type(self, thought_type: ThoughtType) -> list[Thought]:
        return [t for t in self.thoughts if t.type is thought_type]

    def get_path(self, thought_id: str) -> list[Thought]:
        """Walk ``parent_id`` links from *thought_id* back to the first thought.

        Returns:
            Thoughts ordered root-first, ending with *thought_id*.  Empty if
            the id is unknown.
        """
        index = {t.id: t for t in self.thoughts}
        path: list[Thought] = []
        visited: set[str] = set()
        current = thought_id
        while current and current in index and current not in visited:
            visited.add(current)
            thought = index[current]
            path.append(thought)
            current = thought.parent_id
        path.reverse()
        return path

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "problem": self.problem,
            "thoughts": [t.to_dict() for t in self.thoughts],
            "conclusion": self.conclusion,
            "confidence": self.confidence,
            "alternatives": [a.to_dict() for a in self.alternatives],
            "assumptions": [a.to_dict() for a in self.assumptions],
            "consensus": self.consensus.to_dict() if self.consensus else None,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class DetectedPattern:
    """A recurring pattern observed across several chains."""

    name: str
    description: str
    occurrences: int
    is_anti_pattern: bool = False
    recommendation: str | None = None
    examples: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "occurrences": self.occurrences,
            "is_anti_pattern": self.is_anti_pattern,
            "recommendation": self.recommendation,
            "examples": list(self.examples),
        }


# ---------------------------------------------------------------------------
# Decision trees
# ---------------------------------------------------------------------------


@dataclass
class Option:
    """One answer to a decision node's question."""

    description: str
    pros: list[str] = field(default_factory=list)
    cons: list[str] = field(default_factory=list)
    probability: float = 0.5
    risk: RiskLevel = RiskLevel.MEDIUM
    child_id: str | None = None
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "pros": list(self.pros),
            "cons": list(self.cons),
            "probability": self.probability,
            "risk": self.risk.value,
            "child_id": self.child_id,
        }


@dataclass
class DecisionNode:
    """A question in a decision tree.

    Options are referenced by id; look them up through the owning
    ``DecisionTree``.
    """

    question: str
    context: str
    depth: int = 0
    option_ids: list[str] = field(default_factory=list)
    selected_option_id: str | None = None
    reasoning: str | None = None
    parent_id: str | None = None
    id: str = field(default_factory=new_id)

    @property
    def is_leaf(self) -> bool:
        return not self.option_ids

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "question": self.question,
            "context": self.context,
            "depth": self.depth,
            "option_ids": list(self.option_ids),
            "selected_option_id": self.selected_option_id,
            "reasoning": self.reasoning,
            "parent_id": self.parent_id,
        }


# ---------------------------------------------------------------------------
# Assumption validation
# ---------------------------------------------------------------------------


@dataclass
class ValidationResult:
    """Outcome of validating one assumption."""

    assumption_id: str
    is_valid: bool
    confidence: float
    verdict: Verdict = Verdict.NO
    evidence: list[str] = field(default_factory=list)
    implications: str = ""
    timestamp: datetime = field(default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "assumption_id": self.assumption_id,
            "is_valid": self.is_valid,
            "confidence": self.confidence,
            "verdict": self.verdict.value,
            "evidence": list(self.evidence),
            "implications": self.implications,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class ValidationReport:
    """Aggregate result of ``AssumptionTracker.validate_all``."""

    total_assumptions: int
    validated: int
    valid: int
    invalid: int
    results: list[ValidationResult] = field(default_factory=list)
    timestamp: datetime = field(default_factory=_now)

    def summary(self) -> str:
        percentage = (self.valid / self.validated * 100) if self.validated else 0.0
        return (
            f"Validated {self.validated} of {self.total_assumptions} assumptions: "
            f"{self.valid} valid ({percentage:.0f}%), {self.invalid} invalid"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_assumptions": self.total_assumptions,
            "validated": self.validated,
            "valid": self.valid,
            "invalid": self.invalid,
            "results": [r.to_dict() for r in self.results],
            "summary": self.summary(),
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class Contradiction:
    """Two assumptions that cannot both hold."""

    assumption_a: str
    assumption_b: str
    conflict: str
    resolution: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "assumption_a": self.assumption_a,
            "assumption_b": self.assumption_b,
            "conflict": self.conflict,
            "resolution": self.resolution,
        }


@dataclass
class ValidationPlan:
    """Assumption ids bucketed by validation priority.

    ``priority1`` holds critical-severity assumptions, ``priority2`` high
    severity, ``priority3`` assumptions others depend on, ``priority4`` the
    rest.  Buckets are disjoint.
    """

    priority1: list[str] = field(default_factory=list)
    priority2: list[str] = field(default_factory=list)
    priority3: list[str] = field(default_factory=list)
    priority4: list[str] = field(default_factory=list)

    def all_ids(self) -> list[str]:
        return [*self.priority1, *self.priority2, *self.priority3, *self.priority4]

    def to_dict(self) -> dict[str, Any]:
        return {
            "priority1": list(self.priority1),
            "priority2": list(self.priority2),
            "priority3": list(self.priority3),
            "priority4": list(self.priority4),
        }
