"""Structured reasoning over a text generation service.

Components:

- ``ChainOfThought`` / ``ThoughtChainBuilder`` -- typed reasoning chains.
- ``ConsensusEngine`` -- self-consistency across several passes.
- ``DecisionTreeBuilder`` / ``DecisionNavigator`` -- weighted decision trees
  walked with a ``NavigationStrategy``.
- ``AssumptionTracker`` -- assumption registry with validation, impact and
  dependency analysis.

Example::

    from deliberate.llm import ProviderTextService, demo_provider
    from deliberate.reasoning import ChainOfThought

    cot = ChainOfThought(ProviderTextService(demo_provider()))
    chain = await cot.think_through("Choose a caching strategy", use_self_consistency=True)
    print(cot.analyze(chain))
"""

from deliberate.reasoning.assumptions import AssumptionTracker
from deliberate.reasoning.base import ReasoningComponent, gather_bounded
from deliberate.reasoning.chain_of_thought import (
    ChainOfThought,
    ThoughtChainBuilder,
    analyze_chain,
    build_prompt,
    detect_patterns,
)
from deliberate.reasoning.consensus import (
    ConsensusEngine,
    normalize_conclusion,
    select_most_consistent,
)
from deliberate.reasoning.decision_tree import (
    DecisionNavigator,
    DecisionTree,
    DecisionTreeBuilder,
)
from deliberate.reasoning.parser import (
    Grammar,
    FieldSpec,
    JSONResponseParser,
    MarkerResponseParser,
    ResponseParser,
)
from deliberate.reasoning.session import ReasoningSession
from deliberate.reasoning.strategies import (
    AIRecommended,
    Balanced,
    HighestProbability,
    Interactive,
    LowestRisk,
    NavigationStrategy,
    get_strategy,
)
from deliberate.reasoning.types import (
    Alternative,
    Assumption,
    AssumptionCategory,
    ConsensusInfo,
    Contradiction,
    DecisionNode,
    DetectedPattern,
    ImpactAssessment,
    ImpactScope,
    Option,
    RiskLevel,
    Severity,
    Thought,
    ThoughtChain,
    ThoughtType,
    ValidationPlan,
    ValidationReport,
    ValidationResult,
    ValidationStatus,
    Verdict,
)

__all__ = [
    # Components
    "AssumptionTracker",
    "ChainOfThought",
    "ConsensusEngine",
    "DecisionNavigator",
    "DecisionTree",
    "DecisionTreeBuilder",
    "ReasoningComponent",
    "ReasoningSession",
    "ThoughtChainBuilder",
    # Strategies
    "AIRecommended",
    "Balanced",
    "HighestProbability",
    "Interactive",
    "LowestRisk",
    "NavigationStrategy",
    "get_strategy",
    # Parsing
    "FieldSpec",
    "Grammar",
    "JSONResponseParser",
    "MarkerResponseParser",
    "ResponseParser",
    # Functions
    "analyze_chain",
    "build_prompt",
    "detect_patterns",
    "gather_bounded",
    "normalize_conclusion",
    "select_most_consistent",
    # Types
    "Alternative",
    "Assumption",
    "AssumptionCategory",
    "ConsensusInfo",
    "Contradiction",
    "DecisionNode",
    "DetectedPattern",
    "ImpactAssessment",
    "ImpactScope",
    "Option",
    "RiskLevel",
    "Severity",
    "Thought",
    "ThoughtChain",
    "ThoughtType",
    "ValidationPlan",
    "ValidationReport",
    "ValidationResult",
    "ValidationStatus",
    "Verdict",
]
