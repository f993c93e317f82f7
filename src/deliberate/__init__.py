"""
Deliberate - structured, auditable reasoning over a pluggable text generation service.

Chains of thought, self-consistency, decision trees and assumption tracking,
all driven through one ``TextGenerationService`` interface.

Quick Start:
    import deliberate
    from deliberate import ChainOfThought, ProviderTextService, ScriptedProvider

    deliberate.configure(max_num_paths=5)
    deliberate.configure_logging()

    service = ProviderTextService(ScriptedProvider(default="Therefore, use a cache."))
    cot = ChainOfThought(service)

    chain = await cot.think_through("Choose a caching strategy", use_self_consistency=True)
    print(chain.conclusion)
    print(chain.confidence)
    print(service.stats.calls)
"""

from deliberate.config import (
    DeliberateSettings,
    configure,
    configure_logging,
    get_settings,
    load_dotenv,
)
from deliberate.exceptions import (
    AssumptionError,
    ConfigurationError,
    ConsensusError,
    DecisionError,
    DeliberateError,
    GenerationError,
    GenerationUnavailableError,
    ReasoningError,
)
from deliberate.llm import (
    BaseLLMProvider,
    GenerationOptions,
    ProviderTextService,
    ScriptedProvider,
    TextGenerationService,
)
from deliberate.reasoning import (
    AIRecommended,
    AssumptionTracker,
    Balanced,
    ChainOfThought,
    ConsensusEngine,
    DecisionNavigator,
    DecisionTree,
    DecisionTreeBuilder,
    HighestProbability,
    Interactive,
    LowestRisk,
    NavigationStrategy,
    ReasoningSession,
    ThoughtChain,
    ThoughtChainBuilder,
    get_strategy,
)

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Configuration
    "DeliberateSettings",
    "configure",
    "configure_logging",
    "get_settings",
    "load_dotenv",
    # Generation
    "BaseLLMProvider",
    "GenerationOptions",
    "ProviderTextService",
    "ScriptedProvider",
    "TextGenerationService",
    # Reasoning
    "AssumptionTracker",
    "ChainOfThought",
    "ConsensusEngine",
    "DecisionNavigator",
    "DecisionTree",
    "DecisionTreeBuilder",
    "ReasoningSession",
    "ThoughtChain",
    "ThoughtChainBuilder",
    # Strategies
    "AIRecommended",
    "Balanced",
    "HighestProbability",
    "Interactive",
    "LowestRisk",
    "NavigationStrategy",
    "get_strategy",
    # Exceptions
    "AssumptionError",
    "ConfigurationError",
    "ConsensusError",
    "DecisionError",
    "DeliberateError",
    "GenerationError",
    "GenerationUnavailableError",
    "ReasoningError",
]
