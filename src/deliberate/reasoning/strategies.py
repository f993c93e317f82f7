"""Navigation strategies for decision trees.

Every strategy answers one question: given a node and its options, which
option should be taken?  The heuristic strategies are pure; the AI and
interactive strategies delegate to an injected collaborator.

=====================  ==============================================
Strategy               Selection rule
=====================  ==============================================
``HighestProbability`` maximum probability
``LowestRisk``         minimum risk (low < medium < high < critical)
``Balanced``           maximum ``probability * (1 - risk / 4)``
``AIRecommended``      asks the text generation service
``Interactive``        asks a caller-supplied chooser
=====================  ==============================================

Ties always go to the first option in generation order.
"""

from __future__ import annotations

import inspect
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Sequence, Union

from deliberate.exceptions import ConfigurationError, DecisionError
from deliberate.llm.base import PLAIN, TextGenerationService
from deliberate.reasoning.types import DecisionNode, Option

logger = logging.getLogger(__name__)

MAX_RISK = 4.0

RECOMMENDATION_PROMPT = """\
Given this decision:
Question: {question}
Context: {context}

Options:
{options}

Which option would you recommend and why?
Return just the option description."""

OPTION_LINE = "{index}. {description} (probability: {probability:.2f}, risk: {risk})"

Chooser = Callable[[DecisionNode, Sequence[Option]], Union[Option, int, Awaitable[Any]]]


def _first_max(options: Sequence[Option], key: Callable[[Option], float]) -> Option:
    # max() returns the first maximal element
    return max(options, key=key)


def balanced_score(option: Option) -> float:
    return option.probability * (1 - option.risk.ordinal / MAX_RISK)


class NavigationStrategy(ABC):
    """Chooses one option at a decision node."""

    name: str = ""

    @abstractmethod
    async def select(self, node: DecisionNode, options: Sequence[Option]) -> Option:
        """Return one of *options*.  *options* is never empty."""
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class HighestProbability(NavigationStrategy):
    name = "highest_probability"

    async def select(self, node: DecisionNode, options: Sequence[Option]) -> Option:
        return _first_max(options, lambda o: o.probability)


class LowestRisk(NavigationStrategy):
    name = "lowest_risk"

    async def select(self, node: DecisionNode, options: Sequence[Option]) -> Option:
        return min(options, key=lambda o: o.risk.ordinal)


class Balanced(NavigationStrategy):
    """Trades probability of success against risk."""

    name = "balanced"

    async def select(self, node: DecisionNode, options: Sequence[Option]) -> Option:
        return _first_max(options, balanced_score)


class AIRecommended(NavigationStrategy):
    """Asks the text generation service to recommend an option.

    The reply is matched against option descriptions: exactly, then
    case-insensitively, then by containment in either direction.  An
    unmatched reply falls back to the first option.
    """

    name = "ai_recommended"

    def __init__(self, service: TextGenerationService) -> None:
        self.service = service

    async def select(self, node: DecisionNode, options: Sequence[Option]) -> Option:
        listing = "\n".join(
            OPTION_LINE.format(
                index=i,
                description=o.description,
                probability=o.probability,
                risk=o.risk.value,
            )
            for i, o in enumerate(options, start=1)
        )
        prompt = RECOMMENDATION_PROMPT.format(
            question=node.question, context=node.context, options=listing
        )
        reply = await self.service.generate(prompt, PLAIN)
        choice = match_option(reply, options)
        if choice is None:
            logger.debug("Recommendation %r matched no option, using the first", reply[:80])
            return options[0]
        return choice


def match_option(reply: str, options: Sequence[Option]) -> Option | None:
    """Find the option a free-text reply refers to."""
    answer = reply.strip()
    if not answer:
        return None
    for option in options:
        if option.description == answer:
            return option
    lowered = answer.lower()
    for option in options:
        if option.description.lower() == lowered:
            return option
    for option in options:
        description = option.description.lower()
        if description and (description in lowered or lowered in description):
            return option
    return None


class Interactive(NavigationStrategy):
    """Delegates the choice to a caller-supplied function.

    The chooser receives the node and its options and returns either an
    ``Option`` from the list or a zero-based index.  It may be a plain
    function or a coroutine function.
    """

    name = "interactive"

    def __init__(self, chooser: Chooser) -> None:
        self.chooser = chooser

    async def select(self, node: DecisionNode, options: Sequence[Option]) -> Option:
        choice = self.chooser(node, options)
        if inspect.isawaitable(choice):
            choice = await choice

        if isinstance(choice, Option):
            if any(choice is o for o in options):
                return choice
            raise DecisionError(
                f"Chosen option {choice.id} does not belong to node {node.id}",
                node_id=node.id,
            )
        if isinstance(choice, int) and not isinstance(choice, bool):
            if 0 <= choice < len(options):
                return options[choice]
            raise DecisionError(
                f"Selection {choice} is out of range for {len(options)} options",
                node_id=node.id,
                details={"selection": choice, "options": len(options)},
            )
        raise DecisionError(
            f"Invalid selection {choice!r} at node {node.id}",
            node_id=node.id,
        )


_STRATEGIES: dict[str, type[NavigationStrategy]] = {
    cls.name: cls
    for cls in (HighestProbability, LowestRisk, Balanced, AIRecommended, Interactive)
}


def get_strategy(
    name: str,
    *,
    service: TextGenerationService | None = None,
    chooser: Chooser | None = None,
) -> NavigationStrategy:
    """Resolve a strategy by name.

    Args:
        name: One of ``highest_probability``, ``lowest_risk``, ``balanced``,
            ``ai_recommended``, ``interactive`` (hyphens are accepted).
        service: Required for ``ai_recommended``.
        chooser: Required for ``interactive``.

    Raises:
        ConfigurationError: Unknown name or missing collaborator.
    """
    key = name.strip().lower().replace("-", "_")
    cls = _STRATEGIES.get(key)
    if cls is None:
        raise ConfigurationError(
            f"Unknown navigation strategy: {name}",
            details={"available": sorted(_STRATEGIES)},
        )
    if cls is AIRecommended:
        if service is None:
            raise ConfigurationError("ai_recommended strategy needs a text generation service")
        return AIRecommended(service)
    if cls is Interactive:
        if chooser is None:
            raise ConfigurationError("interactive strategy needs a chooser")
        return Interactive(chooser)
    return cls()


def available_strategies() -> list[str]:
    return sorted(_STRATEGIES)
