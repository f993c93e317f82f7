"""Self-consistency: run several reasoning passes and keep the consensus.

Independent passes over the same problem often disagree.  The engine runs
``num_paths`` passes concurrently, groups them by normalised conclusion and
returns the most confident chain of the largest group, boosted in
proportion to how many paths agreed.

Failure policy: a pass that raises ``GenerationError`` is logged and
dropped.  Only when every pass fails is a ``ConsensusError`` raised.

The selection itself is a pure function (``select_most_consistent``) so it
can be applied to chains produced elsewhere.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from typing import Sequence

from deliberate.config.settings import ReasoningSettings
from deliberate.exceptions import ConsensusError, GenerationError
from deliberate.reasoning.base import gather_bounded
from deliberate.reasoning.chain_of_thought import ThoughtChainBuilder
from deliberate.reasoning.types import ConsensusInfo, ThoughtChain, clamp

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9 ]")
_WHITESPACE = re.compile(r"\s+")


def normalize_conclusion(text: str) -> str:
    """Grouping key for a conclusion: lowercase alphanumerics, single spaces."""
    folded = _WHITESPACE.sub(" ", text.lower().strip())
    return _WHITESPACE.sub(" ", _NON_ALNUM.sub("", folded)).strip()


def select_most_consistent(
    chains: Sequence[ThoughtChain],
    num_paths: int | None = None,
    boost_weight: float = 0.2,
) -> ThoughtChain:
    """Pick the consensus chain among *chains*.

    The largest group of equal normalised conclusions wins (ties go to the
    group seen first).  Within it the most confident chain wins (ties go to
    the earliest).  Its confidence is raised by
    ``group_size / num_paths * boost_weight``, capped at 1.0.  When no two
    chains agree the globally most confident chain is returned unboosted.

    Args:
        chains: Successful chains, in path order.  Must not be empty.
        num_paths: Number of paths requested; defaults to ``len(chains)``.
        boost_weight: Maximum boost for unanimous agreement.

    Returns:
        A new chain carrying ``ConsensusInfo``.
    """
    if not chains:
        raise ValueError("select_most_consistent needs at least one chain")
    total = num_paths or len(chains)

    groups: dict[str, list[ThoughtChain]] = {}
    for chain in chains:
        groups.setdefault(normalize_conclusion(chain.conclusion), []).append(chain)

    key, members = max(groups.items(), key=lambda item: len(item[1]))
    if len(members) == 1:
        members = list(chains)
        key = normalize_conclusion(_most_confident(members).conclusion)
        group_size = 1
        boost = 0.0
    else:
        group_size = len(members)
        boost = group_size / total * boost_weight

    best = _most_confident(members)
    info = ConsensusInfo(
        num_paths=total,
        successful_paths=len(chains),
        group_size=group_size,
        num_groups=len(groups),
        boost=boost,
        cluster_key=key,
    )
    return dataclasses.replace(
        best,
        confidence=clamp(best.confidence + boost),
        consensus=info,
    )


def _most_confident(chains: Sequence[ThoughtChain]) -> ThoughtChain:
    # max() keeps the first maximal element
    return max(chains, key=lambda c: c.confidence)


class ConsensusEngine:
    """Runs a ``ThoughtChainBuilder`` several times and reconciles the results.

    Example::

        engine = ConsensusEngine(ThoughtChainBuilder(service))
        chain = await engine.build_with_consensus("Choose a caching strategy", num_paths=5)
        print(chain.consensus.agreement)
    """

    def __init__(
        self,
        builder: ThoughtChainBuilder,
        settings: ReasoningSettings | None = None,
    ) -> None:
        self.builder = builder
        self.settings = settings or builder.settings

    async def build_with_consensus(
        self,
        problem: str,
        context: str | None = None,
        constraints: Sequence[str] = (),
        num_paths: int | None = None,
        generate_alternatives: bool = False,
    ) -> ThoughtChain:
        """Build ``num_paths`` chains concurrently and return the consensus.

        Raises:
            ConfigurationError: If ``num_paths`` is outside ``[2, max_num_paths]``.
            ConsensusError: If every path fails.
        """
        if num_paths is None:
            num_paths = self.settings.default_num_paths
        self.settings.check_num_paths(num_paths)

        results = await gather_bounded(
            (
                self.builder.build(
                    problem, context, constraints, generate_alternatives=generate_alternatives
                )
                for _ in range(num_paths)
            ),
            self.settings.max_concurrency,
            return_exceptions=True,
        )

        chains: list[ThoughtChain] = []
        failures: list[BaseException] = []
        for index, result in enumerate(results):
            if isinstance(result, ThoughtChain):
                chains.append(result)
            elif isinstance(result, GenerationError):
                logger.warning("Reasoning path %d failed: %s", index + 1, result)
                failures.append(result)
            else:
                # Only generation failures are tolerated
                raise result

        if not chains:
            first = failures[0] if failures else None
            raise ConsensusError(
                f"All {num_paths} reasoning paths failed",
                num_paths=num_paths,
                failures=len(failures),
                cause=first if isinstance(first, Exception) else None,
            )

        selected = select_most_consistent(
            chains, num_paths, boost_weight=self.settings.consensus_boost_weight
        )
        logger.info(
            "Consensus over %d/%d paths: group of %d, confidence %.2f",
            len(chains),
            num_paths,
            selected.consensus.group_size if selected.consensus else 1,
            selected.confidence,
        )
        return selected
