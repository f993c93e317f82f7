"""Decision trees -- build a weighted tree of questions and options, then walk it.

Provides:

- ``DecisionTree`` -- an id-indexed arena owning every ``DecisionNode`` and
  ``Option``.  Parent/child links are ids, so the structure has no object
  cycles and serialises directly.
- ``DecisionTreeBuilder`` -- grows a tree depth-first: generate the root
  question, then for every node generate 2-4 options and, for each option
  above the depth limit, a follow-up question that becomes a child node.
- ``DecisionNavigator`` -- walks from the root choosing one option per node
  with a ``NavigationStrategy`` and records an explanation of each choice.

Example::

    builder = DecisionTreeBuilder(service)
    tree = await builder.build("Choose a caching strategy", max_depth=2)
    path = await DecisionNavigator(service).navigate(tree, Balanced())
    print(tree.visualize())
    print(tree.path_summary(path))

Cost: building makes roughly ``max_options ** max_depth`` calls in the
worst case, which is why depth is capped by ``ReasoningSettings``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterator

from deliberate.exceptions import DecisionError
from deliberate.reasoning.base import ReasoningComponent, gather_bounded
from deliberate.reasoning.parser import OPTION_GRAMMAR
from deliberate.reasoning.strategies import NavigationStrategy
from deliberate.reasoning.types import DecisionNode, Option

logger = logging.getLogger(__name__)

CONTEXT_SEPARATOR = " → "
TERMINAL_MARKERS = ("final", "none")

ROOT_QUESTION_PROMPT = """\
Create the first decision question for this problem:
Problem: {problem}
{context}

The question should:
1. Address the most fundamental choice
2. Be clear and binary/multiple choice
3. Lead to meaningful different paths

Return just the question."""

OPTIONS_PROMPT = """\
Generate 2-4 options for this decision:
Question: {question}
Context: {context}

For each option provide:
OPTION: [description]
PROS: [comma-separated benefits]
CONS: [comma-separated drawbacks]
PROBABILITY: [0.0-1.0 success chance]
RISK: [LOW/MEDIUM/HIGH/CRITICAL]

Make options distinct and meaningful."""

FOLLOW_UP_PROMPT = """\
Given this decision path:
Previous question: {question}
Selected: {option}
Context: {context}

What's the next decision that needs to be made?

Return a follow-up question, or empty string if this is a final decision."""

EXPLAIN_PROMPT = """\
Explain this decision:
Question: {question}
Chosen: {option}
Strategy: {strategy}

Why this choice makes sense given:
- Probability: {probability:.2f}
- Risk: {risk}
- Pros: {pros}
- Cons: {cons}

Be concise but clear."""


@dataclass
class DecisionTree:
    """Arena holding the nodes and options of one decision tree."""

    problem: str
    max_depth: int
    root_id: str = ""
    nodes: dict[str, DecisionNode] = field(default_factory=dict)
    options: dict[str, Option] = field(default_factory=dict)

    # -- construction ---------------------------------------------------

    def add_node(self, node: DecisionNode) -> DecisionNode:
        self.nodes[node.id] = node
        if not self.root_id and node.parent_id is None:
            self.root_id = node.id
        return node

    def add_option(self, node: DecisionNode, option: Option) -> Option:
        self.options[option.id] = option
        node.option_ids.append(option.id)
        return option

    def attach_child(self, option: Option, child: DecisionNode) -> DecisionNode:
        option.child_id = child.id
        return self.add_node(child)

    # -- lookup ---------------------------------------------------------

    @property
    def root(self) -> DecisionNode:
        return self.node(self.root_id)

    def node(self, node_id: str) -> DecisionNode:
        try:
            return self.nodes[node_id]
        except KeyError:
            raise DecisionError(f"Unknown decision node: {node_id}", node_id=node_id) from None

    def option(self, option_id: str) -> Option:
        try:
            return self.options[option_id]
        except KeyError:
            raise DecisionError(f"Unknown option: {option_id}") from None

    def options_for(self, node: DecisionNode) -> list[Option]:
        return [self.options[oid] for oid in node.option_ids if oid in self.options]

    def children(self, node: DecisionNode) -> list[DecisionNode]:
        return [
            self.nodes[o.child_id]
            for o in self.options_for(node)
            if o.child_id and o.child_id in self.nodes
        ]

    def iter_nodes(self) -> Iterator[DecisionNode]:
        """Nodes in depth-first pre-order, following option order."""
        if not self.root_id:
            return
        stack = [self.root]
        seen: set[str] = set()
        while stack:
            node = stack.pop()
            if node.id in seen:
                continue
            seen.add(node.id)
            yield node
            stack.extend(reversed(self.children(node)))

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def depth(self) -> int:
        """Depth of the deepest node (root is 0)."""
        return max((n.depth for n in self.nodes.values()), default=0)

    # -- rendering ------------------------------------------------------

    def visualize(self) -> str:
        """Indented text rendering; selected options are marked with ``✓``."""
        if not self.root_id:
            return ""
        lines = [self.root.question]
        self._render(self.root, "", lines)
        return "\n".join(lines)

    def _render(self, node: DecisionNode, prefix: str, lines: list[str]) -> None:
        options = self.options_for(node)
        for index, option in enumerate(options):
            last = index == len(options) - 1
            mark = "✓ " if option.id == node.selected_option_id else ""
            lines.append(
                f"{prefix}{'└── ' if last else '├── '}{mark}{option.description} "
                f"(p={option.probability:.2f}, risk={option.risk.value})"
            )
            if option.child_id and option.child_id in self.nodes:
                child = self.nodes[option.child_id]
                child_prefix = prefix + ("    " if last else "│   ")
                lines.append(f"{child_prefix}→ {child.question}")
                self._render(child, child_prefix, lines)

    def path_summary(self, path: list[DecisionNode]) -> str:
        lines = ["=== Decision Path Summary ==="]
        for step, node in enumerate(path, start=1):
            lines.append(f"Step {step}: {node.question}")
            if node.selected_option_id and node.selected_option_id in self.options:
                lines.append(f"  Decision: {self.options[node.selected_option_id].description}")
            if node.reasoning:
                lines.append(f"  Reasoning: {node.reasoning}")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        nodes = []
        for node in self.iter_nodes():
            data = node.to_dict()
            data["options"] = [o.to_dict() for o in self.options_for(node)]
            nodes.append(data)
        return {
            "problem": self.problem,
            "max_depth": self.max_depth,
            "root_id": self.root_id,
            "nodes": nodes,
        }


def is_terminal_follow_up(text: str) -> bool:
    """True when a follow-up reply means "no further decision"."""
    lowered = text.strip().lower()
    return not lowered or any(marker in lowered for marker in TERMINAL_MARKERS)


class DecisionTreeBuilder(ReasoningComponent):
    """Grows a ``DecisionTree`` through the text generation service."""

    async def build(
        self,
        problem: str,
        context: str | None = None,
        max_depth: int | None = None,
    ) -> DecisionTree:
        """Build a decision tree for *problem*.

        Args:
            problem: The problem to decide on.
            context: Optional background; defaults to the problem text.
            max_depth: Number of decision levels, within
                ``[1, max_tree_depth]``.

        Raises:
            ConfigurationError: If ``max_depth`` is out of bounds.
            GenerationError: If any call fails; no partial tree is returned.
        """
        if max_depth is None:
            max_depth = self.settings.default_max_depth
        self.settings.check_max_depth(max_depth)

        logger.info("Building decision tree (max_depth=%d): %.80s", max_depth, problem)

        question = await self._root_question(problem, context)
        tree = DecisionTree(problem=problem, max_depth=max_depth)
        root = tree.add_node(
            DecisionNode(question=question, context=context or problem, depth=0)
        )
        await self._expand(tree, root)

        logger.info("Decision tree built: %d nodes, %d options", len(tree), len(tree.options))
        return tree

    build_decision_tree = build

    async def _root_question(self, problem: str, context: str | None) -> str:
        prompt = ROOT_QUESTION_PROMPT.format(
            problem=problem, context=f"Context: {context}" if context else ""
        )
        question = (await self._generate(prompt)).strip()
        return question or problem

    async def _expand(self, tree: DecisionTree, node: DecisionNode) -> None:
        if node.depth >= tree.max_depth:
            return

        for option in await self._generate_options(node):
            tree.add_option(node, option)

        options = tree.options_for(node)
        if node.depth >= tree.max_depth - 1:
            return

        if self.settings.concurrent_siblings:
            await gather_bounded(
                (self._grow_branch(tree, node, o) for o in options),
                self.settings.max_concurrency,
            )
        else:
            for option in options:
                await self._grow_branch(tree, node, option)

    async def _grow_branch(self, tree: DecisionTree, node: DecisionNode, option: Option) -> None:
        follow_up = await self._generate(
            FOLLOW_UP_PROMPT.format(
                question=node.question, option=option.description, context=node.context
            )
        )
        if is_terminal_follow_up(follow_up):
            return

        child = tree.attach_child(
            option,
            DecisionNode(
                question=follow_up.strip(),
                context=f"{node.context}{CONTEXT_SEPARATOR}{option.description}",
                depth=node.depth + 1,
                parent_id=node.id,
            ),
        )
        await self._expand(tree, child)

    async def _generate_options(self, node: DecisionNode) -> list[Option]:
        reply = await self._generate(
            OPTIONS_PROMPT.format(question=node.question, context=node.context)
        )
        records = self.parser.parse(reply, OPTION_GRAMMAR)
        if len(records) < self.settings.min_options:
            logger.debug("Node %s got %d option(s)", node.id, len(records))
        return [
            Option(
                description=r["description"],
                pros=r["pros"],
                cons=r["cons"],
                probability=r["probability"],
                risk=r["risk"],
            )
            for r in records[: self.settings.max_options]
        ]


class DecisionNavigator(ReasoningComponent):
    """Walks a ``DecisionTree`` from the root, one strategy choice per node."""

    async def navigate(
        self, tree: DecisionTree, strategy: NavigationStrategy
    ) -> list[DecisionNode]:
        """Choose a path through *tree*.

        Each visited node gets ``selected_option_id`` and an explanation in
        ``reasoning``.  A node without options ends the path.

        Returns:
            The visited nodes, root first.  Never longer than
            ``tree.max_depth``.

        Raises:
            DecisionError: If the strategy picks an option that is not on the
                node, or the tree is deeper than its ``max_depth``.
            GenerationError: If an explanation call fails.
        """
        node = tree.root
        path = [node]

        while True:
            options = tree.options_for(node)
            if not options:
                logger.debug("Node %s has no options; path ends", node.id)
                break

            selected = await strategy.select(node, options)
            if not any(selected is o for o in options):
                raise DecisionError(
                    f"Strategy {strategy!r} selected an option outside node {node.id}",
                    node_id=node.id,
                )

            node.reasoning = await self._explain(node, selected, strategy)
            node.selected_option_id = selected.id
            logger.debug("Node %s: selected %r", node.id, selected.description)

            if selected.child_id is None:
                break
            if len(path) >= tree.max_depth:
                raise DecisionError(
                    f"Path exceeds max depth {tree.max_depth}", node_id=selected.child_id
                )
            node = tree.node(selected.child_id)
            path.append(node)

        return path

    async def _explain(
        self, node: DecisionNode, option: Option, strategy: NavigationStrategy
    ) -> str:
        prompt = EXPLAIN_PROMPT.format(
            question=node.question,
            option=option.description,
            strategy=strategy.name or type(strategy).__name__,
            probability=option.probability,
            risk=option.risk.value,
            pros=", ".join(option.pros),
            cons=", ".join(option.cons),
        )
        return (await self._generate(prompt)).strip()
