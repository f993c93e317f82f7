"""Tests for decision tree building and navigation."""

from __future__ import annotations

import pytest

from deliberate.config.settings import ReasoningSettings
from deliberate.exceptions import ConfigurationError, DecisionError
from deliberate.reasoning.decision_tree import (
    CONTEXT_SEPARATOR,
    DecisionNavigator,
    DecisionTree,
    DecisionTreeBuilder,
    is_terminal_follow_up,
)
from deliberate.reasoning.strategies import (
    Balanced,
    HighestProbability,
    Interactive,
    NavigationStrategy,
)
from deliberate.reasoning.types import DecisionNode, Option, RiskLevel

FIVE_OPTIONS = """\
OPTION: In-process LRU
PROS: simple
CONS: not shared
PROBABILITY: 0.6
RISK: LOW

OPTION: Redis
PROS: shared
PROBABILITY: 0.8
RISK: MEDIUM

OPTION: CDN edge
PROBABILITY: 0.4
RISK: HIGH

OPTION: Memcached
PROBABILITY: 0.5
RISK: MEDIUM

OPTION: Disk cache
PROBABILITY: 0.3
RISK: LOW"""


def _follow_up(prompt: str) -> str:
    if "Selected: CDN edge" in prompt:
        return "Final decision."
    return "How should it be configured?"


@pytest.fixture
def tree_service(make_service):
    """Service scripted for a two-level caching decision."""
    return make_service(
        rules=[
            ("Create the first decision question", "Which cache should we use?"),
            ("Generate 2-4 options", FIVE_OPTIONS),
            ("next decision", _follow_up),
            ("Explain this decision", "Because it fits."),
        ]
    )


def _small_tree(max_depth: int = 2) -> tuple[DecisionTree, list[Option]]:
    tree = DecisionTree(problem="p", max_depth=max_depth)
    root = tree.add_node(DecisionNode(question="Root?", context="p"))
    first = tree.add_option(root, Option("A", probability=0.9, risk=RiskLevel.LOW))
    second = tree.add_option(root, Option("B", probability=0.2, risk=RiskLevel.LOW))
    tree.attach_child(
        first, DecisionNode(question="After A?", context="p → A", depth=1, parent_id=root.id)
    )
    return tree, [first, second]


class TestDecisionTree:
    """Tests for the tree arena."""

    def test_structure(self):
        """Test root, children, depth and lookup."""
        tree, (first, second) = _small_tree()

        assert tree.root.question == "Root?"
        assert [c.question for c in tree.children(tree.root)] == ["After A?"]
        assert [n.question for n in tree.iter_nodes()] == ["Root?", "After A?"]
        assert len(tree) == 2
        assert tree.depth == 1
        assert tree.option(second.id) is second
        assert tree.root.is_leaf is False

    def test_unknown_ids(self):
        """Test lookups of unknown ids raise DecisionError."""
        tree, _ = _small_tree()
        with pytest.raises(DecisionError):
            tree.node("missing")
        with pytest.raises(DecisionError):
            tree.option("missing")

    def test_visualize_marks_selection(self):
        """Test the text rendering shows branches and the chosen option."""
        tree, (first, _) = _small_tree()
        tree.root.selected_option_id = first.id

        lines = tree.visualize().splitlines()

        assert lines[0] == "Root?"
        assert lines[1] == "├── ✓ A (p=0.90, risk=low)"
        assert lines[2] == "│   → After A?"
        assert lines[3] == "└── B (p=0.20, risk=low)"

    def test_empty_tree(self):
        """Test an empty arena renders nothing."""
        tree = DecisionTree(problem="p", max_depth=1)
        assert tree.visualize() == ""
        assert list(tree.iter_nodes()) == []
        assert tree.depth == 0

    def test_to_dict_embeds_options(self):
        """Test serialisation nests options under their node."""
        tree, (first, _) = _small_tree()
        data = tree.to_dict()

        assert data["root_id"] == tree.root_id
        assert [o["description"] for o in data["nodes"][0]["options"]] == ["A", "B"]
        assert data["nodes"][0]["options"][0]["child_id"] == first.child_id

    @pytest.mark.parametrize(
        "reply,terminal",
        [("", True), ("   ", True), ("Final decision.", True), ("None", True), ("Which region?", False)],
    )
    def test_terminal_follow_up(self, reply, terminal):
        """Test empty and final replies end a branch."""
        assert is_terminal_follow_up(reply) is terminal


class TestDecisionTreeBuilder:
    """Tests for tree construction."""

    @pytest.mark.asyncio
    async def test_build_two_levels(self, tree_service):
        """Test options are capped, terminal follow-ups stop branches."""
        tree = await DecisionTreeBuilder(tree_service).build("Pick a cache", max_depth=2)

        root = tree.root
        assert root.question == "Which cache should we use?"
        assert root.context == "Pick a cache"
        options = tree.options_for(root)
        assert [o.description for o in options] == ["In-process LRU", "Redis", "CDN edge", "Memcached"]

        children = tree.children(root)
        assert len(children) == 3
        assert options[2].child_id is None
        for child in children:
            assert child.depth == 1
            assert child.parent_id == root.id
            assert child.question == "How should it be configured?"
            assert len(tree.options_for(child)) == 4
            assert all(o.child_id is None for o in tree.options_for(child))
        assert children[0].context == f"Pick a cache{CONTEXT_SEPARATOR}In-process LRU"

        # root question + root options + 4 follow-ups + 3 child option sets
        assert tree_service.stats.calls == 9
        assert tree.depth == 1

    @pytest.mark.asyncio
    async def test_concurrent_siblings(self, tree_service):
        """Test concurrent expansion builds the same shape."""
        builder = DecisionTreeBuilder(tree_service, ReasoningSettings(concurrent_siblings=True))

        tree = await builder.build("Pick a cache", max_depth=2)

        assert len(tree.children(tree.root)) == 3
        assert [o.description for o in tree.options_for(tree.root)][0] == "In-process LRU"
        assert tree_service.stats.calls == 9

    @pytest.mark.asyncio
    async def test_concurrent_siblings_share_call_limit(self, make_paced_service):
        """Test nested sibling fan-outs never exceed max_concurrency calls."""
        service = make_paced_service(
            delay=0.005,
            rules=[
                ("Create the first decision question", "Which cache should we use?"),
                ("Generate 2-4 options", FIVE_OPTIONS),
                ("next decision", _follow_up),
            ],
        )
        settings = ReasoningSettings(concurrent_siblings=True, max_concurrency=2)

        tree = await DecisionTreeBuilder(service, settings).build("Pick a cache", max_depth=3)

        assert tree.depth == 2
        assert service.peak == 2

    @pytest.mark.asyncio
    async def test_depth_one(self, tree_service):
        """Test a single level makes no follow-up calls."""
        tree = await DecisionTreeBuilder(tree_service).build("Pick a cache", max_depth=1)

        assert len(tree) == 1
        assert len(tree.options_for(tree.root)) == 4
        assert tree_service.stats.calls == 2

    @pytest.mark.asyncio
    async def test_context_is_used(self, tree_service):
        """Test explicit context becomes the root context and is sent."""
        tree = await DecisionTreeBuilder(tree_service).build(
            "Pick a cache", context="Read heavy API", max_depth=1
        )

        assert tree.root.context == "Read heavy API"
        assert "Context: Read heavy API" in tree_service.stats.prompts[0]

    @pytest.mark.asyncio
    async def test_empty_root_question_uses_problem(self, make_service):
        """Test an empty question reply falls back to the problem."""
        service = make_service(default="")

        tree = await DecisionTreeBuilder(service).build("Pick a cache", max_depth=1)

        assert tree.root.question == "Pick a cache"
        assert tree.options_for(tree.root) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("max_depth", [0, 5])
    async def test_depth_bounds(self, make_service, max_depth):
        """Test depth outside the configured range is rejected."""
        service = make_service()
        with pytest.raises(ConfigurationError):
            await DecisionTreeBuilder(service).build("Pick a cache", max_depth=max_depth)
        assert service.stats.calls == 0


class TestDecisionNavigator:
    """Tests for walking a tree."""

    @pytest.mark.asyncio
    async def test_navigate_highest_probability(self, tree_service):
        """Test the path follows the strategy and records explanations."""
        tree = await DecisionTreeBuilder(tree_service).build("Pick a cache", max_depth=2)
        calls_before = tree_service.stats.calls

        path = await DecisionNavigator(tree_service).navigate(tree, HighestProbability())

        assert len(path) == 2
        assert path[0] is tree.root
        assert tree.option(path[0].selected_option_id).description == "Redis"
        assert tree.option(path[1].selected_option_id).description == "Redis"
        assert all(node.reasoning == "Because it fits." for node in path)
        assert tree_service.stats.calls - calls_before == 2

        summary = tree.path_summary(path)
        assert summary.splitlines()[0] == "=== Decision Path Summary ==="
        assert "Step 1: Which cache should we use?" in summary
        assert "  Decision: Redis" in summary
        assert "  Reasoning: Because it fits." in summary
        assert "✓ Redis" in tree.visualize()

    @pytest.mark.asyncio
    async def test_navigate_balanced(self, tree_service):
        """Test the balanced strategy prefers the low-risk option."""
        tree = await DecisionTreeBuilder(tree_service).build("Pick a cache", max_depth=2)

        path = await DecisionNavigator(tree_service).navigate(tree, Balanced())

        assert tree.option(path[0].selected_option_id).description == "In-process LRU"

    @pytest.mark.asyncio
    async def test_leaf_root(self, make_service):
        """Test a root without options yields a one-node path and no calls."""
        service = make_service()
        tree = DecisionTree(problem="p", max_depth=2)
        tree.add_node(DecisionNode(question="Root?", context="p"))

        path = await DecisionNavigator(service).navigate(tree, Balanced())

        assert path == [tree.root]
        assert service.stats.calls == 0

    @pytest.mark.asyncio
    async def test_path_deeper_than_max_depth(self, make_service):
        """Test a child beyond max_depth raises DecisionError."""
        tree, _ = _small_tree(max_depth=1)

        with pytest.raises(DecisionError):
            await DecisionNavigator(make_service(default="ok")).navigate(tree, HighestProbability())

    @pytest.mark.asyncio
    async def test_foreign_option_rejected(self, make_service):
        """Test a strategy returning an unknown option is rejected."""

        class Rogue(NavigationStrategy):
            name = "rogue"

            async def select(self, node, options):
                return Option("elsewhere")

        tree, _ = _small_tree()
        with pytest.raises(DecisionError):
            await DecisionNavigator(make_service()).navigate(tree, Rogue())

    @pytest.mark.asyncio
    async def test_interactive_path(self, make_service):
        """Test an interactive choice ending on a leaf option."""
        tree, (_, second) = _small_tree()

        path = await DecisionNavigator(make_service(default="ok")).navigate(
            tree, Interactive(lambda node, options: 1)
        )

        assert path == [tree.root]
        assert tree.root.selected_option_id == second.id
        assert tree.root.reasoning == "ok"
