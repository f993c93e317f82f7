"""
Deliberate Example 02: Decision Trees

Demonstrates:
- Building a decision tree of questions and options
- Walking it with different navigation strategies
- Text visualisation and the decision path summary
"""
import asyncio

from deliberate import DecisionNavigator, DecisionTreeBuilder, ProviderTextService, get_strategy
from deliberate.llm import demo_provider


async def main():
    print("=" * 60)
    print("Deliberate Example 02: Decision Trees")
    print("=" * 60)

    service = ProviderTextService(demo_provider())
    tree = await DecisionTreeBuilder(service).build(
        "Choose a caching strategy", context="Read-heavy REST API", max_depth=2
    )
    navigator = DecisionNavigator(service)

    for name in ("highest_probability", "lowest_risk", "balanced", "ai_recommended"):
        strategy = get_strategy(name, service=service)
        path = await navigator.navigate(tree, strategy)
        print(f"\n--- {name} ---")
        print(tree.visualize())
        print(tree.path_summary(path))

    print(f"\nNodes: {len(tree)}, options: {len(tree.options)}, LLM calls: {service.stats.calls}")


if __name__ == "__main__":
    asyncio.run(main())
