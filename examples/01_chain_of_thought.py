"""
Deliberate Example 01: Chain of Thought

Demonstrates:
- A single reasoning pass with typed thoughts
- Self-consistency across several passes
- Pattern detection and the session summary
"""
import asyncio

from deliberate import ChainOfThought, ProviderTextService, configure_logging
from deliberate.llm import demo_provider


async def main():
    print("=" * 60)
    print("Deliberate Example 01: Chain of Thought")
    print("=" * 60)

    configure_logging(level="INFO")

    # Any BaseLLMProvider works here; the demo provider needs no API key
    service = ProviderTextService(demo_provider())
    cot = ChainOfThought(service)

    problem = "Choose a caching strategy for a read-heavy REST API"

    print("\n--- Single pass ---")
    chain = await cot.think_through(problem, constraints=["Small team", "Limited budget"])
    for thought in chain.thoughts:
        print(f"  [{thought.type.value:<11}] {thought.confidence:.2f}  {thought.content[:70]}")
    print(cot.analyze(chain))

    print("\n--- Self-consistency (3 paths) ---")
    chain = await cot.think_through(problem, use_self_consistency=True, num_paths=3)
    print(cot.analyze(chain))

    print("\n--- Session ---")
    cot.detect_patterns()
    print(cot.generate_summary())
    print(f"\nLLM calls: {service.stats.calls}, tokens: {service.stats.total_tokens}")


if __name__ == "__main__":
    asyncio.run(main())
