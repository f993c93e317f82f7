"""
Deliberate Example 03: Assumption Tracking

Demonstrates:
- Recording assumptions with dependencies
- Validating them and assessing impact
- Building a prioritised validation plan
"""
import asyncio

from deliberate import AssumptionTracker, ProviderTextService
from deliberate.llm import demo_provider
from deliberate.reasoning import AssumptionCategory


async def main():
    print("=" * 60)
    print("Deliberate Example 03: Assumption Tracking")
    print("=" * 60)

    tracker = AssumptionTracker(ProviderTextService(demo_provider()))

    reads = tracker.record_assumption(
        "Reads dominate writes", confidence=0.8, category=AssumptionCategory.PERFORMANCE
    )
    ttl = tracker.record_assumption(
        "A 60 second TTL is acceptable to users",
        category=AssumptionCategory.USER,
        dependencies=[reads.id],
    )
    extracted = await tracker.extract_assumptions(
        "Since the working set is small, an in-process cache should be enough."
    )
    print(f"\nTracked: {len(tracker)} ({len(extracted)} extracted)")
    print("Dependency chain:", " <- ".join(a.statement for a in tracker.dependency_chain(ttl)))

    report = await tracker.validate_all()
    print(f"\n{report.summary()}")
    for assumption in tracker.assumptions:
        impact = await tracker.assess_impact(assumption)
        print(f"  {assumption.statement}: {assumption.status.value}, impact {impact.severity.value}")

    plan = tracker.generate_validation_plan()
    print("\nValidation plan:")
    for priority, ids in plan.to_dict().items():
        print(f"  {priority}: {[tracker.get(i).statement for i in ids]}")


if __name__ == "__main__":
    asyncio.run(main())
