"""Reasoning endpoints: chains of thought, decision trees, assumption validation."""

from __future__ import annotations

import logging
import time
from typing import NoReturn

from fastapi import APIRouter, HTTPException

from deliberate.exceptions import (
    AssumptionError,
    ConfigurationError,
    DecisionError,
    GenerationError,
    ReasoningError,
)
from deliberate.llm.base import ProviderTextService
from deliberate.reasoning.assumptions import AssumptionTracker
from deliberate.reasoning.chain_of_thought import ChainOfThought
from deliberate.reasoning.decision_tree import DecisionNavigator, DecisionTreeBuilder
from deliberate.reasoning.strategies import get_strategy
from deliberate.reasoning.types import Assumption, AssumptionCategory
from deliberate.server.models import (
    AssumptionResponse,
    ContradictionResponse,
    DecisionNodeResponse,
    DecisionTreeRequest,
    DecisionTreeResponse,
    OptionResponse,
    ThinkRequest,
    ThinkResponse,
    ThoughtResponse,
    ValidateAssumptionsRequest,
    ValidateAssumptionsResponse,
    ValidationResultResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

SUPPORTED_PROVIDERS = ("mock",)


def _service_for(provider: str) -> ProviderTextService:
    if provider == "mock":
        from deliberate.llm.mock import demo_provider

        return ProviderTextService(demo_provider())
    raise HTTPException(
        status_code=400,
        detail=f"Provider '{provider}' not supported via API yet. Use 'mock' for testing.",
    )


def _raise_http(error: Exception) -> NoReturn:
    if isinstance(error, (ConfigurationError, AssumptionError, DecisionError)):
        raise HTTPException(status_code=400, detail=str(error)) from error
    if isinstance(error, (GenerationError, ReasoningError)):
        raise HTTPException(status_code=502, detail=str(error)) from error
    raise error


def _assumption_response(assumption: Assumption) -> AssumptionResponse:
    return AssumptionResponse(
        id=assumption.id,
        statement=assumption.statement,
        confidence=assumption.confidence,
        category=assumption.category.value,
        status=assumption.status.value,
        dependencies=sorted(assumption.dependencies),
        evidence=list(assumption.evidence),
        impact=assumption.impact.to_dict() if assumption.impact else None,
    )


@router.post("/reasoning/think", response_model=ThinkResponse)
async def think(request: ThinkRequest) -> ThinkResponse:
    """Run a chain of thought, optionally with self-consistency."""
    service = _service_for(request.provider)
    cot = ChainOfThought(service)

    start = time.time()
    try:
        chain = await cot.think_through(
            request.problem,
            context=request.context,
            constraints=request.constraints,
            use_self_consistency=request.use_self_consistency,
            num_paths=request.num_paths,
            generate_alternatives=request.generate_alternatives,
        )
    except Exception as e:
        _raise_http(e)
    duration_ms = (time.time() - start) * 1000

    return ThinkResponse(
        chain_id=chain.id,
        problem=chain.problem,
        conclusion=chain.conclusion,
        confidence=chain.confidence,
        thoughts=[
            ThoughtResponse(
                id=t.id,
                content=t.content,
                type=t.type.value,
                confidence=t.confidence,
                parent_id=t.parent_id,
            )
            for t in chain.thoughts
        ],
        assumptions=[_assumption_response(a) for a in chain.assumptions],
        alternatives=[a.to_dict() for a in chain.alternatives],
        consensus=chain.consensus.to_dict() if chain.consensus else None,
        total_llm_calls=service.stats.calls,
        total_tokens=service.stats.total_tokens,
        duration_ms=duration_ms,
    )


@router.post("/reasoning/decision-tree", response_model=DecisionTreeResponse)
async def decision_tree(request: DecisionTreeRequest) -> DecisionTreeResponse:
    """Build a decision tree and navigate it with the requested strategy."""
    service = _service_for(request.provider)

    start = time.time()
    try:
        strategy = get_strategy(request.strategy, service=service)
        tree = await DecisionTreeBuilder(service).build(
            request.problem, context=request.context, max_depth=request.max_depth
        )
        path = await DecisionNavigator(service).navigate(tree, strategy)
    except Exception as e:
        _raise_http(e)
    duration_ms = (time.time() - start) * 1000

    nodes = [
        DecisionNodeResponse(
            id=node.id,
            question=node.question,
            context=node.context,
            depth=node.depth,
            parent_id=node.parent_id,
            selected_option_id=node.selected_option_id,
            reasoning=node.reasoning,
            options=[
                OptionResponse(
                    id=o.id,
                    description=o.description,
                    pros=o.pros,
                    cons=o.cons,
                    probability=o.probability,
                    risk=o.risk.value,
                    child_id=o.child_id,
                )
                for o in tree.options_for(node)
            ],
        )
        for node in tree.iter_nodes()
    ]

    return DecisionTreeResponse(
        problem=tree.problem,
        max_depth=tree.max_depth,
        root_id=tree.root_id,
        strategy=strategy.name,
        nodes=nodes,
        path=[node.id for node in path],
        visualization=tree.visualize(),
        summary=tree.path_summary(path),
        total_llm_calls=service.stats.calls,
        total_tokens=service.stats.total_tokens,
        duration_ms=duration_ms,
    )


@router.post("/reasoning/assumptions/validate", response_model=ValidateAssumptionsResponse)
async def validate_assumptions(request: ValidateAssumptionsRequest) -> ValidateAssumptionsResponse:
    """Record the given assumptions, validate them and build a validation plan."""
    service = _service_for(request.provider)
    tracker = AssumptionTracker(service)

    start = time.time()
    try:
        recorded: list[Assumption] = []
        for index, item in enumerate(request.assumptions):
            try:
                category = AssumptionCategory(item.category.lower())
            except ValueError:
                raise ConfigurationError(f"Unknown category: {item.category}") from None
            if any(dep < 0 or dep >= index for dep in item.depends_on):
                raise ConfigurationError(
                    f"Assumption {index} may only depend on earlier entries"
                )
            recorded.append(
                tracker.record_assumption(
                    item.statement,
                    context=item.context,
                    confidence=item.confidence,
                    category=category,
                    dependencies=[recorded[dep].id for dep in item.depends_on],
                )
            )

        report = await tracker.validate_all()
        if request.assess_impact:
            for assumption in recorded:
                await tracker.assess_impact(assumption)
        contradictions = []
        if request.find_contradictions:
            contradictions = await tracker.find_contradictions()
    except Exception as e:
        _raise_http(e)
    duration_ms = (time.time() - start) * 1000

    plan = tracker.generate_validation_plan()
    return ValidateAssumptionsResponse(
        assumptions=[_assumption_response(a) for a in tracker.assumptions],
        results=[
            ValidationResultResponse(
                assumption_id=r.assumption_id,
                is_valid=r.is_valid,
                confidence=r.confidence,
                verdict=r.verdict.value,
                evidence=list(r.evidence),
                implications=r.implications,
            )
            for r in report.results
        ],
        summary=report.summary(),
        contradictions=[ContradictionResponse(**c.to_dict()) for c in contradictions],
        plan=plan.to_dict(),
        total_llm_calls=service.stats.calls,
        total_tokens=service.stats.total_tokens,
        duration_ms=duration_ms,
    )
