"""Pydantic request/response models for the Deliberate API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    providers: list[str]
    strategies: list[str]
    uptime_seconds: float


# ---------------------------------------------------------------------------
# Chain of thought
# ---------------------------------------------------------------------------


class ThinkRequest(BaseModel):
    problem: str = Field(min_length=1)
    context: str | None = None
    constraints: list[str] = Field(default_factory=list)
    use_self_consistency: bool = False
    num_paths: int | None = None
    generate_alternatives: bool = False
    provider: str = "mock"


class ThoughtResponse(BaseModel):
    id: str
    content: str
    type: str
    confidence: float
    parent_id: str | None = None


class AssumptionResponse(BaseModel):
    id: str
    statement: str
    confidence: float
    category: str
    status: str
    dependencies: list[str] = Field(default_factory=list)
    evidence: list[str] = Field(default_factory=list)
    impact: dict[str, Any] | None = None


class ThinkResponse(BaseModel):
    chain_id: str
    problem: str
    conclusion: str
    confidence: float
    thoughts: list[ThoughtResponse]
    assumptions: list[AssumptionResponse]
    alternatives: list[dict[str, Any]] = Field(default_factory=list)
    consensus: dict[str, Any] | None = None
    total_llm_calls: int
    total_tokens: int
    duration_ms: float


# ---------------------------------------------------------------------------
# Decision trees
# ---------------------------------------------------------------------------


class DecisionTreeRequest(BaseModel):
    problem: str = Field(min_length=1)
    context: str | None = None
    max_depth: int | None = None
    strategy: str = "balanced"
    provider: str = "mock"


class OptionResponse(BaseModel):
    id: str
    description: str
    pros: list[str]
    cons: list[str]
    probability: float
    risk: str
    child_id: str | None = None


class DecisionNodeResponse(BaseModel):
    id: str
    question: str
    context: str
    depth: int
    parent_id: str | None = None
    selected_option_id: str | None = None
    reasoning: str | None = None
    options: list[OptionResponse]


class DecisionTreeResponse(BaseModel):
    problem: str
    max_depth: int
    root_id: str
    strategy: str
    nodes: list[DecisionNodeResponse]
    path: list[str]
    visualization: str
    summary: str
    total_llm_calls: int
    total_tokens: int
    duration_ms: float


# ---------------------------------------------------------------------------
# Assumptions
# ---------------------------------------------------------------------------


class AssumptionInput(BaseModel):
    statement: str = Field(min_length=1)
    context: str = ""
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    category: str = "technical"
    # Indices of earlier entries in the same request
    depends_on: list[int] = Field(default_factory=list)


class ValidateAssumptionsRequest(BaseModel):
    assumptions: list[AssumptionInput] = Field(min_length=1)
    assess_impact: bool = False
    find_contradictions: bool = False
    provider: str = "mock"


class ValidationResultResponse(BaseModel):
    assumption_id: str
    is_valid: bool
    confidence: float
    verdict: str
    evidence: list[str] = Field(default_factory=list)
    implications: str


class ContradictionResponse(BaseModel):
    assumption_a: str
    assumption_b: str
    conflict: str
    resolution: str | None = None


class ValidateAssumptionsResponse(BaseModel):
    assumptions: list[AssumptionResponse]
    results: list[ValidationResultResponse]
    summary: str
    contradictions: list[ContradictionResponse] = Field(default_factory=list)
    plan: dict[str, list[str]]
    total_llm_calls: int
    total_tokens: int
    duration_ms: float
