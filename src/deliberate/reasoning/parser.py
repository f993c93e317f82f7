"""Structured response parsing.

Model replies are asked to follow a simple line grammar::

    OPTION: Shared Redis cache
    PROS: Shared across instances, mature tooling
    CONS: Extra infrastructure
    PROBABILITY: 0.7
    RISK: MEDIUM

A ``Grammar`` names the marker that starts a record (``section_marker``), the
field an unmarked line falls back to (``primary_field``) and one ``FieldSpec``
per marker.  Parsing is lenient and never raises: unknown lines are ignored,
malformed values fall back to field defaults, and a record without its
primary field is dropped.

Two parsers implement ``ResponseParser``:

- ``MarkerResponseParser`` -- the line grammar above (default).
- ``JSONResponseParser`` -- accepts a JSON array/object embedded in the
  reply, keyed by field name, and falls back to the marker grammar.
"""

from __future__ import annotations

import copy
import json
import logging
import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from deliberate.reasoning.types import (
    AssumptionCategory,
    ImpactScope,
    RiskLevel,
    Severity,
    Verdict,
    clamp,
)

logger = logging.getLogger(__name__)

Coercer = Callable[[str], Any]

# Leading list decoration a model may put in front of a marker: "- ", "1. ", "• "
_BULLET = re.compile(r"^(?:[-*•]\s*|\d+[.)]\s+)")


# ---------------------------------------------------------------------------
# Coercers
# ---------------------------------------------------------------------------


def as_text(value: str) -> str:
    return value.strip()


def as_float(default: float = 0.5) -> Coercer:
    """Parse a float clamped to [0, 1]; anything non-numeric yields *default*."""

    def coerce(value: str) -> float:
        try:
            number = float(value.strip())
        except ValueError:
            return default
        if math.isnan(number):
            return default
        return clamp(number)

    return coerce


def as_list(separator: str = ",") -> Coercer:
    """Split on *separator*, trimming items and dropping empty ones."""

    def coerce(value: str) -> list[str]:
        return [item.strip() for item in value.split(separator) if item.strip()]

    return coerce


def as_keyword(ranking: Sequence[tuple[str, Any]], default: Any) -> Coercer:
    """Map text to a value by case-insensitive keyword search.

    Keywords are tried in ranking order, so ``[("CRITICAL", ...), ("HIGH", ...)]``
    resolves ``"high, maybe critical"`` to the critical value.
    """

    def coerce(value: str) -> Any:
        upper = value.upper()
        for keyword, result in ranking:
            if keyword in upper:
                return result
        return default

    return coerce


# ---------------------------------------------------------------------------
# Grammar
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldSpec:
    """One ``MARKER: value`` line of a grammar."""

    marker: str
    name: str
    coerce: Coercer = as_text
    default: Any = None

    def default_value(self) -> Any:
        return copy.copy(self.default)


@dataclass(frozen=True)
class Grammar:
    """Describes the records a reply should contain."""

    fields: tuple[FieldSpec, ...]
    section_marker: str | None = None
    primary_field: str | None = None
    name: str = ""

    def field_for_line(self, line: str) -> tuple[FieldSpec, str] | None:
        """Return the field a line sets and the text after its marker."""
        upper = line.upper()
        for spec in self.fields:
            if upper.startswith(spec.marker.upper()):
                return spec, line[len(spec.marker):]
        return None

    def field_named(self, name: str) -> FieldSpec | None:
        for spec in self.fields:
            if spec.name == name:
                return spec
        return None

    def defaults(self) -> dict[str, Any]:
        return {spec.name: spec.default_value() for spec in self.fields}


def _clean(line: str) -> str:
    return _BULLET.sub("", line.strip()).strip()


def _split_sections(raw: str, marker: str | None) -> list[list[str]]:
    lines = [_clean(line) for line in raw.splitlines()]
    if marker is None:
        return [lines]

    marker_upper = marker.upper()
    sections: list[list[str]] = []
    for line in lines:
        if line.upper().startswith(marker_upper):
            sections.append([line])
        elif sections:
            sections[-1].append(line)
        # Text before the first marker is preamble
    return sections


def _parse_section(lines: list[str], grammar: Grammar) -> tuple[dict[str, Any], bool]:
    record = grammar.defaults()
    primary_set = False
    for line in lines:
        if not line:
            continue
        match = grammar.field_for_line(line)
        if match is not None:
            spec, rest = match
            record[spec.name] = spec.coerce(rest)
            if spec.name == grammar.primary_field:
                primary_set = bool(str(rest).strip())
        elif grammar.primary_field and not primary_set:
            spec = grammar.field_named(grammar.primary_field)
            if spec is not None:
                record[spec.name] = spec.coerce(line)
                primary_set = True
    return record, primary_set


# ---------------------------------------------------------------------------
# Parsers
# ---------------------------------------------------------------------------


class ResponseParser(ABC):
    """Turns a free-form model reply into field dictionaries."""

    @abstractmethod
    def parse(self, raw: str, grammar: Grammar) -> list[dict[str, Any]]:
        """Parse every record in *raw*.  Never raises; may return ``[]``."""
        ...

    @abstractmethod
    def parse_one(self, raw: str, grammar: Grammar) -> dict[str, Any]:
        """Parse *raw* as a single record, filling defaults for missing fields."""
        ...


class MarkerResponseParser(ResponseParser):
    """Line-oriented ``MARKER: value`` parser."""

    def parse(self, raw: str, grammar: Grammar) -> list[dict[str, Any]]:
        if not raw or not raw.strip():
            return []

        records = []
        for lines in _split_sections(raw, grammar.section_marker):
            record, has_primary = _parse_section(lines, grammar)
            if grammar.primary_field is None or has_primary:
                records.append(record)
        logger.debug("Parsed %d %s record(s)", len(records), grammar.name or "grammar")
        return records

    def parse_one(self, raw: str, grammar: Grammar) -> dict[str, Any]:
        if not raw:
            return grammar.defaults()
        record, _ = _parse_section(_split_sections(raw, None)[0], grammar)
        return record


class JSONResponseParser(ResponseParser):
    """Reads records from a JSON array or object embedded in the reply.

    Keys are matched case-insensitively against field names and against
    markers without their colon (``"option"``, ``"probability"``).  Values
    go through the same coercers as the marker grammar.  When no usable JSON
    is found the reply is parsed with ``fallback``.
    """

    def __init__(self, fallback: ResponseParser | None = None) -> None:
        self.fallback = fallback or MarkerResponseParser()

    def parse(self, raw: str, grammar: Grammar) -> list[dict[str, Any]]:
        items = self._extract(raw)
        if items is None:
            return self.fallback.parse(raw, grammar)

        records = []
        for item in items:
            record, has_primary = self._record_from(item, grammar)
            if grammar.primary_field is None or has_primary:
                records.append(record)
        if not records:
            return self.fallback.parse(raw, grammar)
        return records

    def parse_one(self, raw: str, grammar: Grammar) -> dict[str, Any]:
        items = self._extract(raw)
        if not items:
            return self.fallback.parse_one(raw, grammar)
        record, _ = self._record_from(items[0], grammar)
        return record

    @staticmethod
    def _extract(raw: str) -> list[dict[str, Any]] | None:
        text = (raw or "").strip()
        for opener, closer in (("[", "]"), ("{", "}")):
            start = text.find(opener)
            end = text.rfind(closer)
            if start == -1 or end <= start:
                continue
            try:
                parsed = json.loads(text[start : end + 1])
            except (json.JSONDecodeError, ValueError):
                continue
            if isinstance(parsed, dict):
                parsed = [parsed]
            if isinstance(parsed, list):
                return [item for item in parsed if isinstance(item, dict)]
        return None

    @staticmethod
    def _record_from(item: dict[str, Any], grammar: Grammar) -> tuple[dict[str, Any], bool]:
        record = grammar.defaults()
        keys = {str(k).lower(): v for k, v in item.items()}
        primary_set = False
        for spec in grammar.fields:
            marker_key = spec.marker.rstrip(":").strip().lower()
            if spec.name.lower() in keys:
                value = keys[spec.name.lower()]
            elif marker_key in keys:
                value = keys[marker_key]
            else:
                continue
            if isinstance(value, list):
                text = ", ".join(str(v) for v in value)
            else:
                text = "" if value is None else str(value)
            record[spec.name] = spec.coerce(text)
            if spec.name == grammar.primary_field and text.strip():
                primary_set = True
        return record, primary_set


_default_parser: ResponseParser = MarkerResponseParser()


def parse(raw: str, grammar: Grammar) -> list[dict[str, Any]]:
    """Parse *raw* with the default marker parser."""
    return _default_parser.parse(raw, grammar)


def parse_one(raw: str, grammar: Grammar) -> dict[str, Any]:
    """Parse *raw* as one record with the default marker parser."""
    return _default_parser.parse_one(raw, grammar)


# ---------------------------------------------------------------------------
# Grammars used by the reasoning components
# ---------------------------------------------------------------------------

SEVERITY_RANKING = (
    ("CRITICAL", Severity.CRITICAL),
    ("HIGH", Severity.HIGH),
    ("MEDIUM", Severity.MEDIUM),
)

RISK_RANKING = (
    ("CRITICAL", RiskLevel.CRITICAL),
    ("HIGH", RiskLevel.HIGH),
    ("LOW", RiskLevel.LOW),
)

SCOPE_RANKING = (
    ("CRITICAL", ImpactScope.CRITICAL),
    ("SYSTEM", ImpactScope.SYSTEM),
    ("MODULE", ImpactScope.MODULE),
)

CATEGORY_RANKING = (
    ("BUSINESS", AssumptionCategory.BUSINESS),
    ("USER", AssumptionCategory.USER),
    ("PERFORMANCE", AssumptionCategory.PERFORMANCE),
    ("SECURITY", AssumptionCategory.SECURITY),
    ("DATA", AssumptionCategory.DATA),
)

VERDICT_RANKING = (
    ("YES", Verdict.YES),
    ("PARTIAL", Verdict.PARTIAL),
)

ASSUMPTION_GRAMMAR = Grammar(
    name="assumption",
    section_marker="ASSUMPTION:",
    primary_field="statement",
    fields=(
        FieldSpec("ASSUMPTION:", "statement", as_text, ""),
        FieldSpec("CONFIDENCE:", "confidence", as_float(), 0.5),
        FieldSpec(
            "CATEGORY:",
            "category",
            as_keyword(CATEGORY_RANKING, AssumptionCategory.TECHNICAL),
            AssumptionCategory.TECHNICAL,
        ),
        FieldSpec("IMPACT:", "impact", as_keyword(SEVERITY_RANKING, Severity.LOW), None),
        FieldSpec("DEPENDS_ON:", "depends_on", as_list(), []),
        FieldSpec("IF_WRONG:", "if_wrong", as_text, ""),
    ),
)

OPTION_GRAMMAR = Grammar(
    name="option",
    section_marker="OPTION:",
    primary_field="description",
    fields=(
        FieldSpec("OPTION:", "description", as_text, ""),
        FieldSpec("PROS:", "pros", as_list(), []),
        FieldSpec("CONS:", "cons", as_list(), []),
        FieldSpec("PROBABILITY:", "probability", as_float(), 0.5),
        FieldSpec("RISK:", "risk", as_keyword(RISK_RANKING, RiskLevel.MEDIUM), RiskLevel.MEDIUM),
    ),
)

ALTERNATIVE_GRAMMAR = Grammar(
    name="alternative",
    section_marker="APPROACH:",
    primary_field="description",
    fields=(
        FieldSpec("APPROACH:", "description", as_text, ""),
        FieldSpec("PROBABILITY:", "probability", as_float(), 0.5),
        FieldSpec("PROS:", "pros", as_list(), []),
        FieldSpec("CONS:", "cons", as_list(), []),
    ),
)

VALIDATION_GRAMMAR = Grammar(
    name="validation",
    fields=(
        FieldSpec("VALID:", "verdict", as_keyword(VERDICT_RANKING, Verdict.NO), Verdict.NO),
        FieldSpec("EVIDENCE:", "evidence", as_text, ""),
        FieldSpec("CONFIDENCE:", "confidence", as_float(), 0.5),
        FieldSpec("IMPLICATIONS:", "implications", as_text, ""),
    ),
)

IMPACT_GRAMMAR = Grammar(
    name="impact",
    fields=(
        FieldSpec("SCOPE:", "scope", as_keyword(SCOPE_RANKING, ImpactScope.LOCAL), ImpactScope.LOCAL),
        FieldSpec("SEVERITY:", "severity", as_keyword(SEVERITY_RANKING, Severity.LOW), Severity.LOW),
        FieldSpec("AFFECTED:", "affected", as_list(), []),
        FieldSpec("MITIGATION:", "mitigation", as_text, None),
    ),
)

CONTRADICTION_GRAMMAR = Grammar(
    name="contradiction",
    section_marker="ASSUMPTION1:",
    primary_field="assumption_a",
    fields=(
        FieldSpec("ASSUMPTION1:", "assumption_a", as_text, ""),
        FieldSpec("ASSUMPTION2:", "assumption_b", as_text, ""),
        FieldSpec("CONFLICT:", "conflict", as_text, ""),
        FieldSpec("RESOLUTION:", "resolution", as_text, None),
    ),
)
