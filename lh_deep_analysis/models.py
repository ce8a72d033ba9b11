"""
Report model for Lighthouse results and the validation that builds it.

Raw JSON is converted once, at the edge, by ``parse_report`` and
``parse_options``; the analyzers downstream work on these dataclasses and do
not re-check shapes.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Literal, Mapping

NullScorePolicy = Literal["surface", "skip"]
NULL_SCORE_POLICIES: tuple[str, ...] = ("surface", "skip")

DEFAULT_MAX_RECOMMENDATIONS = 10
MAX_RECOMMENDATIONS_CAP = 50
DEFAULT_LOCALE = "ja"


@dataclass(frozen=True)
class AuditRef:
    id: str
    weight: float


@dataclass(frozen=True)
class Category:
    id: str
    title: str
    score: float | None
    audit_refs: list[AuditRef] = field(default_factory=list)


@dataclass(frozen=True)
class Audit:
    id: str
    score: float | None
    title: str
    description: str
    display_value: str = ""
    numeric_value: float | None = None
    numeric_unit: str = ""
    score_display_mode: str = ""
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Report:
    requested_url: str = ""
    final_url: str = ""
    fetch_time: str = ""
    lighthouse_version: str = ""
    categories: dict[str, Category] = field(default_factory=dict)
    audits: dict[str, Audit] = field(default_factory=dict)

    @property
    def url(self) -> str:
        return self.final_url or self.requested_url


@dataclass(frozen=True)
class WeightInfo:
    category_id: str
    weight: float
    normalized_weight: float


@dataclass(frozen=True)
class Problem:
    id: str
    category: str
    score: float | None
    title: str
    description: str
    weight: float
    weighted_impact: float
    severity: str
    display_value: str = ""


@dataclass(frozen=True)
class DeepAnalysisOptions:
    """Analysis switches. Out-of-range values are normalized on construction."""

    include_chains: bool = False
    include_unused_code: bool = False
    include_patterns: bool = False
    max_recommendations: int = DEFAULT_MAX_RECOMMENDATIONS
    locale: str = DEFAULT_LOCALE
    null_score_policy: NullScorePolicy = "surface"

    def __post_init__(self) -> None:
        max_recs = _as_number(self.max_recommendations)
        max_recs = DEFAULT_MAX_RECOMMENDATIONS if max_recs is None else int(clamp(int(max_recs), 1, MAX_RECOMMENDATIONS_CAP))
        locale = self.locale.strip().lower() if isinstance(self.locale, str) else ""
        # frozen, so normalize through object.__setattr__
        object.__setattr__(self, "include_chains", self.include_chains is True)
        object.__setattr__(self, "include_unused_code", self.include_unused_code is True)
        object.__setattr__(self, "include_patterns", self.include_patterns is True)
        object.__setattr__(self, "max_recommendations", max_recs)
        object.__setattr__(self, "locale", locale or DEFAULT_LOCALE)
        if self.null_score_policy not in NULL_SCORE_POLICIES:
            object.__setattr__(self, "null_score_policy", "surface")


def clamp(num: float, low: float, high: float) -> float:
    return max(low, min(high, num))


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return float(value)


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _parse_score(value: Any) -> float | None:
    number = _as_number(value)
    if number is None:
        return None
    return clamp(number, 0.0, 1.0)


def _parse_audit_refs(raw: Any) -> list[AuditRef]:
    if not isinstance(raw, list):
        return []
    refs: list[AuditRef] = []
    for item in raw:
        if not isinstance(item, Mapping):
            continue
        ref_id = item.get("id")
        if not isinstance(ref_id, str) or not ref_id:
            continue
        weight = _as_number(item.get("weight"))
        refs.append(AuditRef(id=ref_id, weight=max(weight or 0.0, 0.0)))
    return refs


def _parse_category(category_id: str, raw: Mapping[str, Any]) -> Category:
    return Category(
        id=category_id,
        title=_as_text(raw.get("title")) or category_id,
        score=_parse_score(raw.get("score")),
        audit_refs=_parse_audit_refs(raw.get("auditRefs")),
    )


def _parse_audit(audit_id: str, raw: Mapping[str, Any]) -> Audit:
    details = raw.get("details")
    return Audit(
        id=audit_id,
        score=_parse_score(raw.get("score")),
        title=_as_text(raw.get("title")),
        description=_as_text(raw.get("description")),
        display_value=_as_text(raw.get("displayValue")),
        numeric_value=_as_number(raw.get("numericValue")),
        numeric_unit=_as_text(raw.get("numericUnit")),
        score_display_mode=_as_text(raw.get("scoreDisplayMode")),
        details=dict(details) if isinstance(details, Mapping) else {},
    )


def parse_report(raw: Any) -> Report:
    if not isinstance(raw, Mapping):
        return Report()
    # Full PageSpeed Insights payloads wrap the Lighthouse result.
    if isinstance(raw.get("lighthouseResult"), Mapping):
        raw = raw["lighthouseResult"]

    categories: dict[str, Category] = {}
    raw_categories = raw.get("categories")
    if isinstance(raw_categories, Mapping):
        for category_id, value in raw_categories.items():
            if isinstance(category_id, str) and isinstance(value, Mapping):
                categories[category_id] = _parse_category(category_id, value)

    audits: dict[str, Audit] = {}
    raw_audits = raw.get("audits")
    if isinstance(raw_audits, Mapping):
        for audit_id, value in raw_audits.items():
            if isinstance(audit_id, str) and isinstance(value, Mapping):
                audits[audit_id] = _parse_audit(audit_id, value)

    return Report(
        requested_url=_as_text(raw.get("requestedUrl")),
        final_url=_as_text(raw.get("finalUrl")) or _as_text(raw.get("finalDisplayedUrl")),
        fetch_time=_as_text(raw.get("fetchTime")),
        lighthouse_version=_as_text(raw.get("lighthouseVersion")),
        categories=categories,
        audits=audits,
    )


def coerce_report(value: Report | Mapping[str, Any] | None) -> Report:
    if isinstance(value, Report):
        return value
    return parse_report(value)


def _pick(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw:
            return raw[key]
    return None


def parse_options(raw: Mapping[str, Any] | None) -> DeepAnalysisOptions:
    if not isinstance(raw, Mapping):
        return DeepAnalysisOptions()

    include_chains = _pick(raw, "includeChains", "include_chains")
    include_unused = _pick(raw, "includeUnusedCode", "include_unused_code")
    include_patterns = _pick(raw, "includePatterns", "include_patterns")
    max_recs = _pick(raw, "maxRecommendations", "max_recommendations")
    policy = _pick(raw, "nullScorePolicy", "null_score_policy")

    return DeepAnalysisOptions(
        include_chains=include_chains,
        include_unused_code=include_unused,
        include_patterns=include_patterns,
        max_recommendations=max_recs,
        locale=_pick(raw, "locale"),
        null_score_policy=policy,
    )
