"""
Turns imperfect Lighthouse checks into ranked problems.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from .models import NULL_SCORE_POLICIES, Problem, Report, coerce_report
from .weights import build_weight_index

CategoryRules = Sequence[tuple[str, Sequence[str]]]

# First matching rule wins.
DEFAULT_CATEGORY_RULES: CategoryRules = (
    ("resources", ("image", "font", "css")),
    ("javascript", ("js", "script", "bootup")),
    ("network", ("network", "server", "cache")),
    ("rendering", ("render", "paint", "layout")),
)
FALLBACK_CATEGORY = "performance"

SEVERITY_ORDER = {"critical": 0, "high": 1, "medium": 2, "low": 3, "info": 4}


def classify_audit(audit_id: str, rules: CategoryRules = DEFAULT_CATEGORY_RULES) -> str:
    lowered = audit_id.lower()
    for category, fragments in rules:
        if any(fragment in lowered for fragment in fragments):
            return category
    return FALLBACK_CATEGORY


def score_severity(score: float | None) -> str:
    if score is None:
        return "info"
    if score < 0.5:
        return "critical"
    if score < 0.7:
        return "high"
    if score < 0.9:
        return "medium"
    return "low"


def detect_problems(
    report: Report | Mapping[str, Any] | None,
    *,
    null_score_policy: str = "surface",
    category_rules: CategoryRules = DEFAULT_CATEGORY_RULES,
) -> list[Problem]:
    """Return one problem per imperfect check, highest weighted impact first.

    ``null_score_policy`` decides what happens to checks without a score:
    ``"surface"`` keeps them with their full theoretical impact, ``"skip"``
    treats them as not applicable and leaves them out.
    """
    if null_score_policy not in NULL_SCORE_POLICIES:
        raise ValueError(f"Unknown null score policy: {null_score_policy}")

    report = coerce_report(report)
    weights = build_weight_index(report)
    problems: list[Problem] = []

    for audit_id, audit in report.audits.items():
        if audit.score == 1:
            continue
        if audit.score is None and null_score_policy == "skip":
            continue

        info = weights.get(audit_id)
        if info is not None:
            category = info.category_id
            normalized = info.normalized_weight
        else:
            category = classify_audit(audit_id, category_rules)
            normalized = 0.0

        score_term = audit.score if audit.score is not None else 0.0
        impact = (1 - score_term) * 100 * normalized if normalized > 0 else 0.0

        problems.append(
            Problem(
                id=audit_id,
                category=category,
                score=audit.score,
                title=audit.title,
                description=audit.description,
                weight=normalized,
                weighted_impact=impact,
                severity=score_severity(audit.score),
                display_value=audit.display_value,
            )
        )

    # sorted() is stable, so ties keep their audit order.
    return sorted(problems, key=lambda item: -item.weighted_impact)


def summarize_problems(problems: Sequence[Problem]) -> dict[str, dict[str, Any]]:
    summary: dict[str, dict[str, Any]] = {}
    for problem in problems:
        bucket = summary.setdefault(
            problem.category,
            {"issue_count": 0, "total_weight": 0.0, "total_impact": 0.0},
        )
        bucket["issue_count"] += 1
        bucket["total_weight"] += problem.weight
        bucket["total_impact"] += problem.weighted_impact
    return summary
