"""
Lighthouse scoring weights, normalized per category.

Mirrors the default Lighthouse scoring: a check's share of its category score
is its auditRef weight divided by the total positive weight of the category.
"""

from __future__ import annotations

from typing import Any, Mapping

from .models import Report, WeightInfo, coerce_report


def build_weight_index(report: Report | Mapping[str, Any] | None) -> dict[str, WeightInfo]:
    report = coerce_report(report)
    index: dict[str, WeightInfo] = {}

    for category_id, category in report.categories.items():
        refs = category.audit_refs
        if not refs:
            continue

        total_weight = sum(ref.weight for ref in refs if ref.weight > 0)
        for ref in refs:
            normalized = ref.weight / total_weight if total_weight > 0 and ref.weight > 0 else 0.0
            # Later categories win when a check is referenced twice.
            index[ref.id] = WeightInfo(
                category_id=category_id,
                weight=ref.weight,
                normalized_weight=normalized,
            )

    return index


def get_audit_weight_info(report: Report | Mapping[str, Any] | None, audit_id: str) -> WeightInfo | None:
    return build_weight_index(report).get(audit_id)
