"""
Unused JavaScript and CSS detection.
"""

from __future__ import annotations

from typing import Any, Mapping

from .models import Report, coerce_report

UNUSED_CODE_AUDITS = (
    ("js", "unused-javascript"),
    ("css", "unused-css-rules"),
)


def _bytes(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return max(float(value), 0.0)


def _percent(part: float, whole: float) -> float:
    return (part / whole) * 100 if whole > 0 else 0.0


def file_name(url: str) -> str:
    return url.rstrip("/").split("/")[-1] or url


def unused_code_recommendations(analysis: dict[str, Any]) -> list[str]:
    recs: list[str] = []
    if analysis["unused_percent"] > 50:
        recs.append("Critical: Over 50% of your code is unused. Consider aggressive code splitting.")
    if analysis["summary"]["js"]["unused_percent"] > 40:
        recs.append("Implement dynamic imports for JavaScript modules")
        recs.append("Use tree-shaking to eliminate dead code")
        recs.append("Split vendor bundles from application code")
    if analysis["summary"]["css"]["unused_percent"] > 40:
        recs.append("Use CSS modules or component-scoped styles")
        recs.append("Implement critical CSS inlining")
        recs.append("Remove unused CSS rules with PurgeCSS or similar tools")
    for item in analysis["items"][:3]:
        if item["unused_percent"] > 60:
            recs.append(f"Review {file_name(item['url'])}: {round(item['unused_percent'])}% unused")
    return recs


def analyze_unused_code(report: Report | Mapping[str, Any] | None) -> dict[str, Any]:
    report = coerce_report(report)
    items: list[dict[str, Any]] = []
    summary = {kind: {"total_bytes": 0.0, "unused_bytes": 0.0, "unused_percent": 0.0} for kind, _ in UNUSED_CODE_AUDITS}

    for kind, audit_id in UNUSED_CODE_AUDITS:
        audit = report.audits.get(audit_id)
        raw_items = audit.details.get("items") if audit is not None else None
        if not isinstance(raw_items, list):
            continue
        for raw in raw_items:
            if not isinstance(raw, Mapping):
                continue
            item = {
                "url": raw.get("url") if isinstance(raw.get("url"), str) else "",
                "total_bytes": _bytes(raw.get("totalBytes")),
                "unused_bytes": _bytes(raw.get("wastedBytes")),
                "unused_percent": _bytes(raw.get("wastedPercent")),
                "type": kind,
            }
            items.append(item)
            summary[kind]["total_bytes"] += item["total_bytes"]
            summary[kind]["unused_bytes"] += item["unused_bytes"]

    for bucket in summary.values():
        bucket["unused_percent"] = _percent(bucket["unused_bytes"], bucket["total_bytes"])

    items.sort(key=lambda item: -item["unused_bytes"])
    total_bytes = sum(bucket["total_bytes"] for bucket in summary.values())
    total_unused = sum(bucket["unused_bytes"] for bucket in summary.values())

    analysis: dict[str, Any] = {
        "total_bytes": total_bytes,
        "total_unused_bytes": total_unused,
        "unused_percent": _percent(total_unused, total_bytes),
        "items": items,
        "unused_javascript": [item for item in items if item["type"] == "js"],
        "unused_css": [item for item in items if item["type"] == "css"],
        "summary": summary,
    }
    analysis["recommendations"] = unused_code_recommendations(analysis)
    return analysis
