"""
Core Web Vitals and headline category scores pulled from a report.
"""

from __future__ import annotations

from typing import Any, Mapping

from .models import Report, coerce_report

METRIC_AUDITS = {
    "lcp": "largest-contentful-paint",
    "fcp": "first-contentful-paint",
    "cls": "cumulative-layout-shift",
    "tbt": "total-blocking-time",
    "ttfb": "server-response-time",
    "tti": "interactive",
    "si": "speed-index",
    "fid": "max-potential-fid",
}

METRIC_LABELS = {
    "lcp": "LCP",
    "fid": "FID",
    "cls": "CLS",
    "ttfb": "TTFB",
    "fcp": "FCP",
    "tbt": "TBT",
    "si": "Speed Index",
    "tti": "TTI",
}

# (good, poor) upper bounds, in ms except CLS.
METRIC_THRESHOLDS = {
    "lcp": (2500.0, 4000.0),
    "fcp": (1800.0, 3000.0),
    "cls": (0.1, 0.25),
    "tbt": (200.0, 600.0),
    "ttfb": (800.0, 1800.0),
    "tti": (3800.0, 7300.0),
    "si": (3400.0, 5800.0),
    "fid": (100.0, 300.0),
}

CORE_WEB_VITALS = ("lcp", "fid", "cls", "ttfb", "fcp", "tbt")


def extract_metrics(report: Report | Mapping[str, Any] | None) -> dict[str, float]:
    report = coerce_report(report)
    metrics: dict[str, float] = {}
    for key, audit_id in METRIC_AUDITS.items():
        audit = report.audits.get(audit_id)
        if audit is not None and audit.numeric_value is not None:
            metrics[key] = audit.numeric_value
    return metrics


def rate_metric(key: str, value: float) -> str:
    good, poor = METRIC_THRESHOLDS[key]
    if value <= good:
        return "good"
    if value <= poor:
        return "needs-improvement"
    return "poor"


def format_metric(key: str, value: float) -> str:
    if key == "cls":
        return f"{value:.3f}"
    return f"{round(value)}ms"


def category_scores(report: Report | Mapping[str, Any] | None) -> list[tuple[str, str, int | None]]:
    report = coerce_report(report)
    rows: list[tuple[str, str, int | None]] = []
    for category_id, category in report.categories.items():
        score = round(category.score * 100) if category.score is not None else None
        rows.append((category_id, category.title, score))
    return rows
