"""
Recurring performance patterns recognised from individual Lighthouse checks.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .models import Report, coerce_report

PATTERN_SCORE_THRESHOLD = 0.5


@dataclass(frozen=True)
class Pattern:
    id: str
    name: str
    confidence: float
    indicators: tuple[str, ...]
    recommendations: tuple[str, ...]


# audit id -> pattern raised when that audit scores below the threshold
PATTERN_RULES: tuple[tuple[str, Pattern], ...] = (
    (
        "bootup-time",
        Pattern(
            id="large-javascript",
            name="Large JavaScript Bundles",
            confidence=0.8,
            indicators=("High JavaScript execution time", "Large bundle sizes"),
            recommendations=(
                "Code split your JavaScript bundles",
                "Remove unused code",
                "Minimize and compress JavaScript files",
            ),
        ),
    ),
    (
        "uses-optimized-images",
        Pattern(
            id="unoptimized-images",
            name="Unoptimized Images",
            confidence=0.9,
            indicators=("Large image file sizes", "Missing modern formats"),
            recommendations=(
                "Use WebP or AVIF formats",
                "Implement responsive images",
                "Compress images properly",
            ),
        ),
    ),
    (
        "render-blocking-resources",
        Pattern(
            id="render-blocking",
            name="Render Blocking Resources",
            confidence=0.85,
            indicators=("Blocking CSS", "Blocking JavaScript in head"),
            recommendations=(
                "Inline critical CSS",
                "Defer non-critical JavaScript",
                "Use async/defer attributes",
            ),
        ),
    ),
)


def detect_patterns(report: Report | Mapping[str, Any] | None) -> list[Pattern]:
    """Return the patterns whose trigger check scored below 0.5.

    Checks without a numeric score never trigger a pattern.
    """
    report = coerce_report(report)
    found: list[Pattern] = []
    for audit_id, pattern in PATTERN_RULES:
        audit = report.audits.get(audit_id)
        if audit is None or audit.score is None:
            continue
        if audit.score < PATTERN_SCORE_THRESHOLD:
            found.append(pattern)
    return found
