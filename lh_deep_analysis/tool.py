"""
``deep_analysis`` tool: request/response wrapper around ``assemble_report``.

Requests are plain mappings in the tool protocol's camelCase shape; responses
are ``{"content": [{"type": "text", "text": ...}]}``.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping

from .acquisition import normalize_url
from .models import DEFAULT_LOCALE, DEFAULT_MAX_RECOMMENDATIONS, MAX_RECOMMENDATIONS_CAP, parse_options, parse_report
from .report import assemble_report

ReportProvider = Callable[[str], Mapping[str, Any]]

DEEP_ANALYSIS_TOOL: dict[str, Any] = {
    "name": "deep_analysis",
    "description": (
        "Perform deep analysis on an existing Lighthouse report or URL: weighted problem ranking, "
        "Core Web Vitals, critical request chains and unused code."
    ),
    "inputSchema": {
        "type": "object",
        "properties": {
            "url": {
                "type": "string",
                "description": "URL to analyze (optional if reportData provided)",
            },
            "reportData": {
                "type": "object",
                "description": "Lighthouse report JSON (lhr) to analyze",
            },
            "includeChains": {
                "type": "boolean",
                "default": False,
                "description": "Include critical chain analysis",
            },
            "includeUnusedCode": {
                "type": "boolean",
                "default": False,
                "description": "Include unused code analysis",
            },
            "includePatterns": {
                "type": "boolean",
                "default": False,
                "description": "Include detected performance patterns",
            },
            "maxRecommendations": {
                "type": "number",
                "default": DEFAULT_MAX_RECOMMENDATIONS,
                "minimum": 1,
                "maximum": MAX_RECOMMENDATIONS_CAP,
                "description": "Maximum number of recommendations to return",
            },
            "locale": {
                "type": "string",
                "default": DEFAULT_LOCALE,
                "description": "Locale of the duplicate summary block",
            },
        },
    },
}


def text_block(text: str) -> dict[str, str]:
    return {"type": "text", "text": text}


def execute_deep_analysis(
    params: Mapping[str, Any],
    *,
    report_provider: ReportProvider | None = None,
) -> dict[str, Any]:
    if not isinstance(params, Mapping):
        raise ValueError("Tool parameters must be an object")

    options = parse_options(params)
    raw_report = params.get("reportData")
    if raw_report is None:
        url = params.get("url")
        if not isinstance(url, str) or not url.strip():
            raise ValueError("Either url or reportData is required for analysis")
        target_url = normalize_url(url)
        if report_provider is None:
            raise ValueError("No report provider configured for url input")
        try:
            raw_report = report_provider(target_url)
        except Exception as exc:
            return {
                "content": [text_block(f"Report acquisition failed for {target_url}: {exc}")],
                "isError": True,
            }

    if not isinstance(raw_report, Mapping):
        raise ValueError("reportData must be an object")

    return {"content": [text_block(assemble_report(parse_report(raw_report), options))]}
