"""
Deep analysis report assembly.

Single pass over one report: ranked problems, headline scores, Core Web
Vitals, then the optional pattern, chain and unused-code sections and the
localized summary. Output is plain markdown text; writing it anywhere is up
to the caller.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Mapping

from .chains import analyze_critical_chains
from .localization import render_localized_summary
from .metrics import CORE_WEB_VITALS, METRIC_LABELS, category_scores, extract_metrics, format_metric
from .models import DeepAnalysisOptions, Problem, Report, coerce_report, parse_options
from .patterns import Pattern, detect_patterns
from .problems import detect_problems
from .unused_code import analyze_unused_code, file_name

ChainAnalyzer = Callable[[Report], dict[str, Any] | None]
UnusedCodeAnalyzer = Callable[[Report], dict[str, Any]]
PatternDetector = Callable[[Report], list[Pattern]]

ANALYSIS_TITLE = "# Deep Performance Analysis"
SCORES_TITLE = "## Performance Scores"
VITALS_TITLE = "## Core Web Vitals"
RECOMMENDATIONS_TITLE = "## Prioritized Recommendations"
PATTERNS_TITLE = "## Detected Performance Patterns"
CHAINS_TITLE = "## Critical Request Chains"
UNUSED_CODE_TITLE = "## Unused Code Analysis"
SECTION_SEPARATOR = "---"

SEVERITY_LABELS = {
    "critical": "Critical",
    "high": "High",
    "medium": "Medium",
    "low": "Low",
    "info": "Info",
}
MAX_DETAIL_CHARS = 220
MARKDOWN_LINK = re.compile(r"\[([^\]]+)\]\([^)]*\)")


def _plain_text(text: str) -> str:
    cleaned = MARKDOWN_LINK.sub(r"\1", text or "").strip()
    if len(cleaned) > MAX_DETAIL_CHARS:
        return cleaned[: MAX_DETAIL_CHARS - 3].rstrip() + "..."
    return cleaned


def _kb(value: float) -> int:
    return round(value / 1024)


def render_scores(report: Report) -> list[str]:
    lines = [SCORES_TITLE, ""]
    rows = category_scores(report)
    if not rows:
        lines.append("- No category scores in this report.")
    for _, title, score in rows:
        lines.append(f"- **{title}:** {score if score is not None else 'n/a'}/100")
    lines.append("")
    return lines


def render_vitals(metrics: dict[str, float]) -> list[str]:
    lines = [VITALS_TITLE, ""]
    for key in CORE_WEB_VITALS:
        if key in metrics:
            lines.append(f"- **{METRIC_LABELS[key]}:** {format_metric(key, metrics[key])}")
    lines.append("")
    return lines


def render_recommendations(problems: list[Problem]) -> list[str]:
    lines = [RECOMMENDATIONS_TITLE, ""]
    if not problems:
        lines.append("- No failing audits detected.")
    for idx, problem in enumerate(problems, start=1):
        label = SEVERITY_LABELS.get(problem.severity, problem.severity.title())
        heading = f"{idx}. **[{label}] {problem.title or problem.id}**"
        if problem.display_value:
            heading += f" - {problem.display_value}"
        lines.append(heading)
        score = f"{round(problem.score * 100)}/100" if problem.score is not None else "n/a"
        lines.append(f"   - Category: {problem.category} | Score: {score} | Weighted impact: {problem.weighted_impact:.2f}")
        detail = _plain_text(problem.description)
        if detail:
            lines.append(f"   - Recommendation: {detail}")
    lines.append("")
    return lines


def render_patterns(patterns: list[Pattern]) -> list[str]:
    lines = [PATTERNS_TITLE, ""]
    if not patterns:
        lines.append("No recurring performance patterns detected.")
        lines.append("")
        return lines

    for pattern in patterns:
        lines.append(f"### {pattern.name}")
        lines.append(f"**Confidence:** {round(pattern.confidence * 100)}%")
        lines.append("**Indicators:**")
        lines.extend(f"- {indicator}" for indicator in pattern.indicators)
        lines.append("**Recommendations:**")
        lines.extend(f"- {rec}" for rec in pattern.recommendations[:3])
        lines.append("")
    return lines


def render_chains(chains: dict[str, Any] | None) -> list[str]:
    lines = [CHAINS_TITLE, ""]
    if not chains or not chains["longest_chain"]["nodes"]:
        lines.append("No critical request chains found in this report.")
        lines.append("")
        return lines

    lines.append(f"**Total Duration:** {round(chains['total_duration'])}ms")
    lines.append(f"**Total Transfer Size:** {_kb(chains['total_transfer_size'])}KB")
    lines.append("")
    bottleneck = chains.get("bottleneck")
    if bottleneck:
        lines.append("### Bottleneck")
        lines.append(f"- **URL:** {bottleneck['url']}")
        lines.append(f"- **Duration:** {round(bottleneck['duration'])}ms")
        lines.append(f"- **Impact:** {bottleneck['impact']}")
        lines.append(f"- **Reason:** {bottleneck['reason']}")
        lines.append("")
    lcp = chains.get("lcp")
    if lcp:
        lines.append(f"**Chain time to LCP:** {round(lcp['duration_to_lcp'])}ms (candidate: {file_name(lcp['candidate_url'])})")
        lines.append("")
    lines.append("### Top Critical Resources")
    for node in chains["longest_chain"]["nodes"][:3]:
        lines.append(f"- {file_name(node['url'])} ({round(node['duration'])}ms, {node['resource_type']})")
    lines.append("")
    return lines


def render_unused_code(unused: dict[str, Any]) -> list[str]:
    lines = [UNUSED_CODE_TITLE, ""]
    if unused["total_unused_bytes"] <= 0:
        lines.append("No significant unused code detected.")
        lines.append("")
        return lines

    lines.append(f"**Total Unused:** {_kb(unused['total_unused_bytes'])}KB ({round(unused['unused_percent'])}%)")
    lines.append("")
    lines.append("### Summary by Type")
    js = unused["summary"]["js"]
    css = unused["summary"]["css"]
    lines.append(f"- **JavaScript:** {_kb(js['unused_bytes'])}KB unused ({round(js['unused_percent'])}%)")
    lines.append(f"- **CSS:** {_kb(css['unused_bytes'])}KB unused ({round(css['unused_percent'])}%)")
    lines.append("")
    if unused["items"]:
        lines.append("### Top Unused Resources")
        for item in unused["items"][:5]:
            lines.append(f"- {file_name(item['url'])}: {_kb(item['unused_bytes'])}KB unused ({round(item['unused_percent'])}%)")
        lines.append("")
    if unused["recommendations"]:
        lines.append("### Suggestions")
        lines.extend(f"- {rec}" for rec in unused["recommendations"][:5])
        lines.append("")
    return lines


def _unavailable(title: str, label: str, exc: Exception) -> list[str]:
    return [title, "", f"_{label} unavailable: {exc}_", ""]


def assemble_report(
    report: Report | Mapping[str, Any] | None,
    options: DeepAnalysisOptions | Mapping[str, Any] | None = None,
    *,
    chain_analyzer: ChainAnalyzer = analyze_critical_chains,
    unused_code_analyzer: UnusedCodeAnalyzer = analyze_unused_code,
    pattern_detector: PatternDetector = detect_patterns,
) -> str:
    report = coerce_report(report)
    if not isinstance(options, DeepAnalysisOptions):
        options = parse_options(options)

    problems = detect_problems(report, null_score_policy=options.null_score_policy)
    top_problems = problems[: options.max_recommendations]
    metrics = extract_metrics(report)

    lines: list[str] = [ANALYSIS_TITLE, ""]
    lines.append(f"**URL:** {report.url or 'n/a'}")
    lines.append(f"**Fetched:** {report.fetch_time or 'n/a'}")
    if report.lighthouse_version:
        lines.append(f"**Lighthouse:** {report.lighthouse_version}")
    lines.append("")

    lines.extend(render_scores(report))
    lines.extend(render_vitals(metrics))
    lines.extend(render_recommendations(top_problems))

    if options.include_patterns:
        try:
            lines.extend(render_patterns(pattern_detector(report)))
        except Exception as exc:
            lines.extend(_unavailable(PATTERNS_TITLE, "Pattern detection", exc))

    chains: dict[str, Any] | None = None
    if options.include_chains:
        try:
            chains = chain_analyzer(report)
            lines.extend(render_chains(chains))
        except Exception as exc:
            chains = None
            lines.extend(_unavailable(CHAINS_TITLE, "Critical chain analysis", exc))

    unused: dict[str, Any] | None = None
    if options.include_unused_code:
        try:
            unused = unused_code_analyzer(report)
            lines.extend(render_unused_code(unused))
        except Exception as exc:
            unused = None
            lines.extend(_unavailable(UNUSED_CODE_TITLE, "Unused code analysis", exc))

    lines.append(SECTION_SEPARATOR)
    lines.append("")
    context = {
        "metrics": metrics,
        "problems": top_problems,
        "chains": chains,
        "unused_code": unused,
    }
    lines.append(render_localized_summary(report, context, options.locale))
    return "\n".join(lines).rstrip() + "\n"
