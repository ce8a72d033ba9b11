import re

import pytest

from lh_deep_analysis.models import DeepAnalysisOptions
from lh_deep_analysis.report import (
    ANALYSIS_TITLE,
    CHAINS_TITLE,
    PATTERNS_TITLE,
    RECOMMENDATIONS_TITLE,
    SCORES_TITLE,
    UNUSED_CODE_TITLE,
    VITALS_TITLE,
    assemble_report,
)

LOCALIZED_TITLE = "# Lighthouse パフォーマンス分析レポート"
FULL_OPTIONS = {"includeChains": True, "includeUnusedCode": True, "maxRecommendations": 5}


def _section(text: str, title: str) -> str:
    start = text.index(title) + len(title)
    following = re.search(r"^#{1,2} ", text[start:], flags=re.MULTILINE)
    return text[start : start + following.start()] if following else text[start:]


def _entries(section: str) -> list[str]:
    return re.findall(r"^\d+\. \*\*.*$", section, flags=re.MULTILINE)


def test_full_report_contains_required_headers(goal_full) -> None:
    text = assemble_report(goal_full, FULL_OPTIONS)

    for header in (
        "# Deep Performance Analysis",
        "## Performance Scores",
        "## Core Web Vitals",
        "## Prioritized Recommendations",
        LOCALIZED_TITLE,
    ):
        assert header in text

    entries = _entries(_section(text, RECOMMENDATIONS_TITLE))
    assert 0 < len(entries) <= 5


def test_sections_render_in_fixed_order(goal_full) -> None:
    text = assemble_report(goal_full, FULL_OPTIONS)

    positions = [
        text.index(title)
        for title in (
            ANALYSIS_TITLE,
            SCORES_TITLE,
            VITALS_TITLE,
            RECOMMENDATIONS_TITLE,
            CHAINS_TITLE,
            UNUSED_CODE_TITLE,
            LOCALIZED_TITLE,
        )
    ]
    assert positions == sorted(positions)


def test_recommendations_follow_problem_ranking(goal_full) -> None:
    text = assemble_report(goal_full, FULL_OPTIONS)

    entries = _entries(_section(text, RECOMMENDATIONS_TITLE))
    assert len(entries) == 5
    assert entries[0] == "1. **[Critical] Document does not have a meta description**"
    assert entries[2] == "3. **[Critical] Largest Contentful Paint** - 5.2 s"
    assert entries[4] == "5. **[Critical] Total Blocking Time** - 780 ms"
    assert "Weighted impact: 19.75" in text
    recommendations = _section(text, RECOMMENDATIONS_TITLE)
    assert "Learn more about the Largest Contentful Paint metric" in recommendations
    assert "https://developer.chrome.com" not in recommendations


def test_default_options_skip_optional_sections(goal_full) -> None:
    text = assemble_report(goal_full)

    assert CHAINS_TITLE not in text
    assert UNUSED_CODE_TITLE not in text
    assert len(_entries(_section(text, RECOMMENDATIONS_TITLE))) == 10


def test_scores_and_vitals(goal_full) -> None:
    text = assemble_report(goal_full, DeepAnalysisOptions())

    scores = _section(text, SCORES_TITLE)
    assert "- **Performance:** 48/100" in scores
    assert "- **Best Practices:** 92/100" in scores

    vitals = _section(text, VITALS_TITLE)
    assert "- **LCP:** 5200ms" in vitals
    assert "- **CLS:** 0.120" in vitals
    assert "- **TTFB:** 950ms" in vitals
    assert "Speed Index" not in vitals


def test_optional_sections_content(goal_full) -> None:
    text = assemble_report(goal_full, FULL_OPTIONS)

    chains = _section(text, CHAINS_TITLE)
    assert "**Total Duration:** 3200ms" in chains
    assert "- **Impact:** Critical" in chains
    assert "- vendor.js (2600ms, script)" in chains

    unused = _section(text, UNUSED_CODE_TITLE)
    assert "**Total Unused:** 225KB (62%)" in unused
    assert "- vendor.js: 176KB unused (72%)" in unused


def test_localized_summary_block(goal_full) -> None:
    text = assemble_report(goal_full, FULL_OPTIONS)
    localized = text[text.index(LOCALIZED_TITLE) :]

    assert "総合スコア: 48/100 🔴" in localized
    assert "### LCP: 5200ms (不良)" in localized
    assert "### クリティカルリクエストチェーン" in localized
    assert "全体の62%のコードが未使用です。" in localized
    assert "1. **Document does not have a meta description**" in localized


def test_other_locale_and_fallback(goal_full) -> None:
    spanish = assemble_report(goal_full, {"locale": "es-MX"})
    assert "# Informe de análisis de rendimiento de Lighthouse" in spanish
    assert LOCALIZED_TITLE not in spanish

    unknown = assemble_report(goal_full, {"locale": "xx"})
    assert LOCALIZED_TITLE in unknown


def test_assembly_is_idempotent(goal_full) -> None:
    first = assemble_report(goal_full, FULL_OPTIONS)
    second = assemble_report(goal_full, FULL_OPTIONS)
    assert first == second


def test_failing_collaborator_is_contained(goal_full) -> None:
    def broken_chains(report):
        raise RuntimeError("boom")

    text = assemble_report(goal_full, FULL_OPTIONS, chain_analyzer=broken_chains)

    assert CHAINS_TITLE in text
    assert "_Critical chain analysis unavailable: boom_" in text
    assert UNUSED_CODE_TITLE in text
    assert LOCALIZED_TITLE in text


def test_failing_unused_code_collaborator_is_contained(goal_full) -> None:
    def broken_unused(report):
        raise KeyError("items")

    text = assemble_report(goal_full, FULL_OPTIONS, unused_code_analyzer=broken_unused)

    assert "_Unused code analysis unavailable:" in text
    assert "**Total Duration:** 3200ms" in text
    assert LOCALIZED_TITLE in text


@pytest.mark.parametrize("report", [None, {}, {"categories": "x", "audits": 7}, "not a report"])
def test_empty_or_malformed_report_still_renders(report) -> None:
    text = assemble_report(report, FULL_OPTIONS)

    assert ANALYSIS_TITLE in text
    assert "- No category scores in this report." in text
    assert "- No failing audits detected." in text
    assert "No critical request chains found in this report." in text
    assert "No significant unused code detected." in text
    assert LOCALIZED_TITLE in text


def test_direct_options_are_normalized(goal_full) -> None:
    capped = assemble_report(goal_full, DeepAnalysisOptions(max_recommendations=-1))
    assert len(_entries(_section(capped, RECOMMENDATIONS_TITLE))) == 1

    unknown_policy = assemble_report(goal_full, DeepAnalysisOptions(null_score_policy="bogus"))
    assert RECOMMENDATIONS_TITLE in unknown_policy


def test_patterns_section(goal_full) -> None:
    text = assemble_report(goal_full, {**FULL_OPTIONS, "includePatterns": True})

    assert text.index(RECOMMENDATIONS_TITLE) < text.index(PATTERNS_TITLE) < text.index(CHAINS_TITLE)
    patterns = _section(text, PATTERNS_TITLE)
    assert "### Render Blocking Resources" in patterns
    assert "**Confidence:** 85%" in patterns
    assert "- Defer non-critical JavaScript" in patterns
    assert PATTERNS_TITLE not in assemble_report(goal_full, FULL_OPTIONS)


def test_patterns_section_without_matches_and_on_failure(goal_full) -> None:
    quiet = assemble_report({}, {"includePatterns": True})
    assert "No recurring performance patterns detected." in quiet

    def broken_patterns(report):
        raise RuntimeError("pattern table missing")

    text = assemble_report(goal_full, {**FULL_OPTIONS, "includePatterns": True}, pattern_detector=broken_patterns)
    assert "_Pattern detection unavailable: pattern table missing_" in text
    assert CHAINS_TITLE in text
    assert LOCALIZED_TITLE in text
