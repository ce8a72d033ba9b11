from lh_deep_analysis.models import DeepAnalysisOptions, Report, coerce_report, parse_options, parse_report


def test_parse_report_reads_fixture(goal_full) -> None:
    report = parse_report(goal_full)

    assert report.url == "https://example.com/"
    assert report.fetch_time == "2024-05-01T10:00:00.000Z"
    assert report.lighthouse_version == "11.4.0"
    assert list(report.categories) == ["performance", "accessibility", "best-practices", "seo"]
    assert report.categories["performance"].title == "Performance"
    assert report.categories["performance"].score == 0.48

    lcp = report.audits["largest-contentful-paint"]
    assert lcp.score == 0.21
    assert lcp.numeric_value == 5200
    assert lcp.display_value == "5.2 s"
    assert report.audits["critical-request-chains"].score is None
    assert "chains" in report.audits["critical-request-chains"].details


def test_parse_report_unwraps_pagespeed_payload(goal_full) -> None:
    report = parse_report({"id": "https://example.com/", "lighthouseResult": goal_full})
    assert "largest-contentful-paint" in report.audits


def test_parse_report_defaults_bad_fields() -> None:
    report = parse_report(
        {
            "categories": {"perf": {"score": True, "auditRefs": [{"id": "a", "weight": "10"}]}},
            "audits": {"a": {"score": 1.7, "numericValue": float("nan")}, "b": {"score": -3}},
        }
    )

    assert report.categories["perf"].title == "perf"
    assert report.categories["perf"].score is None
    assert report.categories["perf"].audit_refs[0].weight == 0
    assert report.audits["a"].score == 1.0
    assert report.audits["a"].numeric_value is None
    assert report.audits["b"].score == 0.0


def test_parse_report_tolerates_non_mappings() -> None:
    assert parse_report(None) == Report()
    assert parse_report(["not", "a", "report"]) == Report()
    assert parse_report({"categories": 3, "audits": "x"}) == Report()


def test_coerce_report_passes_models_through(goal_full) -> None:
    report = parse_report(goal_full)
    assert coerce_report(report) is report


def test_parse_options_defaults() -> None:
    assert parse_options(None) == DeepAnalysisOptions()
    assert parse_options({}) == DeepAnalysisOptions()


def test_parse_options_tool_keys() -> None:
    options = parse_options(
        {"includeChains": True, "includeUnusedCode": True, "maxRecommendations": 5.0, "locale": " ES "}
    )

    assert options.include_chains is True
    assert options.include_unused_code is True
    assert options.max_recommendations == 5
    assert options.locale == "es"


def test_parse_options_rejects_malformed_values() -> None:
    options = parse_options(
        {
            "include_chains": "yes",
            "include_unused_code": 1,
            "max_recommendations": True,
            "locale": "",
            "null_score_policy": "drop",
        }
    )

    assert options == DeepAnalysisOptions()


def test_parse_options_clamps_max_recommendations() -> None:
    assert parse_options({"maxRecommendations": 0}).max_recommendations == 1
    assert parse_options({"maxRecommendations": -4}).max_recommendations == 1
    assert parse_options({"maxRecommendations": 999}).max_recommendations == 50
    assert parse_options({"null_score_policy": "skip"}).null_score_policy == "skip"


def test_options_normalize_direct_construction() -> None:
    assert DeepAnalysisOptions(max_recommendations=-1).max_recommendations == 1
    assert DeepAnalysisOptions(max_recommendations=0).max_recommendations == 1
    assert DeepAnalysisOptions(max_recommendations=500).max_recommendations == 50
    assert DeepAnalysisOptions(null_score_policy="bogus").null_score_policy == "surface"
    assert DeepAnalysisOptions(locale=" ES ").locale == "es"
    assert DeepAnalysisOptions(locale="").locale == "ja"
    assert DeepAnalysisOptions(include_patterns="yes").include_patterns is False


def test_parse_options_pattern_switch() -> None:
    assert parse_options({"includePatterns": True}).include_patterns is True
    assert parse_options({"include_patterns": 1}).include_patterns is False
