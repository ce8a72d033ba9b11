import pytest

from lh_deep_analysis.tool import DEEP_ANALYSIS_TOOL, execute_deep_analysis


def _text(result) -> str:
    return "\n".join(block["text"] for block in result["content"] if block.get("type") == "text")


def test_tool_definition_shape() -> None:
    assert DEEP_ANALYSIS_TOOL["name"] == "deep_analysis"
    properties = DEEP_ANALYSIS_TOOL["inputSchema"]["properties"]
    assert set(properties) >= {"url", "reportData", "includeChains", "includeUnusedCode", "maxRecommendations"}


def test_execute_with_report_data(goal_full) -> None:
    result = execute_deep_analysis(
        {"reportData": goal_full, "includeChains": True, "includeUnusedCode": True, "maxRecommendations": 5}
    )

    assert "isError" not in result
    assert len(result["content"]) == 1
    assert result["content"][0]["type"] == "text"
    text = _text(result)
    assert "# Deep Performance Analysis" in text
    assert "## Critical Request Chains" in text
    assert "# Lighthouse パフォーマンス分析レポート" in text


def test_execute_with_url_uses_provider(goal_full) -> None:
    seen = []

    def provider(url):
        seen.append(url)
        return goal_full

    result = execute_deep_analysis({"url": "example.com"}, report_provider=provider)

    assert seen == ["https://example.com/"]
    assert "## Prioritized Recommendations" in _text(result)


def test_report_data_wins_over_url(goal_full) -> None:
    def provider(url):
        raise AssertionError("provider should not be called")

    result = execute_deep_analysis({"url": "https://example.com", "reportData": goal_full}, report_provider=provider)
    assert "isError" not in result


def test_provider_failure_is_reported_in_band() -> None:
    def provider(url):
        raise RuntimeError("PageSpeed request failed: HTTP 429")

    result = execute_deep_analysis({"url": "https://example.com"}, report_provider=provider)

    assert result["isError"] is True
    assert "HTTP 429" in _text(result)


@pytest.mark.parametrize(
    "params",
    [
        {},
        {"url": "   "},
        {"url": "ftp://example.com"},
        {"reportData": "not an object"},
        {"url": "https://example.com"},
    ],
)
def test_invalid_requests_raise(params) -> None:
    with pytest.raises(ValueError):
        execute_deep_analysis(params)


def test_execute_with_patterns(goal_full) -> None:
    assert "includePatterns" in DEEP_ANALYSIS_TOOL["inputSchema"]["properties"]

    result = execute_deep_analysis({"reportData": goal_full, "includePatterns": True})
    assert "## Detected Performance Patterns" in _text(result)
