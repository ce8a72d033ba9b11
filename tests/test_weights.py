import pytest

from lh_deep_analysis.weights import build_weight_index, get_audit_weight_info


def test_normalized_weights_sum_to_one_per_category(goal_full) -> None:
    index = build_weight_index(goal_full)

    for category_id in ("performance", "accessibility", "best-practices", "seo"):
        total = sum(info.normalized_weight for info in index.values() if info.category_id == category_id)
        assert total == pytest.approx(1.0, abs=1e-5)


def test_two_ref_category_split() -> None:
    report = {
        "categories": {
            "performance": {
                "auditRefs": [
                    {"id": "first-contentful-paint", "weight": 10},
                    {"id": "speed-index", "weight": 20},
                ]
            }
        }
    }

    index = build_weight_index(report)
    assert index["first-contentful-paint"].normalized_weight == pytest.approx(1 / 3)
    assert index["speed-index"].normalized_weight == pytest.approx(2 / 3)
    assert index["speed-index"].weight == 20
    assert index["speed-index"].category_id == "performance"


def test_zero_and_negative_weights_are_indexed_without_share() -> None:
    report = {
        "categories": {
            "performance": {
                "auditRefs": [
                    {"id": "a", "weight": 3},
                    {"id": "b", "weight": 0},
                    {"id": "c", "weight": -4},
                    {"id": "d"},
                ]
            }
        }
    }

    index = build_weight_index(report)
    assert index["a"].normalized_weight == pytest.approx(1.0)
    for audit_id in ("b", "c", "d"):
        assert index[audit_id].weight == 0
        assert index[audit_id].normalized_weight == 0


def test_category_without_positive_weight() -> None:
    report = {"categories": {"pwa": {"auditRefs": [{"id": "a", "weight": 0}, {"id": "b", "weight": 0}]}}}

    index = build_weight_index(report)
    assert index["a"].normalized_weight == 0
    assert index["b"].normalized_weight == 0


@pytest.mark.parametrize(
    "report",
    [
        None,
        {},
        {"categories": None},
        {"categories": "performance"},
        {"categories": [1, 2, 3]},
        {"categories": {"performance": None}},
        {"categories": {"performance": {"auditRefs": "nope"}}},
        {"categories": {"performance": {"auditRefs": []}}},
        {"categories": {"performance": {"auditRefs": [None, 5, {"weight": 3}]}}},
    ],
)
def test_malformed_categories_give_empty_index(report) -> None:
    assert build_weight_index(report) == {}


def test_last_category_wins_for_shared_check() -> None:
    report = {
        "categories": {
            "first": {"auditRefs": [{"id": "shared", "weight": 1}]},
            "second": {"auditRefs": [{"id": "shared", "weight": 3}, {"id": "other", "weight": 1}]},
        }
    }

    info = get_audit_weight_info(report, "shared")
    assert info is not None
    assert info.category_id == "second"
    assert info.normalized_weight == pytest.approx(0.75)
    assert get_audit_weight_info(report, "missing") is None
