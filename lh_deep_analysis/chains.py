"""
Critical request chain extraction.

Walks the ``critical-request-chains`` audit into root-to-leaf paths, measures
how much each request contributes to its path, and points at the request that
holds up rendering (anchored to LCP when the report has it).
"""

from __future__ import annotations

import math
import re
from typing import Any, Mapping

from .models import Report, coerce_report

IMPACT_LEVELS = (
    (50.0, "Critical"),
    (30.0, "High"),
    (15.0, "Medium"),
)


def _number(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return 0.0
    return float(value)


def _seconds_to_ms(value: Any) -> float:
    return _number(value) * 1000.0


def guess_resource_type(url: str, depth: int) -> str:
    if depth == 0:
        return "document"
    path = url.split("?")[0].lower()
    if path.endswith(".css"):
        return "stylesheet"
    if path.endswith(".js"):
        return "script"
    if re.search(r"\.(png|jpe?g|gif|webp|avif|svg)$", path):
        return "image"
    if re.search(r"\.(woff2?|ttf|otf)$", path):
        return "font"
    return "other"


def _collect_paths(
    node: Any,
    records: dict[str, dict[str, Any]],
    depth: int,
    current: list[dict[str, Any]],
) -> list[list[dict[str, Any]]]:
    request = node.get("request") if isinstance(node, Mapping) else None
    if not isinstance(request, Mapping) or not isinstance(request.get("url"), str):
        return [current] if current else []

    url = request["url"]
    record = records.get(url, {})
    transfer = request.get("transferSize")
    if transfer is None:
        transfer = record.get("transferSize")
    end_time = _seconds_to_ms(request.get("endTime"))
    response_time = request.get("responseReceivedTime")
    raw_item = {
        "url": url,
        "transfer_size": _number(transfer),
        "start_time": _seconds_to_ms(request.get("startTime")),
        "end_time": end_time,
        "response_received_time": _seconds_to_ms(response_time) if response_time is not None else end_time,
        "resource_type": str(record.get("resourceType") or guess_resource_type(url, depth)),
        "depth": depth,
    }
    next_path = [*current, raw_item]

    children = node.get("children")
    if not isinstance(children, Mapping) or not children:
        return [next_path]

    paths: list[list[dict[str, Any]]] = []
    for child in children.values():
        paths.extend(_collect_paths(child, records, depth + 1, next_path))
    return paths


def _finalize_path(chain_id: str, items: list[dict[str, Any]]) -> dict[str, Any]:
    start = items[0]["start_time"]
    end = items[-1]["end_time"]
    total_duration = max(0.0, end - start)

    nodes: list[dict[str, Any]] = []
    for idx, item in enumerate(items):
        duration = max(0.0, item["end_time"] - item["start_time"])
        resource_type = item["resource_type"].lower() if item["resource_type"] else "other"
        nodes.append(
            {
                "url": item["url"],
                "transfer_size": item["transfer_size"],
                "start_time": item["start_time"],
                "end_time": item["end_time"],
                "duration": duration,
                "resource_type": "document" if idx == 0 else resource_type,
                "latency": max(0.0, item["response_received_time"] - item["start_time"]),
                "download_time": max(0.0, item["end_time"] - item["response_received_time"]),
                "start_offset": item["start_time"] - start,
                "depth": item["depth"],
                "contribution": duration / total_duration if total_duration > 0 else 0.0,
            }
        )

    return {
        "id": chain_id,
        "nodes": nodes,
        "start_time": start,
        "end_time": end,
        "total_duration": total_duration,
        "total_transfer_size": sum(item["transfer_size"] for item in items),
    }


def classify_impact(contribution: float) -> str:
    percentage = contribution * 100
    for floor, label in IMPACT_LEVELS:
        if percentage >= floor:
            return label
    return "Low"


def identify_bottleneck(nodes: list[dict[str, Any]], total_duration: float) -> dict[str, Any] | None:
    if not nodes or total_duration <= 0:
        return None

    best = nodes[0]
    best_contribution = best["duration"] / total_duration
    for node in nodes[1:]:
        contribution = node["duration"] / total_duration
        if contribution > best_contribution:
            best, best_contribution = node, contribution

    reason = (
        f"Consumes {best_contribution * 100:.1f}% of the {round(total_duration)}ms chain "
        f"(latency {round(best['latency'])}ms, download {round(best['download_time'])}ms, "
        f"total {round(best['duration'])}ms)"
    )
    return {
        "url": best["url"],
        "duration": best["duration"],
        "contribution": best_contribution,
        "impact": classify_impact(best_contribution),
        "start_time": best["start_time"],
        "end_time": best["end_time"],
        "reason": reason,
    }


def _closest_match(paths: list[dict[str, Any]], lcp_time: float, before: bool) -> tuple[dict[str, Any], dict[str, Any]] | None:
    best: tuple[dict[str, Any], dict[str, Any]] | None = None
    best_delta = math.inf
    for path in paths:
        for node in path["nodes"]:
            delta = lcp_time - node["end_time"] if before else node["end_time"] - lcp_time
            if 0 <= delta < best_delta:
                best, best_delta = (path, node), delta
    return best


def compute_lcp_insight(report: Report, paths: list[dict[str, Any]]) -> dict[str, Any] | None:
    lcp_audit = report.audits.get("largest-contentful-paint")
    lcp_time = lcp_audit.numeric_value if lcp_audit is not None else None
    if not lcp_time:
        return None

    # Prefer the request that finished last before LCP, else the first one after.
    match = _closest_match(paths, lcp_time, before=True) or _closest_match(paths, lcp_time, before=False)
    if match is None:
        return None
    path, anchor = match

    prefix = [node for node in path["nodes"] if node["start_time"] <= anchor["end_time"]]
    if not prefix:
        return None
    prefix_start = prefix[0]["start_time"]
    duration_to_lcp = max(0.0, anchor["end_time"] - prefix_start)
    nodes = [
        {
            **node,
            "start_offset": node["start_time"] - prefix_start,
            "contribution": node["duration"] / duration_to_lcp if duration_to_lcp > 0 else 0.0,
        }
        for node in prefix
    ]

    return {
        "timestamp": lcp_time,
        "candidate_url": anchor["url"],
        "chain_id": path["id"],
        "duration_to_lcp": duration_to_lcp,
        "nodes": nodes,
        "bottleneck": identify_bottleneck(nodes, duration_to_lcp),
    }


def analyze_critical_chains(report: Report | Mapping[str, Any] | None) -> dict[str, Any] | None:
    report = coerce_report(report)
    chain_audit = report.audits.get("critical-request-chains")
    chains = chain_audit.details.get("chains") if chain_audit is not None else None
    if not isinstance(chains, Mapping) or not chains:
        return None

    network_audit = report.audits.get("network-requests")
    network_items = network_audit.details.get("items") if network_audit is not None else None
    records: dict[str, dict[str, Any]] = {}
    if isinstance(network_items, list):
        for item in network_items:
            if isinstance(item, Mapping) and isinstance(item.get("url"), str):
                records.setdefault(item["url"], dict(item))

    paths: list[dict[str, Any]] = []
    for chain_id, root in chains.items():
        for items in _collect_paths(root, records, 0, []):
            paths.append(_finalize_path(str(chain_id), items))
    if not paths:
        return None

    longest = paths[0]
    for path in paths[1:]:
        if path["total_duration"] > longest["total_duration"] or (
            path["total_duration"] == longest["total_duration"] and len(path["nodes"]) > len(longest["nodes"])
        ):
            longest = path

    lcp = compute_lcp_insight(report, paths)
    general = identify_bottleneck(longest["nodes"], longest["total_duration"])

    return {
        "chains": paths,
        "longest_chain": longest,
        "total_duration": longest["total_duration"],
        "total_transfer_size": longest["total_transfer_size"],
        "bottleneck": (lcp or {}).get("bottleneck") or general,
        "lcp": lcp,
    }
