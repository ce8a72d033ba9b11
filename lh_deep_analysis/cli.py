"""
Deep analysis runner for Lighthouse reports.

Usage:
    lh-deep-analysis report.json
    lh-deep-analysis --url https://example.com --chains on --unused-code on
    lh-deep-analysis --url https://example.com --source lighthouse --max-recommendations 5
"""

from __future__ import annotations

import argparse
import json
import os
from dataclasses import asdict
from pathlib import Path
from typing import Any

from .acquisition import BrowserPool, fetch_pagespeed_report, normalize_url, run_lighthouse
from .models import DEFAULT_LOCALE, DEFAULT_MAX_RECOMMENDATIONS, MAX_RECOMMENDATIONS_CAP, DeepAnalysisOptions, parse_report
from .problems import detect_problems, summarize_problems
from .report import assemble_report


def load_report_file(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ValueError(f"Cannot read {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ValueError(f"{path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a JSON object")
    return data


def acquire_report(args: argparse.Namespace, target_url: str) -> dict[str, Any]:
    if args.source == "pagespeed":
        return fetch_pagespeed_report(
            target_url,
            strategy=args.strategy,
            timeout=args.timeout,
            api_key=str(args.pagespeed_key or "").strip(),
        )
    with BrowserPool(max_browsers=1) as pool:
        return run_lighthouse(target_url, pool, form_factor=args.strategy, timeout=args.timeout)


def write_outputs(output_dir: Path, markdown: str, problems_payload: dict[str, Any]) -> dict[str, Path]:
    output_dir.mkdir(parents=True, exist_ok=True)
    report_path = output_dir / "DEEP-ANALYSIS.md"
    problems_path = output_dir / "PROBLEMS.json"
    report_path.write_text(markdown, encoding="utf-8")
    problems_path.write_text(json.dumps(problems_payload, indent=2, ensure_ascii=False), encoding="utf-8")
    return {"markdown_report": report_path, "problems_json": problems_path}


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Rank Lighthouse problems by weighted impact and write a deep analysis.")
    parser.add_argument("report", nargs="?", help="Path to a Lighthouse report JSON (lhr or PageSpeed payload)")
    parser.add_argument("--url", help="Audit this URL instead of reading a report file")
    parser.add_argument(
        "--source",
        choices=["pagespeed", "lighthouse"],
        default="pagespeed",
        help="Where to get the report for --url (PageSpeed Insights API or local lighthouse CLI).",
    )
    parser.add_argument("--strategy", choices=["mobile", "desktop"], default="mobile", help="Device emulation")
    parser.add_argument(
        "--pagespeed-key",
        default=os.getenv("PAGESPEED_API_KEY", ""),
        help="Optional Google PageSpeed API key (or set PAGESPEED_API_KEY).",
    )
    parser.add_argument("--chains", choices=["on", "off"], default="off", help="Include critical request chains")
    parser.add_argument("--unused-code", choices=["on", "off"], default="off", help="Include unused code analysis")
    parser.add_argument("--patterns", choices=["on", "off"], default="off", help="Include detected performance patterns")
    parser.add_argument(
        "--max-recommendations",
        type=int,
        default=DEFAULT_MAX_RECOMMENDATIONS,
        help=f"Recommendations to list (1-{MAX_RECOMMENDATIONS_CAP})",
    )
    parser.add_argument("--locale", default=DEFAULT_LOCALE, help="Locale of the duplicate summary block")
    parser.add_argument(
        "--null-scores",
        choices=["surface", "skip"],
        default="surface",
        help="Keep checks without a score as full-impact problems, or skip them as not applicable.",
    )
    parser.add_argument("--timeout", type=int, default=120, help="Acquisition timeout in seconds")
    parser.add_argument("--output-dir", default="lh-deep-analysis-output", help="Output directory")
    args = parser.parse_args(argv)

    if bool(args.report) == bool(args.url):
        print("Error: pass either a report file or --url")
        return 2
    if not 1 <= args.max_recommendations <= MAX_RECOMMENDATIONS_CAP:
        print(f"Error: --max-recommendations must be between 1 and {MAX_RECOMMENDATIONS_CAP}")
        return 2

    if args.report:
        try:
            raw = load_report_file(Path(args.report))
        except ValueError as exc:
            print(f"Error: {exc}")
            return 2
        print(f"Report: {args.report}")
    else:
        try:
            target_url = normalize_url(args.url)
        except ValueError as exc:
            print(f"Error: {exc}")
            return 2
        print(f"Audit target: {target_url} ({args.source}, {args.strategy})")
        result = acquire_report(args, target_url)
        if result.get("status") != "ok":
            print(f"Error: report acquisition failed: {result.get('reason', 'unknown error')}")
            return 1
        raw = result["report"]

    report = parse_report(raw)
    if not report.audits:
        print("Warning: report has no audits; output will be mostly empty")

    options = DeepAnalysisOptions(
        include_chains=args.chains == "on",
        include_unused_code=args.unused_code == "on",
        include_patterns=args.patterns == "on",
        max_recommendations=args.max_recommendations,
        locale=args.locale.strip().lower(),
        null_score_policy=args.null_scores,
    )

    print("Ranking problems...")
    problems = detect_problems(report, null_score_policy=options.null_score_policy)
    print("Writing analysis...")
    markdown = assemble_report(report, options)
    artifacts = write_outputs(
        Path(args.output_dir).resolve(),
        markdown,
        {
            "url": report.url,
            "fetch_time": report.fetch_time,
            "problems": [asdict(problem) for problem in problems],
            "category_summary": summarize_problems(problems),
        },
    )

    print(f"Done. Problems found: {len(problems)}")
    print(f"Report: {artifacts['markdown_report']}")
    print(f"Problems: {artifacts['problems_json']}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
