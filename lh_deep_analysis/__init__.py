"""Weighted problem ranking and deep analysis reports for Lighthouse results."""

from .models import DeepAnalysisOptions, Problem, Report, WeightInfo, parse_options, parse_report
from .patterns import Pattern, detect_patterns
from .problems import detect_problems
from .report import assemble_report
from .tool import DEEP_ANALYSIS_TOOL, execute_deep_analysis
from .weights import build_weight_index

__all__ = [
    "DEEP_ANALYSIS_TOOL",
    "DeepAnalysisOptions",
    "Pattern",
    "Problem",
    "Report",
    "WeightInfo",
    "assemble_report",
    "build_weight_index",
    "detect_patterns",
    "detect_problems",
    "execute_deep_analysis",
    "parse_options",
    "parse_report",
]
