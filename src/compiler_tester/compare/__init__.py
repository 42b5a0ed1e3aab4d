"""Benchmark comparison: pairing, classification, statistics and rendering."""

from .comparator import BenchmarkComparator, classify, relative_delta
from .models import (
    Classification,
    ComparisonEntry,
    ComparisonReport,
    Diagnostic,
    DiagnosticKind,
    MetricStats,
)
from .query import Query, QueryError
from .render import ReportFormat, ReportIOError, format_delta, render_report, write_report

__all__ = [
    "BenchmarkComparator",
    "Classification",
    "ComparisonEntry",
    "ComparisonReport",
    "Diagnostic",
    "DiagnosticKind",
    "MetricStats",
    "Query",
    "QueryError",
    "ReportFormat",
    "ReportIOError",
    "classify",
    "format_delta",
    "relative_delta",
    "render_report",
    "write_report",
]
