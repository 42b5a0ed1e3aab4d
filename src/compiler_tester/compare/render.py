"""Comparison report renderers (fixed-width table, markdown, JSON)."""

import json
import math
from collections.abc import Callable
from enum import Enum
from pathlib import Path

from .models import ComparisonEntry, ComparisonReport, MetricStats


class ReportFormat(str, Enum):
    TABLE = "table"
    MARKDOWN = "markdown"
    JSON = "json"


class ReportIOError(Exception):
    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{path}: {reason}")


def format_delta(delta: float | None) -> str:
    if delta is None:
        return "-"
    if math.isinf(delta):
        return "+inf" if delta > 0 else "-inf"
    return f"{delta * 100:+.2f}%"


def _format_value(value: float) -> str:
    if float(value).is_integer():
        return f"{int(value)}"
    return f"{value:.4g}"


def _format_geomean(value: float | None) -> str:
    return "-" if value is None else f"{value:.4f}"


def _entry_cells(entry: ComparisonEntry) -> list[str]:
    unit = f" {entry.unit}" if entry.unit else ""
    return [
        entry.key,
        entry.metric,
        _format_value(entry.reference) + unit,
        _format_value(entry.candidate) + unit,
        format_delta(entry.delta),
        entry.classification.value,
    ]


def _stats_cells(stats: MetricStats) -> list[str]:
    return [
        stats.metric,
        str(stats.count),
        str(stats.improved),
        str(stats.regressed),
        str(stats.neutral),
        _format_geomean(stats.geomean),
        format_delta(stats.total),
        format_delta(stats.best),
        format_delta(stats.worst),
    ]


_ENTRY_HEADER = ["Group", "Metric", "Reference", "Candidate", "Delta", "Result"]
_STATS_HEADER = [
    "Metric",
    "Count",
    "Improved",
    "Regressed",
    "Neutral",
    "Geomean",
    "Total",
    "Best",
    "Worst",
]


def _fixed_width(header: list[str], rows: list[list[str]]) -> list[str]:
    widths = [len(h) for h in header]
    for row in rows:
        widths = [max(w, len(cell)) for w, cell in zip(widths, row, strict=True)]
    lines = ["  ".join(cell.ljust(w) for cell, w in zip(header, widths, strict=True)).rstrip()]
    lines.append("  ".join("-" * w for w in widths))
    for row in rows:
        lines.append("  ".join(cell.ljust(w) for cell, w in zip(row, widths, strict=True)).rstrip())
    return lines


def _render_table(report: ComparisonReport, limit: int | None) -> str:
    counts = report.counts()
    lines = [
        f"Reference: {report.reference_name}",
        f"Candidate: {report.candidate_name}",
        f"Tolerance: {report.tolerance * 100:.2f}%",
        "",
    ]
    entries = report.sorted_entries(limit)
    if entries:
        lines.extend(_fixed_width(_ENTRY_HEADER, [_entry_cells(e) for e in entries]))
        if limit is not None and len(report.entries) > limit:
            lines.append(f"... {len(report.entries) - limit} more entries")
    else:
        lines.append("No comparable entries.")
    if report.stats:
        lines.append("")
        stats_rows = [_stats_cells(report.stats[name]) for name in sorted(report.stats)]
        lines.extend(_fixed_width(_STATS_HEADER, stats_rows))
    lines.append("")
    lines.append(
        f"{counts['regressed']} regressed, {counts['improved']} improved, "
        f"{counts['neutral']} neutral, {counts['diagnostics']} diagnostics"
    )
    return "\n".join(lines)


def _escape(cell: str) -> str:
    return cell.replace("|", "\\|")


def _markdown_table(header: list[str], rows: list[list[str]]) -> list[str]:
    lines = ["| " + " | ".join(header) + " |"]
    lines.append("|" + "|".join("-" * (len(h) + 2) for h in header) + "|")
    for row in rows:
        lines.append("| " + " | ".join(_escape(cell) for cell in row) + " |")
    return lines


def _render_markdown(report: ComparisonReport, limit: int | None) -> str:
    counts = report.counts()
    lines = [
        "# Benchmark Comparison Report",
        "",
        f"**Reference**: `{report.reference_name}`",
        f"**Candidate**: `{report.candidate_name}`",
        f"**Tolerance**: {report.tolerance * 100:.2f}%",
        "",
        f"- Regressed: {counts['regressed']}",
        f"- Improved: {counts['improved']}",
        f"- Neutral: {counts['neutral']}",
        f"- Diagnostics: {counts['diagnostics']}",
        "",
    ]
    if report.stats:
        lines.append("## Summary")
        lines.append("")
        stats_rows = [_stats_cells(report.stats[name]) for name in sorted(report.stats)]
        lines.extend(_markdown_table(_STATS_HEADER, stats_rows))
        lines.append("")

    lines.append("## Changes")
    lines.append("")
    entries = report.sorted_entries(limit)
    if entries:
        lines.extend(_markdown_table(_ENTRY_HEADER, [_entry_cells(e) for e in entries]))
    else:
        lines.append("No comparable entries.")

    if report.diagnostics:
        lines.append("")
        lines.append("## Diagnostics")
        lines.append("")
        for diag in report.diagnostics:
            detail = f": {diag.detail}" if diag.detail else ""
            lines.append(f"- `{diag.group}` {diag.kind.value} ({diag.side}){detail}")
    return "\n".join(lines)


def _render_json(report: ComparisonReport, limit: int | None) -> str:
    return json.dumps(report.to_dict(limit), indent=2, ensure_ascii=False)


_RENDERERS: dict[ReportFormat, Callable[[ComparisonReport, int | None], str]] = {
    ReportFormat.TABLE: _render_table,
    ReportFormat.MARKDOWN: _render_markdown,
    ReportFormat.JSON: _render_json,
}


def render_report(
    report: ComparisonReport,
    fmt: ReportFormat | str = ReportFormat.TABLE,
    limit: int | None = None,
) -> str:
    if limit is not None and limit < 0:
        raise ValueError("limit must be >= 0")
    return _RENDERERS[ReportFormat(fmt)](report, limit)


def write_report(
    report: ComparisonReport,
    path: Path | str,
    fmt: ReportFormat | str = ReportFormat.TABLE,
    limit: int | None = None,
) -> Path:
    path = Path(path)
    text = render_report(report, fmt, limit)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text + "\n", encoding="utf-8")
    except OSError as exc:
        raise ReportIOError(path, f"cannot write report: {exc}") from exc
    return path
