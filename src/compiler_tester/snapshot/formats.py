"""Snapshot serializers and loaders.

Three formats are supported:

- ``json``: ``{group: [{"name", "value", "unit"}, ...]}`` with groups sorted.
- ``csv``: one row per (group, metric) under a ``group,metric,value,unit`` header.
- ``lnt``: a directory with ``context.json`` and one JSON file per mode
  configuration, named ``<machine>-<mode>.json``.
"""

import csv
import json
import logging
import re
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from ..selection.models import GROUP_SEPARATOR
from .errors import MissingContext, SnapshotIOError
from .models import BenchmarkRun, Context, Metric

logger = logging.getLogger(__name__)

CSV_HEADER = ("group", "metric", "value", "unit")
LNT_FORMAT_VERSION = "2"
LNT_CONTEXT_FILE = "context.json"
_DEFAULT_MODE = "default"
_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9+.^~=<>,_-]+")


class SnapshotFormat(str, Enum):
    JSON = "json"
    CSV = "csv"
    LNT = "lnt"


def detect_format(path: Path) -> SnapshotFormat:
    if path.is_dir():
        return SnapshotFormat.LNT
    if path.suffix.lower() == ".csv":
        return SnapshotFormat.CSV
    return SnapshotFormat.JSON


def _split_group(group: str) -> tuple[str, str]:
    name, sep, mode = group.rpartition(GROUP_SEPARATOR)
    if not sep:
        return group, ""
    return name, mode


def _mode_filename(machine: str, mode: str) -> str:
    label = _UNSAFE_FILENAME_CHARS.sub("_", mode.strip()) or _DEFAULT_MODE
    return f"{_UNSAFE_FILENAME_CHARS.sub('_', machine)}-{label}.json"


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_time(value: object) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(str(value))


def _read_json(path: Path) -> Any:
    try:
        with path.open(encoding="utf-8") as f:
            return json.load(f)
    except OSError as exc:
        raise SnapshotIOError(path, f"cannot read file: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise SnapshotIOError(path, f"invalid JSON: {exc}") from exc


def _write_text(path: Path, text: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise SnapshotIOError(path, f"cannot write file: {exc}") from exc


def _metric_list(path: Path, where: str, items: object) -> list[Metric]:
    if not isinstance(items, list):
        raise SnapshotIOError(path, f"{where}: expected a list of metrics")
    try:
        return [Metric.from_dict(item) for item in items]
    except (KeyError, TypeError, ValueError) as exc:
        raise SnapshotIOError(path, f"{where}: invalid metric: {exc}") from exc


# JSON


def _write_json(run: BenchmarkRun, path: Path) -> list[Path]:
    payload = {
        group: [metric.to_dict() for metric in metrics] for group, metrics in run.groups.items()
    }
    _write_text(path, json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False) + "\n")
    return [path]


def _load_json(path: Path) -> BenchmarkRun:
    data = _read_json(path)
    if not isinstance(data, Mapping):
        raise SnapshotIOError(path, "expected an object mapping group to metrics")
    groups = {str(group): _metric_list(path, str(group), items) for group, items in data.items()}
    return BenchmarkRun.build(groups)


# CSV


def _write_csv(run: BenchmarkRun, path: Path) -> list[Path]:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(CSV_HEADER)
            for group, metrics in run.groups.items():
                for metric in metrics:
                    writer.writerow([group, metric.name, repr(float(metric.value)), metric.unit])
    except OSError as exc:
        raise SnapshotIOError(path, f"cannot write file: {exc}") from exc
    return [path]


def _load_csv(path: Path) -> BenchmarkRun:
    groups: dict[str, list[Metric]] = {}
    try:
        with path.open(encoding="utf-8", newline="") as f:
            reader = csv.DictReader(f)
            if tuple(reader.fieldnames or ()) != CSV_HEADER:
                raise SnapshotIOError(path, f"expected header {','.join(CSV_HEADER)}")
            for line, row in enumerate(reader, start=2):
                try:
                    metric = Metric(row["metric"], float(row["value"]), row.get("unit") or "")
                except (TypeError, ValueError) as exc:
                    raise SnapshotIOError(path, f"line {line}: {exc}") from exc
                groups.setdefault(row["group"], []).append(metric)
    except OSError as exc:
        raise SnapshotIOError(path, f"cannot read file: {exc}") from exc
    return BenchmarkRun.build(groups)


# LNT multi-file


def _write_lnt(run: BenchmarkRun, path: Path) -> list[Path]:
    context = run.context
    if context is None:
        raise MissingContext()
    if path.exists() and not path.is_dir():
        raise SnapshotIOError(path, "lnt output must be a directory")

    start = run.start_time or datetime.now(UTC)
    end = run.end_time or start
    files: dict[str, dict[str, Any]] = {}
    for group, metrics in run.groups.items():
        name, mode = _split_group(group)
        filename = _mode_filename(context.machine, mode)
        document = files.setdefault(
            filename,
            {
                "format_version": LNT_FORMAT_VERSION,
                "machine": {
                    "name": context.machine,
                    "target": context.target,
                    "optimizations": mode,
                    "toolchain": context.toolchain,
                },
                "run": {"start_time": _isoformat(start), "end_time": _isoformat(end)},
                "tests": [],
            },
        )
        document["tests"].append({"name": name, "metrics": [m.to_dict() for m in metrics]})

    written = [path / LNT_CONTEXT_FILE]
    _write_text(written[0], json.dumps(context.to_dict(), indent=2, ensure_ascii=False) + "\n")
    for filename in sorted(files):
        target = path / filename
        _write_text(target, json.dumps(files[filename], indent=2, ensure_ascii=False) + "\n")
        written.append(target)
    logger.debug("Wrote %d lnt files to %s", len(written), path)
    return written


def _load_lnt(path: Path) -> BenchmarkRun:
    context_path = path / LNT_CONTEXT_FILE
    context: Context | None = None
    if context_path.is_file():
        try:
            context = Context.from_dict(_read_json(context_path))
        except (AttributeError, ValueError) as exc:
            raise SnapshotIOError(context_path, f"invalid context: {exc}") from exc

    groups: dict[str, list[Metric]] = {}
    starts: list[datetime] = []
    ends: list[datetime] = []
    for file in sorted(path.glob("*.json")):
        if file.name == LNT_CONTEXT_FILE:
            continue
        document = _read_json(file)
        if not isinstance(document, Mapping) or not isinstance(document.get("tests"), list):
            raise SnapshotIOError(file, "expected an lnt document with a 'tests' list")
        machine = document.get("machine") or {}
        if not isinstance(machine, Mapping):
            raise SnapshotIOError(file, "'machine' must be an object")
        mode = str(machine.get("optimizations", ""))
        run_info = document.get("run") or {}
        if not isinstance(run_info, Mapping):
            raise SnapshotIOError(file, "'run' must be an object")
        try:
            if start := _parse_time(run_info.get("start_time")):
                starts.append(start)
            if end := _parse_time(run_info.get("end_time")):
                ends.append(end)
        except ValueError as exc:
            raise SnapshotIOError(file, f"invalid run time: {exc}") from exc
        for test in document["tests"]:
            if not isinstance(test, Mapping):
                raise SnapshotIOError(file, "every test entry must be an object")
            name = str(test.get("name", ""))
            group = f"{name}{GROUP_SEPARATOR}{mode}" if mode else name
            groups.setdefault(group, []).extend(
                _metric_list(file, group, test.get("metrics"))
            )
    return BenchmarkRun.build(
        groups,
        context=context,
        start_time=min(starts) if starts else None,
        end_time=max(ends) if ends else None,
    )


_WRITERS: dict[SnapshotFormat, Callable[[BenchmarkRun, Path], list[Path]]] = {
    SnapshotFormat.JSON: _write_json,
    SnapshotFormat.CSV: _write_csv,
    SnapshotFormat.LNT: _write_lnt,
}

_LOADERS: dict[SnapshotFormat, Callable[[Path], BenchmarkRun]] = {
    SnapshotFormat.JSON: _load_json,
    SnapshotFormat.CSV: _load_csv,
    SnapshotFormat.LNT: _load_lnt,
}


def write_snapshot(run: BenchmarkRun, path: Path | str, fmt: SnapshotFormat) -> list[Path]:
    """Serialize a run; returns the files written.

    Raises:
        MissingContext: ``lnt`` was requested for a run without a context.
        SnapshotIOError: The destination could not be written.
    """
    return _WRITERS[SnapshotFormat(fmt)](run, Path(path))


def load_snapshot(path: Path | str, fmt: SnapshotFormat | None = None) -> BenchmarkRun:
    """Load a snapshot, detecting the format from the path when not given."""
    path = Path(path)
    if not path.exists():
        raise SnapshotIOError(path, "no such file or directory")
    resolved = SnapshotFormat(fmt) if fmt is not None else detect_format(path)
    run = _LOADERS[resolved](path)
    logger.debug("Loaded %s snapshot %s (%d groups)", resolved.value, path, len(run))
    return run
