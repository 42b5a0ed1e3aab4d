import glob
import json
import logging
import threading
from datetime import UTC, datetime
from typing import Any

from ..config import settings

logger = logging.getLogger(__name__)

MAX_ROTATED_LOGS = 5
_LOG_LOCK = threading.Lock()

_LEVELS = frozenset({"debug", "info", "warning", "error"})


def _normalize_level(value: object, *, default: str) -> str:
    if value is None:
        return default
    text = str(value).strip().lower()
    if text in _LEVELS:
        return text
    if text == "warn":
        return "warning"
    return default


def truncate(value: str, max_len: int = 200) -> str:
    if len(value) <= max_len:
        return value
    suffix = f"... [truncated, len={len(value)}]"
    if max_len <= len(suffix):
        return value[:max_len]
    return f"{value[: max_len - len(suffix)]}{suffix}"


def rotate_log_if_needed() -> None:
    try:
        log_path = settings.LOG_PATH
        if log_path.exists() and log_path.stat().st_size > settings.MAX_LOG_SIZE_BYTES:
            ts = datetime.now(UTC).strftime("%Y%m%d_%H%M%S_%f")
            stem = log_path.stem
            suffix = log_path.suffix
            rotated_path = log_path.with_name(f"{stem}.{ts}{suffix}")
            log_path.rename(rotated_path)
            logger.debug("Rotated log file to %s", rotated_path)

            pattern = f"{glob.escape(stem)}.*{glob.escape(suffix)}"
            rotated_logs = sorted(log_path.parent.glob(pattern), reverse=True)
            for old_log in rotated_logs[MAX_ROTATED_LOGS:]:
                old_log.unlink(missing_ok=True)
                logger.debug("Cleaned up old log file: %s", old_log)
    except OSError as exc:
        logger.warning("Failed to rotate log file: %s", exc)


def log_event(event: dict[str, Any]) -> None:
    """Append a single JSON event to the local event log.

    Args:
        event: Event data to log. Will be enriched with timestamp and level.
    """
    if not settings.EVENT_LOGGING:
        return

    event = dict(event)
    event.setdefault("timestamp", datetime.now(UTC).isoformat())
    kind = str(event.get("kind") or "unknown")
    event["kind"] = kind
    default_level = "error" if kind.endswith("error") else "info"
    event["level"] = _normalize_level(event.get("level"), default=default_level)

    try:
        with _LOG_LOCK:
            if settings.LOG_PATH.is_dir():
                logger.warning("Log path is a directory, skipping log write")
                return
            settings.LOG_PATH.parent.mkdir(parents=True, exist_ok=True)
            rotate_log_if_needed()
            with open(settings.LOG_PATH, "a", encoding="utf-8") as f:
                f.write(json.dumps(event, ensure_ascii=False, default=str) + "\n")
    except OSError as exc:
        logger.warning("Failed to write event log: %s", exc)


def log_run_start(items: int, modes: int, parallelism: int) -> None:
    log_event(
        {
            "kind": "run_start",
            "items": items,
            "modes": modes,
            "parallelism": parallelism,
        }
    )


def log_item_failure(group: str, outcome: str, error: str, error_type: str) -> None:
    log_event(
        {
            "kind": "item_error" if outcome == "failed" else "item_" + outcome,
            "level": "warning" if outcome != "failed" else "error",
            "group": group,
            "outcome": outcome,
            "error": truncate(error, 500),
            "error_type": error_type,
        }
    )


def log_run_complete(summary: dict[str, Any]) -> None:
    log_event({"kind": "run_complete", "level": "info", **summary})


def log_comparison(reference: str, candidate: str, counts: dict[str, int]) -> None:
    log_event({"kind": "comparison", "reference": reference, "candidate": candidate, **counts})
