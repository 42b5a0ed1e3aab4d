import logging
import os
from dataclasses import dataclass
from pathlib import Path

from platformdirs import user_state_dir

from .compat import env_bool

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_ITEM_TIMEOUT_SECONDS",
    "DEFAULT_PARALLELISM",
    "DEFAULT_TOLERANCE",
    "EVENT_LOGGING",
    "LOG_PATH",
    "TesterConfig",
]

# Worker pool size (default: one worker per CPU)
DEFAULT_PARALLELISM = os.cpu_count() or 1

# Relative change treated as noise when comparing snapshots (0.02 == 2%)
DEFAULT_TOLERANCE = 0.0

# Per-item budget handed to the compile/execute collaborator
DEFAULT_ITEM_TIMEOUT_SECONDS = 60.0

LOG_LEVEL = os.getenv("COMPILER_TESTER_LOG_LEVEL", "INFO").strip().upper() or "INFO"

# Structured event log (JSON lines, default: off)
EVENT_LOGGING = env_bool("COMPILER_TESTER_EVENT_LOG", default=False)

# Logging - Cross-platform state directory:
# - Linux: ~/.local/state/compiler-tester
# - macOS: ~/Library/Application Support/compiler-tester
# - Windows: %LOCALAPPDATA%\compiler-tester
# Note: Directory is created lazily in observability/events.py when actually writing logs
LOG_DIR = Path(user_state_dir("compiler-tester", appauthor=False))
LOG_PATH = Path(os.getenv("COMPILER_TESTER_LOG_PATH", "") or LOG_DIR / "events.jsonl")
MAX_LOG_SIZE_BYTES = 10 * 1024 * 1024


def _read_float(name: str, default: float, *, minimum: float = 0.0) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from exc
    if value < minimum:
        raise RuntimeError(f"{name} must be >= {minimum}, got {raw!r}")
    return value


def _read_int(name: str, default: int, *, minimum: int = 1) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise RuntimeError(f"{name} must be >= {minimum}, got {raw!r}")
    return value


@dataclass(frozen=True)
class TesterConfig:
    parallelism: int = DEFAULT_PARALLELISM
    tolerance: float = DEFAULT_TOLERANCE
    item_timeout: float = DEFAULT_ITEM_TIMEOUT_SECONDS
    versions_file: str | None = None  # YAML mapping language -> known versions
    fail_threshold: float | None = None  # Regressions above this fail the comparison

    @classmethod
    def from_env(cls) -> "TesterConfig":
        parallelism = _read_int("COMPILER_TESTER_PARALLELISM", DEFAULT_PARALLELISM)
        tolerance = _read_float("COMPILER_TESTER_TOLERANCE", DEFAULT_TOLERANCE)
        item_timeout = _read_float(
            "COMPILER_TESTER_ITEM_TIMEOUT", DEFAULT_ITEM_TIMEOUT_SECONDS, minimum=0.001
        )

        fail_threshold: float | None = None
        if os.getenv("COMPILER_TESTER_FAIL_THRESHOLD", "").strip():
            fail_threshold = _read_float("COMPILER_TESTER_FAIL_THRESHOLD", 0.0)

        versions_file = os.getenv("COMPILER_TESTER_VERSIONS_FILE", "").strip() or None
        if versions_file:
            if not os.path.isfile(versions_file):
                raise RuntimeError(
                    f"COMPILER_TESTER_VERSIONS_FILE is not a file: {versions_file}"
                )
            versions_file = os.path.abspath(versions_file)
            logger.debug("Using COMPILER_TESTER_VERSIONS_FILE: %s", versions_file)

        return cls(
            parallelism=parallelism,
            tolerance=tolerance,
            item_timeout=item_timeout,
            versions_file=versions_file,
            fail_threshold=fail_threshold,
        )
