"""Configuration module for compiler-tester."""

from pathlib import Path

from .settings import (
    DEFAULT_ITEM_TIMEOUT_SECONDS,
    DEFAULT_PARALLELISM,
    DEFAULT_TOLERANCE,
    EVENT_LOGGING,
    LOG_DIR,
    LOG_LEVEL,
    LOG_PATH,
    MAX_LOG_SIZE_BYTES,
    TesterConfig,
)

# Static mode domain shipped with the package (loaded by modes.domain)
DOMAIN_PATH = Path(__file__).parent / "domain.yaml"

__all__ = [
    "DEFAULT_ITEM_TIMEOUT_SECONDS",
    "DEFAULT_PARALLELISM",
    "DEFAULT_TOLERANCE",
    "DOMAIN_PATH",
    "EVENT_LOGGING",
    "LOG_DIR",
    "LOG_LEVEL",
    "LOG_PATH",
    "MAX_LOG_SIZE_BYTES",
    "TesterConfig",
]
