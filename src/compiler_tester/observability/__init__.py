from .events import (
    log_comparison,
    log_event,
    log_item_failure,
    log_run_complete,
    log_run_start,
)

__all__ = [
    "log_comparison",
    "log_event",
    "log_item_failure",
    "log_run_complete",
    "log_run_start",
]
