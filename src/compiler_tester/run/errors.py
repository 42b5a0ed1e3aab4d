"""Failures reported by the compile/execute collaborator.

Every ``ItemFailure`` is scoped to one (test, mode) item and maps to an
``ItemOutcome``; none of them aborts the batch. ``GroupCollision`` is the
exception: two items claiming the same group identity is a selection bug and
stops the run.
"""


class ItemFailure(Exception):
    """Base class for per-item failures.

    Attributes:
        detail: Human readable cause (compiler output, trap reason, ...).
    """

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail or self.__class__.__name__)


class CompileError(ItemFailure):
    """The test did not compile in the requested mode."""


class ExecutionTrap(ItemFailure):
    """The compiled test ran and trapped, or produced wrong results."""


class ExecutionTimeout(ItemFailure):
    """The item exceeded its time budget."""

    def __init__(self, timeout: float, detail: str = "") -> None:
        self.timeout = timeout
        super().__init__(detail or f"timed out after {timeout:g}s")


class Unsupported(ItemFailure):
    """The collaborator cannot run the test in this mode."""


class GroupCollision(Exception):
    """A group identity was recorded twice in one run."""

    def __init__(self, group: str) -> None:
        self.group = group
        super().__init__(f"Group recorded twice: {group}")
