from pathlib import Path


class SnapshotError(Exception):
    """Base class for snapshot serialization failures."""


class SnapshotIOError(SnapshotError):
    """A snapshot could not be read or written.

    Attributes:
        path: File or directory involved.
        reason: Underlying cause.
    """

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class MissingContext(SnapshotError):
    """The multi-file format was requested without a run context."""

    def __init__(self) -> None:
        super().__init__(
            "The lnt format requires a run context (machine, target, toolchain), "
            "but none was provided"
        )
