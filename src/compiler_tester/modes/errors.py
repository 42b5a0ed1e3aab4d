class ModeError(ValueError):
    """Base class for mode string and mode expansion failures."""


class ParseError(ModeError):
    """Malformed mode string.

    Attributes:
        text: The full input that failed to parse.
        position: Offset of the offending fragment in the whitespace-stripped input.
        fragment: The offending substring.
    """

    def __init__(self, text: str, position: int, fragment: str, reason: str) -> None:
        self.text = text
        self.position = position
        self.fragment = fragment
        self.reason = reason
        super().__init__(f"Cannot parse mode {text!r}: {reason} at {position}: {fragment!r}")


class UnsupportedCombination(ModeError):
    """Mode fields that violate the static compatibility table."""

    def __init__(self, text: str, reason: str) -> None:
        self.text = text
        self.reason = reason
        super().__init__(f"Unsupported mode combination {text!r}: {reason}")


class VersionUnavailable(ModeError):
    """Version constraint that matches no known compiler version."""

    def __init__(self, constraint: str, known: dict[str, tuple[str, ...]]) -> None:
        self.constraint = constraint
        self.known = known
        listing = "; ".join(f"{lang}: {', '.join(v) or '-'}" for lang, v in sorted(known.items()))
        super().__init__(f"Version constraint {constraint!r} matches no known version ({listing})")
