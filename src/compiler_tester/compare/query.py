import re
from dataclasses import dataclass


class QueryError(ValueError):
    def __init__(self, side: str, pattern: str, reason: str) -> None:
        self.side = side
        self.pattern = pattern
        super().__init__(f"Invalid {side} query {pattern!r}: {reason}")


def _compile(side: str, pattern: str | None) -> re.Pattern[str] | None:
    if pattern is None:
        return None
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise QueryError(side, pattern, str(exc)) from exc


def extract_key(pattern: re.Pattern[str] | None, group: str) -> str | None:
    """Key a group is paired by, or None when the pattern does not match.

    The key is the named group ``key`` when present, else the first capture
    group, else the whole match.
    """
    if pattern is None:
        return group
    match = pattern.search(group)
    if match is None:
        return None
    if "key" in pattern.groupindex:
        return match.group("key")
    if pattern.groups:
        return match.group(1)
    return match.group(0)


@dataclass(frozen=True)
class Query:
    """Pair groups of two snapshots by regex-extracted keys.

    A side without a pattern keys each group by its full identity.
    """

    reference: re.Pattern[str] | None = None
    candidate: re.Pattern[str] | None = None

    @classmethod
    def compile(cls, reference: str | None = None, candidate: str | None = None) -> "Query":
        return cls(_compile("reference", reference), _compile("candidate", candidate))

    @property
    def is_identity(self) -> bool:
        return self.reference is None and self.candidate is None

    def reference_key(self, group: str) -> str | None:
        return extract_key(self.reference, group)

    def candidate_key(self, group: str) -> str | None:
        return extract_key(self.candidate, group)
