import re
from collections.abc import Iterable
from dataclasses import dataclass, field

_VERSION_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)$")
_CLAUSE_RE = re.compile(r"(>=|<=|>|<|=|\^|~)?(\d+(?:\.\d+){0,2})$")
_OPERATOR_GAP_RE = re.compile(r"(>=|<=|>|<|=|\^|~)\s+")


class VersionSyntaxError(ValueError):
    """Malformed version or version constraint.

    ``offset`` points at the offending clause inside the constraint text.
    """

    def __init__(self, text: str, offset: int, fragment: str) -> None:
        self.text = text
        self.offset = offset
        self.fragment = fragment
        super().__init__(f"Invalid version constraint {text!r} at {offset}: {fragment!r}")


@dataclass(frozen=True, order=True)
class Version:
    major: int
    minor: int
    patch: int

    @classmethod
    def parse(cls, text: str) -> "Version":
        match = _VERSION_RE.match(text.strip())
        if not match:
            raise VersionSyntaxError(text, 0, text)
        return cls(int(match.group(1)), int(match.group(2)), int(match.group(3)))

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def _pad(parts: tuple[int, ...]) -> Version:
    padded = tuple(parts) + (0,) * (3 - len(parts))
    return Version(*padded)


def _bump(parts: tuple[int, ...], index: int) -> Version:
    head = list(parts[: index + 1])
    head[index] += 1
    return _pad(tuple(head))


@dataclass(frozen=True)
class _Clause:
    op: str
    parts: tuple[int, ...]

    def matches(self, version: Version) -> bool:
        low = _pad(self.parts)
        if self.op in ("", "="):
            if len(self.parts) == 3:
                return version == low
            return (version.major, version.minor, version.patch)[: len(self.parts)] == self.parts
        if self.op == ">=":
            return version >= low
        if self.op == ">":
            return version > low
        if self.op == "<=":
            return version <= low
        if self.op == "<":
            return version < low
        if self.op == "^":
            # Bump the first non-zero component (or the last given one)
            index = next((i for i, p in enumerate(self.parts) if p != 0), len(self.parts) - 1)
            return low <= version < _bump(self.parts, index)
        if self.op == "~":
            index = 0 if len(self.parts) == 1 else 1
            return low <= version < _bump(self.parts, index)
        raise AssertionError(f"unknown operator {self.op!r}")

    def __str__(self) -> str:
        return self.op + ".".join(str(p) for p in self.parts)


@dataclass(frozen=True)
class VersionConstraint:
    """A conjunction of version clauses, or ``*`` for any version."""

    clauses: tuple[_Clause, ...] = ()
    source: str = field(default="", compare=False)

    @classmethod
    def any(cls) -> "VersionConstraint":
        return cls(())

    @classmethod
    def parse(cls, text: str) -> "VersionConstraint":
        compact = "".join(text.split())
        if compact == "*":
            return cls.any()
        if not compact:
            raise VersionSyntaxError(text, 0, text)

        clauses: list[_Clause] = []
        offset = 0
        for raw in compact.split(","):
            match = _CLAUSE_RE.match(raw)
            if not raw or not match:
                raise VersionSyntaxError(compact, offset, raw)
            op = match.group(1) or ""
            parts = tuple(int(p) for p in match.group(2).split("."))
            clauses.append(_Clause(op, parts))
            offset += len(raw) + 1
        return cls(tuple(clauses), source=compact)

    @classmethod
    def from_pragma(cls, text: str) -> "VersionConstraint":
        """Parse a space separated requirement such as ``>=0.8.0 <0.9.0``."""
        tokens = _OPERATOR_GAP_RE.sub(r"\1", text.replace(";", " ")).split()
        return cls.parse(",".join(tokens)) if tokens else cls.any()

    @property
    def is_any(self) -> bool:
        return not self.clauses

    def matches(self, version: Version) -> bool:
        return all(clause.matches(version) for clause in self.clauses)

    def filter(self, versions: Iterable[Version]) -> list[Version]:
        return [v for v in versions if self.matches(v)]

    def __str__(self) -> str:
        if self.source:
            return self.source
        if self.is_any:
            return "*"
        return ",".join(str(c) for c in self.clauses)


def parse_versions(values: Iterable[str]) -> tuple[Version, ...]:
    """Parse, deduplicate and sort a list of known versions."""
    return tuple(sorted({Version.parse(str(v)) for v in values}))
