import fnmatch
from dataclasses import dataclass, field

from ..modes import ConcreteMode, VersionConstraint

GROUP_SEPARATOR = "::"
_GLOB_CHARS = frozenset("*?[")


def make_group(path: str, mode: ConcreteMode) -> str:
    """Canonical identity of a (test, mode) pair, e.g. ``simple/add.sol::Y+M3B3 0.8.19``."""
    return f"{path}{GROUP_SEPARATOR}{mode}"


@dataclass(frozen=True)
class TestDescriptor:
    """A test as reported by the corpus adapter."""

    __test__ = False  # not a pytest test class

    path: str
    codegens: frozenset[str]
    versions: VersionConstraint = field(default_factory=VersionConstraint.any)

    def supports(self, mode: ConcreteMode) -> bool:
        return mode.codegen in self.codegens and self.versions.matches(mode.version)


@dataclass(frozen=True)
class WorkItem:
    descriptor: TestDescriptor
    mode: ConcreteMode

    @property
    def group(self) -> str:
        return make_group(self.descriptor.path, self.mode)


@dataclass(frozen=True)
class PathFilter:
    """Union of glob and prefix patterns; no patterns selects everything."""

    patterns: tuple[str, ...] = ()

    @classmethod
    def of(cls, *patterns: str) -> "PathFilter":
        return cls(tuple(p for p in patterns if p))

    def matches(self, path: str) -> bool:
        if not self.patterns:
            return True
        return any(self._match_one(pattern, path) for pattern in self.patterns)

    @staticmethod
    def _match_one(pattern: str, path: str) -> bool:
        # "path::case" filters select by their path part
        pattern = pattern.split(GROUP_SEPARATOR, 1)[0]
        if _GLOB_CHARS.intersection(pattern):
            return fnmatch.fnmatchcase(path, pattern)
        return path.startswith(pattern)


@dataclass(frozen=True)
class Selection:
    items: tuple[WorkItem, ...]
    skipped: tuple[TestDescriptor, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def groups(self) -> tuple[str, ...]:
        return tuple(item.group for item in self.items)
