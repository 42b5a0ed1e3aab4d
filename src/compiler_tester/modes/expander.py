import itertools
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from .domain import FLAG_FIELDS, CodegenSpec, KnownVersions, LevelSpec, ModeDomain
from .errors import UnsupportedCombination, VersionUnavailable
from .grammar import SUBSET, WILDCARD, PartialMode, parse_mode, render_mode, validate_partial
from .versions import Version, VersionConstraint

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConcreteMode:
    """A fully resolved configuration: one value per field and one version."""

    codegen: str
    flag_field: str
    flag: str
    middle: str
    backend: str
    version: Version
    language: str

    @property
    def optimizations(self) -> str:
        return f"{self.flag}M{self.middle}B{self.backend}"

    @property
    def settings(self) -> str:
        """Mode without the version, e.g. ``Y+M3B3``."""
        return f"{self.codegen}{self.optimizations}"

    def to_partial(self) -> PartialMode:
        values: dict[str, object] = {
            "codegen": self.codegen,
            self.flag_field: self.flag,
            "middle": self.middle,
            "backend": self.backend,
            "version": VersionConstraint.parse(str(self.version)),
        }
        return PartialMode(**values)  # type: ignore[arg-type]

    def __str__(self) -> str:
        return f"{self.settings} {self.version}"


def _level_values(value: str | None, spec: LevelSpec) -> tuple[str, ...]:
    if value is None or value == WILDCARD:
        return spec.values
    if value == SUBSET:
        return spec.subset(SUBSET) or ()
    return (value,)


def _flag_values(mode: PartialMode, spec: CodegenSpec, domain: ModeDomain) -> tuple[str, ...]:
    value = mode.flag(spec.flag_field)
    if value is None or value == WILDCARD:
        return domain.flag_values(spec.flag_field)
    return (value,)


def _is_compatible(mode: PartialMode, spec: CodegenSpec) -> bool:
    # A flag pinned only for another codegen's field rules this codegen out
    if mode.flag(spec.flag_field) is not None:
        return True
    return all(
        mode.flag(field) in (None, WILDCARD) for field in FLAG_FIELDS if field != spec.flag_field
    )


def _candidate_codegens(mode: PartialMode, domain: ModeDomain) -> tuple[CodegenSpec, ...]:
    if mode.has_concrete_codegen:
        spec = domain.codegen(str(mode.codegen))
        return (spec,) if spec is not None else ()
    return domain.codegens


def expand_mode(
    mode: PartialMode,
    domain: ModeDomain,
    known_versions: KnownVersions | None = None,
) -> tuple[ConcreteMode, ...]:
    """Expand a partial mode into its ordered, deduplicated concrete modes.

    Args:
        mode: Parsed mode, possibly with wildcards.
        domain: Static domain and compatibility table.
        known_versions: Installed versions per language (defaults to the domain's list).

    Raises:
        UnsupportedCombination: Fields conflict, or nothing survives the compatibility table.
        VersionUnavailable: The version constraint matches no known version at all.
    """
    validate_partial(mode, domain)
    known = domain.default_versions if known_versions is None else known_versions
    constraint = mode.version or VersionConstraint.any()

    middles = _level_values(mode.middle, domain.middle)
    backends = _level_values(mode.backend, domain.backend)

    result: list[ConcreteMode] = []
    seen: set[ConcreteMode] = set()
    any_version_matched = False

    for spec in _candidate_codegens(mode, domain):
        if not _is_compatible(mode, spec):
            continue
        matching = constraint.filter(known.get(spec.language, ()))
        if not matching:
            logger.debug(
                "Version constraint %s matches no %s version; skipping codegen %s",
                constraint,
                spec.language,
                spec.letter,
            )
            continue
        any_version_matched = True
        versions = [v for v in matching if spec.accepts_version(v)]

        for flag, middle, backend, version in itertools.product(
            _flag_values(mode, spec, domain), middles, backends, versions
        ):
            concrete = ConcreteMode(
                codegen=spec.letter,
                flag_field=spec.flag_field,
                flag=flag,
                middle=middle,
                backend=backend,
                version=version,
                language=spec.language,
            )
            if concrete not in seen:
                seen.add(concrete)
                result.append(concrete)

    if not result:
        if not any_version_matched:
            raise VersionUnavailable(
                str(constraint),
                {lang: tuple(str(v) for v in versions) for lang, versions in known.items()},
            )
        raise UnsupportedCombination(
            render_mode(mode), "no configuration satisfies the compatibility table"
        )
    return tuple(result)


def expand_all(
    mode_strings: Iterable[str],
    domain: ModeDomain,
    known_versions: KnownVersions | None = None,
) -> tuple[ConcreteMode, ...]:
    """Union of several mode strings, first occurrence order.

    No mode strings at all means the whole combination space. A string whose
    version constraint matches no known version only narrows the union;
    VersionUnavailable is raised when no string yields anything.
    """
    texts = list(mode_strings) or [""]
    result: list[ConcreteMode] = []
    seen: set[ConcreteMode] = set()
    unavailable: VersionUnavailable | None = None
    for text in texts:
        try:
            expanded = expand_mode(parse_mode(text, domain), domain, known_versions)
        except VersionUnavailable as exc:
            logger.warning("Skipping mode %r: %s", text, exc)
            unavailable = exc
            continue
        for concrete in expanded:
            if concrete not in seen:
                seen.add(concrete)
                result.append(concrete)
    if not result and unavailable is not None:
        raise unavailable
    return tuple(result)


def total_combinations(domain: ModeDomain, known_versions: KnownVersions | None = None) -> int:
    """Size of the full combination space, derived from the domain."""
    known = domain.default_versions if known_versions is None else known_versions
    levels = len(domain.middle.values) * len(domain.backend.values)
    total = 0
    for spec in domain.codegens:
        versions = [v for v in known.get(spec.language, ()) if spec.accepts_version(v)]
        total += len(domain.flag_values(spec.flag_field)) * levels * len(versions)
    return total
