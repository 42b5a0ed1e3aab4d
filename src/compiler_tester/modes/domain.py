"""Static mode domain and compatibility table.

The domain is read once from ``config/domain.yaml`` and passed explicitly to
the grammar and the expander; nothing here is process-wide mutable state.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from ..config import DOMAIN_PATH
from .versions import Version, VersionSyntaxError, parse_versions

logger = logging.getLogger(__name__)

FRONTEND_OPTIMIZER = "frontend_optimizer"
SECONDARY_OPTIMIZER = "secondary_optimizer"
FLAG_FIELDS = (FRONTEND_OPTIMIZER, SECONDARY_OPTIMIZER)

KnownVersions = Mapping[str, tuple[Version, ...]]


@dataclass(frozen=True)
class CodegenSpec:
    letter: str
    language: str
    flag_field: str
    description: str = ""
    min_version: Version | None = None

    def accepts_version(self, version: Version) -> bool:
        return self.min_version is None or version >= self.min_version


@dataclass(frozen=True)
class LevelSpec:
    values: tuple[str, ...]
    subsets: tuple[tuple[str, tuple[str, ...]], ...] = ()

    def subset(self, name: str) -> tuple[str, ...] | None:
        for subset_name, members in self.subsets:
            if subset_name == name:
                return members
        return None


@dataclass(frozen=True)
class ModeDomain:
    codegens: tuple[CodegenSpec, ...]
    flags: tuple[tuple[str, tuple[str, ...]], ...]
    middle: LevelSpec
    backend: LevelSpec
    default_versions: Mapping[str, tuple[Version, ...]]
    extensions: tuple[tuple[str, str], ...] = ()

    @property
    def codegen_letters(self) -> tuple[str, ...]:
        return tuple(spec.letter for spec in self.codegens)

    @property
    def languages(self) -> tuple[str, ...]:
        return tuple(self.default_versions)

    def language_of(self, path: str) -> str | None:
        for suffix, language in self.extensions:
            if path.endswith(suffix):
                return language
        return None

    def codegens_for(self, language: str) -> tuple[str, ...]:
        return tuple(spec.letter for spec in self.codegens if spec.language == language)

    def codegen(self, letter: str) -> CodegenSpec | None:
        for spec in self.codegens:
            if spec.letter == letter:
                return spec
        return None

    def flag_values(self, field: str) -> tuple[str, ...]:
        for name, values in self.flags:
            if name == field:
                return values
        raise KeyError(field)


def _require(data: Mapping[str, Any], key: str, where: str) -> Any:
    if key not in data:
        raise RuntimeError(f"Mode domain is missing '{key}' in {where}")
    return data[key]


def _build_level(data: Mapping[str, Any], where: str) -> LevelSpec:
    values = tuple(str(v) for v in _require(data, "values", where))
    subsets: list[tuple[str, tuple[str, ...]]] = []
    for name, members in (data.get("subsets") or {}).items():
        members = tuple(str(m) for m in members)
        unknown = [m for m in members if m not in values]
        if unknown:
            raise RuntimeError(f"Subset {name!r} of {where} has unknown values: {unknown}")
        subsets.append((str(name), members))
    return LevelSpec(values=values, subsets=tuple(subsets))


def build_domain(data: Mapping[str, Any]) -> ModeDomain:
    """Validate raw domain data (as read from YAML) into a ModeDomain."""
    languages = _require(data, "languages", "root")
    default_versions: dict[str, tuple[Version, ...]] = {}
    extensions: list[tuple[str, str]] = []
    for language, spec in languages.items():
        try:
            default_versions[str(language)] = parse_versions((spec or {}).get("versions", []))
        except VersionSyntaxError as exc:
            raise RuntimeError(f"Invalid version for language {language!r}: {exc}") from exc
        for suffix in (spec or {}).get("extensions", []):
            extensions.append((str(suffix), str(language)))

    flags = tuple(
        (str(name), tuple(str(v) for v in values))
        for name, values in _require(data, "flags", "root").items()
    )
    flag_names = {name for name, _ in flags}

    codegens: list[CodegenSpec] = []
    for letter, spec in _require(data, "codegens", "root").items():
        where = f"codegen {letter!r}"
        language = str(_require(spec, "language", where))
        flag_field = str(_require(spec, "flag", where))
        if language not in default_versions:
            raise RuntimeError(f"Unknown language {language!r} in {where}")
        if flag_field not in flag_names:
            raise RuntimeError(f"Unknown flag field {flag_field!r} in {where}")
        min_version = spec.get("min_version")
        codegens.append(
            CodegenSpec(
                letter=str(letter),
                language=language,
                flag_field=flag_field,
                description=str(spec.get("description", "")),
                min_version=Version.parse(str(min_version)) if min_version else None,
            )
        )

    levels = _require(data, "levels", "root")
    return ModeDomain(
        codegens=tuple(codegens),
        flags=flags,
        middle=_build_level(_require(levels, "middle", "levels"), "middle level"),
        backend=_build_level(_require(levels, "backend", "levels"), "backend level"),
        default_versions=MappingProxyType(default_versions),
        extensions=tuple(extensions),
    )


@lru_cache(maxsize=4)
def load_domain(path: Path = DOMAIN_PATH) -> ModeDomain:
    """Load the mode domain from YAML (cached per path)."""
    with Path(path).open(encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, Mapping):
        raise RuntimeError(f"Mode domain file must contain a mapping: {path}")
    domain = build_domain(data)
    logger.debug("Loaded mode domain from %s (%d codegens)", path, len(domain.codegens))
    return domain


def load_known_versions(path: Path | str, domain: ModeDomain) -> KnownVersions:
    """Load known/installed versions per language from a YAML mapping.

    Languages missing from the file keep no versions, so their codegens
    expand to nothing.
    """
    with Path(path).open(encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, Mapping):
        raise RuntimeError(f"Versions file must map language to a list of versions: {path}")
    unknown = sorted(set(data) - set(domain.languages))
    if unknown:
        raise RuntimeError(f"Unknown languages in versions file {path}: {', '.join(unknown)}")
    try:
        versions = {lang: parse_versions(data.get(lang) or []) for lang in domain.languages}
    except VersionSyntaxError as exc:
        raise RuntimeError(f"Invalid version in {path}: {exc}") from exc
    return MappingProxyType(versions)
