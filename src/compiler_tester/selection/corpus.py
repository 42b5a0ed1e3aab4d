"""Test corpus adapters.

The corpus is an external collaborator: anything that can enumerate test
descriptors under a root directory satisfies ``TestCorpus``. Two adapters
ship with the package:

- ``ManifestCorpus`` reads a ``corpus.yaml`` manifest.
- ``ExtensionCorpus`` walks the tree and classifies files by extension,
  reading version pragmas from the source header.
"""

import logging
import re
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Protocol

import yaml

from ..modes import ModeDomain, VersionConstraint
from ..modes.versions import VersionSyntaxError
from .models import PathFilter, TestDescriptor

logger = logging.getLogger(__name__)

MANIFEST_NAME = "corpus.yaml"

_PRAGMA_PATTERNS: dict[str, re.Pattern[str]] = {
    "solidity": re.compile(r"^\s*pragma\s+solidity\s+([^;]+);", re.MULTILINE),
    "vyper": re.compile(r"^\s*#\s*@?(?:version|pragma\s+version)\s+(\S.*)$", re.MULTILINE),
}

# Pragmas live in the header; no need to read whole contracts
_PRAGMA_SCAN_BYTES = 4096


class CorpusError(Exception):
    """The corpus could not be read or contains an invalid entry."""

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class TestCorpus(Protocol):
    def discover(self, root: Path, path_filter: PathFilter) -> Iterable[TestDescriptor]: ...


def _relative(path: Path, root: Path) -> str:
    return path.relative_to(root).as_posix()


class ExtensionCorpus:
    """Discover tests by file extension under a root directory."""

    def __init__(self, domain: ModeDomain) -> None:
        self.domain = domain

    def discover(self, root: Path, path_filter: PathFilter) -> Iterable[TestDescriptor]:
        root = Path(root)
        if not root.is_dir():
            raise CorpusError(root, "corpus root is not a directory")
        for path in sorted(root.rglob("*")):
            if not path.is_file():
                continue
            rel = _relative(path, root)
            language = self.domain.language_of(rel)
            if language is None or not path_filter.matches(rel):
                continue
            yield TestDescriptor(
                path=rel,
                codegens=frozenset(self.domain.codegens_for(language)),
                versions=self._read_pragma(path, language),
            )

    def _read_pragma(self, path: Path, language: str) -> VersionConstraint:
        pattern = _PRAGMA_PATTERNS.get(language)
        if pattern is None:
            return VersionConstraint.any()
        try:
            with path.open(encoding="utf-8", errors="replace") as f:
                header = f.read(_PRAGMA_SCAN_BYTES)
        except OSError as exc:
            raise CorpusError(path, f"cannot read test file: {exc}") from exc
        match = pattern.search(header)
        if not match:
            return VersionConstraint.any()
        try:
            return VersionConstraint.from_pragma(match.group(1))
        except VersionSyntaxError:
            logger.warning("Ignoring unsupported version pragma in %s: %s", path, match.group(1))
            return VersionConstraint.any()


class ManifestCorpus:
    """Discover tests listed in a YAML manifest at the corpus root.

    Manifest layout::

        tests:
          - path: simple/add.sol
            codegens: [Y, E]        # optional, defaults to the language's codegens
            versions: ">=0.8.0"     # optional, defaults to any version
    """

    def __init__(self, domain: ModeDomain, manifest_name: str = MANIFEST_NAME) -> None:
        self.domain = domain
        self.manifest_name = manifest_name

    def discover(self, root: Path, path_filter: PathFilter) -> Iterable[TestDescriptor]:
        manifest = Path(root) / self.manifest_name
        try:
            with manifest.open(encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except OSError as exc:
            raise CorpusError(manifest, f"cannot read manifest: {exc}") from exc
        except yaml.YAMLError as exc:
            raise CorpusError(manifest, f"invalid YAML: {exc}") from exc

        entries = data.get("tests") if isinstance(data, Mapping) else None
        if not isinstance(entries, list):
            raise CorpusError(manifest, "manifest must contain a 'tests' list")

        for index, entry in enumerate(entries):
            descriptor = self._build(manifest, index, entry)
            if path_filter.matches(descriptor.path):
                yield descriptor

    def _build(self, manifest: Path, index: int, entry: object) -> TestDescriptor:
        if isinstance(entry, str):
            entry = {"path": entry}
        if not isinstance(entry, Mapping) or not entry.get("path"):
            raise CorpusError(manifest, f"entry {index} has no 'path'")
        path = str(entry["path"])

        codegens = entry.get("codegens")
        if codegens is None:
            language = self.domain.language_of(path)
            if language is None:
                raise CorpusError(manifest, f"cannot infer codegens for {path!r}")
            codegens = self.domain.codegens_for(language)
        unknown = sorted(set(map(str, codegens)) - set(self.domain.codegen_letters))
        if unknown:
            raise CorpusError(manifest, f"unknown codegens for {path!r}: {', '.join(unknown)}")

        try:
            versions = VersionConstraint.parse(str(entry.get("versions", "*")))
        except VersionSyntaxError as exc:
            raise CorpusError(manifest, f"invalid versions for {path!r}: {exc}") from exc

        return TestDescriptor(path=path, codegens=frozenset(map(str, codegens)), versions=versions)


def open_corpus(root: Path, domain: ModeDomain) -> TestCorpus:
    """Pick the manifest adapter when the root carries a manifest, else extensions."""
    if (Path(root) / MANIFEST_NAME).is_file():
        return ManifestCorpus(domain)
    return ExtensionCorpus(domain)
