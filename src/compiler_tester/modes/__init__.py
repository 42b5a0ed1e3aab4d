"""Mode specification engine.

Modules:
    - domain: Static mode domain and compatibility table (loaded from YAML)
    - grammar: Mode string parsing and canonical rendering
    - expander: Expansion of partial modes into concrete modes
    - versions: Compiler version constraints
"""

from .domain import ModeDomain, load_domain, load_known_versions
from .errors import ModeError, ParseError, UnsupportedCombination, VersionUnavailable
from .expander import ConcreteMode, expand_all, expand_mode, total_combinations
from .grammar import PartialMode, canonicalize, parse_mode, render_mode
from .versions import Version, VersionConstraint

__all__ = [
    "ConcreteMode",
    "ModeDomain",
    "ModeError",
    "ParseError",
    "PartialMode",
    "UnsupportedCombination",
    "Version",
    "VersionConstraint",
    "VersionUnavailable",
    "canonicalize",
    "expand_all",
    "expand_mode",
    "load_domain",
    "load_known_versions",
    "parse_mode",
    "render_mode",
    "total_combinations",
]
