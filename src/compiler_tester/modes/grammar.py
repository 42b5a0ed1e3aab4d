"""Mode string grammar.

A mode string is a compact description of the configurations to run, for
example ``Y+M3B3 0.8.19`` (Yul codegen, front-end optimizer on, middle-end
level 3, back-end level 3, compiler 0.8.19). Tokens appear in a fixed order
and every one is optional:

    [codegen] [sign] [M level] [B level] [version]

Interior whitespace is insignificant. Fields that are not mentioned stay
unset and behave like ``*`` during expansion, so the empty string describes
the whole combination space.
"""

from dataclasses import dataclass

from .domain import FLAG_FIELDS, ModeDomain
from .errors import ParseError, UnsupportedCombination
from .versions import VersionConstraint, VersionSyntaxError

WILDCARD = "*"
SUBSET = "^"
SIGNS = ("+", "-", WILDCARD)

_MIDDLE_PREFIX = "M"
_BACKEND_PREFIX = "B"
_VERSION_START = frozenset("0123456789<>=^~*")


@dataclass(frozen=True)
class PartialMode:
    """A mode with possibly wildcarded or unset fields.

    ``None`` means the field was not mentioned; ``"*"`` is an explicit
    wildcard and ``"^"`` a named subset. Both flag fields carry the same sign
    when the codegen is not concrete.
    """

    codegen: str | None = None
    frontend_optimizer: str | None = None
    secondary_optimizer: str | None = None
    middle: str | None = None
    backend: str | None = None
    version: VersionConstraint | None = None

    def flag(self, field: str) -> str | None:
        return getattr(self, field)

    @property
    def has_concrete_codegen(self) -> bool:
        return self.codegen is not None and self.codegen != WILDCARD

    def __str__(self) -> str:
        return render_mode(self)


def _sign_of(mode: PartialMode) -> str:
    if mode.frontend_optimizer is not None:
        return mode.frontend_optimizer
    return mode.secondary_optimizer or ""


def render_mode(mode: PartialMode) -> str:
    """Render the canonical form: no interior spaces except before the version."""
    head = (mode.codegen or "") + _sign_of(mode)
    if mode.middle is not None:
        head += _MIDDLE_PREFIX + mode.middle
    if mode.backend is not None:
        head += _BACKEND_PREFIX + mode.backend
    if mode.version is None:
        return head
    return f"{head} {mode.version}" if head else str(mode.version)


def _check_value(
    text: str, name: str, value: str | None, allowed: tuple[str, ...], subset_ok: bool
) -> None:
    if value is None or value == WILDCARD or value in allowed:
        return
    if value == SUBSET and not subset_ok:
        raise UnsupportedCombination(text, f"{name} has no named subset '{SUBSET}'")
    if value == SUBSET:
        return
    raise UnsupportedCombination(text, f"unknown {name} {value!r}")


def validate_partial(mode: PartialMode, domain: ModeDomain, text: str | None = None) -> None:
    """Reject field combinations the compatibility table forbids outright."""
    text = render_mode(mode) if text is None else text

    if mode.backend is not None and mode.middle is None:
        raise UnsupportedCombination(text, "a back-end level requires a middle-end level")

    middle_subset = domain.middle.subset(SUBSET) is not None
    backend_subset = domain.backend.subset(SUBSET) is not None
    _check_value(text, "middle-end level", mode.middle, domain.middle.values, middle_subset)
    _check_value(text, "back-end level", mode.backend, domain.backend.values, backend_subset)
    for field in FLAG_FIELDS:
        label = field.replace("_", " ")
        _check_value(text, label, mode.flag(field), domain.flag_values(field), False)

    if mode.codegen is None or mode.codegen == WILDCARD:
        return
    spec = domain.codegen(mode.codegen)
    if spec is None:
        raise UnsupportedCombination(text, f"unknown codegen {mode.codegen!r}")
    for field in FLAG_FIELDS:
        if field != spec.flag_field and mode.flag(field) is not None:
            raise UnsupportedCombination(
                text, f"{field.replace('_', ' ')} is not valid with codegen {spec.letter!r}"
            )


def _parse_level(
    text: str, compact: str, pos: int, prefix: str, allowed: tuple[str, ...]
) -> tuple[str, int]:
    if pos + 1 >= len(compact):
        raise ParseError(text, pos, compact[pos:], f"missing level after '{prefix}'")
    value = compact[pos + 1]
    if value not in allowed and value not in (WILDCARD, SUBSET):
        raise ParseError(text, pos + 1, value, f"unknown level after '{prefix}'")
    return value, pos + 2


def parse_mode(text: str, domain: ModeDomain) -> PartialMode:
    """Parse a mode string into a PartialMode.

    Raises:
        ParseError: The string is malformed.
        UnsupportedCombination: The fields conflict with the compatibility table.
    """
    compact = "".join(text.split())
    pos = 0
    values: dict[str, object] = {}

    if pos < len(compact) and (compact[pos] in domain.codegen_letters or compact[pos] == WILDCARD):
        values["codegen"] = compact[pos]
        pos += 1

    if pos < len(compact) and compact[pos] in SIGNS:
        sign = compact[pos]
        spec = domain.codegen(str(values.get("codegen", "")))
        for field in FLAG_FIELDS if spec is None else (spec.flag_field,):
            values[field] = sign
        pos += 1

    if pos < len(compact) and compact[pos] == _MIDDLE_PREFIX:
        values["middle"], pos = _parse_level(
            text, compact, pos, _MIDDLE_PREFIX, domain.middle.values
        )

    if pos < len(compact) and compact[pos] == _BACKEND_PREFIX:
        values["backend"], pos = _parse_level(
            text, compact, pos, _BACKEND_PREFIX, domain.backend.values
        )

    if pos < len(compact):
        rest = compact[pos:]
        if rest[0] not in _VERSION_START:
            raise ParseError(text, pos, rest[0], "unexpected token")
        try:
            values["version"] = VersionConstraint.parse(rest)
        except VersionSyntaxError as exc:
            raise ParseError(
                text, pos + exc.offset, exc.fragment, "invalid version constraint"
            ) from exc

    mode = PartialMode(**values)  # type: ignore[arg-type]
    validate_partial(mode, domain, text)
    return mode


def canonicalize(text: str, domain: ModeDomain) -> str:
    """Return the canonical rendering of a mode string."""
    return render_mode(parse_mode(text, domain))
