"""Operand resolution: turn one macro field into the value that gets typed.

Resolution order:
    {expr}      credential key expression; `{left}<sep>{right}` composes two keys
    kb.<Name>   keyboard key (see config.KEY_SYMBOLS)
    anything    literal text, typed as given
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Union

from weblogin.config import DEFAULT_SPLIT_SEPARATORS, KEY_PREFIX, KEY_SYMBOLS, normalize_separators
from weblogin.errors import InvalidCredentialValue, MissingCredentialKey, UnresolvedKeyboardSymbol

log = logging.getLogger(__name__)

REDACTED = '<redacted>'


# ---------------------------------------------------------------------------
# Resolved operand variants
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LiteralValue:
    """Static text from the macro itself."""

    text: str

    sensitive = False

    def describe(self) -> str:
        return repr(self.text)


@dataclass(frozen=True)
class KeyboardKey:
    """A named key press (Enter, Tab, ...)."""

    symbol: str  # as written after the prefix
    key: str     # browser key name

    sensitive = False

    @property
    def text(self) -> str:
        return ''

    def describe(self) -> str:
        return f'<key {self.key}>'


@dataclass(frozen=True)
class CredentialValue:
    """Text looked up in the credential source. Never shown in repr or logs."""

    key: str  # the key expression it came from
    text: str = field(repr=False)

    sensitive = True

    def describe(self) -> str:
        return f'{REDACTED} from {{{self.key}}}'


ResolvedOperand = Union[LiteralValue, KeyboardKey, CredentialValue]


# ---------------------------------------------------------------------------
# SplitSpec
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SplitSpec:
    """Ordered separator characters for composed credential operands."""

    separators: tuple[str, ...] = normalize_separators(DEFAULT_SPLIT_SEPARATORS)

    def __post_init__(self) -> None:
        for sep in self.separators:
            if len(sep) != 1:
                raise ValueError(f'Split separators must be single characters, got {sep!r}')

    @staticmethod
    def from_string(raw: str) -> SplitSpec:
        return SplitSpec(separators=normalize_separators(raw))

    def match(self, expr: str) -> tuple[str, str, str] | None:
        """Return (left, separator, right) for the first separator whose `}c{` marker occurs."""
        for sep in self.separators:
            marker = '}' + sep + '{'
            left, found, right = expr.partition(marker)
            if found:
                return left, sep, right
        return None


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def lookup(source: Mapping[str, Any], key: str) -> str:
    """Fetch a scalar credential as text. Raises MissingCredentialKey if absent."""
    if key not in source:
        raise MissingCredentialKey(key)
    value = source[key]
    if isinstance(value, (list, tuple, dict)) or value is None:
        raise InvalidCredentialValue(
            f'Credential {key!r} is not a scalar value ({type(value).__name__})'
        )
    if isinstance(value, bool):
        # JSON spelling, not Python's
        return 'true' if value else 'false'
    return str(value)


def is_braced(operand: str) -> bool:
    return len(operand) >= 2 and operand.startswith('{') and operand.endswith('}')


def resolve_key_expression(
    expr: str, source: Mapping[str, Any], split_spec: SplitSpec,
) -> CredentialValue:
    """Resolve the inside of a `{...}` operand against the credential source."""
    parts = split_spec.match(expr)
    if parts is not None:
        left, sep, right = parts
        # Both halves must exist before anything is composed
        left_value = lookup(source, left)
        right_value = lookup(source, right)
        log.debug('Composed credential {%s} from %r %r %r', expr, left, sep, right)
        return CredentialValue(key=expr, text=left_value + sep + right_value)
    return CredentialValue(key=expr, text=lookup(source, expr))


def resolve_keyboard(operand: str) -> KeyboardKey:
    symbol = operand[len(KEY_PREFIX):]
    key = KEY_SYMBOLS.get(symbol)
    if key is None:
        raise UnresolvedKeyboardSymbol(symbol)
    return KeyboardKey(symbol=symbol, key=key)


def resolve_operand(
    operand: str, source: Mapping[str, Any], split_spec: SplitSpec,
) -> ResolvedOperand:
    """Resolve one operand field. Pure: the source is only read."""
    if is_braced(operand):
        return resolve_key_expression(operand[1:-1], source, split_spec)
    if operand.startswith(KEY_PREFIX):
        return resolve_keyboard(operand)
    return LiteralValue(text=operand)
