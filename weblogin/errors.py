"""Failure taxonomy for macro parsing, credential resolution, and plan construction.

Every error is terminal for the run. Messages carry kind tags, selectors,
key names and token positions only, never a credential value.
"""

from __future__ import annotations


class MacroError(ValueError):
    """Base class for everything that aborts plan construction."""


class MalformedAction(MacroError):
    """A token's kind is unknown or its field count does not fit the kind."""


class MissingCredentialKey(MacroError, LookupError):
    """An operand references a key absent from the credential source."""

    def __init__(self, key: str):
        super().__init__(f'Credential key not found: {key!r}')
        self.key = key


class NoValidCode(MacroError):
    """No OTP record is fresh enough to be entered."""


class UnresolvedKeyboardSymbol(MacroError):
    """A keyboard operand names a symbol outside the recognized set."""

    def __init__(self, symbol: str):
        super().__init__(f'Unknown keyboard symbol: {symbol!r}')
        self.symbol = symbol


class InvalidCredentialValue(MacroError):
    """A credential value has the wrong shape for the way it is used."""


class PayloadError(ValueError):
    """The credential payload cannot be read or is not a JSON object."""
