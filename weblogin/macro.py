"""Action macro tokenizer.

Grammar:
    macro  := '' | token ('||' token)*
    token  := kind ('::' field)*
    kind   := 'c' | 'v' | 's' | 'o'

Only splitting happens here. Whether a token's fields fit its kind is
checked by the plan builder.
"""

from __future__ import annotations

from dataclasses import dataclass

from weblogin.config import FIELD_DELIMITER, TOKEN_DELIMITER


@dataclass(frozen=True)
class RawAction:
    """One macro token split into its kind tag and operand fields."""

    index: int  # position in the macro, 0-based
    kind: str
    fields: tuple[str, ...] = ()

    @property
    def arity(self) -> int:
        return len(self.fields)

    @property
    def selector(self) -> str:
        """First operand. Every kind targets an element through it."""
        return self.fields[0] if self.fields else ''

    @staticmethod
    def from_token(index: int, token: str) -> RawAction:
        parts = token.split(FIELD_DELIMITER)
        return RawAction(index=index, kind=parts[0], fields=tuple(parts[1:]))


def parse_macro(text: str) -> tuple[RawAction, ...]:
    """Split a macro into raw actions, in order.

    An empty macro is zero actions, not one empty token.
    """
    if not text:
        return ()
    return tuple(
        RawAction.from_token(i, token)
        for i, token in enumerate(text.split(TOKEN_DELIMITER))
    )
