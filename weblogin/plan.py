"""Action plan data structures, run context, and the plan builder.

Usage:
    ctx = RunContext.create(credentials, split_spec=SplitSpec(('@',)))
    plan = PlanBuilder(ctx).build('https://example.com/login', parse_macro(text))
    ctx.destroy()
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any, Union

from weblogin.config import DEFAULT_INPUT_DELAY_MS
from weblogin.errors import MalformedAction, MissingCredentialKey
from weblogin.macro import RawAction
from weblogin.operands import (
    CredentialValue,
    ResolvedOperand,
    SplitSpec,
    is_braced,
    lookup,
    resolve_key_expression,
    resolve_operand,
)
from weblogin.totp import decode_records, select_code

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Abstract actions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Navigate:
    url: str

    def describe(self) -> str:
        return f'Navigate {self.url}'


@dataclass(frozen=True)
class Wait:
    duration_ms: int

    def describe(self) -> str:
        return f'Wait {self.duration_ms} ms'


@dataclass(frozen=True)
class WaitUntilReady:
    selector: str

    def describe(self) -> str:
        return f'WaitUntilReady {self.selector}'


@dataclass(frozen=True)
class Click:
    selector: str

    def describe(self) -> str:
        return f'Click {self.selector}'


@dataclass(frozen=True)
class SendKeys:
    selector: str
    value: ResolvedOperand

    @property
    def text(self) -> str:
        return self.value.text

    def describe(self) -> str:
        return f'SendKeys {self.selector} <- {self.value.describe()}'


AbstractAction = Union[Navigate, Wait, WaitUntilReady, Click, SendKeys]


@dataclass(frozen=True)
class ActionPlan:
    """Ordered actions, exactly in execution order."""

    actions: tuple[AbstractAction, ...] = ()

    def __len__(self) -> int:
        return len(self.actions)

    def __iter__(self) -> Iterator[AbstractAction]:
        return iter(self.actions)

    def __getitem__(self, idx: int) -> AbstractAction:
        return self.actions[idx]

    def describe(self) -> list[str]:
        """Log-safe one-line description per action."""
        return [a.describe() for a in self.actions]


# ---------------------------------------------------------------------------
# RunContext
# ---------------------------------------------------------------------------

@dataclass
class RunContext:
    """Everything one run needs: session id, credentials, and plan settings."""

    session_id: str
    credentials: dict[str, Any] = field(default_factory=dict)
    split_spec: SplitSpec = field(default_factory=SplitSpec)
    input_delay_ms: int = DEFAULT_INPUT_DELAY_MS
    clock: Callable[[], float] = time.time

    def __post_init__(self) -> None:
        # Private copy so destroy() never touches the caller's mapping
        self.credentials = dict(self.credentials)

    @staticmethod
    def create(credentials: Any = None, **kwargs) -> RunContext:
        """New context with a fresh session id."""
        return RunContext(
            session_id=str(uuid.uuid4()),
            credentials=dict(credentials or {}),
            **kwargs,
        )

    def now(self) -> int:
        return int(self.clock())

    def destroy(self) -> None:
        """Overwrite and drop all credential values. Call in finally blocks."""
        for key, value in list(self.credentials.items()):
            if isinstance(value, str):
                self.credentials[key] = '\x00' * len(value)
        self.credentials.clear()


# ---------------------------------------------------------------------------
# PlanBuilder
# ---------------------------------------------------------------------------

# kind -> (allowed field counts, format shown when a token does not fit)
ACTION_SHAPES: dict[str, tuple[tuple[int, ...], str]] = {
    'c': ((1,), 'c::<selector>'),
    'v': ((2,), 'v::<selector>::<value>'),
    's': ((2,), 's::<selector>::<credential-key>'),
    'o': ((2, 3), 'o::<selector>::<otp-credential-key>::<optional-min-seconds-before-expiry>'),
}

ACTION_NAMES = {
    'c': 'Click',
    'v': 'Enter value',
    's': 'Enter secret',
    'o': 'Enter TOTP code',
}


class PlanBuilder:
    """Turns raw macro actions into an ActionPlan, single pass, in order."""

    def __init__(self, ctx: RunContext):
        self._ctx = ctx

    def build(self, login_url: str, actions: Iterable[RawAction]) -> ActionPlan:
        """Build the full plan. Any failure raises and no plan is returned."""
        sid = self._ctx.session_id
        plan: list[AbstractAction] = [Navigate(login_url)]
        log.debug('[%s] plan: Navigate to target url=%s', sid, login_url)

        for raw in actions:
            self._check_shape(raw)
            handler = self._get_handler(raw.kind)
            action = handler(raw)

            wait = self._wait_for(raw)
            plan.append(wait)
            plan.append(action)
            log.debug(
                '[%s] plan: %s | %s | %s',
                sid, wait.describe(), ACTION_NAMES[raw.kind], action.describe(),
            )

        log.info('[%s] Built plan with %d actions', sid, len(plan))
        return ActionPlan(actions=tuple(plan))

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _check_shape(self, raw: RawAction) -> None:
        shape = ACTION_SHAPES.get(raw.kind)
        if shape is None:
            raise MalformedAction(f'Action {raw.index}: unknown kind {raw.kind!r}')
        counts, fmt = shape
        if raw.arity not in counts:
            raise MalformedAction(
                f'Action {raw.index}: {ACTION_NAMES[raw.kind]} action with improper '
                f'number of configuration items ({raw.arity}). Format: {fmt}'
            )
        if not raw.selector:
            raise MalformedAction(f'Action {raw.index}: {ACTION_NAMES[raw.kind]} action has an empty selector')

    def _get_handler(self, kind: str) -> Callable[[RawAction], AbstractAction]:
        handlers = {
            'c': self._handle_click,
            'v': self._handle_value,
            's': self._handle_secret,
            'o': self._handle_otp,
        }
        return handlers[kind]

    def _wait_for(self, raw: RawAction) -> Wait | WaitUntilReady:
        if self._ctx.input_delay_ms > 0:
            return Wait(self._ctx.input_delay_ms)
        return WaitUntilReady(raw.selector)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _handle_click(self, raw: RawAction) -> Click:
        return Click(raw.selector)

    def _handle_value(self, raw: RawAction) -> SendKeys:
        value = resolve_operand(raw.fields[1], self._ctx.credentials, self._ctx.split_spec)
        return SendKeys(raw.selector, value)

    def _handle_secret(self, raw: RawAction) -> SendKeys:
        """Secrets always come from the credential source, braces optional."""
        operand = raw.fields[1]
        if is_braced(operand):
            value = resolve_key_expression(operand[1:-1], self._ctx.credentials, self._ctx.split_spec)
        else:
            value = CredentialValue(key=operand, text=lookup(self._ctx.credentials, operand))
        return SendKeys(raw.selector, value)

    def _handle_otp(self, raw: RawAction) -> SendKeys:
        sid = self._ctx.session_id
        key = raw.fields[1][1:-1] if is_braced(raw.fields[1]) else raw.fields[1]

        min_seconds = 0
        if raw.arity == 3:
            try:
                min_seconds = int(raw.fields[2])
            except ValueError:
                raise MalformedAction(
                    f'Action {raw.index}: min seconds before expiry must be an integer, '
                    f'got {raw.fields[2]!r}'
                ) from None

        if key not in self._ctx.credentials:
            raise MissingCredentialKey(key)

        records = decode_records(self._ctx.credentials[key])
        now = self._ctx.now()
        log.debug(
            '[%s] Looking up valid TOTP code: %d record(s), required seconds before expiry %d, now %d',
            sid, len(records), min_seconds, now,
        )
        code = select_code(records, min_seconds, now)
        return SendKeys(raw.selector, CredentialValue(key=key, text=code))


def build_plan(ctx: RunContext, login_url: str, actions: Iterable[RawAction]) -> ActionPlan:
    """Shorthand for PlanBuilder(ctx).build(...)."""
    return PlanBuilder(ctx).build(login_url, actions)
