"""One-time password selection.

The credential source delivers a list of candidate codes, each with the
time it was issued and its validity period:

    [{"Code": "123456", "UnixTime": 1700000000, "Period": 30}, ...]

The first record that stays valid for at least the requested number of
seconds wins. Input order is priority order.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from weblogin.errors import InvalidCredentialValue, NoValidCode

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class OTPRecord:
    """One OTP candidate."""

    code: str = field(repr=False)
    issued_at: int  # unix seconds
    period: int     # seconds

    def remaining(self, now: int) -> int:
        """Seconds until this code expires. Negative once expired."""
        return self.issued_at + self.period - now

    @staticmethod
    def from_dict(d: Any, position: int = 0) -> OTPRecord:
        """Create from a payload record. Numeric times are rounded to whole seconds."""
        if not isinstance(d, dict):
            raise InvalidCredentialValue(f'OTP record {position} is not an object')
        for name in ('Code', 'UnixTime', 'Period'):
            if name not in d:
                raise InvalidCredentialValue(f'OTP record {position} has no {name!r}')
        try:
            issued_at = int(round(float(d['UnixTime'])))
            period = int(round(float(d['Period'])))
        except (TypeError, ValueError, OverflowError):
            raise InvalidCredentialValue(
                f'OTP record {position} has a non-numeric UnixTime or Period'
            ) from None
        code = d['Code']
        if isinstance(code, bool) or not isinstance(code, (str, int, float)):
            raise InvalidCredentialValue(f'OTP record {position} has a non-text Code')
        return OTPRecord(code=str(code), issued_at=issued_at, period=period)


def decode_records(value: Any) -> tuple[OTPRecord, ...]:
    """Decode an OTP credential value: a list of records, or a JSON string holding one."""
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            raise InvalidCredentialValue('OTP value is not valid JSON') from None
    if not isinstance(value, (list, tuple)):
        raise InvalidCredentialValue('OTP value is not a list of records')
    return tuple(OTPRecord.from_dict(d, i) for i, d in enumerate(value))


def select_code(
    records: Sequence[OTPRecord],
    min_seconds_before_expiry: int = 0,
    now: int | None = None,
) -> str:
    """Return the code of the first record valid for at least `min_seconds_before_expiry`.

    Raises NoValidCode when the list is empty or nothing qualifies.
    """
    if now is None:
        now = int(time.time())

    for i, record in enumerate(records):
        remaining = record.remaining(now)
        if remaining >= min_seconds_before_expiry:
            log.debug('OTP record %d selected, expiring in %ds', i + 1, remaining)
            return record.code
        if remaining < 0:
            log.warning('OTP record %d already expired (%ds), checking the next one', i + 1, remaining)
        else:
            log.debug(
                'OTP record %d expires in %ds, closer than the required %ds, checking the next one',
                i + 1, remaining, min_seconds_before_expiry,
            )

    raise NoValidCode(
        f'No OTP code valid for at least {min_seconds_before_expiry}s '
        f'among {len(records)} record(s)'
    )
