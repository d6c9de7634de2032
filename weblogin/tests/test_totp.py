"""Tests for OTP record decoding and first-fit code selection.

Run: python -m pytest weblogin/tests/test_totp.py -v
"""

from __future__ import annotations

import json

import pytest

from conftest import NOW, otp
from weblogin.errors import InvalidCredentialValue, NoValidCode
from weblogin.totp import OTPRecord, decode_records, select_code


def _record(code: str, remaining: int, period: int = 30) -> OTPRecord:
    """Record with exactly `remaining` seconds left at NOW."""
    return OTPRecord(code=code, issued_at=NOW - period + remaining, period=period)


# ---------------------------------------------------------------------------
# select_code
# ---------------------------------------------------------------------------


class TestSelectCode:
    """First qualifying record wins; expired and too-close records are skipped."""

    def test_first_fit_not_best_fit(self) -> None:
        """Both qualify: record 0 wins even though record 1 has more time left."""
        records = [_record('000000', remaining=10), _record('111111', remaining=29)]
        assert select_code(records, 5, now=NOW) == '000000'

    def test_skips_expired(self) -> None:
        records = [_record('000000', remaining=-5), _record('111111', remaining=20)]
        assert select_code(records, 0, now=NOW) == '111111'

    def test_skips_too_close(self) -> None:
        records = [_record('000000', remaining=3), _record('111111', remaining=20)]
        assert select_code(records, 10, now=NOW) == '111111'

    def test_boundary_is_inclusive(self) -> None:
        """remaining == min qualifies."""
        assert select_code([_record('000000', remaining=10)], 10, now=NOW) == '000000'

    def test_one_below_boundary_fails(self) -> None:
        with pytest.raises(NoValidCode):
            select_code([_record('000000', remaining=9)], 10, now=NOW)

    def test_default_threshold_accepts_zero_remaining(self) -> None:
        assert select_code([_record('000000', remaining=0)], now=NOW) == '000000'

    def test_expired_never_selected(self) -> None:
        records = [_record('000000', remaining=-5), _record('111111', remaining=2)]
        with pytest.raises(NoValidCode):
            select_code(records, 5, now=NOW)

    def test_empty_list(self) -> None:
        with pytest.raises(NoValidCode):
            select_code([], 0, now=NOW)

    def test_error_text_has_no_codes(self) -> None:
        with pytest.raises(NoValidCode) as exc_info:
            select_code([_record('987654', remaining=-1)], 0, now=NOW)
        assert '987654' not in str(exc_info.value)

    def test_now_defaults_to_wall_clock(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr('weblogin.totp.time.time', lambda: float(NOW))
        assert select_code([_record('000000', remaining=15)], 10) == '000000'


# ---------------------------------------------------------------------------
# decode_records / OTPRecord.from_dict
# ---------------------------------------------------------------------------


class TestDecodeRecords:
    """Payload records to OTPRecord."""

    def test_list_of_dicts(self) -> None:
        records = decode_records([otp('123456', age=5)])
        assert records == (OTPRecord(code='123456', issued_at=NOW - 5, period=30),)

    def test_json_string(self) -> None:
        records = decode_records(json.dumps([otp('123456', age=5), otp('654321', age=35)]))
        assert [r.code for r in records] == ['123456', '654321']

    def test_float_times_rounded(self) -> None:
        (record,) = decode_records([{'Code': '1', 'UnixTime': 1700000000.6, 'Period': 30.0}])
        assert record.issued_at == 1700000001
        assert record.period == 30

    def test_numeric_code_becomes_text(self) -> None:
        (record,) = decode_records([{'Code': 42, 'UnixTime': NOW, 'Period': 30}])
        assert record.code == '42'

    def test_missing_field(self) -> None:
        with pytest.raises(InvalidCredentialValue) as exc_info:
            decode_records([{'Code': '123456', 'UnixTime': NOW}])
        assert 'Period' in str(exc_info.value)
        assert '123456' not in str(exc_info.value)

    def test_non_numeric_time(self) -> None:
        with pytest.raises(InvalidCredentialValue):
            decode_records([{'Code': '1', 'UnixTime': 'soon', 'Period': 30}])

    def test_infinite_time_rejected(self) -> None:
        value = json.loads('[{"Code": "1", "UnixTime": 1e400, "Period": 30}]')
        with pytest.raises(InvalidCredentialValue, match='non-numeric'):
            decode_records(value)

    def test_infinite_period_string_rejected(self) -> None:
        with pytest.raises(InvalidCredentialValue):
            decode_records([{'Code': '1', 'UnixTime': NOW, 'Period': 'inf'}])

    def test_null_code_rejected(self) -> None:
        with pytest.raises(InvalidCredentialValue, match='non-text Code'):
            decode_records([{'Code': None, 'UnixTime': NOW, 'Period': 30}])

    @pytest.mark.parametrize('code', [['1', '2'], {'v': '1'}, True])
    def test_structured_or_bool_code_rejected(self, code: object) -> None:
        with pytest.raises(InvalidCredentialValue):
            decode_records([{'Code': code, 'UnixTime': NOW, 'Period': 30}])

    def test_bad_json(self) -> None:
        with pytest.raises(InvalidCredentialValue):
            decode_records('[{"Code": ')

    def test_not_a_list(self) -> None:
        with pytest.raises(InvalidCredentialValue):
            decode_records({'Code': '1', 'UnixTime': NOW, 'Period': 30})

    def test_record_not_an_object(self) -> None:
        with pytest.raises(InvalidCredentialValue):
            decode_records(['123456'])

    def test_repr_hides_code(self) -> None:
        assert '123456' not in repr(OTPRecord(code='123456', issued_at=NOW, period=30))
