"""Shared pytest configuration for weblogin tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# weblogin/ is a namespace package (no __init__.py). Modules inside use
# `from weblogin.xxx import ...`, so the PROJECT ROOT (parent of weblogin/)
# must be on sys.path and weblogin/ itself must not be.
_PROJECT_ROOT = str(Path(__file__).resolve().parent.parent.parent)
_PACKAGE_DIR = str(Path(__file__).resolve().parent.parent)

sys.path[:] = [p for p in sys.path if p != _PACKAGE_DIR]

if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

from weblogin.operands import SplitSpec
from weblogin.plan import RunContext

# Fixed "now" for every OTP test (2023-11-14 22:13:20 UTC)
NOW = 1_700_000_000

_ENV_KEYS = (
    'WEBLOGIN_DELAY_MS', 'WEBLOGIN_SPLIT_SEPARATORS', 'WEBLOGIN_BROWSER',
    'WEBLOGIN_HEADLESS', 'WEBLOGIN_INCOGNITO', 'WEBLOGIN_INSECURE',
    'WEBLOGIN_KEEP_OPEN', 'WEBLOGIN_WAIT_TIMEOUT_MS', 'WEBLOGIN_WINDOW_WIDTH',
    'WEBLOGIN_WINDOW_HEIGHT', 'WEBLOGIN_LOG_DIR', 'LOG_LEVEL',
)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def otp(code: str, age: int, period: int = 30) -> dict:
    """Payload-shaped OTP record issued `age` seconds before NOW."""
    return {'Code': code, 'UnixTime': NOW - age, 'Period': period}


# ---------------------------------------------------------------------------
# Shared fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Clear weblogin env vars and point HOME at an empty directory (no env files)."""
    for key in _ENV_KEYS:
        # setenv first so teardown also removes anything load_dotenv() adds
        monkeypatch.setenv(key, '')
        monkeypatch.delenv(key)
    monkeypatch.setenv('HOME', str(tmp_path))
    return tmp_path


@pytest.fixture()
def credentials() -> dict:
    """A sample credential source."""
    return {
        'user': 'alice',
        'domain': 'corp',
        'pw': 's3cr3t',
        'pin': 4711,
        'totp': [
            otp('111111', age=40),   # expired 10s ago
            otp('222222', age=25),   # 5s left
            otp('333333', age=5),    # 25s left
        ],
    }


@pytest.fixture()
def run_context(credentials: dict) -> RunContext:
    """Run context with the sample credentials, '@' and '\\' separators, and a fixed clock."""
    return RunContext(
        session_id='test-session-001',
        credentials=credentials,
        split_spec=SplitSpec(separators=('@', '\\')),
        input_delay_ms=500,
        clock=lambda: NOW,
    )
