"""
Launcher configuration: macro grammar constants, keyboard symbols, runtime settings.

Frozen dataclass loaded from environment variables.
Loads ~/.weblogin/shared.env first (settings shared with other launchers),
then ~/.weblogin/weblogin.env (component-specific overrides).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path

from dotenv import load_dotenv

# --- Macro grammar ---
TOKEN_DELIMITER = '||'
FIELD_DELIMITER = '::'

# --- Keyboard symbols ---
# Operands starting with this prefix name a key instead of text to type.
KEY_PREFIX = 'kb.'

# Symbol (as written in a macro, after the prefix) -> key name for the browser.
KEY_SYMBOLS: dict[str, str] = {
    'Enter': 'Enter',
    'Return': 'Enter',
    'Tab': 'Tab',
    'Escape': 'Escape',
    'Backspace': 'Backspace',
    'Delete': 'Delete',
    'Space': 'Space',
    'ArrowUp': 'ArrowUp',
    'ArrowDown': 'ArrowDown',
    'ArrowLeft': 'ArrowLeft',
    'ArrowRight': 'ArrowRight',
    'Home': 'Home',
    'End': 'End',
    'PageUp': 'PageUp',
    'PageDown': 'PageDown',
}

# --- Credential composition ---
# Tried in this order; `{user}@{domain}` composes two looked-up values.
DEFAULT_SPLIT_SEPARATORS = '@\\/.:'

# --- Timing (milliseconds) ---
DEFAULT_INPUT_DELAY_MS = 500
DEFAULT_WAIT_TIMEOUT_MS = 30000

# --- Browser window ---
DEFAULT_WINDOW_WIDTH = 1280
DEFAULT_WINDOW_HEIGHT = 800

BROWSER_CHANNELS = ('chrome', 'msedge')

_TRUE = ('1', 'true', 'yes', 'on')
_FALSE = ('0', 'false', 'no', 'off', '')


def _int(key: str, default: int) -> int:
    raw = os.environ.get(key, '').strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f'{key} must be an integer, got {raw!r}') from None


def _bool(key: str, default: bool) -> bool:
    raw = os.environ.get(key)
    if raw is None:
        return default
    lowered = raw.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f'{key} must be a boolean, got {raw!r}')


def normalize_separators(raw: str) -> tuple[str, ...]:
    """Split a separator string into single characters, keeping first-seen order."""
    seen: list[str] = []
    for ch in raw:
        if ch.isspace() or ch in seen:
            continue
        seen.append(ch)
    return tuple(seen)


@dataclass(frozen=True)
class Config:
    """Immutable launcher configuration."""

    # Plan construction
    input_delay_ms: int
    split_separators: tuple[str, ...]

    # Browser
    browser_channel: str
    headless: bool
    incognito: bool
    ignore_https_errors: bool
    keep_open: bool
    wait_timeout_ms: int
    window_width: int
    window_height: int

    # Logging
    log_level: str
    log_dir: str

    @classmethod
    def load(cls) -> Config:
        """Load configuration from environment variables.

        Reads ~/.weblogin/shared.env, then ~/.weblogin/weblogin.env on top.
        Raises ValueError if a numeric or boolean variable cannot be parsed.
        """
        wl_dir = Path.home() / '.weblogin'
        shared_env = wl_dir / 'shared.env'
        component_env = wl_dir / 'weblogin.env'
        if shared_env.exists():
            load_dotenv(shared_env)
        if component_env.exists():
            load_dotenv(component_env, override=True)

        channel = os.environ.get('WEBLOGIN_BROWSER', 'chrome').strip().lower()
        if channel not in BROWSER_CHANNELS:
            raise ValueError(
                f"WEBLOGIN_BROWSER must be one of {', '.join(BROWSER_CHANNELS)}, got {channel!r}"
            )

        delay = _int('WEBLOGIN_DELAY_MS', DEFAULT_INPUT_DELAY_MS)
        if delay < 0:
            raise ValueError(f'WEBLOGIN_DELAY_MS must not be negative, got {delay}')

        return cls(
            input_delay_ms=delay,
            split_separators=normalize_separators(
                os.environ.get('WEBLOGIN_SPLIT_SEPARATORS', DEFAULT_SPLIT_SEPARATORS)
            ),
            browser_channel=channel,
            headless=_bool('WEBLOGIN_HEADLESS', False),
            incognito=_bool('WEBLOGIN_INCOGNITO', False),
            ignore_https_errors=_bool('WEBLOGIN_INSECURE', False),
            keep_open=_bool('WEBLOGIN_KEEP_OPEN', True),
            wait_timeout_ms=_int('WEBLOGIN_WAIT_TIMEOUT_MS', DEFAULT_WAIT_TIMEOUT_MS),
            window_width=_int('WEBLOGIN_WINDOW_WIDTH', DEFAULT_WINDOW_WIDTH),
            window_height=_int('WEBLOGIN_WINDOW_HEIGHT', DEFAULT_WINDOW_HEIGHT),
            log_level=os.environ.get('LOG_LEVEL', 'INFO').strip().upper(),
            log_dir=os.environ.get(
                'WEBLOGIN_LOG_DIR', str(wl_dir / 'logs'),
            ).strip(),
        )

    def with_overrides(self, **overrides) -> Config:
        """Return a copy with command-line values applied. None means 'not given'."""
        given = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **given)
