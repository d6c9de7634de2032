"""Credential payload: the JSON object that carries secrets out-of-band.

The launcher never takes secrets on the command line. They arrive as one
JSON object, from a file or piped on stdin:

    {"user": "alice", "domain": "corp", "pw": "...", "totp": [{"Code": ...}]}
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import IO, Any

from weblogin.errors import PayloadError

log = logging.getLogger(__name__)

STDIN = '-'


def parse_payload(text: str) -> Mapping[str, Any]:
    """Decode a payload document into a read-only mapping."""
    if not text.strip():
        return MappingProxyType({})
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        # Position only; the document itself may hold secrets
        raise PayloadError(f'Credential payload is not valid JSON (line {exc.lineno}, column {exc.colno})') from None
    if not isinstance(data, dict):
        raise PayloadError(f'Credential payload must be a JSON object, got {type(data).__name__}')
    return MappingProxyType(data)


def read_stream(stream: IO[str]) -> Mapping[str, Any]:
    """Read a payload from a text stream. An interactive terminal means no payload."""
    isatty = getattr(stream, 'isatty', None)
    if isatty is not None and isatty():
        log.debug('stdin is a terminal, no credential payload')
        return MappingProxyType({})
    return parse_payload(stream.read())


def load_credentials(source: str | Path = STDIN, stdin: IO[str] | None = None) -> Mapping[str, Any]:
    """Load the credential source from a path, or from stdin when source is '-'."""
    if str(source) == STDIN:
        return read_stream(stdin if stdin is not None else sys.stdin)

    path = Path(source)
    try:
        text = path.read_text(encoding='utf-8')
    except OSError as exc:
        raise PayloadError(f'Cannot read credential payload {path}: {exc.strerror}') from None
    credentials = parse_payload(text)
    log.debug('Loaded %d credential key(s) from %s', len(credentials), path)
    return credentials
