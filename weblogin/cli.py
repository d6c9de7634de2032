#!/usr/bin/env python3
"""weblogin: replay a web-form login sequence in Chrome or Edge.

Usage:
    weblogin --url https://portal.example.com/login \\
             --login 'v::#user::{user}@{domain}||s::#password::pw||c::#submit' \\
             --credentials - < payload.json

Macro actions (separated by '||', fields by '::'):
    c::<selector>                          click
    v::<selector>::<value>                 type a literal, {key}, {a}@{b} or kb.<Key>
    s::<selector>::<key>                   type a secret from the payload
    o::<selector>::<key>[::<min-seconds>]  type the first fresh TOTP code

Exit codes: 0 success, 1 failure, 4 missing required arguments.
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Callable
from datetime import date
from pathlib import Path
from typing import IO

from weblogin.browser import PlaywrightExecutor, PlaywrightOptions
from weblogin.config import DEFAULT_SPLIT_SEPARATORS, Config, normalize_separators
from weblogin.errors import MacroError, PayloadError
from weblogin.macro import parse_macro
from weblogin.operands import SplitSpec
from weblogin.payload import STDIN, load_credentials
from weblogin.plan import PlanBuilder, RunContext

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 4

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='weblogin',
        description='Automate a web-form login from an action macro.',
    )
    parser.add_argument('--url', default='', help='login URL')
    parser.add_argument('--login', default='', help='login actions macro')
    parser.add_argument(
        '--credentials', default=STDIN, metavar='PATH',
        help="JSON credential payload file, '-' for stdin (default)",
    )
    parser.add_argument('--delay', type=int, default=None, metavar='MS',
                        help='ms to wait before each input; 0 waits for the element instead')
    parser.add_argument('--separators', default=None,
                        help=f'split separator characters, in priority order (default {DEFAULT_SPLIT_SEPARATORS!r})')
    parser.add_argument('--edge', action='store_true', help='use MS Edge instead of Chrome')
    parser.add_argument('--incognito', action='store_true', default=None, help='use incognito mode')
    parser.add_argument('--insecure', action='store_true', default=None, help='skip certificate validation')
    parser.add_argument('--headless', action='store_true', default=None, help='run without a window')
    parser.add_argument('--no-keep-open', dest='keep_open', action='store_false', default=None,
                        help='close the browser when the sequence is done')
    parser.add_argument('--dry-run', action='store_true', help='print the plan, do not open a browser')
    parser.add_argument('--debug', action='store_true', help='enable debug logging')
    return parser


def apply_args(config: Config, args: argparse.Namespace) -> Config:
    """Command-line flags win over environment configuration."""
    if args.delay is not None and args.delay < 0:
        raise ValueError(f'--delay must not be negative, got {args.delay}')
    return config.with_overrides(
        input_delay_ms=args.delay,
        split_separators=normalize_separators(args.separators) if args.separators is not None else None,
        browser_channel='msedge' if args.edge else None,
        incognito=args.incognito,
        ignore_https_errors=args.insecure,
        headless=args.headless,
        keep_open=args.keep_open,
        log_level='DEBUG' if args.debug else None,
    )


def setup_logging(config: Config) -> None:
    """Log to a daily file under log_dir, or to stderr when log_dir is empty.

    Raises OSError if the log file cannot be opened.
    """
    if config.log_dir:
        log_dir = Path(config.log_dir).expanduser()
        log_dir.mkdir(parents=True, exist_ok=True)
        path = log_dir / f'weblogin_{date.today().isoformat()}.log'
        handler: logging.Handler = logging.FileHandler(path, mode='a', encoding='utf-8')
    else:
        handler = logging.StreamHandler(sys.stderr)

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format=LOG_FORMAT,
        handlers=[handler],
        force=True,
    )


def run(
    argv: list[str] | None = None,
    stdin: IO[str] | None = None,
    stdout: IO[str] | None = None,
    executor_factory: Callable[[PlaywrightOptions], PlaywrightExecutor] = PlaywrightExecutor,
) -> int:
    """Parse arguments, build the plan, hand it to the executor. Returns an exit code."""
    args = build_parser().parse_args(argv)
    stdout = stdout if stdout is not None else sys.stdout

    try:
        config = apply_args(Config.load(), args)
        setup_logging(config)
    except (ValueError, OSError) as exc:
        print(f'weblogin: {exc}', file=sys.stderr)
        return EXIT_FAILURE

    ctx = RunContext.create(
        split_spec=SplitSpec(separators=config.split_separators),
        input_delay_ms=config.input_delay_ms,
    )
    sid = ctx.session_id
    log.info('[%s] Starting weblogin', sid)
    log.debug('[%s] Loglevel set to %s', sid, config.log_level)

    if not args.url:
        log.error('[%s] Login URL is missing', sid)
        return EXIT_USAGE
    if not args.login:
        log.error('[%s] Login actions are missing', sid)
        return EXIT_USAGE

    try:
        ctx.credentials = dict(load_credentials(args.credentials, stdin=stdin))
        actions = parse_macro(args.login)
        log.debug('[%s] Parsed %d actions', sid, len(actions))
        plan = PlanBuilder(ctx).build(args.url, actions)
    except (MacroError, PayloadError) as exc:
        log.error('[%s] %s: %s', sid, type(exc).__name__, exc)
        return EXIT_FAILURE
    finally:
        ctx.destroy()

    if args.dry_run:
        for line in plan.describe():
            print(line, file=stdout)
        return EXIT_OK

    executor = executor_factory(PlaywrightOptions.from_config(config))
    try:
        executor.run(plan, sid)
    except Exception:
        log.exception('[%s] Login sequence failed', sid)
        return EXIT_FAILURE

    log.info('[%s] Login sequence completed', sid)
    return EXIT_OK


def main(argv: list[str] | None = None) -> None:
    sys.exit(run(argv))


if __name__ == '__main__':
    main()
