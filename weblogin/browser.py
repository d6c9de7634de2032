"""Browser executor: walks an ActionPlan against Chrome or Edge through Playwright.

Thin glue. The plan is already resolved; this module only maps each
abstract action onto a page call, in order, and lets any browser error
propagate to the caller.

Usage:
    executor = PlaywrightExecutor(PlaywrightOptions(channel='msedge'))
    executor.run(plan, session_id)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from playwright.sync_api import sync_playwright

from weblogin.config import (
    DEFAULT_WAIT_TIMEOUT_MS,
    DEFAULT_WINDOW_HEIGHT,
    DEFAULT_WINDOW_WIDTH,
    Config,
)
from weblogin.operands import KeyboardKey
from weblogin.plan import (
    AbstractAction,
    ActionPlan,
    Click,
    Navigate,
    SendKeys,
    Wait,
    WaitUntilReady,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlaywrightOptions:
    """Launch options, mirroring the launcher's command-line flags."""

    channel: str = 'chrome'  # chrome, msedge
    headless: bool = False
    incognito: bool = False
    ignore_https_errors: bool = False
    keep_open: bool = True
    timeout_ms: int = DEFAULT_WAIT_TIMEOUT_MS
    window_width: int = DEFAULT_WINDOW_WIDTH
    window_height: int = DEFAULT_WINDOW_HEIGHT

    @staticmethod
    def from_config(config: Config) -> PlaywrightOptions:
        return PlaywrightOptions(
            channel=config.browser_channel,
            headless=config.headless,
            incognito=config.incognito,
            ignore_https_errors=config.ignore_https_errors,
            keep_open=config.keep_open,
            timeout_ms=config.wait_timeout_ms,
            window_width=config.window_width,
            window_height=config.window_height,
        )

    def launch_args(self) -> list[str]:
        args = [
            '--disable-infobars',
            '--hide-crash-restore-bubble',
            f'--window-size={self.window_width},{self.window_height}',
        ]
        if self.incognito:
            args.append('--incognito')
        return args


class PlaywrightExecutor:
    """Performs a plan in a real browser. One plan per run."""

    def __init__(self, options: PlaywrightOptions | None = None):
        self._options = options or PlaywrightOptions()

    def run(self, plan: ActionPlan, session_id: str = '') -> None:
        """Launch the browser, perform the plan, optionally wait for the user to close it."""
        opts = self._options
        with sync_playwright() as pw:
            log.debug('[%s] Launching %s (headless=%s)', session_id, opts.channel, opts.headless)
            browser = pw.chromium.launch(
                channel=opts.channel,
                headless=opts.headless,
                args=opts.launch_args(),
                ignore_default_args=['--enable-automation'],
            )
            try:
                context = browser.new_context(
                    ignore_https_errors=opts.ignore_https_errors,
                    no_viewport=True,
                )
                page = context.new_page()
                page.set_default_timeout(opts.timeout_ms)
                self.perform(page, plan, session_id)

                if opts.keep_open and not opts.headless:
                    log.info('[%s] Login sequence done, waiting for the browser to be closed', session_id)
                    page.wait_for_event('close', timeout=0)
            finally:
                browser.close()

    def perform(self, page: Any, plan: ActionPlan, session_id: str = '') -> None:
        """Walk the plan on a page-like object, strictly in order."""
        for idx, action in enumerate(plan):
            handler = self._get_handler(action)
            log.debug('[%s] step %d: %s', session_id, idx, action.describe())
            handler(page, action)
        log.info('[%s] Performed %d actions', session_id, len(plan))

    # ------------------------------------------------------------------
    # Action handlers
    # ------------------------------------------------------------------

    def _get_handler(self, action: AbstractAction) -> Callable[[Any, Any], None]:
        handlers = {
            Navigate: self._handle_navigate,
            Wait: self._handle_wait,
            WaitUntilReady: self._handle_wait_until_ready,
            Click: self._handle_click,
            SendKeys: self._handle_send_keys,
        }
        handler = handlers.get(type(action))
        if handler is None:
            raise ValueError(f'Unknown action: {type(action).__name__}')
        return handler

    def _handle_navigate(self, page: Any, action: Navigate) -> None:
        page.goto(action.url)

    def _handle_wait(self, page: Any, action: Wait) -> None:
        page.wait_for_timeout(action.duration_ms)

    def _handle_wait_until_ready(self, page: Any, action: WaitUntilReady) -> None:
        page.wait_for_selector(action.selector, state='visible')

    def _handle_click(self, page: Any, action: Click) -> None:
        page.locator(action.selector).click()

    def _handle_send_keys(self, page: Any, action: SendKeys) -> None:
        locator = page.locator(action.selector)
        if isinstance(action.value, KeyboardKey):
            locator.press(action.value.key)
        else:
            locator.press_sequentially(action.text)
