"""
Playwright rendering channel for xssrecon.

Renders candidate URLs in headless Chromium and returns the DOM once the
page has settled, so reflections written by client-side scripts are seen.
Each scan worker owns one isolated browser context; a page is never
navigated by two workers.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    WebSocket,
    async_playwright,
)

from xssrecon.errors import RenderError, SessionInitError
from xssrecon.utils.http import DEFAULT_USER_AGENT

log = logging.getLogger(__name__)

SETTLE_IDLE = "idle"
SETTLE_DELAY = "delay"


class NetworkActivity(Enum):
    """Network events that restart the settle timer."""
    REQUEST_SENT = "request_sent"
    RESPONSE_RECEIVED = "response_received"
    LOADING_FINISHED = "loading_finished"
    LOADING_FAILED = "loading_failed"
    WEBSOCKET_OPENED = "websocket_opened"
    WEBSOCKET_FRAME_SENT = "websocket_frame_sent"
    WEBSOCKET_FRAME_RECEIVED = "websocket_frame_received"
    WEBSOCKET_CLOSED = "websocket_closed"


# Playwright event name -> activity
PAGE_EVENTS: dict[str, NetworkActivity] = {
    "request": NetworkActivity.REQUEST_SENT,
    "response": NetworkActivity.RESPONSE_RECEIVED,
    "requestfinished": NetworkActivity.LOADING_FINISHED,
    "requestfailed": NetworkActivity.LOADING_FAILED,
    "websocket": NetworkActivity.WEBSOCKET_OPENED,
}

WEBSOCKET_EVENTS: dict[str, NetworkActivity] = {
    "framesent": NetworkActivity.WEBSOCKET_FRAME_SENT,
    "framereceived": NetworkActivity.WEBSOCKET_FRAME_RECEIVED,
    "close": NetworkActivity.WEBSOCKET_CLOSED,
}


@dataclass
class BrowserConfig:
    """Configuration for the rendering channel."""
    headless: bool = True
    timeout: float = 30.0        # overall deadline per render, seconds
    settle: str = SETTLE_IDLE    # idle (debounce) or delay (fixed wait)
    idle_time: float = 0.5       # quiet period that counts as settled
    settle_delay: float = 2.0    # fixed wait for the delay strategy
    browser_type: str = "chromium"
    user_agent: str = DEFAULT_USER_AGENT
    proxy: str | None = None
    verify_ssl: bool = False


class IdleWatcher:
    """
    Debounce over network activity.

    wait() returns once idle_time passes with no notify() call. It has no
    deadline of its own; callers bound it.
    """

    def __init__(self, idle_time: float):
        self.idle_time = idle_time
        self.events_seen = 0
        self._activity = asyncio.Event()

    def notify(self, activity: NetworkActivity):
        self.events_seen += 1
        self._activity.set()

    async def wait(self):
        while True:
            self._activity.clear()
            try:
                await asyncio.wait_for(self._activity.wait(), self.idle_time)
            except asyncio.TimeoutError:
                return


class RenderSession:
    """One worker's browser context and page."""

    def __init__(self, context: BrowserContext, page: Page, config: BrowserConfig, worker_id: int = 0):
        self.context = context
        self.config = config
        self.worker_id = worker_id
        self.lock = asyncio.Lock()
        self._watcher: IdleWatcher | None = None
        self._page = page
        self._listen(page)

    def _on_activity(self, activity: NetworkActivity) -> Callable:
        def handler(_event):
            if self._watcher is not None:
                self._watcher.notify(activity)
        return handler

    def _on_websocket(self, ws: WebSocket):
        for name, activity in WEBSOCKET_EVENTS.items():
            ws.on(name, self._on_activity(activity))

    def _listen(self, page: Page):
        for name, activity in PAGE_EVENTS.items():
            page.on(name, self._on_activity(activity))
        page.on("websocket", self._on_websocket)

    async def _ensure_page(self) -> Page:
        if self._page.is_closed():
            log.debug("worker %d: page closed, opening a new one", self.worker_id)
            self._page = await self.context.new_page()
            self._listen(self._page)
        return self._page

    async def _settle(self, watcher: IdleWatcher):
        if self.config.settle == SETTLE_DELAY:
            await asyncio.sleep(self.config.settle_delay)
        else:
            await watcher.wait()

    async def _navigate_and_capture(self, url: str, watcher: IdleWatcher) -> str:
        page = await self._ensure_page()
        await page.goto(url, timeout=self.config.timeout * 1000, wait_until="load")
        await self._settle(watcher)
        return await page.content()

    async def render(self, url: str) -> str:
        """
        Navigate to url and return the settled document markup.

        The whole navigation, settle and capture runs under one deadline
        of config.timeout seconds.

        Raises:
            RenderError: navigation failed or the deadline expired
        """
        watcher = IdleWatcher(self.config.idle_time)
        self._watcher = watcher
        try:
            html = await asyncio.wait_for(
                self._navigate_and_capture(url, watcher),
                self.config.timeout,
            )
        except asyncio.TimeoutError as e:
            raise RenderError(url, f"deadline of {self.config.timeout}s exceeded") from e
        except PlaywrightError as e:
            raise RenderError(url, e.message) from e
        finally:
            self._watcher = None

        log.debug(
            "worker %d rendered %s (%d network events, %d bytes)",
            self.worker_id, url, watcher.events_seen, len(html),
        )
        return html


class SessionPool:
    """
    Arena of render sessions indexed by worker id.

    All sessions share one browser process but each has its own context,
    so cookies, storage and the current document never cross workers.
    """

    def __init__(self, config: BrowserConfig | None = None, size: int = 1):
        if size < 1:
            raise ValueError("session pool size must be at least 1")
        self.config = config or BrowserConfig()
        self.size = size
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._sessions: list[RenderSession] = []

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _launch_options(self) -> dict:
        options = {
            "headless": self.config.headless,
            "args": [
                "--disable-gpu",
                "--no-sandbox",
                "--disable-dev-shm-usage",
            ],
        }
        if self.config.proxy:
            options["proxy"] = {"server": self.config.proxy}
        return options

    async def _new_session(self, worker_id: int) -> RenderSession:
        context = await self._browser.new_context(
            user_agent=self.config.user_agent,
            ignore_https_errors=not self.config.verify_ssl,
        )
        page = await context.new_page()
        return RenderSession(context, page, self.config, worker_id)

    async def start(self):
        """
        Launch the browser and one session per worker.

        Raises:
            SessionInitError: the browser could not be started
        """
        try:
            self._playwright = await async_playwright().start()
            browser_type = getattr(self._playwright, self.config.browser_type, None)
            if not browser_type:
                browser_type = self._playwright.chromium

            self._browser = await browser_type.launch(**self._launch_options())
            for worker_id in range(self.size):
                self._sessions.append(await self._new_session(worker_id))
        except PlaywrightError as e:
            await self.close()
            raise SessionInitError(f"could not start headless browser: {e.message}") from e

        log.debug("started %d browser sessions", self.size)

    @asynccontextmanager
    async def session(self, worker_id: int):
        """Acquire the session of worker_id; it is released, not closed, on exit."""
        if not self._sessions:
            raise SessionInitError("session pool is not started")
        session = self._sessions[worker_id % len(self._sessions)]
        async with session.lock:
            yield session

    async def close(self):
        """Tear down every session and the browser."""
        for session in self._sessions:
            try:
                await session.context.close()
            except PlaywrightError as e:
                log.debug("error closing context of worker %d: %s", session.worker_id, e)
        self._sessions = []

        if self._browser:
            await self._browser.close()
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
