"""
Main scanner for xssrecon.

Reads input URLs, fans them out to a bounded pool of workers and drives
each candidate through static check, rendered check and character probing.
"""

import asyncio
import concurrent.futures
import logging
import threading
from typing import AsyncContextManager, Iterable, Protocol

from xssrecon.browser import SessionPool
from xssrecon.config import ReconConfig
from xssrecon.detectors.reflected import ReflectionClassifier
from xssrecon.errors import FetchError, InvalidURL, NoInjectionPoint, RenderError
from xssrecon.models import Channel, InjectionTarget, ProbeState, ScanOutcome, ScanStats
from xssrecon.reporter.base import Reporter
from xssrecon.targets import generate_targets, probe_target
from xssrecon.utils.http import HTTPClient

log = logging.getLogger(__name__)


def _read_lines(lines: Iterable[str], loop: asyncio.AbstractEventLoop, raw: asyncio.Queue):
    """
    Hand lines to the event loop from a daemon thread.

    A read blocked on an open stdin must not keep the process alive after
    the scan is cancelled. End of input is signalled with None and a read
    error with the exception.
    """
    def put(item):
        asyncio.run_coroutine_threadsafe(raw.put(item), loop).result()

    try:
        try:
            for line in lines:
                put(line)
        except Exception as e:
            put(e)
        else:
            put(None)
    except (RuntimeError, concurrent.futures.CancelledError):
        log.debug("input reader stopped: event loop is gone")


class Fetcher(Protocol):
    async def fetch(self, url: str) -> str: ...


class Renderer(Protocol):
    async def render(self, url: str) -> str: ...


class Sessions(Protocol):
    def session(self, worker_id: int) -> AsyncContextManager[Renderer]: ...


class ReconScanner:
    """
    Reflection and filter-probe engine.

    The static fetcher is shared by every worker. Rendering goes through
    the session of the calling worker, so one URL's probes never share a
    page with another URL.
    """

    def __init__(
        self,
        config: ReconConfig | None = None,
        reporter: Reporter | None = None,
        fetcher: Fetcher | None = None,
        sessions: Sessions | None = None,
    ):
        self.config = config or ReconConfig()
        self.reporter = reporter or Reporter()
        self.classifier = ReflectionClassifier(
            self.config.scan.marker,
            alphabet=self.config.scan.alphabet,
            conversions=self.config.scan.conversions,
        )
        self.stats = ScanStats()
        self._fetcher = fetcher
        self._sessions = sessions
        self._owned: list = []

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self):
        """
        Validate config and open the fetch and render channels.

        Raises:
            ProxyConfigError: the proxy URL is invalid
            SessionInitError: the browser could not be started
        """
        self.config.validate()

        if self._fetcher is None:
            client = HTTPClient(self.config.http_config())
            self._fetcher = client
            self._owned.append(client)

        if self._sessions is None:
            pool = SessionPool(self.config.browser_config(), size=self.config.network.concurrency)
            await pool.start()
            self._sessions = pool
            self._owned.append(pool)

    async def close(self):
        """Release every channel this scanner opened."""
        while self._owned:
            await self._owned.pop().close()

    # ------------------------------------------------------------------
    # Worker pool
    # ------------------------------------------------------------------

    async def scan(self, lines: Iterable[str]) -> ScanStats:
        """
        Scan every URL in lines (one per item, blank lines ignored).

        Results are reported as they complete, in no particular order.
        """
        workers_count = self.config.network.concurrency
        queue: asyncio.Queue[str | None] = asyncio.Queue(maxsize=workers_count * 2)
        workers = [
            asyncio.create_task(self._worker(worker_id, queue))
            for worker_id in range(workers_count)
        ]

        try:
            await self._feed(lines, queue)
            for _ in workers:
                await queue.put(None)
            await asyncio.gather(*workers)
        finally:
            for worker in workers:
                if not worker.done():
                    worker.cancel()

        return self.stats

    async def _feed(self, lines: Iterable[str], queue: asyncio.Queue):
        raw: asyncio.Queue = asyncio.Queue(maxsize=queue.maxsize)
        reader = threading.Thread(
            target=_read_lines,
            args=(lines, asyncio.get_running_loop(), raw),
            name="xssrecon-input",
            daemon=True,
        )
        reader.start()

        while True:
            line = await raw.get()
            if line is None:
                return
            if isinstance(line, Exception):
                raise line
            url = line.strip()
            if not url or url.startswith("#"):
                continue
            self.stats.urls_read += 1
            await queue.put(url)

    async def _worker(self, worker_id: int, queue: asyncio.Queue):
        while True:
            url = await queue.get()
            try:
                if url is None:
                    return
                await self.scan_url(url, worker_id)
            except Exception:
                log.exception("unexpected error while processing %s", url)
            finally:
                queue.task_done()

    # ------------------------------------------------------------------
    # Per-URL pipeline
    # ------------------------------------------------------------------

    async def scan_url(self, input_url: str, worker_id: int = 0) -> list[ScanOutcome]:
        """Process every candidate of one input URL, in order."""
        self.reporter.processing(input_url)

        try:
            targets = generate_targets(input_url, self.classifier.marker)
        except (InvalidURL, NoInjectionPoint) as e:
            self.stats.urls_skipped += 1
            log.info("skipping: %s", e)
            return []

        outcomes = []
        for target in targets:
            outcome = await self.process_target(target, worker_id)
            if outcome is not None:
                outcomes.append(outcome)
        return outcomes

    async def _fetch(self, channel: Channel, url: str, worker_id: int) -> str:
        if channel is Channel.RENDERED:
            async with self._sessions.session(worker_id) as session:
                return await session.render(url)
        return await self._fetcher.fetch(url)

    def _transition(self, target: InjectionTarget, state: ProbeState):
        log.debug("%s: %s", target.candidate_url, state.value)

    async def detect_reflection(self, target: InjectionTarget, worker_id: int = 0) -> Channel | None:
        """
        Find the channel that reflects the marker, static first.

        Raises:
            FetchError, RenderError: the candidate cannot be checked
        """
        url = target.candidate_url
        self._transition(target, ProbeState.GENERATED)

        body = await self._fetch(Channel.STATIC, url, worker_id)
        self._transition(target, ProbeState.STATIC_CHECKED)
        if self.classifier.is_reflected(body):
            self._transition(target, ProbeState.REFLECTED_STATIC)
            return Channel.STATIC

        body = await self._fetch(Channel.RENDERED, url, worker_id)
        self._transition(target, ProbeState.DOM_CHECKED)
        if self.classifier.is_reflected(body):
            self._transition(target, ProbeState.REFLECTED_DOM)
            return Channel.RENDERED

        self._transition(target, ProbeState.NOT_REFLECTED)
        return None

    async def probe_characters(
        self,
        target: InjectionTarget,
        channel: Channel,
        outcome: ScanOutcome,
        worker_id: int = 0,
    ):
        """Classify each alphabet character through the locked-in channel."""
        self._transition(target, ProbeState.PROBING)

        for probe in self.classifier.probes:
            payload = self.classifier.probe_payload(probe)
            probe_url = probe_target(target.original_url, payload, target.parameter_key).candidate_url
            self.reporter.checking(probe_url)

            try:
                body = await self._fetch(channel, probe_url, worker_id)
            except (FetchError, RenderError) as e:
                self.stats.probes_failed += 1
                log.debug("probe %r dropped: %s", probe.character, e)
                continue

            outcome.record(probe, self.classifier.classify(body, probe))

        self._transition(target, ProbeState.DONE)

    async def process_target(self, target: InjectionTarget, worker_id: int = 0) -> ScanOutcome | None:
        """
        Run one candidate to completion and report it.

        Returns None, and reports nothing, when the reflection check fails.
        """
        self.reporter.base_url(target.candidate_url)

        try:
            channel = await self.detect_reflection(target, worker_id)
        except (FetchError, RenderError) as e:
            self.stats.candidates_failed += 1
            log.info("skipping candidate: %s", e)
            return None

        outcome = ScanOutcome(
            processing_url=target.original_url,
            base_url=target.candidate_url,
            reflected=channel is not None,
            channel=channel,
        )

        probed = channel is not None and not self.config.scan.skip_special_chars
        if probed:
            await self.probe_characters(target, channel, outcome, worker_id)

        self.stats.candidates_tested += 1
        if outcome.reflected:
            self.stats.candidates_reflected += 1
        self.reporter.outcome(outcome, probed)
        return outcome


async def run_scan(
    lines: Iterable[str],
    config: ReconConfig | None = None,
    reporter: Reporter | None = None,
) -> ScanStats:
    """Open a scanner, scan lines and shut everything down."""
    async with ReconScanner(config, reporter) as scanner:
        return await scanner.scan(lines)


def scan_sync(
    lines: Iterable[str],
    config: ReconConfig | None = None,
    reporter: Reporter | None = None,
) -> ScanStats:
    """Synchronous wrapper for run_scan."""
    return asyncio.run(run_scan(lines, config, reporter))
