import asyncio
import html
import io
import json
import signal
import subprocess
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from urllib.parse import parse_qsl, urlsplit

import pytest

from xssrecon.config import ReconConfig
from xssrecon.errors import FetchError, RenderError
from xssrecon.models import Channel
from xssrecon.reporter import JSONReporter, Reporter
from xssrecon.scanner import ReconScanner


def echo_query(url: str, encode: bool = True) -> str:
    """A page that reflects every query value, HTML-escaped like a template."""
    values = [value for _, value in parse_qsl(urlsplit(url).query, keep_blank_values=True)]
    if encode:
        values = [html.escape(value) for value in values]
    return "<html><body>" + " ".join(values) + "</body></html>"


class FakeFetcher:
    def __init__(self, respond):
        self.respond = respond
        self.urls = []

    async def fetch(self, url: str) -> str:
        self.urls.append(url)
        result = self.respond(url)
        if isinstance(result, Exception):
            raise result
        return result


class FakeRenderer:
    def __init__(self, respond, worker_id, log):
        self.respond = respond
        self.worker_id = worker_id
        self.log = log

    async def render(self, url: str) -> str:
        self.log.append((self.worker_id, url))
        await asyncio.sleep(0)
        result = self.respond(url)
        if isinstance(result, Exception):
            raise result
        return result


class FakeSessions:
    def __init__(self, respond):
        self.respond = respond
        self.renders = []
        self.active = set()
        self.overlap = False

    @asynccontextmanager
    async def session(self, worker_id: int):
        if worker_id in self.active:
            self.overlap = True
        self.active.add(worker_id)
        try:
            yield FakeRenderer(self.respond, worker_id, self.renders)
        finally:
            self.active.discard(worker_id)


class CollectingReporter(Reporter):
    def __init__(self):
        self.outcomes = []
        self.checked = []

    def checking(self, url):
        self.checked.append(url)

    def outcome(self, outcome, probed):
        self.outcomes.append((outcome, probed))


def make_scanner(static, rendered=None, concurrency=2, **scan_settings):
    config = ReconConfig()
    config.network.concurrency = concurrency
    for key, value in scan_settings.items():
        setattr(config.scan, key, value)

    fetcher = FakeFetcher(static)
    sessions = FakeSessions(rendered or (lambda url: "<html></html>"))
    reporter = CollectingReporter()
    scanner = ReconScanner(config, reporter, fetcher=fetcher, sessions=sessions)
    return scanner, fetcher, sessions, reporter


@pytest.mark.asyncio
async def test_static_reflection_probes_over_static_channel():
    scanner, fetcher, sessions, reporter = make_scanner(echo_query)

    outcomes = await scanner.scan_url("http://x/search?q=1")

    assert len(outcomes) == 1
    outcome = outcomes[0]
    assert outcome.base_url == "http://x/search?q=rix4uni"
    assert outcome.reflected is True
    assert outcome.channel is Channel.STATIC
    assert outcome.allowed == ["(", ")", "`", "{", "}", "/", "\\", ";"]
    assert outcome.converted == [('"', "&quot;"), ("<", "&lt;"), (">", "&gt;")]
    # html.escape writes &#x27;, not the expected &#039;
    assert outcome.blocked == ["'"]
    assert sessions.renders == []
    assert len(fetcher.urls) == 1 + 12


@pytest.mark.asyncio
async def test_rendered_only_reflection_locks_rendering_channel():
    scanner, fetcher, sessions, reporter = make_scanner(
        static=lambda url: "<html><script src=app.js></script></html>",
        rendered=lambda url: echo_query(url, encode=False),
    )

    outcomes = await scanner.scan_url("http://x/app?name=1")

    outcome = outcomes[0]
    assert outcome.reflected is True
    assert outcome.channel is Channel.RENDERED
    assert len(outcome.allowed) == 12
    # only the reflection check used the static channel
    assert fetcher.urls == ["http://x/app?name=rix4uni"]
    assert len(sessions.renders) == 1 + 12


@pytest.mark.asyncio
async def test_no_reflection_reports_empty_sets():
    scanner, fetcher, sessions, reporter = make_scanner(lambda url: "<html>nothing</html>")

    outcomes = await scanner.scan_url("http://x/search?q=1")

    assert outcomes[0].reflected is False
    assert outcomes[0].to_dict()["count"] == {"allowed": 0, "blocked": 0, "converted": 0}
    assert len(fetcher.urls) == 1
    assert len(sessions.renders) == 1
    assert reporter.outcomes == [(outcomes[0], False)]


@pytest.mark.asyncio
async def test_url_without_injection_point_is_skipped():
    scanner, fetcher, sessions, reporter = make_scanner(echo_query)

    assert await scanner.scan_url("http://x/static/page") == []
    assert fetcher.urls == []
    assert reporter.outcomes == []
    assert scanner.stats.urls_skipped == 1


@pytest.mark.asyncio
async def test_static_fetch_failure_skips_candidate_only():
    def flaky(url):
        if "a=rix4uni" in url:
            return FetchError(url, ConnectionError("refused"))
        return echo_query(url)

    scanner, fetcher, sessions, reporter = make_scanner(flaky, skip_special_chars=True)

    outcomes = await scanner.scan_url("http://x/?a=1&b=2")

    assert [o.base_url for o in outcomes] == ["http://x/?a=1&b=rix4uni"]
    assert sessions.renders == []
    assert scanner.stats.candidates_failed == 1


@pytest.mark.asyncio
async def test_render_failure_skips_candidate():
    scanner, fetcher, sessions, reporter = make_scanner(
        static=lambda url: "",
        rendered=lambda url: RenderError(url, "deadline exceeded"),
    )

    assert await scanner.scan_url("http://x/?q=1") == []
    assert reporter.outcomes == []


@pytest.mark.asyncio
async def test_failed_probe_drops_only_that_character():
    def respond(url):
        if url.endswith("%3C"):
            return FetchError(url, TimeoutError("slow"))
        return echo_query(url, encode=False)

    scanner, fetcher, sessions, reporter = make_scanner(respond)

    outcome = (await scanner.scan_url("http://x/?q=1"))[0]

    assert "<" not in outcome.allowed + outcome.blocked
    assert len(outcome.allowed) == 11
    assert outcome.blocked == [] and outcome.converted == []
    assert scanner.stats.probes_failed == 1


@pytest.mark.asyncio
async def test_skip_special_chars_reports_verdict_only():
    scanner, fetcher, sessions, reporter = make_scanner(echo_query, skip_special_chars=True)

    outcome = (await scanner.scan_url("http://x/?q=1"))[0]

    assert outcome.reflected is True
    assert outcome.allowed == outcome.blocked == outcome.converted == []
    assert reporter.outcomes == [(outcome, False)]
    assert len(fetcher.urls) == 1


@pytest.mark.asyncio
async def test_probes_target_the_reflecting_parameter():
    def only_b(url):
        params = dict(parse_qsl(urlsplit(url).query))
        return f"<p>{params['b']}</p>"

    scanner, fetcher, sessions, reporter = make_scanner(only_b, alphabet=["<"], conversions={})

    outcomes = await scanner.scan_url("http://x/?a=1&b=2")

    assert [o.reflected for o in outcomes] == [False, True]
    assert reporter.checked == ["http://x/?a=1&b=rix4uni%3C"]
    assert outcomes[1].allowed == ["<"]


@pytest.mark.asyncio
async def test_placeholder_probe_uses_placeholder():
    scanner, fetcher, sessions, reporter = make_scanner(
        lambda url: f"<p>{url}</p>", alphabet=[">"], conversions={},
    )

    outcome = (await scanner.scan_url("http://x/{payload}/view"))[0]

    assert outcome.base_url == "http://x/rix4uni/view"
    assert fetcher.urls[-1] == "http://x/rix4uni>/view"
    assert outcome.allowed == [">"]


@pytest.mark.asyncio
async def test_scan_processes_stream_concurrently():
    scanner, fetcher, sessions, _ = make_scanner(
        static=lambda url: "",
        rendered=lambda url: echo_query(url),
        concurrency=3,
        skip_special_chars=True,
    )
    stream = io.StringIO()
    scanner.reporter = JSONReporter(stream, lines=True)
    lines = [f"http://x/{i}?q={i}\n" for i in range(9)] + ["\n", "   \n", "http://x/static\n"]

    async with scanner:
        stats = await scanner.scan(lines)

    records = [json.loads(line) for line in stream.getvalue().splitlines()]
    assert stats.urls_read == 10
    assert stats.urls_skipped == 1
    assert stats.candidates_tested == 9
    assert stats.candidates_reflected == 9
    assert sorted(r["processing"] for r in records) == sorted(f"http://x/{i}?q={i}" for i in range(9))
    assert all(r["reflected"] for r in records)
    assert {worker_id for worker_id, _ in sessions.renders} <= {0, 1, 2}
    assert sessions.overlap is False


@pytest.mark.asyncio
async def test_scan_emits_jsonl_records():
    scanner, fetcher, sessions, _ = make_scanner(echo_query, concurrency=1, alphabet=["<"])
    stream = io.StringIO()
    scanner.reporter = JSONReporter(stream, lines=True)

    async with scanner:
        await scanner.scan(["http://x/?q=1"])

    record = json.loads(stream.getvalue())
    assert record == {
        "processing": "http://x/?q=1",
        "baseurl": "http://x/?q=rix4uni",
        "reflected": True,
        "allowed": [],
        "blocked": [],
        "converted": ["< -> &lt;"],
        "count": {"allowed": 0, "blocked": 0, "converted": 1},
    }


@pytest.mark.asyncio
async def test_input_read_error_stops_scan():
    scanner, fetcher, sessions, reporter = make_scanner(echo_query, skip_special_chars=True)

    def broken_input():
        yield "http://x/?q=1\n"
        raise OSError("input closed")

    with pytest.raises(OSError):
        await scanner.scan(broken_input())


INTERRUPTIBLE_SCAN = """
import asyncio
import sys
from contextlib import asynccontextmanager
from pathlib import Path

from xssrecon.reporter import JSONReporter
from xssrecon.scanner import ReconScanner


class Static:
    async def fetch(self, url):
        return "<p>rix4uni</p>"


class Sessions:
    @asynccontextmanager
    async def session(self, worker_id):
        yield self

    async def render(self, url):
        return ""


async def main():
    scanner = ReconScanner(
        reporter=JSONReporter(sys.stdout, lines=True), fetcher=Static(), sessions=Sessions(),
    )
    scanner.config.scan.skip_special_chars = True
    async with scanner:
        await scanner.scan(sys.stdin)


try:
    asyncio.run(main())
except KeyboardInterrupt:
    sys.exit(130)
"""


@pytest.mark.skipif(sys.platform == "win32", reason="needs POSIX signals")
def test_interrupt_exits_while_stdin_stays_open():
    proc = subprocess.Popen(
        [sys.executable, "-c", INTERRUPTIBLE_SCAN],
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        text=True,
        cwd=Path(__file__).resolve().parent.parent,
    )
    try:
        proc.stdin.write("http://x/?q=1\n")
        proc.stdin.flush()
        record = json.loads(proc.stdout.readline())
        assert record["reflected"] is True

        proc.send_signal(signal.SIGINT)
        assert proc.wait(timeout=10) == 130
    finally:
        if proc.poll() is None:
            proc.kill()
            proc.wait()
        proc.stdin.close()
        proc.stdout.close()
