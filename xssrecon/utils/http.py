"""
HTTP client utilities for xssrecon.

Provides the static fetch channel: one GET per call, no retries, with the
configured user agent, timeout, proxy and TLS verification mode.
"""

import logging
from dataclasses import dataclass, field

import httpx

from xssrecon.errors import FetchError

log = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/127.0.0.0 Safari/537.36"
)


@dataclass
class HTTPResponse:
    """Wrapper for HTTP response data."""
    url: str
    status_code: int
    headers: dict[str, str]
    body: str


@dataclass
class HTTPConfig:
    """HTTP client configuration."""
    timeout: float = 15.0
    max_redirects: int = 10
    verify_ssl: bool = False
    proxy: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    user_agent: str = DEFAULT_USER_AGENT


class HTTPClient:
    """
    Async GET client shared by all scan workers.

    The underlying httpx.AsyncClient owns the connection pool and is safe
    to use from concurrent tasks.
    """

    def __init__(
        self,
        config: HTTPConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or HTTPConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self):
        self._init_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _init_client(self):
        """Initialize the async HTTP client."""
        headers = {"User-Agent": self.config.user_agent}
        headers.update(self.config.headers)

        kwargs = {}
        if self._transport is not None:
            kwargs["transport"] = self._transport
        elif self.config.proxy:
            kwargs["proxy"] = self.config.proxy

        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.config.timeout),
            follow_redirects=True,
            max_redirects=self.config.max_redirects,
            verify=self.config.verify_ssl,
            headers=headers,
            **kwargs,
        )

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get(self, url: str) -> HTTPResponse:
        """
        Perform a single GET request.

        Raises:
            FetchError: on any transport error, timeout or undecodable body
        """
        if not self._client:
            self._init_client()

        try:
            response = await self._client.get(url)
            body = response.text
        except (httpx.HTTPError, httpx.InvalidURL, UnicodeDecodeError) as e:
            raise FetchError(url, e) from e

        log.debug("GET %s -> %d (%d bytes)", url, response.status_code, len(body))
        return HTTPResponse(
            url=str(response.url),
            status_code=response.status_code,
            headers=dict(response.headers),
            body=body,
        )

    async def fetch(self, url: str) -> str:
        """Return the response body of a GET on url."""
        response = await self.get(url)
        return response.body
