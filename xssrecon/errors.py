"""
Exception hierarchy for xssrecon.

Startup errors (ProxyConfigError, SessionInitError) abort the whole run.
Everything else is scoped to one input URL, one candidate or one probe.
"""


class ReconError(Exception):
    """Base class for all xssrecon errors."""


class InvalidURL(ReconError):
    """The input URL could not be parsed."""

    def __init__(self, url: str, reason: str = ""):
        self.url = url
        self.reason = reason
        message = f"invalid URL: {url}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class NoInjectionPoint(ReconError):
    """The URL has neither a placeholder nor query parameters."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"no injection points found for URL: {url}")


class FetchError(ReconError):
    """A static GET failed (transport error, timeout, undecodable body)."""

    def __init__(self, url: str, cause: BaseException | None = None):
        self.url = url
        self.cause = cause
        super().__init__(f"error fetching {url}: {cause}")


class RenderError(ReconError):
    """A browser render failed or exceeded its deadline."""

    def __init__(self, url: str, cause: BaseException | str | None = None):
        self.url = url
        self.cause = cause
        super().__init__(f"error rendering {url}: {cause}")


class ProxyConfigError(ReconError):
    """The configured proxy URL is not usable."""

    def __init__(self, proxy: str, reason: str):
        self.proxy = proxy
        self.reason = reason
        super().__init__(f"invalid proxy URL {proxy!r}: {reason}")


class SessionInitError(ReconError):
    """The headless browser could not be started."""
