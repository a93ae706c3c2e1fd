"""
Injection-point target generation.

Turns an input URL into the candidate URLs to test, one per injection
point. A literal ``{payload}`` placeholder takes precedence over query
parameters so a URL is never injected twice.
"""

from urllib.parse import quote, urlsplit

from xssrecon.errors import InvalidURL, NoInjectionPoint
from xssrecon.models import InjectionTarget

PLACEHOLDER = "{payload}"


def _split_query(url: str) -> tuple[str, str, str]:
    """Split URL into (head, raw query, '#fragment') without re-encoding."""
    base, hash_sign, fragment = url.partition("#")
    head, _, query = base.partition("?")
    return head, query, hash_sign + fragment


def _validate(url: str):
    try:
        parsed = urlsplit(url)
        parsed.port  # raises on a non-numeric port
    except ValueError as e:
        raise InvalidURL(url, str(e)) from e

    if not parsed.scheme or not parsed.netloc:
        raise InvalidURL(url, "missing scheme or host")


def query_keys(query: str) -> list[str]:
    """Distinct parameter keys of a raw query string, in order."""
    keys = []
    for pair in query.split("&"):
        key = pair.split("=", 1)[0]
        if key and key not in keys:
            keys.append(key)
    return keys


def _inject_query(query: str, key: str, value: str) -> str:
    pairs = []
    injected = False
    for pair in query.split("&"):
        if pair.split("=", 1)[0] != key:
            pairs.append(pair)
        elif not injected:
            pairs.append(f"{key}={value}")
            injected = True
        # repeated occurrences of the injected key collapse into one
    return "&".join(pairs)


def generate_targets(input_url: str, payload: str) -> list[InjectionTarget]:
    """
    Generate one InjectionTarget per injection point of input_url.

    Raises:
        InvalidURL: input_url cannot be parsed
        NoInjectionPoint: no placeholder and no query parameters
    """
    if PLACEHOLDER in input_url:
        return [
            InjectionTarget(
                original_url=input_url,
                candidate_url=input_url.replace(PLACEHOLDER, payload),
            )
        ]

    _validate(input_url)

    head, query, fragment = _split_query(input_url)
    keys = query_keys(query)
    if not keys:
        raise NoInjectionPoint(input_url)

    encoded = quote(payload, safe="")
    return [
        InjectionTarget(
            original_url=input_url,
            candidate_url=f"{head}?{_inject_query(query, key, encoded)}{fragment}",
            parameter_key=key,
        )
        for key in keys
    ]


def probe_target(
    input_url: str,
    payload: str,
    parameter_key: str | None = None,
) -> InjectionTarget:
    """
    Regenerate a single candidate for a probe payload.

    Only one candidate is tested per probe. It is the one injecting the same
    parameter as the base candidate, or the first generated one. Always
    taking the first candidate would probe parameter ``a`` of ``?a=1&b=2``
    even when only ``b`` reflects, so the match on parameter_key is
    intentional.
    """
    targets = generate_targets(input_url, payload)
    for target in targets:
        if target.parameter_key == parameter_key:
            return target
    return targets[0]
