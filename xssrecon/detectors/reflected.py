"""
Reflection classifier for xssrecon.

Decides whether the marker is echoed back, and how the target filters
each special character placed right after it. Matching is literal
containment on the response text; the filtering under test is itself
character substitution, so parsing the HTML would hide it.
"""

from types import MappingProxyType
from typing import Iterable, Mapping

from xssrecon.models import CharacterProbe, Verdict

# Characters tested after the marker, in output order
DEFAULT_ALPHABET: tuple[str, ...] = (
    "'", '"', "<", ">", "(", ")", "`", "{", "}", "/", "\\", ";",
)

# Standard HTML entity forms of characters an encoder may convert
DEFAULT_CONVERSIONS: Mapping[str, str] = MappingProxyType({
    "'": "&#039;",
    '"': "&quot;",
    "<": "&lt;",
    ">": "&gt;",
})


def build_probes(
    alphabet: Iterable[str] = DEFAULT_ALPHABET,
    conversions: Mapping[str, str] = DEFAULT_CONVERSIONS,
) -> tuple[CharacterProbe, ...]:
    """Pair each alphabet character with its expected encoded form."""
    return tuple(
        CharacterProbe(character=char, expected_encoded_form=conversions.get(char))
        for char in alphabet
    )


def is_reflected(body: str, marker: str) -> bool:
    """Exact substring check, no normalization or case folding."""
    return marker in body


def classify(
    body: str,
    marker: str,
    character: str,
    encoded_form: str | None = None,
) -> Verdict:
    """
    Classify one probed character.

    Raw ``marker+character`` wins over the encoded form; anything else is
    blocked. There is no unknown outcome.
    """
    if marker + character in body:
        return Verdict.ALLOWED
    if encoded_form and marker + encoded_form in body:
        return Verdict.CONVERTED
    return Verdict.BLOCKED


class ReflectionClassifier:
    """Classifier bound to a marker and an immutable probe alphabet."""

    def __init__(
        self,
        marker: str,
        alphabet: Iterable[str] = DEFAULT_ALPHABET,
        conversions: Mapping[str, str] = DEFAULT_CONVERSIONS,
    ):
        if not marker:
            raise ValueError("marker must be a non-empty string")
        self.marker = marker
        self.probes = build_probes(alphabet, MappingProxyType(dict(conversions)))

    def is_reflected(self, body: str) -> bool:
        return is_reflected(body, self.marker)

    def classify(self, body: str, probe: CharacterProbe) -> Verdict:
        return classify(body, self.marker, probe.character, probe.expected_encoded_form)

    def probe_payload(self, probe: CharacterProbe) -> str:
        """Payload injected when testing probe."""
        return self.marker + probe.character
