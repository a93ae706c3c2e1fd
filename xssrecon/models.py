"""
Data model shared by the generator, classifier and scanner.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class InjectionTarget:
    """One candidate URL with the payload placed at a single injection point."""
    original_url: str
    candidate_url: str
    parameter_key: str | None = None  # None for placeholder targets


@dataclass(frozen=True)
class CharacterProbe:
    """A test character and the HTML entity it is expected to become."""
    character: str
    expected_encoded_form: str | None = None


class Verdict(Enum):
    """Outcome of probing one character."""
    ALLOWED = "allowed"
    BLOCKED = "blocked"
    CONVERTED = "converted"


class Channel(Enum):
    """Fetch channel that showed reflection."""
    STATIC = "static"
    RENDERED = "rendered"


class ProbeState(Enum):
    """Per-candidate pipeline states."""
    GENERATED = "generated"
    STATIC_CHECKED = "static_checked"
    REFLECTED_STATIC = "reflected_static"
    DOM_CHECKED = "dom_checked"
    REFLECTED_DOM = "reflected_dom"
    NOT_REFLECTED = "not_reflected"
    PROBING = "probing"
    DONE = "done"


@dataclass
class ScanOutcome:
    """Result for one (input URL, candidate URL) pair."""
    processing_url: str
    base_url: str
    reflected: bool = False
    channel: Channel | None = None
    allowed: list[str] = field(default_factory=list)
    blocked: list[str] = field(default_factory=list)
    converted: list[tuple[str, str]] = field(default_factory=list)

    def record(self, probe: CharacterProbe, verdict: Verdict):
        """File a character under its verdict."""
        if verdict is Verdict.ALLOWED:
            self.allowed.append(probe.character)
        elif verdict is Verdict.CONVERTED:
            self.converted.append((probe.character, probe.expected_encoded_form))
        else:
            self.blocked.append(probe.character)

    @property
    def counts(self) -> dict[str, int]:
        return {
            "allowed": len(self.allowed),
            "blocked": len(self.blocked),
            "converted": len(self.converted),
        }

    def converted_labels(self) -> list[str]:
        return [f"{char} -> {entity}" for char, entity in self.converted]

    def to_dict(self) -> dict[str, Any]:
        """Convert outcome to the structured output record."""
        return {
            "processing": self.processing_url,
            "baseurl": self.base_url,
            "reflected": self.reflected,
            "allowed": list(self.allowed),
            "blocked": list(self.blocked),
            "converted": self.converted_labels(),
            "count": self.counts,
        }


@dataclass
class ScanStats:
    """Run counters, updated from the event loop only."""
    urls_read: int = 0
    urls_skipped: int = 0
    candidates_tested: int = 0
    candidates_reflected: int = 0
    candidates_failed: int = 0
    probes_failed: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "urls_read": self.urls_read,
            "urls_skipped": self.urls_skipped,
            "candidates_tested": self.candidates_tested,
            "candidates_reflected": self.candidates_reflected,
            "candidates_failed": self.candidates_failed,
            "probes_failed": self.probes_failed,
        }
