"""
Reporter interface used by the scanner.

The scanner calls these hooks as a candidate moves through its stages;
reporters decide what, if anything, to print.
"""

from xssrecon.models import ScanOutcome


class Reporter:
    """No-op reporter; subclasses override the hooks they need."""

    def processing(self, url: str):
        pass

    def base_url(self, url: str):
        pass

    def checking(self, url: str):
        pass

    def outcome(self, outcome: ScanOutcome, probed: bool):
        """Called exactly once per candidate processed to completion."""
