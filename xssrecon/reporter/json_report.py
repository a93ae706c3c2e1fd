"""
JSON report output for xssrecon.
"""

import json
import sys
from typing import TextIO

from xssrecon.models import ScanOutcome
from xssrecon.reporter.base import Reporter


class JSONReporter(Reporter):
    """Writes one JSON record per completed candidate."""

    def __init__(self, stream: TextIO | None = None, lines: bool = False):
        self.stream = stream or sys.stdout
        self.lines = lines
        self.records_written = 0

    def to_json(self, outcome: ScanOutcome) -> str:
        if self.lines:
            return json.dumps(outcome.to_dict(), ensure_ascii=False)
        return json.dumps(outcome.to_dict(), indent=2, ensure_ascii=False)

    def outcome(self, outcome: ScanOutcome, probed: bool):
        # a single write per record keeps concurrent workers from interleaving
        self.stream.write(self.to_json(outcome) + "\n")
        self.stream.flush()
        self.records_written += 1
