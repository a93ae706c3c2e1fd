"""
Human-readable console output for xssrecon.
"""

from rich.console import Console

from xssrecon.models import ScanOutcome
from xssrecon.reporter.base import Reporter


def format_list(items: list[str]) -> str:
    return "[" + " ".join(items) + "]"


class ConsoleReporter(Reporter):
    """Prints one status line per stage, coloured unless disabled."""

    def __init__(self, console: Console | None = None, verbose: bool = False):
        self.console = console or Console(highlight=False, soft_wrap=True)
        self.verbose = verbose

    def _line(self, text: str, style: str):
        self.console.print(text, style=style, markup=False, highlight=False)

    def processing(self, url: str):
        self.console.print()
        self._line(f"PROCESSING: {url}", "bright_cyan")

    def base_url(self, url: str):
        self._line(f"BASEURL: {url}", "bright_blue")

    def checking(self, url: str):
        if self.verbose:
            self._line(f"CHECKING: {url}", "bright_magenta")

    def outcome(self, outcome: ScanOutcome, probed: bool):
        if not outcome.reflected:
            self._line("REFLECTED: NO", "bright_red")
            return

        channel = f" ({outcome.channel.value})" if outcome.channel and self.verbose else ""
        self._line(f"REFLECTED: YES{channel}", "bright_green")
        if probed:
            self._line(f"ALLOWED: {format_list(outcome.allowed)}", "green")
            self._line(f"BLOCKED: {format_list(outcome.blocked)}", "red")
            self._line(f"CONVERTED: {format_list(outcome.converted_labels())}", "yellow")
