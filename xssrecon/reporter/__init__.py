"""Report generation for xssrecon."""

from xssrecon.reporter.base import Reporter
from xssrecon.reporter.console_report import ConsoleReporter
from xssrecon.reporter.json_report import JSONReporter

__all__ = ["Reporter", "ConsoleReporter", "JSONReporter"]
