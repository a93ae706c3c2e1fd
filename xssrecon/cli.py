#!/usr/bin/env python3
"""
xssrecon CLI - reflection and special-character filter probe.

Usage:
    cat urls.txt | xssrecon [options]
    xssrecon -l urls.txt --json

Examples:
    echo "https://example.com/search?q=test" | xssrecon
    echo "https://example.com/p/{payload}/view" | xssrecon --json -c 20
"""

import asyncio
import sys

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from xssrecon import __version__
from xssrecon.config import PRESETS, ReconConfig, get_preset
from xssrecon.errors import ProxyConfigError, SessionInitError
from xssrecon.log import setup_logging
from xssrecon.models import ScanStats
from xssrecon.reporter import ConsoleReporter, JSONReporter
from xssrecon.scanner import run_scan


def print_banner(console: Console):
    """Print the xssrecon banner."""
    banner = "xssrecon - reflected input and special-character filter probe"
    console.print(Panel(banner, title=f"[bold red]xssrecon v{__version__}[/]", expand=False))


def print_summary(console: Console, stats: ScanStats):
    console.print(
        f"[cyan]URLs: {stats.urls_read} (skipped {stats.urls_skipped}) | "
        f"candidates: {stats.candidates_tested} | "
        f"reflected: {stats.candidates_reflected} | "
        f"failed: {stats.candidates_failed} | "
        f"dropped probes: {stats.probes_failed}[/]"
    )


def build_config(
    config_file, preset, user_agent, timeout, skip_special_char, no_color,
    verbose, json_output, jsonl, proxy, concurrency, verify_ssl, settle, silent,
) -> ReconConfig:
    """Layer preset, config file and explicit CLI options, in that order."""
    if config_file:
        config = ReconConfig.from_file(config_file)
    elif preset:
        config = get_preset(preset)
    else:
        config = ReconConfig()

    network, scan, output = config.network, config.scan, config.output
    if user_agent is not None:
        network.user_agent = user_agent
    if timeout is not None:
        network.timeout = timeout
    if proxy is not None:
        network.proxy = proxy
    if concurrency is not None:
        network.concurrency = concurrency
    if verify_ssl:
        network.verify_ssl = True
    if skip_special_char:
        scan.skip_special_chars = True
    if settle is not None:
        scan.settle = settle
    if json_output:
        output.json = True
    if jsonl:
        output.jsonl = True
    if verbose:
        output.verbose = True
    if silent:
        output.silent = True
    if no_color:
        output.color = False
    return config


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-H", "--user-agent", default=None, help="Custom User-Agent header for HTTP requests.")
@click.option("-t", "--timeout", type=float, default=None, help="Timeout for HTTP requests in seconds (default 15).")
@click.option("-s", "--skipspecialchar", "skip_special_char", is_flag=True,
              help="Only check reflection of the marker, skip special characters.")
@click.option("--no-color", is_flag=True, help="Do not use colored output.")
@click.option("--silent", is_flag=True, help="Silent mode.")
@click.option("--verbose", is_flag=True, help="Enable verbose output for debugging purposes.")
@click.option("--json", "json_output", is_flag=True, help="Output results in JSON format.")
@click.option("--jsonl", is_flag=True, help="Output results as one JSON object per line.")
@click.option("-p", "--proxy", default=None, help="Proxy URL (e.g., http://127.0.0.1:8080).")
@click.option("-c", "--concurrency", type=click.IntRange(min=1), default=None,
              help="Number of concurrent workers (default 10).")
@click.option("--verify-ssl", is_flag=True, help="Verify SSL certificates.")
@click.option("--settle", type=click.Choice(["idle", "delay"]), default=None,
              help="How to decide a rendered page has settled (default idle).")
@click.option("-l", "--list", "url_file", type=click.File("r"), default=None,
              help="File with URLs (one per line); defaults to stdin.")
@click.option("--config", "config_file", type=click.Path(exists=True, dir_okay=False), default=None,
              help="JSON config file.")
@click.option("--preset", type=click.Choice(sorted(PRESETS)), default=None, help="Scan preset.")
@click.version_option(version=__version__, prog_name="xssrecon")
def main(user_agent, timeout, skip_special_char, no_color, silent, verbose, json_output,
         jsonl, proxy, concurrency, verify_ssl, settle, url_file, config_file, preset):
    """Probe URLs for reflected input and special-character filtering.

    \b
    URLs are read one per line. Injection points are every query parameter,
    or the literal {payload} placeholder when present.
    """
    config = build_config(
        config_file, preset, user_agent, timeout, skip_special_char, no_color,
        verbose, json_output, jsonl, proxy, concurrency, verify_ssl, settle, silent,
    )
    output = config.output
    err_console = setup_logging(verbose=output.verbose, color=output.color)

    if output.structured:
        reporter = JSONReporter(sys.stdout, lines=output.jsonl)
    else:
        reporter = ConsoleReporter(
            Console(no_color=not output.color, highlight=False, soft_wrap=True),
            verbose=output.verbose,
        )

    if not output.silent and not output.structured:
        print_banner(err_console)

    try:
        config.validate()
    except (ProxyConfigError, ValueError) as e:
        err_console.print(f"[red]Error initializing scanner: {escape(str(e))}[/]")
        sys.exit(1)

    lines = url_file if url_file is not None else sys.stdin

    try:
        stats = asyncio.run(run_scan(lines, config, reporter))
    except SessionInitError as e:
        err_console.print(f"[red]Error initializing scanner: {escape(str(e))}[/]")
        sys.exit(1)
    except KeyboardInterrupt:
        err_console.print("[yellow]Interrupted[/]")
        sys.exit(130)

    if not output.silent:
        print_summary(err_console, stats)


if __name__ == "__main__":
    main()
