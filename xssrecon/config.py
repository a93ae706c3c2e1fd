"""
Configuration management for xssrecon.

Supports JSON config files, named presets and CLI overrides.
"""

import json
from dataclasses import dataclass, field, asdict, replace
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

from xssrecon.browser import BrowserConfig, SETTLE_DELAY, SETTLE_IDLE
from xssrecon.detectors.reflected import DEFAULT_ALPHABET, DEFAULT_CONVERSIONS
from xssrecon.errors import ProxyConfigError
from xssrecon.utils.http import DEFAULT_USER_AGENT, HTTPConfig

PROXY_SCHEMES = {"http", "https", "socks4", "socks5", "socks5h"}


@dataclass
class NetworkSettings:
    """Network/HTTP settings."""
    timeout: float = 15.0
    concurrency: int = 10
    verify_ssl: bool = False
    proxy: str | None = None
    user_agent: str = DEFAULT_USER_AGENT
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class ScanSettings:
    """Scan behavior settings."""
    marker: str = "rix4uni"
    skip_special_chars: bool = False    # only report the reflection verdict
    alphabet: list[str] = field(default_factory=lambda: list(DEFAULT_ALPHABET))
    conversions: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_CONVERSIONS))

    # Rendering channel
    settle: str = SETTLE_IDLE           # idle or delay
    idle_time: float = 0.5
    settle_delay: float = 2.0
    render_timeout: float | None = None  # defaults to network timeout


@dataclass
class OutputSettings:
    """Output/reporting settings."""
    json: bool = False
    jsonl: bool = False                 # one compact record per line
    verbose: bool = False
    silent: bool = False
    color: bool = True

    @property
    def structured(self) -> bool:
        return self.json or self.jsonl


@dataclass
class ReconConfig:
    """Complete xssrecon configuration."""
    network: NetworkSettings = field(default_factory=NetworkSettings)
    scan: ScanSettings = field(default_factory=ScanSettings)
    output: OutputSettings = field(default_factory=OutputSettings)

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "network": asdict(self.network),
            "scan": asdict(self.scan),
            "output": asdict(self.output),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReconConfig":
        """Create config from dictionary; unknown keys are ignored."""
        config = cls()

        for section in ("network", "scan", "output"):
            settings = getattr(config, section)
            for key, value in data.get(section, {}).items():
                if hasattr(settings, key):
                    setattr(settings, key, value)

        return config

    @classmethod
    def from_file(cls, filepath: str | Path) -> "ReconConfig":
        """Load config from JSON file."""
        filepath = Path(filepath)
        if not filepath.exists():
            raise FileNotFoundError(f"Config file not found: {filepath}")

        with open(filepath) as f:
            data = json.load(f)

        return cls.from_dict(data)

    def save(self, filepath: str | Path):
        """Save config to JSON file."""
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        with open(filepath, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    def validate(self):
        """
        Check settings that must hold before any URL is processed.

        Raises:
            ProxyConfigError: the proxy URL is not usable
            ValueError: any other invalid setting
        """
        if self.network.proxy:
            validate_proxy(self.network.proxy)
        if self.network.concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        if self.network.timeout <= 0:
            raise ValueError("timeout must be positive")
        if not self.scan.marker:
            raise ValueError("marker must not be empty")
        if self.scan.settle not in (SETTLE_IDLE, SETTLE_DELAY):
            raise ValueError(f"unknown settle strategy: {self.scan.settle}")

    def http_config(self) -> HTTPConfig:
        return HTTPConfig(
            timeout=self.network.timeout,
            verify_ssl=self.network.verify_ssl,
            proxy=self.network.proxy,
            headers=dict(self.network.headers),
            user_agent=self.network.user_agent,
        )

    def browser_config(self) -> BrowserConfig:
        return BrowserConfig(
            timeout=self.scan.render_timeout or self.network.timeout,
            settle=self.scan.settle,
            idle_time=self.scan.idle_time,
            settle_delay=self.scan.settle_delay,
            user_agent=self.network.user_agent,
            proxy=self.network.proxy,
            verify_ssl=self.network.verify_ssl,
        )


def validate_proxy(proxy: str) -> str:
    """Return proxy unchanged if it is a usable proxy URL."""
    try:
        parsed = urlsplit(proxy)
        port = parsed.port
    except ValueError as e:
        raise ProxyConfigError(proxy, str(e)) from e

    if parsed.scheme.lower() not in PROXY_SCHEMES:
        raise ProxyConfigError(proxy, f"unsupported scheme {parsed.scheme!r}")
    if not parsed.hostname:
        raise ProxyConfigError(proxy, "missing host")
    if port == 0:
        raise ProxyConfigError(proxy, "port must be non-zero")
    return proxy


# Preset configurations
PRESETS = {
    "fast": ReconConfig(
        network=NetworkSettings(concurrency=20, timeout=10.0),
        scan=ScanSettings(skip_special_chars=True),
    ),
    "thorough": ReconConfig(
        network=NetworkSettings(timeout=20.0),
        scan=ScanSettings(settle=SETTLE_IDLE, idle_time=1.0, render_timeout=45.0),
    ),
    "stealth": ReconConfig(
        network=NetworkSettings(concurrency=2),
    ),
}


def get_preset(name: str) -> ReconConfig:
    """Get a copy of a preset configuration."""
    if name not in PRESETS:
        raise ValueError(f"Unknown preset: {name}. Available: {list(PRESETS.keys())}")
    preset = PRESETS[name]
    return ReconConfig(
        network=replace(preset.network, headers=dict(preset.network.headers)),
        scan=replace(
            preset.scan,
            alphabet=list(preset.scan.alphabet),
            conversions=dict(preset.scan.conversions),
        ),
        output=replace(preset.output),
    )
