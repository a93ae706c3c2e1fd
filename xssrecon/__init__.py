"""
xssrecon - reflected input and special-character filter probe.

For every injection point of a URL, xssrecon:
- injects a marker and checks whether it is reflected, first in the raw
  HTTP response and then in the DOM rendered by headless Chromium
- probes a fixed alphabet of HTML-significant characters and reports each
  as allowed, blocked or converted to an HTML entity
- scans many URLs concurrently, one isolated browser session per worker
"""

__version__ = "1.2.0"

from xssrecon.config import ReconConfig, get_preset
from xssrecon.detectors.reflected import ReflectionClassifier, classify, is_reflected
from xssrecon.errors import (
    FetchError,
    InvalidURL,
    NoInjectionPoint,
    ProxyConfigError,
    ReconError,
    RenderError,
    SessionInitError,
)
from xssrecon.models import CharacterProbe, InjectionTarget, ScanOutcome, ScanStats, Verdict
from xssrecon.scanner import ReconScanner, run_scan, scan_sync
from xssrecon.targets import generate_targets

__all__ = [
    # Engine
    "ReconScanner",
    "run_scan",
    "scan_sync",
    "generate_targets",
    "ReflectionClassifier",
    "classify",
    "is_reflected",
    # Config
    "ReconConfig",
    "get_preset",
    # Model
    "CharacterProbe",
    "InjectionTarget",
    "ScanOutcome",
    "ScanStats",
    "Verdict",
    # Errors
    "ReconError",
    "InvalidURL",
    "NoInjectionPoint",
    "FetchError",
    "RenderError",
    "ProxyConfigError",
    "SessionInitError",
    # Meta
    "__version__",
]
