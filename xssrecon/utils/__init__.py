"""Utility modules for xssrecon."""

from xssrecon.utils.http import HTTPClient, HTTPConfig

__all__ = ["HTTPClient", "HTTPConfig"]
