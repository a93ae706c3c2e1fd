"""Reflection detection for xssrecon."""

from xssrecon.detectors.reflected import (
    DEFAULT_ALPHABET,
    DEFAULT_CONVERSIONS,
    ReflectionClassifier,
    classify,
    is_reflected,
)

__all__ = [
    "DEFAULT_ALPHABET",
    "DEFAULT_CONVERSIONS",
    "ReflectionClassifier",
    "classify",
    "is_reflected",
]
