"""Utility helpers for reusable functionality."""

from .datetime import ensure_aware, format_timestamp, parse_timestamp, utc_now

__all__ = [
    "ensure_aware",
    "format_timestamp",
    "parse_timestamp",
    "utc_now",
]
