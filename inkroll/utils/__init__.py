"""Utility exports."""

from .formatting import format_roll, format_statistics

__all__ = ["format_roll", "format_statistics"]
