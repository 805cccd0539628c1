"""Utility helpers for formatting roll output."""

from __future__ import annotations

from typing import Optional

from ..engine.dice import FormulaStatistics, RollOutcome


def format_roll(outcome: RollOutcome) -> str:
    """Return ``2d6+3 -> [7, 9] = 16`` with the context appended when present."""
    results = ", ".join(str(value) for value in outcome.per_die_results)
    line = f"{outcome.source_expression_text} -> [{results}] = {outcome.total}"
    if outcome.context:
        line += f" ({outcome.context})"
    return line


def format_statistics(formula: str, stats: Optional[FormulaStatistics]) -> str:
    if stats is None:
        return f"{formula}: no statistics available"
    return f"{formula}: min {stats.minimum}, max {stats.maximum}, avg {stats.average:.1f}"


__all__ = ["format_roll", "format_statistics"]
