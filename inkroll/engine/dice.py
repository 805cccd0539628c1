"""Dice notation parsing, rolling and analysis.

Formulas follow the compact ``<count>d<sides>[+|-<modifier>]`` notation, e.g.
``1d20``, ``2d6+3`` or ``3d6-3``. Whitespace, multiple dice groups and other
operators are rejected.

The modifier is applied to every die, not once to the total: ``2d6+3`` rolls
two dice and adds 3 to each of them before summing.
"""

from __future__ import annotations

import logging
import random
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional, Protocol

from ..config import Settings, get_settings

logger = logging.getLogger(__name__)

DICE_PATTERN = re.compile(
    r"(?P<count>[0-9]+)d(?P<sides>[0-9]+)(?:(?P<sign>[+-])(?P<modifier>[0-9]+))?",
    re.ASCII,
)
DEFAULT_FORMULA = "1d20"


class RandomSource(Protocol):
    """Anything that draws a uniform integer from ``[low, high]`` inclusive."""

    def randint(self, low: int, high: int) -> int:
        ...


class DiceParseError(ValueError):
    """Raised when a formula cannot be turned into a dice expression."""


class MalformedFormulaError(DiceParseError):
    """The text does not match the dice grammar."""


class DiceRangeError(DiceParseError):
    """The text is grammatical but the dice it describes are out of range."""


@dataclass(frozen=True)
class DiceExpression:
    dice_count: int
    sides: int
    modifier: int = 0
    modifier_is_subtractive: bool = False

    def __post_init__(self) -> None:
        if self.dice_count < 1:
            raise DiceRangeError(f"Dice count must be at least 1, got {self.dice_count}")
        if self.sides < 2:
            raise DiceRangeError(f"Dice need at least 2 sides, got {self.sides}")

    @property
    def die_adjustment(self) -> int:
        """Signed amount added to each individual die."""
        return -self.modifier if self.modifier_is_subtractive else self.modifier

    def adjust(self, value: int) -> int:
        return value + self.die_adjustment

    @property
    def notation(self) -> str:
        text = f"{self.dice_count}d{self.sides}"
        if self.modifier:
            sign = "-" if self.modifier_is_subtractive else "+"
            text += f"{sign}{self.modifier}"
        return text

    def __str__(self) -> str:
        return self.notation


DEFAULT_EXPRESSION = DiceExpression(dice_count=1, sides=20)


@dataclass(frozen=True)
class RollOutcome:
    """One evaluation of a formula. ``total`` is always the sum of the results."""

    source_expression_text: str
    per_die_results: tuple[int, ...]
    context: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    total: int = field(init=False)

    def __post_init__(self) -> None:
        results = tuple(self.per_die_results)
        object.__setattr__(self, "per_die_results", results)
        object.__setattr__(self, "total", sum(results))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "formula": self.source_expression_text,
            "results": list(self.per_die_results),
            "total": self.total,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RollOutcome":
        timestamp = data["timestamp"]
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)
        return cls(
            source_expression_text=data["formula"],
            per_die_results=tuple(int(value) for value in data["results"]),
            context=data.get("context"),
            timestamp=timestamp,
            id=data["id"],
        )


@dataclass(frozen=True)
class FormulaStatistics:
    minimum: int
    maximum: int
    average: float


def validate_formula(text: str) -> bool:
    """True when ``text`` matches the dice grammar exactly."""
    if not isinstance(text, str):
        return False
    return DICE_PATTERN.fullmatch(text) is not None


def parse_dice_expression(
    text: str,
    *,
    max_dice: Optional[int] = None,
    max_sides: Optional[int] = None,
) -> DiceExpression:
    """
    Parse ``text`` into a DiceExpression.

    Raises MalformedFormulaError when the grammar does not match and
    DiceRangeError when the dice fall outside ``1 <= count``/``2 <= sides`` or
    the optional maxima.
    """
    match = DICE_PATTERN.fullmatch(text) if isinstance(text, str) else None
    if not match:
        raise MalformedFormulaError(f"Could not parse dice formula: {text!r}")

    count = int(match.group("count"))
    sides = int(match.group("sides"))
    modifier = int(match.group("modifier") or 0)
    subtractive = match.group("sign") == "-"

    if max_dice is not None and count > max_dice:
        raise DiceRangeError(f"Too many dice: {count} (max {max_dice})")
    if max_sides is not None and sides > max_sides:
        raise DiceRangeError(f"Too many sides: {sides} (max {max_sides})")

    return DiceExpression(
        dice_count=count,
        sides=sides,
        modifier=modifier,
        modifier_is_subtractive=subtractive,
    )


def expression_statistics(expression: DiceExpression) -> FormulaStatistics:
    """Bounds and mean of a roll, with the modifier applied per die."""
    adjustment = expression.die_adjustment
    count = expression.dice_count
    return FormulaStatistics(
        minimum=count * (1 + adjustment),
        maximum=count * (expression.sides + adjustment),
        average=count * ((1 + expression.sides) / 2 + adjustment),
    )


class DiceEngine:
    """
    Parse, validate, roll and analyze dice formulas.

    Each engine owns its random source, so engines never share PRNG state.
    Inject ``rng`` (anything with ``randint(low, high)``) for deterministic
    rolls and ``clock`` to pin timestamps.
    """

    def __init__(
        self,
        rng: Optional[RandomSource] = None,
        *,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.rng = rng or random.Random()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def parse(self, text: str) -> DiceExpression:
        return parse_dice_expression(
            text,
            max_dice=self.settings.max_dice,
            max_sides=self.settings.max_sides,
        )

    def validate(self, text: str) -> bool:
        return validate_formula(text)

    def roll(self, text: str, context: Optional[str] = None) -> RollOutcome:
        """
        Roll ``text`` once.

        Never raises: a formula that fails to parse is rolled as 1d20, while the
        outcome still records the text the caller passed in.
        """
        try:
            expression = self.parse(text)
        except DiceParseError as exc:
            logger.warning("Rolling %s instead of %r: %s", DEFAULT_FORMULA, text, exc)
            expression = DEFAULT_EXPRESSION

        results = [
            expression.adjust(self.rng.randint(1, expression.sides))
            for _ in range(expression.dice_count)
        ]
        outcome = RollOutcome(
            source_expression_text=text,
            per_die_results=results,
            context=context,
            timestamp=self._clock(),
        )
        logger.debug("Rolled %s -> %s = %s", text, results, outcome.total)
        return outcome

    def roll_multiple(self, texts: Iterable[str]) -> list[RollOutcome]:
        return [self.roll(text) for text in texts]

    def analyze(self, text: str) -> Optional[FormulaStatistics]:
        """Statistics for ``text``, or None when it does not parse."""
        try:
            expression = self.parse(text)
        except DiceParseError:
            return None
        return expression_statistics(expression)


__all__ = [
    "DEFAULT_EXPRESSION",
    "DEFAULT_FORMULA",
    "DiceEngine",
    "DiceExpression",
    "DiceParseError",
    "DiceRangeError",
    "FormulaStatistics",
    "MalformedFormulaError",
    "RandomSource",
    "RollOutcome",
    "expression_statistics",
    "parse_dice_expression",
    "validate_formula",
]
