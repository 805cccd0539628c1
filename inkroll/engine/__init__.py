"""Engine exports."""

from .dice import (
    DiceEngine,
    DiceExpression,
    DiceParseError,
    DiceRangeError,
    FormulaStatistics,
    MalformedFormulaError,
    RollOutcome,
    parse_dice_expression,
    validate_formula,
)
from .roller import DiceRolledEvent, DiceRoller, InvalidFormulaError

__all__ = [
    "DiceEngine",
    "DiceExpression",
    "DiceParseError",
    "DiceRangeError",
    "DiceRolledEvent",
    "DiceRoller",
    "FormulaStatistics",
    "InvalidFormulaError",
    "MalformedFormulaError",
    "RollOutcome",
    "parse_dice_expression",
    "validate_formula",
]
