"""Dice roller session: roll history, recent formulas and roll events."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from ..config import Settings, get_settings
from .dice import DiceEngine, DiceParseError, FormulaStatistics, RollOutcome
from .storage import SQLiteStore

logger = logging.getLogger(__name__)

DEFAULT_RECENT_FORMULAS = ("1d20", "2d6", "1d100", "3d6+3", "1d12+2")
DEFAULT_ROLL_CONTEXT = "Rolled from the app"
BOOK_ROLL_CONTEXT = "From the book"
LAST_FORMULA_KEY = "last_formula"


class InvalidFormulaError(DiceParseError):
    """Raised when the roller is asked to roll a formula that fails validation."""


@dataclass(frozen=True)
class DiceRolledEvent:
    """Payload delivered to roller subscribers after each validated roll."""

    outcome: RollOutcome
    formula: str


RollListener = Callable[[DiceRolledEvent], None]


class DiceRoller:
    """
    Stateful front for a DiceEngine.

    Keeps the roll history (newest first) and the recently used formulas in
    memory and mirrors every change into the store. A failed write is logged
    and the in-memory state is kept.
    """

    def __init__(
        self,
        engine: Optional[DiceEngine] = None,
        store: Optional[SQLiteStore] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.engine = engine or DiceEngine(settings=self.settings)
        if store is None:
            store = SQLiteStore(self.settings.db_path_obj)
            store.migrate()
        self.store = store
        self._listeners: list[RollListener] = []

        self.history: list[RollOutcome] = self.store.load_rolls(limit=self.settings.history_limit)
        self.recent_formulas: list[str] = (
            self.store.load_recent_formulas() or list(DEFAULT_RECENT_FORMULAS)
        )
        self.current_formula: str = self.store.get_preference(
            LAST_FORMULA_KEY, self.settings.default_formula
        )

    # Rolling ---------------------------------------------------------
    def roll(
        self,
        formula: Optional[str] = None,
        context: Optional[str] = DEFAULT_ROLL_CONTEXT,
    ) -> RollOutcome:
        """Roll ``formula`` (or the current formula) and record the outcome."""
        formula = formula if formula is not None else self.current_formula
        if not self.engine.validate(formula):
            raise InvalidFormulaError(f"Invalid formula: {formula}")
        try:
            self.engine.parse(formula)
        except DiceParseError as exc:
            # Grammatical but out of range, e.g. 0d6.
            raise InvalidFormulaError(f"Invalid formula: {formula}: {exc}") from exc

        outcome = self.engine.roll(formula, context=context)
        self.history.insert(0, outcome)
        self._remember_formula(formula)
        self._record([outcome])

        event = DiceRolledEvent(outcome=outcome, formula=formula)
        for listener in list(self._listeners):
            listener(event)
        return outcome

    def roll_multiple(self, formulas: Iterable[str]) -> list[RollOutcome]:
        """Roll each formula without validation and prepend them in input order."""
        outcomes = self.engine.roll_multiple(formulas)
        self.history[:0] = outcomes
        self._record(outcomes)
        return outcomes

    def request_roll(
        self,
        formula: str,
        context: Optional[str] = BOOK_ROLL_CONTEXT,
    ) -> RollOutcome:
        """Handle a roll asked for by book content: adopt ``formula`` as current, then roll it."""
        self.update_current_formula(formula)
        return self.roll(formula, context=context)

    def analyze(self, formula: str) -> Optional[FormulaStatistics]:
        return self.engine.analyze(formula)

    # History ---------------------------------------------------------
    def clear_history(self) -> None:
        self.history.clear()
        self._persist(self.store.clear_rolls)

    def delete_roll(self, index: int) -> Optional[RollOutcome]:
        """Remove the history entry at ``index``; out-of-range indexes are ignored."""
        if index < 0 or index >= len(self.history):
            return None
        outcome = self.history.pop(index)
        self._persist(self.store.delete_roll, outcome.id)
        return outcome

    # Formulas --------------------------------------------------------
    def update_current_formula(self, formula: str) -> None:
        self.current_formula = formula
        self._persist(self.store.set_preference, LAST_FORMULA_KEY, formula)

    def _remember_formula(self, formula: str) -> None:
        recent = [item for item in self.recent_formulas if item != formula]
        recent.insert(0, formula)
        self.recent_formulas = recent[: self.settings.recent_limit]
        self._persist(self.store.replace_recent_formulas, self.recent_formulas)

    # Events ----------------------------------------------------------
    def subscribe(self, listener: RollListener) -> Callable[[], None]:
        """Register ``listener`` for roll events. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _record(self, outcomes: list[RollOutcome]) -> None:
        """Persist outcomes already placed at the head of history, newest first."""
        limit = self.settings.history_limit
        del self.history[limit:]
        # The store treats the last saved row as the newest one.
        self._persist(self.store.save_rolls, list(reversed(outcomes)))
        self._persist(self.store.prune_rolls, limit)

    def _persist(self, operation: Callable[..., object], *args: object) -> None:
        try:
            operation(*args)
        except sqlite3.Error as exc:
            logger.error("Failed to save dice roller state: %s", exc)


__all__ = [
    "BOOK_ROLL_CONTEXT",
    "DEFAULT_RECENT_FORMULAS",
    "DEFAULT_ROLL_CONTEXT",
    "DiceRolledEvent",
    "DiceRoller",
    "InvalidFormulaError",
    "RollListener",
]
