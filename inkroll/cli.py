"""Command line entry point for inkroll."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional, Sequence

from .config import configure_logging, get_settings
from .engine import DiceEngine, DiceRoller, InvalidFormulaError
from .engine.storage import SQLiteStore
from .utils import format_roll, format_statistics


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="inkroll",
        description="Roll and analyze dice formulas such as 1d20 or 2d6+3.",
    )
    parser.add_argument("--db", type=Path, help="SQLite database path (default: INKROLL_DB_PATH)")
    parser.add_argument("--log-level", help="Override INKROLL_LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    roll_parser = subparsers.add_parser("roll", help="Roll one or more formulas and record them")
    roll_parser.add_argument("formulas", nargs="+", help="Formulas to roll")
    roll_parser.add_argument("--context", help="Label stored with each roll")

    analyze_parser = subparsers.add_parser("analyze", help="Show min/max/average for a formula")
    analyze_parser.add_argument("formula")

    validate_parser = subparsers.add_parser("validate", help="Check a formula against the grammar")
    validate_parser.add_argument("formula")

    history_parser = subparsers.add_parser("history", help="List recorded rolls, newest first")
    history_parser.add_argument("--limit", type=int, default=20)

    subparsers.add_parser("clear-history", help="Delete every recorded roll")
    subparsers.add_parser("init-db", help="Create the SQLite schema")
    return parser


def _open_store(db_path: Optional[Path]) -> SQLiteStore:
    store = SQLiteStore(db_path)
    store.migrate()
    return store


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level.upper() if args.log_level else None)
    settings = get_settings()

    if args.command == "validate":
        valid = DiceEngine(settings=settings).validate(args.formula)
        print(f"{args.formula}: {'valid' if valid else 'invalid'}")  # noqa: T201
        return 0 if valid else 1

    if args.command == "analyze":
        stats = DiceEngine(settings=settings).analyze(args.formula)
        print(format_statistics(args.formula, stats))  # noqa: T201
        return 0 if stats is not None else 1

    store = _open_store(args.db)
    try:
        if args.command == "init-db":
            print(f"SQLite database ready at {store.path}")  # noqa: T201
            return 0

        if args.command == "history":
            rolls = store.load_rolls(limit=max(args.limit, 0))
            if not rolls and not store.load_rolls(limit=1):
                print("No rolls recorded yet.")  # noqa: T201
            for outcome in rolls:
                stamp = outcome.timestamp.strftime("%Y-%m-%d %H:%M:%S")
                print(f"{stamp}  {format_roll(outcome)}")  # noqa: T201
            return 0

        roller = DiceRoller(store=store, settings=settings)
        if args.command == "roll":
            status = 0
            for formula in args.formulas:
                try:
                    if args.context is None:
                        outcome = roller.roll(formula)
                    else:
                        outcome = roller.roll(formula, context=args.context)
                except InvalidFormulaError as exc:
                    print(f"error: {exc}")  # noqa: T201
                    status = 2
                    continue
                print(format_roll(outcome))  # noqa: T201
            return status

        if args.command == "clear-history":
            roller.clear_history()
            print("Roll history cleared.")  # noqa: T201
            return 0
    finally:
        store.close()

    return 1


if __name__ == "__main__":
    raise SystemExit(main())
