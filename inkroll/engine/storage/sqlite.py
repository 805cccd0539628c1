"""SQLite storage helpers for inkroll."""

from __future__ import annotations

import json
import sqlite3
import threading
from pathlib import Path
from typing import Any, Iterable, Optional

from ...config import ensure_database_path, get_settings
from ..dice import RollOutcome

SCHEMA_PATH = Path(__file__).resolve().with_name("schema.sql")


class SQLiteStore:
    """Thread-safe helper around sqlite3 for roll history and preferences."""

    def __init__(self, db_path: Optional[Path] = None) -> None:
        if db_path is None:
            db_path = get_settings().db_path_obj
        self.path = ensure_database_path(Path(db_path))
        self._connection: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

    def connect(self) -> sqlite3.Connection:
        """Return (and lazily initialize) the sqlite3 connection."""
        with self._lock:
            if self._connection is None:
                connection = sqlite3.connect(
                    self.path,
                    detect_types=sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES,
                    check_same_thread=False,
                )
                connection.row_factory = sqlite3.Row
                self._connection = connection
            return self._connection

    def migrate(self) -> None:
        """Apply the bundled schema.sql."""
        sql = SCHEMA_PATH.read_text(encoding="utf-8")
        conn = self.connect()
        with self._lock:
            conn.executescript(sql)
            conn.commit()

    def close(self) -> None:
        """Close the connection if open."""
        if self._connection is not None:
            with self._lock:
                self._connection.close()
                self._connection = None

    # Roll history ----------------------------------------------------
    def save_roll(self, outcome: RollOutcome) -> None:
        """Append one outcome; it becomes the newest history entry."""
        self.save_rolls([outcome])

    def save_rolls(self, outcomes: Iterable[RollOutcome]) -> None:
        """Append outcomes in order; the last one becomes the newest entry."""
        rows = [
            (
                outcome.id,
                outcome.source_expression_text,
                json.dumps(list(outcome.per_die_results), separators=(",", ":")),
                outcome.total,
                outcome.timestamp.isoformat(),
                outcome.context,
            )
            for outcome in outcomes
        ]
        if not rows:
            return
        conn = self.connect()
        with self._lock:
            conn.executemany(
                """
                INSERT INTO dice_rolls (id, formula, results, total, rolled_at, context)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO NOTHING
                """,
                rows,
            )
            conn.commit()

    def load_rolls(self, limit: Optional[int] = None) -> list[RollOutcome]:
        """Return stored outcomes, newest first."""
        query = """
            SELECT id,
                   formula,
                   results,
                   rolled_at,
                   context
            FROM dice_rolls
            ORDER BY seq DESC
        """
        params: list[Any] = []
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        conn = self.connect()
        with self._lock:
            rows = conn.execute(query, params).fetchall()

        return [
            RollOutcome.from_dict(
                {
                    "id": row["id"],
                    "formula": row["formula"],
                    "results": json.loads(row["results"] or "[]"),
                    "timestamp": row["rolled_at"],
                    "context": row["context"],
                }
            )
            for row in rows
        ]

    def delete_roll(self, roll_id: str) -> bool:
        """Delete a stored outcome by id. True when a row was removed."""
        conn = self.connect()
        with self._lock:
            cursor = conn.execute("DELETE FROM dice_rolls WHERE id = ?", (roll_id,))
            conn.commit()
        return cursor.rowcount > 0

    def prune_rolls(self, keep: int) -> int:
        """Delete all but the newest ``keep`` outcomes, returning how many were removed."""
        conn = self.connect()
        with self._lock:
            cursor = conn.execute(
                """
                DELETE FROM dice_rolls
                WHERE seq NOT IN (
                    SELECT seq FROM dice_rolls ORDER BY seq DESC LIMIT ?
                )
                """,
                (max(keep, 0),),
            )
            conn.commit()
        return cursor.rowcount

    def clear_rolls(self) -> int:
        """Delete every stored outcome, returning how many were removed."""
        conn = self.connect()
        with self._lock:
            cursor = conn.execute("DELETE FROM dice_rolls")
            conn.commit()
        return cursor.rowcount

    # Recent formulas -------------------------------------------------
    def load_recent_formulas(self) -> list[str]:
        """Return the saved recent formulas, most recent first."""
        conn = self.connect()
        with self._lock:
            rows = conn.execute(
                "SELECT formula FROM recent_formulas ORDER BY position ASC"
            ).fetchall()
        return [row["formula"] for row in rows]

    def replace_recent_formulas(self, formulas: Iterable[str]) -> None:
        """Overwrite the recent formula list, keeping the first occurrence of each."""
        ordered = list(dict.fromkeys(formulas))
        conn = self.connect()
        with self._lock:
            conn.execute("DELETE FROM recent_formulas")
            conn.executemany(
                "INSERT INTO recent_formulas (position, formula) VALUES (?, ?)",
                list(enumerate(ordered)),
            )
            conn.commit()

    # Preferences -----------------------------------------------------
    def get_preference(self, key: str, default: Optional[str] = None) -> Optional[str]:
        conn = self.connect()
        with self._lock:
            row = conn.execute(
                "SELECT value FROM preferences WHERE key = ?",
                (key,),
            ).fetchone()
        if not row:
            return default
        return row["value"]

    def set_preference(self, key: str, value: str) -> None:
        conn = self.connect()
        with self._lock:
            conn.execute(
                """
                INSERT INTO preferences (key, value)
                VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value=excluded.value,
                    updated_at=CURRENT_TIMESTAMP
                """,
                (key, value),
            )
            conn.commit()


__all__ = ["SQLiteStore"]
