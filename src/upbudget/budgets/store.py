#!/usr/bin/env python3
"""
Budget Store

SQLite persistence for budgets and their category/tag associations.

Categories and tags are records keyed by their Up ids and linked to budgets
through join tables. They are created on first reference and existing
records are never overwritten. The period is stored explicitly; rows written
without one fall back to inference from (start_date, end_date).
"""

import logging
import sqlite3
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

from .models import Budget, BudgetPeriod, infer_period

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS categories (
    id TEXT PRIMARY KEY,
    name TEXT
);

CREATE TABLE IF NOT EXISTS tags (
    id TEXT PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS budgets (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    amount TEXT NOT NULL,
    spent TEXT NOT NULL DEFAULT '0.00',
    category TEXT,
    period TEXT,
    start_date TEXT NOT NULL,
    end_date TEXT,
    color TEXT NOT NULL,
    is_active INTEGER NOT NULL DEFAULT 1,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS budget_categories (
    budget_id TEXT NOT NULL REFERENCES budgets(id) ON DELETE CASCADE,
    category_id TEXT NOT NULL REFERENCES categories(id),
    PRIMARY KEY (budget_id, category_id)
);

CREATE TABLE IF NOT EXISTS budget_tags (
    budget_id TEXT NOT NULL REFERENCES budgets(id) ON DELETE CASCADE,
    tag_id TEXT NOT NULL REFERENCES tags(id),
    position INTEGER NOT NULL,
    PRIMARY KEY (budget_id, tag_id)
);

CREATE TABLE IF NOT EXISTS settings (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


class BudgetStoreError(Exception):
    """Base class for budget store failures."""


class BudgetNotFound(BudgetStoreError):
    """No budget with the requested id is stored."""

    def __init__(self, budget_id: str):
        super().__init__(f"Budget not found: {budget_id}")
        self.budget_id = budget_id


class BudgetStore:
    """
    Budget persistence backed by a SQLite database file.

    Use ":memory:" as db_path for a throwaway database.
    """

    def __init__(self, db_path: Path | str):
        """
        Initialize budget store.

        Args:
            db_path: Location of the SQLite database (created on first use)
        """
        self.db_path = Path(db_path)
        self._connection: sqlite3.Connection | None = None

        if str(db_path) != ":memory:":
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def connect(self) -> sqlite3.Connection:
        """Get or create the database connection, creating the schema on first use."""
        if self._connection is None:
            self._connection = sqlite3.connect(str(self.db_path), check_same_thread=False, timeout=30.0)
            self._connection.execute("PRAGMA journal_mode=WAL")
            self._connection.execute("PRAGMA foreign_keys=ON")
            self._connection.row_factory = sqlite3.Row
            self._connection.executescript(SCHEMA)
        return self._connection

    def close(self) -> None:
        if self._connection:
            self._connection.close()
            self._connection = None

    def __enter__(self) -> "BudgetStore":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # -- writes ------------------------------------------------------------

    def save(self, budget: Budget) -> None:
        """
        Insert a new budget with its category and tag links.

        Raises:
            BudgetStoreError: If a budget with the same id already exists
        """
        conn = self.connect()
        try:
            with conn:
                conn.execute(
                    """
                    INSERT INTO budgets
                        (id, name, amount, spent, category, period, start_date, end_date,
                         color, is_active, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    self._row_values(budget),
                )
                self._write_links(conn, budget)
        except sqlite3.IntegrityError as e:
            raise BudgetStoreError(f"Could not save budget {budget.id}: {e}") from e
        logger.debug(f"Saved budget {budget.id} ({budget.name})")

    def update(self, budget: Budget) -> None:
        """
        Replace a stored budget's fields and links.

        Raises:
            BudgetNotFound: If the budget is not stored
        """
        conn = self.connect()
        with conn:
            cursor = conn.execute(
                """
                UPDATE budgets
                SET name = ?, amount = ?, spent = ?, category = ?, period = ?, start_date = ?,
                    end_date = ?, color = ?, is_active = ?, updated_at = ?
                WHERE id = ?
                """,
                self._row_values(budget)[1:] + (budget.id,),
            )
            if cursor.rowcount == 0:
                raise BudgetNotFound(budget.id)

            conn.execute("DELETE FROM budget_categories WHERE budget_id = ?", (budget.id,))
            conn.execute("DELETE FROM budget_tags WHERE budget_id = ?", (budget.id,))
            self._write_links(conn, budget)

    def delete(self, budget_id: str) -> bool:
        """
        Delete a budget; link rows cascade.

        Returns:
            True if a budget was deleted
        """
        conn = self.connect()
        with conn:
            cursor = conn.execute("DELETE FROM budgets WHERE id = ?", (budget_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.debug(f"Deleted budget {budget_id}")
        return deleted

    def _row_values(self, budget: Budget) -> tuple:
        return (
            budget.id,
            budget.name,
            str(budget.amount),
            str(budget.spent),
            budget.category,
            budget.period.to_storage(),
            budget.start_date.isoformat(),
            budget.end_date.isoformat(),
            budget.color,
            int(budget.is_active),
            datetime.now().astimezone().isoformat(timespec="seconds"),
        )

    def _write_links(self, conn: sqlite3.Connection, budget: Budget) -> None:
        if budget.category_id:
            conn.execute(
                "INSERT INTO categories (id, name) VALUES (?, ?) ON CONFLICT(id) DO NOTHING",
                (budget.category_id, budget.category),
            )
            conn.execute(
                "INSERT INTO budget_categories (budget_id, category_id) VALUES (?, ?)",
                (budget.id, budget.category_id),
            )

        for position, tag in enumerate(dict.fromkeys(budget.tags)):
            conn.execute("INSERT INTO tags (id) VALUES (?) ON CONFLICT(id) DO NOTHING", (tag,))
            conn.execute(
                "INSERT INTO budget_tags (budget_id, tag_id, position) VALUES (?, ?, ?)",
                (budget.id, tag, position),
            )

    # -- reads -------------------------------------------------------------

    def get(self, budget_id: str) -> Budget | None:
        row = self.connect().execute("SELECT * FROM budgets WHERE id = ?", (budget_id,)).fetchone()
        return self._from_row(row) if row else None

    def list_budgets(self) -> list[Budget]:
        """Load all budgets in creation order."""
        rows = self.connect().execute("SELECT * FROM budgets ORDER BY rowid").fetchall()
        return [self._from_row(row) for row in rows]

    def category_name(self, category_id: str) -> str | None:
        row = self.connect().execute("SELECT name FROM categories WHERE id = ?", (category_id,)).fetchone()
        return row["name"] if row else None

    def _from_row(self, row: sqlite3.Row) -> Budget:
        conn = self.connect()
        link = conn.execute(
            "SELECT category_id FROM budget_categories WHERE budget_id = ? LIMIT 1", (row["id"],)
        ).fetchone()
        tags = [
            tag_row["tag_id"]
            for tag_row in conn.execute(
                "SELECT tag_id FROM budget_tags WHERE budget_id = ? ORDER BY position", (row["id"],)
            )
        ]

        start_date = date.fromisoformat(row["start_date"])
        if row["period"]:
            period = BudgetPeriod.from_storage(row["period"])
        elif row["end_date"]:
            period = infer_period(start_date, date.fromisoformat(row["end_date"]))
            logger.debug(f"Inferred period {period.to_storage()} for legacy budget {row['id']}")
        else:
            period = BudgetPeriod.monthly()

        return Budget(
            id=row["id"],
            name=row["name"],
            amount=Decimal(row["amount"]),
            spent=Decimal(row["spent"]),
            category=row["category"],
            category_id=link["category_id"] if link else None,
            tags=tags,
            period=period,
            start_date=start_date,
            color=row["color"],
            is_active=bool(row["is_active"]),
        )

    # -- settings ----------------------------------------------------------

    def get_setting(self, key: str) -> str | None:
        row = self.connect().execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
        return row["value"] if row else None

    def set_setting(self, key: str, value: str) -> None:
        conn = self.connect()
        with conn:
            conn.execute(
                "INSERT INTO settings (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )

    def get_flag(self, key: str) -> bool:
        return self.get_setting(key) == "1"

    def set_flag(self, key: str, value: bool = True) -> None:
        self.set_setting(key, "1" if value else "0")

    # -- metadata ----------------------------------------------------------

    def exists(self) -> bool:
        """Check if any budgets are stored."""
        return bool(self.item_count())

    def item_count(self) -> int | None:
        """Get count of stored budgets."""
        row = self.connect().execute("SELECT COUNT(*) AS n FROM budgets").fetchone()
        return row["n"]

    def size_bytes(self) -> int | None:
        """Get database file size (None for in-memory databases)."""
        if not self.db_path.exists():
            return None
        return self.db_path.stat().st_size

    def last_modified(self) -> datetime | None:
        """Get timestamp of the most recent budget write."""
        row = self.connect().execute("SELECT MAX(updated_at) AS latest FROM budgets").fetchone()
        if not row or row["latest"] is None:
            return None
        return datetime.fromisoformat(row["latest"])

    def summary_text(self) -> str:
        """Get human-readable summary."""
        count = self.item_count()
        if not count:
            return "No budgets stored"
        return f"Budget store: {count} budgets"
