"""Bonus persistence: the repository interface and a local SQLite store."""

from __future__ import annotations

import dataclasses
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterator, Protocol

from bonustrack.errors import BonusNotFoundError, ConflictError
from bonustrack.models import BonusRecord, BonusStatus

# Only the transition rule may change these
STATUS_FIELDS = frozenset({"status", "requirements_met", "received_date"})

EDITABLE_FIELDS = frozenset({
    "institution_name",
    "card_name",
    "bonus_type",
    "bonus_amount",
    "bonus_value_amount",
    "deadline",
    "spend_requirement",
    "current_spend",
    "is_taxable",
    "taxable_amount",
    "form_1099_received",
    "notes",
})

_DECIMAL_COLUMNS = ("bonus_amount", "bonus_value_amount", "spend_requirement", "current_spend", "taxable_amount")
_DATE_COLUMNS = ("deadline", "received_date")
_BOOL_COLUMNS = ("requirements_met", "is_taxable", "form_1099_received")


class BonusRepository(Protocol):
    """Storage operations the lifecycle service relies on."""

    def load_bonus_records(self, user_id: str) -> list[BonusRecord]: ...

    def get_bonus(self, bonus_id: str) -> BonusRecord | None: ...

    def add_bonus(self, user_id: str, record: BonusRecord) -> BonusRecord: ...

    def update_bonus(self, bonus_id: str, **fields: Any) -> BonusRecord: ...

    def save_bonus_status(
        self,
        bonus_id: str,
        expected_status: BonusStatus,
        new_status: BonusStatus,
        fields: dict[str, Any],
    ) -> BonusRecord: ...

    def delete_bonus(self, bonus_id: str) -> bool: ...


def check_editable(fields: dict[str, Any]) -> None:
    """Reject field edits that would bypass the transition rule."""
    blocked = STATUS_FIELDS.intersection(fields)
    if blocked:
        raise ValueError(
            f"Cannot edit {', '.join(sorted(blocked))} directly; use a status transition"
        )
    unknown = set(fields) - EDITABLE_FIELDS
    if unknown:
        raise ValueError(f"Unknown bonus fields: {', '.join(sorted(unknown))}")


def _to_db(name: str, value: Any) -> Any:
    if value is None:
        return None
    if name in _DECIMAL_COLUMNS:
        return str(value)
    if name in _BOOL_COLUMNS:
        return int(bool(value))
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if name in ("status", "category"):
        return str(value)
    return value


def _row_to_record(row: sqlite3.Row) -> BonusRecord:
    values: dict[str, Any] = {}
    for field in dataclasses.fields(BonusRecord):
        raw = row[field.name]
        if raw is None:
            if field.name in _BOOL_COLUMNS:
                continue
            values[field.name] = None
        elif field.name in _DECIMAL_COLUMNS:
            values[field.name] = Decimal(raw)
        elif field.name in _DATE_COLUMNS:
            values[field.name] = date.fromisoformat(raw)
        elif field.name in _BOOL_COLUMNS:
            values[field.name] = bool(raw)
        elif field.name == "created_at":
            values[field.name] = datetime.fromisoformat(raw)
        else:
            values[field.name] = raw
    return BonusRecord(**values)


class BonusStore:
    """Bonus repository backed by a local SQLite database."""

    def __init__(self, path: str | Path = "bonustrack.db") -> None:
        self.path = Path(path)
        self._init_schema()

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def _init_schema(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS bonuses (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    category TEXT NOT NULL,
                    institution_name TEXT NOT NULL,
                    card_name TEXT,
                    bonus_type TEXT,
                    bonus_amount TEXT NOT NULL,
                    bonus_value_amount TEXT,
                    status TEXT NOT NULL DEFAULT 'pending',
                    requirements_met INTEGER NOT NULL DEFAULT 0,
                    deadline TEXT,
                    spend_requirement TEXT,
                    current_spend TEXT,
                    received_date TEXT,
                    is_taxable INTEGER NOT NULL DEFAULT 1,
                    taxable_amount TEXT,
                    form_1099_received INTEGER NOT NULL DEFAULT 0,
                    notes TEXT,
                    created_at TEXT,
                    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
                );

                CREATE INDEX IF NOT EXISTS idx_bonuses_user ON bonuses(user_id);

                CREATE TABLE IF NOT EXISTS status_audit (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    bonus_id TEXT NOT NULL,
                    from_status TEXT NOT NULL,
                    to_status TEXT NOT NULL,
                    reason TEXT,
                    changed_at DATETIME DEFAULT CURRENT_TIMESTAMP
                );
                """
            )

    def load_bonus_records(self, user_id: str) -> list[BonusRecord]:
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM bonuses WHERE user_id = ? ORDER BY created_at DESC, id",
                (user_id,),
            ).fetchall()
        return [_row_to_record(row) for row in rows]

    def get_bonus(self, bonus_id: str) -> BonusRecord | None:
        with self.connect() as conn:
            row = conn.execute("SELECT * FROM bonuses WHERE id = ?", (bonus_id,)).fetchone()
        return _row_to_record(row) if row else None

    def add_bonus(self, user_id: str, record: BonusRecord) -> BonusRecord:
        columns = [field.name for field in dataclasses.fields(BonusRecord)]
        values = [_to_db(name, getattr(record, name)) for name in columns]
        placeholders = ", ".join("?" for _ in range(len(columns) + 1))
        with self.connect() as conn:
            conn.execute(
                f"INSERT INTO bonuses(user_id, {', '.join(columns)}) VALUES ({placeholders})",
                [user_id, *values],
            )
        return record

    def update_bonus(self, bonus_id: str, **fields: Any) -> BonusRecord:
        """Edit non-status fields of a bonus."""
        check_editable(fields)
        current = self.get_bonus(bonus_id)
        if current is None:
            raise BonusNotFoundError(bonus_id)
        # replace() re-runs the category checks in BonusRecord.__post_init__
        updated = dataclasses.replace(current, **fields)
        if not fields:
            return updated

        assignments = ", ".join(f"{name} = ?" for name in fields)
        params = [_to_db(name, getattr(updated, name)) for name in fields]
        with self.connect() as conn:
            conn.execute(
                f"UPDATE bonuses SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                [*params, bonus_id],
            )
        return updated

    def save_bonus_status(
        self,
        bonus_id: str,
        expected_status: BonusStatus,
        new_status: BonusStatus,
        fields: dict[str, Any],
    ) -> BonusRecord:
        """
        Change the status only if the stored status is still the expected one.

        Raises:
            ConflictError: The stored status changed since it was read
            BonusNotFoundError: The bonus no longer exists
        """
        extra = set(fields) - {"requirements_met", "received_date"}
        if extra:
            raise ValueError(f"Unexpected status fields: {', '.join(sorted(extra))}")

        assignments = ["status = ?"]
        params: list[Any] = [str(new_status)]
        for name, value in fields.items():
            assignments.append(f"{name} = ?")
            params.append(_to_db(name, value))

        with self.connect() as conn:
            result = conn.execute(
                f"UPDATE bonuses SET {', '.join(assignments)}, updated_at = CURRENT_TIMESTAMP "
                "WHERE id = ? AND status = ?",
                [*params, bonus_id, str(expected_status)],
            )
            if result.rowcount == 0:
                row = conn.execute(
                    "SELECT status FROM bonuses WHERE id = ?", (bonus_id,)
                ).fetchone()
                if row is None:
                    raise BonusNotFoundError(bonus_id)
                raise ConflictError(bonus_id, str(expected_status), row["status"])

        record = self.get_bonus(bonus_id)
        if record is None:
            raise BonusNotFoundError(bonus_id)
        return record

    def delete_bonus(self, bonus_id: str) -> bool:
        with self.connect() as conn:
            result = conn.execute("DELETE FROM bonuses WHERE id = ?", (bonus_id,))
        return result.rowcount > 0

    def log_override(
        self,
        bonus_id: str,
        from_status: BonusStatus,
        to_status: BonusStatus,
        reason: str | None = None,
    ) -> None:
        with self.connect() as conn:
            conn.execute(
                "INSERT INTO status_audit(bonus_id, from_status, to_status, reason) "
                "VALUES (?, ?, ?, ?)",
                (bonus_id, str(from_status), str(to_status), reason),
            )

    def fetch_audit(self, bonus_id: str | None = None) -> list[sqlite3.Row]:
        query = "SELECT * FROM status_audit"
        params: list[str] = []
        if bonus_id:
            query += " WHERE bonus_id = ?"
            params.append(bonus_id)
        query += " ORDER BY id"
        with self.connect() as conn:
            return conn.execute(query, params).fetchall()
