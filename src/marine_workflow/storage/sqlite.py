"""SQLite access layer for the directory and workflow records."""

from __future__ import annotations

import json
import sqlite3
import threading
from pathlib import Path
from typing import Any, Mapping, Sequence

from marine_workflow.domain.records import (
    RecordFilter,
    User,
    Vessel,
    WorkflowRecord,
)
from marine_workflow.utils.serialization import json_default

_SqlValue = str | bytes | int | float | None
_SqlParams = Sequence[_SqlValue] | Mapping[str, _SqlValue]

_RECORD_COLUMNS = (
    "id",
    "family",
    "initiator_id",
    "target_id",
    "subject_vessel_id",
    "status",
    "payload",
    "decided_by",
    "decided_at",
    "decision_note",
    "assignment",
    "assigned_at",
    "created_at",
    "updated_at",
)
_JSON_COLUMNS = frozenset({"payload", "assignment"})


class SqliteStore:
    """Implements both the directory and the record store on one connection."""

    def __init__(self, path: str, wal: bool = True) -> None:
        if path != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._closed = False
        if wal and path != ":memory:":
            self._conn.execute("PRAGMA journal_mode=WAL")
        self._init_schema()

    def _init_schema(self) -> None:
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                role TEXT NOT NULL,
                status TEXT NOT NULL,
                name TEXT,
                email TEXT
            );

            CREATE TABLE IF NOT EXISTS vessels (
                id TEXT PRIMARY KEY,
                owner_id TEXT NOT NULL,
                ship_management_id TEXT,
                vessel_type TEXT,
                name TEXT
            );

            CREATE TABLE IF NOT EXISTS workflow_records (
                id TEXT PRIMARY KEY,
                family TEXT NOT NULL,
                initiator_id TEXT NOT NULL,
                target_id TEXT NOT NULL,
                subject_vessel_id TEXT,
                status TEXT NOT NULL,
                payload TEXT NOT NULL,
                decided_by TEXT,
                decided_at TEXT,
                decision_note TEXT,
                assignment TEXT,
                assigned_at TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_vessels_owner_id ON vessels(owner_id);
            CREATE INDEX IF NOT EXISTS idx_records_family_initiator
                ON workflow_records(family, initiator_id, status);
            CREATE INDEX IF NOT EXISTS idx_records_family_target
                ON workflow_records(family, target_id, status);
            CREATE INDEX IF NOT EXISTS idx_records_vessel ON workflow_records(subject_vessel_id);
            """
        )
        self._conn.commit()

    def execute(
        self,
        query: str,
        params: _SqlParams,
    ) -> int:
        with self._lock:
            cursor = self._conn.execute(query, params)
            self._conn.commit()
            return cursor.rowcount

    def fetch_one(
        self,
        query: str,
        params: _SqlParams,
    ) -> sqlite3.Row | None:
        with self._lock:
            cur = self._conn.execute(query, params)
            return cur.fetchone()

    def fetch_all(
        self,
        query: str,
        params: _SqlParams,
    ) -> list[sqlite3.Row]:
        with self._lock:
            cur = self._conn.execute(query, params)
            return cur.fetchall()

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._conn.close()
            self._closed = True

    # Directory

    def upsert_user(self, user: User) -> None:
        self.execute(
            "INSERT OR REPLACE INTO users (id, role, status, name, email) VALUES (?, ?, ?, ?, ?)",
            (user.id, user.role.value, user.status.value, user.name, user.email),
        )

    def upsert_vessel(self, vessel: Vessel) -> None:
        self.execute(
            """
            INSERT OR REPLACE INTO vessels (id, owner_id, ship_management_id, vessel_type, name)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                vessel.id,
                vessel.owner_id,
                vessel.ship_management_id,
                vessel.vessel_type,
                vessel.name,
            ),
        )

    def get_user(self, user_id: str) -> User | None:
        row = self.fetch_one("SELECT * FROM users WHERE id = ?", (user_id,))
        if row is None:
            return None
        return User(**dict(row))

    def get_vessel(self, vessel_id: str) -> Vessel | None:
        row = self.fetch_one("SELECT * FROM vessels WHERE id = ?", (vessel_id,))
        if row is None:
            return None
        return Vessel(**dict(row))

    def vessels_owned_by(self, owner_id: str) -> list[Vessel]:
        rows = self.fetch_all("SELECT * FROM vessels WHERE owner_id = ? ORDER BY id", (owner_id,))
        return [Vessel(**dict(row)) for row in rows]

    # Records

    def get(self, record_id: str) -> WorkflowRecord | None:
        row = self.fetch_one("SELECT * FROM workflow_records WHERE id = ?", (record_id,))
        if row is None:
            return None
        return WorkflowRecord.from_row(_decode_row(row))

    def list(self, family: str, record_filter: RecordFilter) -> list[WorkflowRecord]:
        clauses = ["family = ?"]
        params: list[_SqlValue] = [family]

        if record_filter.statuses is not None:
            if not record_filter.statuses:
                return []
            placeholders = ",".join("?" for _ in record_filter.statuses)
            clauses.append(f"status IN ({placeholders})")
            params.extend(sorted(status.value for status in record_filter.statuses))

        for party in (record_filter.party_id, record_filter.counterpart_id):
            if party is not None:
                clauses.append("(initiator_id = ? OR target_id = ?)")
                params.extend([party, party])

        if record_filter.vessel_ids is not None:
            if not record_filter.vessel_ids:
                return []
            placeholders = ",".join("?" for _ in record_filter.vessel_ids)
            clauses.append(f"subject_vessel_id IN ({placeholders})")
            params.extend(sorted(record_filter.vessel_ids))

        rows = self.fetch_all(
            "SELECT * FROM workflow_records WHERE "
            + " AND ".join(clauses)
            + " ORDER BY created_at DESC",
            params,
        )
        return [WorkflowRecord.from_row(_decode_row(row)) for row in rows]

    def insert(self, record: WorkflowRecord) -> None:
        row = _encode_row(record.to_row())
        placeholders = ", ".join("?" for _ in _RECORD_COLUMNS)
        self.execute(
            f"INSERT INTO workflow_records ({', '.join(_RECORD_COLUMNS)}) VALUES ({placeholders})",
            [row[column] for column in _RECORD_COLUMNS],
        )

    def save(self, record: WorkflowRecord) -> None:
        self.replace_row(record.to_row())

    def delete(self, record_id: str) -> bool:
        return self.execute("DELETE FROM workflow_records WHERE id = ?", (record_id,)) == 1

    def raw_rows(self) -> list[dict[str, Any]]:
        rows = self.fetch_all("SELECT * FROM workflow_records ORDER BY created_at", ())
        return [_decode_row(row) for row in rows]

    def replace_row(self, row: dict[str, Any]) -> None:
        encoded = _encode_row(row)
        placeholders = ", ".join("?" for _ in _RECORD_COLUMNS)
        self.execute(
            f"INSERT OR REPLACE INTO workflow_records ({', '.join(_RECORD_COLUMNS)}) "
            f"VALUES ({placeholders})",
            [encoded[column] for column in _RECORD_COLUMNS],
        )


def _encode_row(row: Mapping[str, Any]) -> dict[str, _SqlValue]:
    encoded: dict[str, _SqlValue] = {}
    for column in _RECORD_COLUMNS:
        value = row.get(column)
        if column in _JSON_COLUMNS:
            if value is None and column == "payload":
                value = {}
            encoded[column] = None if value is None else json.dumps(value, default=json_default)
        else:
            encoded[column] = value
    return encoded


def _decode_row(row: sqlite3.Row) -> dict[str, Any]:
    data = dict(row)
    for column in _JSON_COLUMNS:
        if data.get(column) is not None:
            data[column] = json.loads(data[column])
    return data
