"""In-process directory and record store."""

from __future__ import annotations

import copy
import threading
from typing import Any

from marine_workflow.domain.records import RecordFilter, User, Vessel, WorkflowRecord


class InMemoryDirectory:
    def __init__(
        self,
        users: list[User] | None = None,
        vessels: list[Vessel] | None = None,
    ) -> None:
        self._users: dict[str, User] = {user.id: user for user in users or []}
        self._vessels: dict[str, Vessel] = {vessel.id: vessel for vessel in vessels or []}

    def add_user(self, user: User) -> None:
        self._users[user.id] = user

    def add_vessel(self, vessel: Vessel) -> None:
        self._vessels[vessel.id] = vessel

    def get_user(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    def get_vessel(self, vessel_id: str) -> Vessel | None:
        return self._vessels.get(vessel_id)

    def vessels_owned_by(self, owner_id: str) -> list[Vessel]:
        return [vessel for vessel in self._vessels.values() if vessel.owner_id == owner_id]


class InMemoryRecordStore:
    """Keeps rows, not live objects, so callers never share mutable state."""

    def __init__(self) -> None:
        self._rows: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get(self, record_id: str) -> WorkflowRecord | None:
        with self._lock:
            row = self._rows.get(record_id)
        if row is None:
            return None
        return WorkflowRecord.from_row(row)

    def list(self, family: str, record_filter: RecordFilter) -> list[WorkflowRecord]:
        with self._lock:
            rows = [row for row in self._rows.values() if row["family"] == family]
        records = [WorkflowRecord.from_row(row) for row in rows]
        matched = [record for record in records if record_filter.matches(record)]
        matched.sort(key=lambda record: record.created_at, reverse=True)
        return matched

    def insert(self, record: WorkflowRecord) -> None:
        with self._lock:
            if record.id in self._rows:
                raise ValueError(f"Record {record.id} already exists")
            self._rows[record.id] = record.to_row()

    def save(self, record: WorkflowRecord) -> None:
        with self._lock:
            self._rows[record.id] = record.to_row()

    def delete(self, record_id: str) -> bool:
        with self._lock:
            return self._rows.pop(record_id, None) is not None

    def raw_rows(self) -> list[dict[str, Any]]:
        with self._lock:
            return [copy.deepcopy(row) for row in self._rows.values()]

    def replace_row(self, row: dict[str, Any]) -> None:
        with self._lock:
            self._rows[row["id"]] = copy.deepcopy(row)
