"""Collaborator protocols consumed by the workflow engine."""

from __future__ import annotations

from typing import Any, Protocol

from marine_workflow.domain.records import RecordFilter, User, Vessel, WorkflowRecord


class Directory(Protocol):
    """Read-only vessel and user lookups."""

    def get_vessel(self, vessel_id: str) -> Vessel | None: ...

    def get_user(self, user_id: str) -> User | None: ...

    def vessels_owned_by(self, owner_id: str) -> list[Vessel]: ...


class RecordStore(Protocol):
    """Persistence for workflow records. Writes are last-write-wins."""

    def get(self, record_id: str) -> WorkflowRecord | None: ...

    def list(self, family: str, record_filter: RecordFilter) -> list[WorkflowRecord]: ...

    def insert(self, record: WorkflowRecord) -> None: ...

    def save(self, record: WorkflowRecord) -> None: ...

    def delete(self, record_id: str) -> bool: ...

    def raw_rows(self) -> list[dict[str, Any]]: ...

    def replace_row(self, row: dict[str, Any]) -> None: ...
