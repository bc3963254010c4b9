"""Directory records and the generic workflow record."""

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from marine_workflow.domain.errors import CorruptRecordError
from marine_workflow.domain.identity import Role
from marine_workflow.utils.time import parse_iso


class WorkflowStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"

    @classmethod
    def parse_persisted(cls, value: object, *, record_id: str | None = None) -> "WorkflowStatus":
        """Parse a stored status strictly; anything outside the enum is corruption."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise CorruptRecordError(
                f"Record {record_id or '<unknown>'} has unrecognized status {value!r}"
            ) from None


class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


@dataclass(frozen=True)
class Vessel:
    id: str
    owner_id: str
    ship_management_id: str | None = None
    vessel_type: str | None = None
    name: str | None = None


@dataclass(frozen=True)
class User:
    id: str
    role: Role
    status: UserStatus = UserStatus.ACTIVE
    name: str | None = None
    email: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", Role.parse(self.role))
        object.__setattr__(self, "status", UserStatus(self.status))

    @property
    def is_active(self) -> bool:
        return self.status is UserStatus.ACTIVE


@dataclass
class WorkflowRecord:
    """A service request or booking awaiting (or carrying) a decision.

    Reference fields (initiator, target, vessel) live on the record itself and
    are never duplicated inside ``payload``.
    """

    id: str
    family: str
    initiator_id: str
    target_id: str
    status: WorkflowStatus
    payload: dict[str, Any]
    created_at: datetime
    updated_at: datetime
    subject_vessel_id: str | None = None
    decided_by: str | None = None
    decided_at: datetime | None = None
    decision_note: str | None = None
    assignment: dict[str, Any] | None = None
    assigned_at: datetime | None = None

    @property
    def is_decided(self) -> bool:
        return self.status is not WorkflowStatus.PENDING

    def involves(self, party_id: str) -> bool:
        return party_id in (self.initiator_id, self.target_id)

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "family": self.family,
            "initiator_id": self.initiator_id,
            "target_id": self.target_id,
            "subject_vessel_id": self.subject_vessel_id,
            "status": self.status.value,
            "payload": copy.deepcopy(self.payload),
            "decided_by": self.decided_by,
            "decided_at": _iso(self.decided_at),
            "decision_note": self.decision_note,
            "assignment": copy.deepcopy(self.assignment),
            "assigned_at": _iso(self.assigned_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "WorkflowRecord":
        record_id = row["id"]
        created_at = parse_iso(row["created_at"])
        updated_at = parse_iso(row["updated_at"])
        if created_at is None or updated_at is None:
            raise CorruptRecordError(f"Record {record_id} is missing timestamps")
        return cls(
            id=record_id,
            family=row["family"],
            initiator_id=row["initiator_id"],
            target_id=row["target_id"],
            subject_vessel_id=row.get("subject_vessel_id"),
            status=WorkflowStatus.parse_persisted(row["status"], record_id=record_id),
            payload=copy.deepcopy(row.get("payload") or {}),
            decided_by=row.get("decided_by"),
            decided_at=parse_iso(row.get("decided_at")),
            decision_note=row.get("decision_note"),
            assignment=copy.deepcopy(row.get("assignment")),
            assigned_at=parse_iso(row.get("assigned_at")),
            created_at=created_at,
            updated_at=updated_at,
        )

    def to_public(self) -> dict[str, Any]:
        assignment = None
        if self.assignment is not None:
            assignment = {**self.assignment, "assigned_at": _iso(self.assigned_at)}
        return {
            "id": self.id,
            "family": self.family,
            "initiator_id": self.initiator_id,
            "target_id": self.target_id,
            "subject_vessel_id": self.subject_vessel_id,
            "status": self.status.value,
            "decided_by": self.decided_by,
            "decided_at": _iso(self.decided_at),
            "decision_note": self.decision_note,
            "payload": copy.deepcopy(self.payload),
            "assignment": assignment,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


@dataclass(frozen=True)
class RecordFilter:
    """Query-level narrowing applied by record stores.

    Every populated field must match. ``party_id`` and ``counterpart_id`` each
    match either side of the record.
    """

    statuses: frozenset[WorkflowStatus] | None = None
    party_id: str | None = None
    counterpart_id: str | None = None
    vessel_ids: frozenset[str] | None = field(default=None)

    @classmethod
    def for_vessels(
        cls, vessel_ids: Iterable[str], statuses: Iterable[WorkflowStatus]
    ) -> "RecordFilter":
        return cls(statuses=frozenset(statuses), vessel_ids=frozenset(vessel_ids))

    def matches(self, record: WorkflowRecord) -> bool:
        if self.statuses is not None and record.status not in self.statuses:
            return False
        if self.party_id is not None and not record.involves(self.party_id):
            return False
        if self.counterpart_id is not None and not record.involves(self.counterpart_id):
            return False
        if self.vessel_ids is not None and record.subject_vessel_id not in self.vessel_ids:
            return False
        return True


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None
