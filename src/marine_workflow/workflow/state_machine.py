"""Lifecycle transitions for workflow records.

States are ``pending`` (initial), ``accepted`` and ``declined``. Being assigned
is a flag on top of ``accepted``, not a state of its own::

    pending  --accept(target)-->   accepted
    pending  --decline(target)-->  declined
    accepted --assign(initiator)-> accepted   (last write wins)
    accepted|declined --edit(initiator)--> pending   (decision and assignment cleared)

Every function returns a new record and leaves its argument untouched.
"""

from __future__ import annotations

import copy
from dataclasses import replace
from datetime import datetime
from typing import Any

from marine_workflow.domain.errors import (
    AlreadyDecidedError,
    CorruptRecordError,
    NotAcceptedError,
)
from marine_workflow.domain.operations import DecisionAction
from marine_workflow.domain.records import WorkflowRecord, WorkflowStatus


def new_record(
    *,
    record_id: str,
    family: str,
    initiator_id: str,
    target_id: str,
    subject_vessel_id: str | None,
    payload: dict[str, Any],
    now: datetime,
) -> WorkflowRecord:
    return WorkflowRecord(
        id=record_id,
        family=family,
        initiator_id=initiator_id,
        target_id=target_id,
        subject_vessel_id=subject_vessel_id,
        status=WorkflowStatus.PENDING,
        payload=copy.deepcopy(payload),
        created_at=now,
        updated_at=now,
    )


def decide(
    record: WorkflowRecord,
    action: DecisionAction,
    *,
    actor_id: str,
    note: str | None,
    now: datetime,
) -> WorkflowRecord:
    check_invariants(record)
    if record.status is not WorkflowStatus.PENDING:
        raise AlreadyDecidedError(
            f"Record {record.id} was already {record.status.value}; only pending records can be decided"
        )
    return replace(
        record,
        status=action.resulting_status,
        decided_by=actor_id,
        decided_at=now,
        decision_note=note or "",
        updated_at=now,
    )


def ensure_assignable(record: WorkflowRecord) -> None:
    if record.status is not WorkflowStatus.ACCEPTED:
        raise NotAcceptedError(
            f"Record {record.id} is {record.status.value}; only accepted records can be assigned"
        )


def assign(record: WorkflowRecord, assignment: dict[str, Any], *, now: datetime) -> WorkflowRecord:
    check_invariants(record)
    ensure_assignable(record)
    return replace(
        record,
        assignment=copy.deepcopy(assignment),
        assigned_at=now,
        updated_at=now,
    )


def edit(
    record: WorkflowRecord,
    changes: dict[str, Any],
    *,
    initiator_id: str,
    target_id: str,
    subject_vessel_id: str | None,
    now: datetime,
) -> WorkflowRecord:
    """Apply an initiator edit; any edit of a decided record reopens it."""
    check_invariants(record)
    payload = copy.deepcopy(record.payload)
    payload.update(copy.deepcopy(changes))
    return replace(
        record,
        initiator_id=initiator_id,
        target_id=target_id,
        subject_vessel_id=subject_vessel_id,
        payload=payload,
        status=WorkflowStatus.PENDING,
        decided_by=None,
        decided_at=None,
        decision_note=None,
        assignment=None,
        assigned_at=None,
        updated_at=now,
    )


def check_invariants(record: WorkflowRecord) -> None:
    if not isinstance(record.status, WorkflowStatus):
        raise CorruptRecordError(f"Record {record.id} has unrecognized status {record.status!r}")
    decided = record.decided_by is not None and record.decided_at is not None
    if record.is_decided != decided:
        raise CorruptRecordError(
            f"Record {record.id} is {record.status.value} but its decision fields are "
            f"{'set' if decided else 'missing'}"
        )
    if record.assignment is not None and record.status is not WorkflowStatus.ACCEPTED:
        raise CorruptRecordError(
            f"Record {record.id} carries an assignment while {record.status.value}"
        )
