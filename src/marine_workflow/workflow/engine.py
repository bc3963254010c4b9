"""Generic lifecycle engine, instantiated once per workflow family."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel

from marine_workflow.domain.errors import (
    ForbiddenError,
    NotFoundError,
    PayloadValidationError,
    UnauthenticatedError,
)
from marine_workflow.domain.families import WorkflowFamily
from marine_workflow.domain.identity import Identity
from marine_workflow.domain.operations import DecisionAction, Operation, OperationRef
from marine_workflow.domain.payloads import ListFilters
from marine_workflow.domain.records import RecordFilter, WorkflowRecord
from marine_workflow.policy.engine import VESSEL_OWNER_VISIBLE_STATUSES, PolicyEngine
from marine_workflow.storage.base import Directory, RecordStore
from marine_workflow.utils.time import utc_now
from marine_workflow.workflow import state_machine
from marine_workflow.workflow.consistency import ConsistencyEnforcer
from marine_workflow.workflow.results import Result, run_operation

logger = logging.getLogger(__name__)

Payload = Mapping[str, Any] | BaseModel


def _new_id() -> str:
    return uuid.uuid4().hex


class WorkflowEngine:
    """Create, read, decide, assign, edit and delete records of one family.

    Every public method returns a :class:`Result`; failures never raise.
    """

    def __init__(
        self,
        family: WorkflowFamily,
        *,
        policy: PolicyEngine,
        directory: Directory,
        store: RecordStore,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._family = family
        self._policy = policy
        self._directory = directory
        self._store = store
        self._clock = clock
        self._id_factory = id_factory
        self._enforcer = ConsistencyEnforcer(directory, store, policy)

    @property
    def family(self) -> WorkflowFamily:
        return self._family

    def create(self, identity: Identity | None, payload: Payload) -> Result[WorkflowRecord]:
        return self._run(Operation.CREATE, lambda: self._create(identity, payload))

    def get(self, identity: Identity | None, record_id: str) -> Result[WorkflowRecord]:
        return self._run(Operation.READ, lambda: self._get(identity, record_id))

    def list(
        self,
        identity: Identity | None,
        filters: Payload | None = None,
    ) -> Result[list[WorkflowRecord]]:
        return self._run(Operation.LIST, lambda: self._list(identity, filters))

    def update(
        self, identity: Identity | None, record_id: str, payload: Payload
    ) -> Result[WorkflowRecord]:
        return self._run(Operation.UPDATE, lambda: self._update(identity, record_id, payload))

    def decide(
        self,
        identity: Identity | None,
        record_id: str,
        action: DecisionAction | str,
        note: str | None = None,
    ) -> Result[WorkflowRecord]:
        return self._run(
            Operation.DECIDE, lambda: self._decide(identity, record_id, action, note)
        )

    def assign(
        self, identity: Identity | None, record_id: str, assignment: Payload
    ) -> Result[WorkflowRecord]:
        return self._run(Operation.ASSIGN, lambda: self._assign(identity, record_id, assignment))

    def delete(self, identity: Identity | None, record_id: str) -> Result[WorkflowRecord]:
        return self._run(Operation.DELETE, lambda: self._delete(identity, record_id))

    def list_for_vessel_owner(self, identity: Identity | None) -> Result[list[WorkflowRecord]]:
        """Open and accepted bookings about vessels the caller owns."""
        return self._run(
            Operation.VESSEL_OWNER_VIEW, lambda: self._list_for_vessel_owner(identity)
        )

    def get_for_vessel_owner(
        self, identity: Identity | None, record_id: str
    ) -> Result[WorkflowRecord]:
        return self._run(
            Operation.VESSEL_OWNER_VIEW,
            lambda: self._get_for_vessel_owner(identity, record_id),
        )

    # Operation bodies

    def _create(self, identity: Identity | None, payload: Payload) -> WorkflowRecord:
        caller = self._require_identity(identity)
        self._authorize(caller, Operation.CREATE)
        data = self._validate(self._family.payload_model, payload)
        refs = self._enforcer.validate_create(self._family, data, caller)

        stored = self._strip_references(data.model_dump(mode="json"))
        if self._family.inherits_ship_type and refs.ship_type:
            stored["ship_type"] = refs.ship_type

        record = state_machine.new_record(
            record_id=self._id_factory(),
            family=self._family.key,
            initiator_id=refs.initiator_id,
            target_id=refs.target_id,
            subject_vessel_id=refs.subject_vessel_id,
            payload=stored,
            now=self._clock(),
        )
        self._store.insert(record)
        logger.info(
            "Created %s %s (initiator=%s, target=%s) by %s",
            self._family.label,
            record.id,
            record.initiator_id,
            record.target_id,
            caller,
        )
        return record

    def _get(self, identity: Identity | None, record_id: str) -> WorkflowRecord:
        caller = self._require_identity(identity)
        record = self._load(record_id)
        self._authorize(caller, Operation.READ, record)
        return record

    def _list(self, identity: Identity | None, filters: Payload | None) -> list[WorkflowRecord]:
        caller = self._require_identity(identity)
        self._authorize(caller, Operation.LIST)
        parsed = self._validate(ListFilters, filters or {})
        record_filter = self._policy.visibility_filter(
            caller,
            self._family.key,
            status=parsed.status,
            counterpart_id=parsed.counterpart_id,
        )
        return self._store.list(self._family.key, record_filter)

    def _update(self, identity: Identity | None, record_id: str, payload: Payload) -> WorkflowRecord:
        caller = self._require_identity(identity)
        record = self._load(record_id)
        self._authorize(caller, Operation.UPDATE, record)
        changes = self._validate(self._family.update_model, payload)
        refs = self._enforcer.validate_update(self._family, record, changes, caller)

        supplied = {
            key: value
            for key, value in changes.model_dump(mode="json", exclude_unset=True).items()
            if value is not None
        }
        updated = state_machine.edit(
            record,
            self._strip_references(supplied),
            initiator_id=refs.initiator_id,
            target_id=refs.target_id,
            subject_vessel_id=refs.subject_vessel_id,
            now=self._clock(),
        )
        self._store.save(updated)
        if record.is_decided:
            logger.info(
                "%s %s reset from %s to pending after edit by %s",
                self._family.label.capitalize(),
                record.id,
                record.status.value,
                caller,
            )
        return updated

    def _decide(
        self,
        identity: Identity | None,
        record_id: str,
        action: DecisionAction | str,
        note: str | None,
    ) -> WorkflowRecord:
        caller = self._require_identity(identity)
        decision = _parse_action(action)
        record = self._load(record_id)
        self._authorize(caller, Operation.DECIDE, record)
        updated = state_machine.decide(
            record, decision, actor_id=caller.id, note=note, now=self._clock()
        )
        self._store.save(updated)
        logger.info(
            "%s %s %s by %s",
            self._family.label.capitalize(),
            record.id,
            updated.status.value,
            caller,
        )
        return updated

    def _assign(self, identity: Identity | None, record_id: str, assignment: Payload) -> WorkflowRecord:
        caller = self._require_identity(identity)
        record = self._load(record_id)
        self._authorize(caller, Operation.ASSIGN, record)
        state_machine.ensure_assignable(record)
        data = self._validate(self._family.assignment_model, assignment)
        updated = state_machine.assign(record, data.model_dump(mode="json"), now=self._clock())
        self._store.save(updated)
        logger.info("Assignment attached to %s %s by %s", self._family.label, record.id, caller)
        return updated

    def _delete(self, identity: Identity | None, record_id: str) -> WorkflowRecord:
        caller = self._require_identity(identity)
        record = self._load(record_id)
        self._authorize(caller, Operation.DELETE, record)
        if not self._store.delete(record.id):
            raise NotFoundError(f"{self._family.label.capitalize()} {record_id} not found")
        logger.info(
            "Deleted %s %s (was %s) by %s",
            self._family.label,
            record.id,
            record.status.value,
            caller,
        )
        return record

    def _list_for_vessel_owner(self, identity: Identity | None) -> list[WorkflowRecord]:
        caller = self._require_identity(identity)
        self._require_vessel_owner_view()
        self._authorize(caller, Operation.VESSEL_OWNER_VIEW)
        vessel_ids = [vessel.id for vessel in self._directory.vessels_owned_by(caller.id)]
        if not vessel_ids:
            return []
        record_filter = RecordFilter.for_vessels(vessel_ids, VESSEL_OWNER_VISIBLE_STATUSES)
        return self._store.list(self._family.key, record_filter)

    def _get_for_vessel_owner(self, identity: Identity | None, record_id: str) -> WorkflowRecord:
        caller = self._require_identity(identity)
        self._require_vessel_owner_view()
        self._authorize(caller, Operation.VESSEL_OWNER_VIEW)
        record = self._load(record_id)
        vessel = (
            self._directory.get_vessel(record.subject_vessel_id)
            if record.subject_vessel_id
            else None
        )
        if vessel is None or vessel.owner_id != caller.id:
            raise NotFoundError(
                f"{self._family.label.capitalize()} {record_id} not found for this owner"
            )
        return record

    # Helpers

    def _run(self, operation: Operation, func: Callable[[], Any]) -> Result[Any]:
        return run_operation(OperationRef(self._family.key, operation).key, func)

    @staticmethod
    def _require_identity(identity: Identity | None) -> Identity:
        if identity is None:
            raise UnauthenticatedError("A caller identity is required")
        return identity

    def _authorize(
        self,
        identity: Identity,
        operation: Operation,
        record: WorkflowRecord | None = None,
    ) -> None:
        decision = self._policy.authorize(
            identity, OperationRef(self._family.key, operation), record
        )
        if not decision.allowed:
            raise ForbiddenError("; ".join(decision.reasons) or "Operation not permitted")

    def _load(self, record_id: str) -> WorkflowRecord:
        record = self._store.get(record_id)
        if record is None or record.family != self._family.key:
            raise NotFoundError(f"{self._family.label.capitalize()} {record_id} not found")
        return record

    def _require_vessel_owner_view(self) -> None:
        if not self._family.vessel_owner_view:
            raise ForbiddenError(f"The vessel owner view is not offered for {self._family.label}s")

    def _strip_references(self, data: dict[str, Any]) -> dict[str, Any]:
        return {key: value for key, value in data.items() if key not in self._family.reference_fields}

    @staticmethod
    def _validate(model: type[BaseModel], payload: Payload) -> Any:
        if isinstance(payload, model):
            return payload
        if isinstance(payload, BaseModel):
            payload = payload.model_dump(exclude_unset=True)
        if not isinstance(payload, Mapping):
            raise PayloadValidationError("Input validation failed: expected an object")
        return model.model_validate(dict(payload))


def _parse_action(action: DecisionAction | str) -> DecisionAction:
    if isinstance(action, DecisionAction):
        return action
    try:
        return DecisionAction(str(action).strip().lower())
    except ValueError:
        raise PayloadValidationError(
            f"Unknown decision {action!r}; expected 'accept' or 'decline'"
        ) from None
