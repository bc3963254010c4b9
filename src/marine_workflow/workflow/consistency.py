"""Reference validation and denormalization at create/update time."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pydantic import BaseModel

from marine_workflow.domain.errors import (
    CorruptRecordError,
    ForbiddenError,
    InactiveTargetError,
    InvalidReferenceError,
    InvalidRoleError,
)
from marine_workflow.domain.families import SERVICE_REQUESTS, WorkflowFamily
from marine_workflow.domain.identity import Identity
from marine_workflow.domain.records import User, Vessel, WorkflowRecord
from marine_workflow.policy.engine import PolicyEngine
from marine_workflow.storage.base import Directory, RecordStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedReferences:
    initiator_id: str
    target_id: str
    subject_vessel_id: str | None
    ship_type: str | None = None


class ConsistencyEnforcer:
    def __init__(self, directory: Directory, store: RecordStore, policy: PolicyEngine) -> None:
        self._directory = directory
        self._store = store
        self._policy = policy

    def validate_create(
        self,
        family: WorkflowFamily,
        payload: BaseModel,
        identity: Identity,
    ) -> ResolvedReferences:
        vessel_id = getattr(payload, "vessel_id", None)
        vessel = None
        if family.vessel_required or vessel_id is not None:
            vessel = self._require_vessel(vessel_id)

        if family.vessel_derives_initiator:
            vessel = vessel or self._require_vessel(vessel_id)
            self._check_vessel_ownership(vessel, identity)
            initiator_id = vessel.owner_id
        else:
            initiator_id = identity.id

        target_id = getattr(payload, family.target_field)
        self._require_target(family, target_id, require_active=family.require_active_target)

        ship_type = None
        if family.inherits_ship_type:
            ship_type = self._inherited_ship_type(getattr(payload, "service_request_id", None))

        return ResolvedReferences(
            initiator_id=initiator_id,
            target_id=target_id,
            subject_vessel_id=vessel.id if vessel is not None else None,
            ship_type=ship_type,
        )

    def validate_update(
        self,
        family: WorkflowFamily,
        record: WorkflowRecord,
        changes: BaseModel,
        identity: Identity,
    ) -> ResolvedReferences:
        """Re-validate only the references an update actually changes."""
        supplied = changes.model_fields_set
        initiator_id = record.initiator_id
        subject_vessel_id = record.subject_vessel_id
        target_id = record.target_id

        new_vessel_id = getattr(changes, "vessel_id", None) if "vessel_id" in supplied else None
        if new_vessel_id is not None and new_vessel_id != record.subject_vessel_id:
            vessel = self._require_vessel(new_vessel_id)
            if family.vessel_derives_initiator:
                self._check_vessel_ownership(vessel, identity)
                initiator_id = vessel.owner_id
            subject_vessel_id = vessel.id

        new_target_id = (
            getattr(changes, family.target_field, None) if family.target_field in supplied else None
        )
        if new_target_id is not None and new_target_id != record.target_id:
            self._require_target(family, new_target_id, require_active=family.require_active_target)
            target_id = new_target_id

        return ResolvedReferences(
            initiator_id=initiator_id,
            target_id=target_id,
            subject_vessel_id=subject_vessel_id,
        )

    def _require_vessel(self, vessel_id: str | None) -> Vessel:
        if not vessel_id:
            raise InvalidReferenceError("A vessel reference is required")
        vessel = self._directory.get_vessel(vessel_id)
        if vessel is None:
            raise InvalidReferenceError(f"Vessel {vessel_id} not found")
        return vessel

    def _check_vessel_ownership(self, vessel: Vessel, identity: Identity) -> None:
        if self._policy.is_bypass(identity):
            return
        if vessel.owner_id != identity.id:
            raise ForbiddenError(f"Caller does not own vessel {vessel.id}")

    def _require_target(self, family: WorkflowFamily, target_id: str, *, require_active: bool) -> User:
        expected_role = self._policy.roles_for(family.key).target_role
        user = self._directory.get_user(target_id)
        if user is None:
            raise InvalidReferenceError(f"User {target_id} not found")
        if user.role is not expected_role:
            raise InvalidRoleError(
                f"User {target_id} has role {user.role.value}; expected {expected_role.value}"
            )
        if require_active and not user.is_active:
            raise InactiveTargetError(f"User {target_id} is not active")
        return user

    def _inherited_ship_type(self, service_request_id: str | None) -> str | None:
        if service_request_id is None:
            return None
        try:
            origin = self._store.get(service_request_id)
        except CorruptRecordError as exc:
            logger.warning("Ignoring unreadable originating request %s: %s", service_request_id, exc)
            return None
        if origin is None or origin.family != SERVICE_REQUESTS.key:
            return None
        if origin.subject_vessel_id is None:
            return None
        vessel = self._directory.get_vessel(origin.subject_vessel_id)
        if vessel is None:
            return None
        return vessel.vessel_type
