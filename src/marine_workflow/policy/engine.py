"""Authorization predicate engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from marine_workflow.domain.errors import ErrorKind
from marine_workflow.domain.families import FAMILIES
from marine_workflow.domain.identity import Identity, Role
from marine_workflow.domain.operations import Operation, OperationRef
from marine_workflow.domain.records import RecordFilter, WorkflowRecord, WorkflowStatus
from marine_workflow.policy.models import AccessPolicyConfig, FamilyRoles


@dataclass
class AccessDecision:
    allowed: bool
    kind: ErrorKind | None = None
    reasons: list[str] = field(default_factory=list)


class _Requirement(str, Enum):
    INITIATOR_ROLE = "initiator_role"
    PARTY = "party"
    INITIATOR = "initiator"
    TARGET = "target"
    ANY_CALLER = "any_caller"
    VESSEL_OWNER = "vessel_owner"


# One row per operation; the engine refuses to start if an operation is missing.
_OPERATION_RULES: dict[Operation, _Requirement] = {
    Operation.CREATE: _Requirement.INITIATOR_ROLE,
    Operation.READ: _Requirement.PARTY,
    Operation.LIST: _Requirement.ANY_CALLER,
    Operation.UPDATE: _Requirement.INITIATOR,
    Operation.DECIDE: _Requirement.TARGET,
    Operation.ASSIGN: _Requirement.INITIATOR,
    Operation.DELETE: _Requirement.INITIATOR,
    Operation.VESSEL_OWNER_VIEW: _Requirement.VESSEL_OWNER,
}

_RECORD_REQUIREMENTS = frozenset(
    {_Requirement.PARTY, _Requirement.INITIATOR, _Requirement.TARGET}
)

VESSEL_OWNER_VISIBLE_STATUSES = frozenset({WorkflowStatus.PENDING, WorkflowStatus.ACCEPTED})


class PolicyEngine:
    def __init__(self, config: AccessPolicyConfig) -> None:
        missing_ops = set(Operation) - set(_OPERATION_RULES)
        if missing_ops:
            names = ", ".join(sorted(op.value for op in missing_ops))
            raise ValueError(f"No access rule defined for operations: {names}")

        missing_families = set(FAMILIES) - set(config.families)
        if missing_families:
            names = ", ".join(sorted(missing_families))
            raise ValueError(f"No access roles configured for families: {names}")
        unknown_families = set(config.families) - set(FAMILIES)
        if unknown_families:
            names = ", ".join(sorted(unknown_families))
            raise ValueError(f"Access roles configured for unknown families: {names}")

        self._config = config
        self._bypass_roles = frozenset(config.bypass_roles)

    def roles_for(self, family: str) -> FamilyRoles:
        return self._config.families[family]

    def is_bypass(self, identity: Identity) -> bool:
        return identity.role in self._bypass_roles

    def authorize(
        self,
        identity: Identity,
        operation: OperationRef,
        record: WorkflowRecord | None = None,
    ) -> AccessDecision:
        requirement = _OPERATION_RULES[operation.operation]
        if requirement not in _RECORD_REQUIREMENTS:
            return self._authorize_role(identity, operation, requirement)
        if record is None:
            raise ValueError(f"{operation.key} requires the target record")

        if self.is_bypass(identity):
            return _bypass(identity)

        if requirement is _Requirement.PARTY:
            if record.involves(identity.id):
                return AccessDecision(True)
            return _deny(f"Caller is not a party to record {record.id}")

        if requirement is _Requirement.INITIATOR:
            if identity.id == record.initiator_id:
                return AccessDecision(True)
            return _deny(f"Only the initiator of record {record.id} may perform {operation.key}")

        if identity.id == record.target_id:
            return AccessDecision(True)
        return _deny(f"Only the target of record {record.id} may perform {operation.key}")

    def _authorize_role(
        self, identity: Identity, operation: OperationRef, requirement: _Requirement
    ) -> AccessDecision:
        if self.is_bypass(identity):
            return _bypass(identity)

        if requirement is _Requirement.ANY_CALLER:
            return AccessDecision(True)

        if requirement is _Requirement.VESSEL_OWNER:
            if identity.role is Role.OWNER:
                return AccessDecision(True)
            return _deny(f"Only vessel owners may perform {operation.key}")

        roles = self.roles_for(operation.family)
        if identity.role is roles.initiator_role:
            return AccessDecision(True)
        return _deny(f"Only {roles.initiator_role.value} may perform {operation.key}")

    def visibility_filter(
        self,
        identity: Identity,
        family: str,
        status: WorkflowStatus | None = None,
        counterpart_id: str | None = None,
    ) -> RecordFilter:
        """Build the list filter; caller filters narrow but never widen it."""
        self.roles_for(family)
        statuses = frozenset({status}) if status is not None else None
        if self.is_bypass(identity):
            return RecordFilter(statuses=statuses, counterpart_id=counterpart_id)
        return RecordFilter(
            statuses=statuses,
            party_id=identity.id,
            counterpart_id=counterpart_id,
        )


def _bypass(identity: Identity) -> AccessDecision:
    return AccessDecision(True, reasons=[f"Role {identity.role.value} bypasses ownership"])


def _deny(reason: str) -> AccessDecision:
    return AccessDecision(False, ErrorKind.FORBIDDEN, [reason])
