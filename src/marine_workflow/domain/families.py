"""The three workflow families sharing one lifecycle engine."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel

from marine_workflow.domain.payloads import (
    CargoManagerAssignment,
    CargoManagerBookingPayload,
    CargoManagerBookingUpdate,
    ServiceRequestAssignment,
    ServiceRequestPayload,
    ServiceRequestUpdate,
    SurveyorAssignment,
    SurveyorBookingPayload,
    SurveyorBookingUpdate,
)


@dataclass(frozen=True)
class WorkflowFamily:
    """Structural configuration of one family.

    Which roles initiate and decide is access policy, not structure, and lives in
    the policy configuration keyed by ``key``.
    """

    key: str
    label: str
    route: str
    target_field: str
    payload_model: type[BaseModel]
    update_model: type[BaseModel]
    assignment_model: type[BaseModel]
    vessel_required: bool
    vessel_derives_initiator: bool
    require_active_target: bool
    inherits_ship_type: bool
    vessel_owner_view: bool

    @property
    def reference_fields(self) -> frozenset[str]:
        return frozenset({self.target_field, "vessel_id"})


SERVICE_REQUESTS = WorkflowFamily(
    key="service_requests",
    label="service request",
    route="service-requests",
    target_field="ship_company_id",
    payload_model=ServiceRequestPayload,
    update_model=ServiceRequestUpdate,
    assignment_model=ServiceRequestAssignment,
    vessel_required=True,
    vessel_derives_initiator=True,
    require_active_target=False,
    inherits_ship_type=False,
    vessel_owner_view=False,
)

SURVEYOR_BOOKINGS = WorkflowFamily(
    key="surveyor_bookings",
    label="surveyor booking",
    route="surveyor-bookings",
    target_field="surveyor_id",
    payload_model=SurveyorBookingPayload,
    update_model=SurveyorBookingUpdate,
    assignment_model=SurveyorAssignment,
    vessel_required=False,
    vessel_derives_initiator=False,
    require_active_target=True,
    inherits_ship_type=True,
    vessel_owner_view=True,
)

CARGO_MANAGER_BOOKINGS = WorkflowFamily(
    key="cargo_manager_bookings",
    label="cargo manager booking",
    route="cargo-manager-bookings",
    target_field="cargo_manager_id",
    payload_model=CargoManagerBookingPayload,
    update_model=CargoManagerBookingUpdate,
    assignment_model=CargoManagerAssignment,
    vessel_required=False,
    vessel_derives_initiator=False,
    require_active_target=True,
    inherits_ship_type=True,
    vessel_owner_view=True,
)

FAMILIES: dict[str, WorkflowFamily] = {
    family.key: family for family in (SERVICE_REQUESTS, SURVEYOR_BOOKINGS, CARGO_MANAGER_BOOKINGS)
}
