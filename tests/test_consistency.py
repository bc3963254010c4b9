from dataclasses import replace
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from marine_workflow.domain.errors import (
    CorruptRecordError,
    ForbiddenError,
    InactiveTargetError,
    InvalidReferenceError,
    InvalidRoleError,
)
from marine_workflow.domain.families import (
    CARGO_MANAGER_BOOKINGS,
    SERVICE_REQUESTS,
    SURVEYOR_BOOKINGS,
)
from marine_workflow.domain.identity import Identity, Role
from marine_workflow.domain.payloads import (
    CargoManagerBookingPayload,
    ServiceRequestPayload,
    ServiceRequestUpdate,
    SurveyorBookingPayload,
    SurveyorBookingUpdate,
)
from marine_workflow.domain.records import User, UserStatus, WorkflowRecord, WorkflowStatus
from marine_workflow.workflow.consistency import ConsistencyEnforcer

T0 = datetime(2024, 5, 1, tzinfo=timezone.utc)


@pytest.fixture
def enforcer(directory, store, policy):
    return ConsistencyEnforcer(directory, store, policy)


def _service_request(**overrides):
    data = {
        "title": "Hull inspection",
        "description": "Annual hull inspection before drydock",
        "vessel_id": "vessel-1",
        "ship_company_id": "sm-1",
    }
    data.update(overrides)
    return ServiceRequestPayload.model_validate(data)


def _origin_request(store, vessel_id="vessel-2", family="service_requests"):
    record = WorkflowRecord(
        id="origin-1",
        family=family,
        initiator_id="owner-2",
        target_id="sm-2",
        status=WorkflowStatus.ACCEPTED,
        payload={},
        created_at=T0,
        updated_at=T0,
        subject_vessel_id=vessel_id,
        decided_by="sm-2",
        decided_at=T0,
    )
    store.insert(record)
    return record


def test_service_request_initiator_is_vessel_owner(enforcer, owner):
    refs = enforcer.validate_create(SERVICE_REQUESTS, _service_request(), owner)

    assert refs.initiator_id == "owner-1"
    assert refs.target_id == "sm-1"
    assert refs.subject_vessel_id == "vessel-1"
    assert refs.ship_type is None


def test_admin_files_on_behalf_of_vessel_owner(enforcer, admin):
    refs = enforcer.validate_create(SERVICE_REQUESTS, _service_request(), admin)

    assert refs.initiator_id == "owner-1"


def test_foreign_vessel_is_forbidden(enforcer, other_owner):
    with pytest.raises(ForbiddenError, match="does not own vessel vessel-1"):
        enforcer.validate_create(SERVICE_REQUESTS, _service_request(), other_owner)


def test_unknown_vessel(enforcer, owner):
    with pytest.raises(InvalidReferenceError, match="Vessel vessel-9 not found"):
        enforcer.validate_create(SERVICE_REQUESTS, _service_request(vessel_id="vessel-9"), owner)


def test_target_role_must_match_family(enforcer, owner):
    with pytest.raises(InvalidRoleError, match="expected ship_management"):
        enforcer.validate_create(SERVICE_REQUESTS, _service_request(ship_company_id="surveyor-1"), owner)


def test_booking_target_must_be_active(enforcer, ship_manager):
    payload = CargoManagerBookingPayload.model_validate(
        {
            "cargo_manager_id": "cargo-inactive",
            "voyage_date": "2024-07-10",
            "voyage_time": "06:00",
            "cargo_type": "Bulk",
            "departure_port": "Santos",
            "destination_port": "Qingdao",
            "vessel_name": "MV Southern Cross",
        }
    )

    with pytest.raises(InactiveTargetError):
        enforcer.validate_create(CARGO_MANAGER_BOOKINGS, payload, ship_manager)


def test_booking_inherits_ship_type(enforcer, store, ship_manager):
    _origin_request(store)
    payload = SurveyorBookingPayload.model_validate(
        {
            "surveyor_id": "surveyor-1",
            "inspection_date": "2024-06-01",
            "inspection_time": "10:00",
            "survey_type": "Special",
            "location": "Rotterdam",
            "vessel_name": "MT Aurora",
            "service_request_id": "origin-1",
        }
    )

    refs = enforcer.validate_create(SURVEYOR_BOOKINGS, payload, ship_manager)

    assert refs.ship_type == "Tanker"
    assert refs.initiator_id == "sm-1"
    assert refs.subject_vessel_id is None


def test_inheritance_ignores_records_of_other_families(enforcer, store):
    _origin_request(store, family="surveyor_bookings")

    assert enforcer._inherited_ship_type("origin-1") is None
    assert enforcer._inherited_ship_type("missing") is None


def test_inheritance_tolerates_unreadable_origin(directory, policy, caplog):
    store = MagicMock()
    store.get.side_effect = CorruptRecordError("Record origin-1 has unrecognized status 'Done'")
    enforcer = ConsistencyEnforcer(directory, store, policy)

    assert enforcer._inherited_ship_type("origin-1") is None
    assert "Ignoring unreadable originating request" in caplog.text


def _booking():
    return WorkflowRecord(
        id="rec-1",
        family="surveyor_bookings",
        initiator_id="sm-1",
        target_id="surveyor-1",
        status=WorkflowStatus.PENDING,
        payload={},
        created_at=T0,
        updated_at=T0,
        subject_vessel_id="vessel-1",
    )


def test_update_without_reference_changes_keeps_references(enforcer, ship_manager):
    refs = enforcer.validate_update(
        SURVEYOR_BOOKINGS, _booking(), SurveyorBookingUpdate(location="Antwerp"), ship_manager
    )

    assert refs.initiator_id == "sm-1"
    assert refs.target_id == "surveyor-1"
    assert refs.subject_vessel_id == "vessel-1"


def test_update_unchanged_inactive_target_is_tolerated(enforcer, ship_manager, directory):
    directory.add_user(User(id="surveyor-1", role=Role.SURVEYOR, status=UserStatus.INACTIVE))

    refs = enforcer.validate_update(
        SURVEYOR_BOOKINGS, _booking(), SurveyorBookingUpdate(surveyor_id="surveyor-1"), ship_manager
    )

    assert refs.target_id == "surveyor-1"


def test_update_to_unknown_vessel(enforcer, ship_manager):
    with pytest.raises(InvalidReferenceError):
        enforcer.validate_update(
            SURVEYOR_BOOKINGS, _booking(), SurveyorBookingUpdate(vessel_id="vessel-9"), ship_manager
        )


def test_service_request_vessel_change_rederives_initiator(enforcer, admin):
    record = _booking()
    record.family = "service_requests"
    record.initiator_id = "owner-1"
    record.target_id = "sm-1"

    refs = enforcer.validate_update(
        SERVICE_REQUESTS, record, ServiceRequestUpdate(vessel_id="vessel-2"), admin
    )

    assert refs.initiator_id == "owner-2"
    assert refs.subject_vessel_id == "vessel-2"


def test_service_request_vessel_change_requires_ownership(enforcer):
    record = _booking()
    record.family = "service_requests"
    owner = Identity("owner-1", Role.OWNER)

    with pytest.raises(ForbiddenError):
        enforcer.validate_update(
            SERVICE_REQUESTS, record, ServiceRequestUpdate(vessel_id="vessel-2"), owner
        )


def test_vessel_derived_initiator_needs_a_vessel(enforcer, ship_manager):
    family = replace(SURVEYOR_BOOKINGS, vessel_derives_initiator=True)
    payload = SurveyorBookingPayload.model_validate(
        {
            "surveyor_id": "surveyor-1",
            "inspection_date": "2024-06-01",
            "inspection_time": "10:00",
            "survey_type": "Annual",
            "location": "Rotterdam",
            "vessel_name": "MV Northern Star",
        }
    )

    with pytest.raises(InvalidReferenceError, match="vessel reference is required"):
        enforcer.validate_create(family, payload, ship_manager)
