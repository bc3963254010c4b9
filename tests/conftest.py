from __future__ import annotations

import itertools
import os
from datetime import datetime, timedelta, timezone

import pytest

from marine_workflow.domain.families import (
    CARGO_MANAGER_BOOKINGS,
    SERVICE_REQUESTS,
    SURVEYOR_BOOKINGS,
)
from marine_workflow.domain.identity import Identity, Role
from marine_workflow.domain.records import User, UserStatus, Vessel
from marine_workflow.policy.engine import PolicyEngine
from marine_workflow.policy.models import AccessPolicyConfig
from marine_workflow.storage.memory import InMemoryDirectory, InMemoryRecordStore
from marine_workflow.workflow.engine import WorkflowEngine


def pytest_sessionstart(session: pytest.Session) -> None:
    # Keep settings-driven code away from the on-disk database during unit tests.
    os.environ.setdefault("STORAGE_BACKEND", "memory")


class StepClock:
    """Deterministic clock advancing one second per reading."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


USERS = [
    User(id="admin-1", role=Role.ADMIN),
    User(id="owner-1", role=Role.OWNER),
    User(id="owner-2", role=Role.OWNER),
    User(id="sm-1", role=Role.SHIP_MANAGEMENT),
    User(id="sm-2", role=Role.SHIP_MANAGEMENT),
    User(id="surveyor-1", role=Role.SURVEYOR),
    User(id="surveyor-2", role=Role.SURVEYOR),
    User(id="surveyor-inactive", role=Role.SURVEYOR, status=UserStatus.INACTIVE),
    User(id="cargo-1", role=Role.CARGO_MANAGER),
    User(id="cargo-inactive", role=Role.CARGO_MANAGER, status=UserStatus.INACTIVE),
]

VESSELS = [
    Vessel(id="vessel-1", owner_id="owner-1", ship_management_id="sm-1", vessel_type="Bulk Carrier"),
    Vessel(id="vessel-2", owner_id="owner-2", ship_management_id="sm-2", vessel_type="Tanker"),
]


@pytest.fixture
def directory() -> InMemoryDirectory:
    return InMemoryDirectory(users=list(USERS), vessels=list(VESSELS))


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def policy() -> PolicyEngine:
    return PolicyEngine(AccessPolicyConfig())


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def engines(directory, store, policy, clock) -> dict[str, WorkflowEngine]:
    counter = itertools.count(1)
    return {
        family.key: WorkflowEngine(
            family,
            policy=policy,
            directory=directory,
            store=store,
            clock=clock,
            id_factory=lambda: f"rec-{next(counter)}",
        )
        for family in (SERVICE_REQUESTS, SURVEYOR_BOOKINGS, CARGO_MANAGER_BOOKINGS)
    }


@pytest.fixture
def service_requests(engines) -> WorkflowEngine:
    return engines[SERVICE_REQUESTS.key]


@pytest.fixture
def surveyor_bookings(engines) -> WorkflowEngine:
    return engines[SURVEYOR_BOOKINGS.key]


@pytest.fixture
def cargo_bookings(engines) -> WorkflowEngine:
    return engines[CARGO_MANAGER_BOOKINGS.key]


@pytest.fixture
def admin() -> Identity:
    return Identity("admin-1", Role.ADMIN)


@pytest.fixture
def owner() -> Identity:
    return Identity("owner-1", Role.OWNER)


@pytest.fixture
def other_owner() -> Identity:
    return Identity("owner-2", Role.OWNER)


@pytest.fixture
def ship_manager() -> Identity:
    return Identity("sm-1", Role.SHIP_MANAGEMENT)


@pytest.fixture
def other_ship_manager() -> Identity:
    return Identity("sm-2", Role.SHIP_MANAGEMENT)


@pytest.fixture
def surveyor() -> Identity:
    return Identity("surveyor-1", Role.SURVEYOR)


@pytest.fixture
def cargo_manager() -> Identity:
    return Identity("cargo-1", Role.CARGO_MANAGER)


def service_request_payload(**overrides) -> dict:
    payload = {
        "title": "Hull inspection",
        "description": "Annual hull inspection before drydock",
        "vessel_id": "vessel-1",
        "ship_company_id": "sm-1",
    }
    payload.update(overrides)
    return payload


def surveyor_booking_payload(**overrides) -> dict:
    payload = {
        "surveyor_id": "surveyor-1",
        "inspection_date": "2024-06-01",
        "inspection_time": "09:30",
        "survey_type": "Annual",
        "location": "Port of Rotterdam",
        "vessel_name": "MV Northern Star",
        "vessel_id": "vessel-1",
        "ship_type": "Bulk Carrier",
    }
    payload.update(overrides)
    return payload


def cargo_booking_payload(**overrides) -> dict:
    payload = {
        "cargo_manager_id": "cargo-1",
        "voyage_date": "2024-07-10",
        "voyage_time": "06:00",
        "cargo_type": "Container",
        "departure_port": "Singapore",
        "destination_port": "Rotterdam",
        "vessel_name": "MV Northern Star",
        "vessel_id": "vessel-1",
        "ship_type": "Container Ship",
    }
    payload.update(overrides)
    return payload


def evidence(name: str = "photo.jpg") -> dict:
    return {"name": name, "data": "aGVsbG8="}
