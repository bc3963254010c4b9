from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from marine_workflow.domain.identity import Role
from marine_workflow.policy.loader import load_policy

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def test_load_policy_file_not_found(tmp_path: Path) -> None:
    missing = tmp_path / "missing-policy.yaml"
    with pytest.raises(FileNotFoundError):
        load_policy(str(missing))


def test_load_policy_defaults_without_path() -> None:
    loaded = load_policy(None)

    assert loaded.bypass_roles == [Role.ADMIN]
    assert loaded.families["service_requests"].initiator_role is Role.OWNER
    assert loaded.families["cargo_manager_bookings"].target_role is Role.CARGO_MANAGER


def test_load_policy_success(tmp_path: Path) -> None:
    policy = {
        "version": 1,
        "bypass_roles": ["Admin"],
        "families": {
            "service_requests": {"initiator_role": "owner", "target_role": "ship_management"},
            "surveyor_bookings": {"initiator_role": "admin", "target_role": "surveyor"},
            "cargo_manager_bookings": {
                "initiator_role": "ship_management",
                "target_role": "cargo_manager",
            },
        },
    }
    path = tmp_path / "policy.yaml"
    path.write_text(yaml.safe_dump(policy), encoding="utf-8")

    loaded = load_policy(str(path))

    assert loaded.bypass_roles == [Role.ADMIN]
    assert loaded.families["surveyor_bookings"].initiator_role is Role.ADMIN


def test_load_policy_empty_file_uses_defaults(tmp_path: Path) -> None:
    path = tmp_path / "policy.yaml"
    path.write_text("", encoding="utf-8")

    loaded = load_policy(str(path))

    assert set(loaded.families) == {"service_requests", "surveyor_bookings", "cargo_manager_bookings"}


def test_load_policy_rejects_same_initiator_and_target(tmp_path: Path) -> None:
    path = tmp_path / "policy.yaml"
    path.write_text(
        yaml.safe_dump(
            {"families": {"service_requests": {"initiator_role": "owner", "target_role": "owner"}}}
        ),
        encoding="utf-8",
    )

    with pytest.raises(ValidationError, match="must differ"):
        load_policy(str(path))


def test_load_policy_rejects_unknown_role(tmp_path: Path) -> None:
    path = tmp_path / "policy.yaml"
    path.write_text(yaml.safe_dump({"bypass_roles": ["captain"]}), encoding="utf-8")

    with pytest.raises(ValidationError):
        load_policy(str(path))


def test_bundled_policy_matches_defaults() -> None:
    bundled = load_policy(str(PROJECT_ROOT / "policy.yaml"))
    defaults = load_policy(None)

    assert bundled.model_dump() == defaults.model_dump()
