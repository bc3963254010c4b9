"""Access policy configuration models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from marine_workflow.domain.identity import Role


def _ensure_list(v: Any) -> list:
    """Convert None to empty list, pass through lists."""
    if v is None:
        return []
    return v


class FamilyRoles(BaseModel):
    initiator_role: Role
    target_role: Role

    @field_validator("initiator_role", "target_role", mode="before")
    @classmethod
    def _parse_role(cls, v: Any) -> Role:
        return Role.parse(v)

    @model_validator(mode="after")
    def _distinct_roles(self) -> "FamilyRoles":
        if self.initiator_role is self.target_role:
            raise ValueError("initiator_role and target_role must differ")
        return self


def _default_families() -> dict[str, FamilyRoles]:
    return {
        "service_requests": FamilyRoles(
            initiator_role=Role.OWNER, target_role=Role.SHIP_MANAGEMENT
        ),
        "surveyor_bookings": FamilyRoles(
            initiator_role=Role.SHIP_MANAGEMENT, target_role=Role.SURVEYOR
        ),
        "cargo_manager_bookings": FamilyRoles(
            initiator_role=Role.SHIP_MANAGEMENT, target_role=Role.CARGO_MANAGER
        ),
    }


class AccessPolicyConfig(BaseModel):
    version: int = Field(default=1)
    bypass_roles: list[Role] = Field(default_factory=lambda: [Role.ADMIN])
    families: dict[str, FamilyRoles] = Field(default_factory=_default_families)

    @field_validator("bypass_roles", mode="before")
    @classmethod
    def _validate_bypass_roles(cls, v: Any) -> list:
        return [Role.parse(item) for item in _ensure_list(v)]

    @field_validator("families", mode="before")
    @classmethod
    def _validate_families(cls, v: Any) -> dict:
        if v is None:
            return {}
        return v

    @classmethod
    def from_yaml(cls, data: dict[str, object]) -> "AccessPolicyConfig":
        return cls.model_validate(data)
