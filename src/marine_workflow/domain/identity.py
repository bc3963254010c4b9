"""Caller identity and its request-scoped context."""

from __future__ import annotations

from contextvars import ContextVar, Token
from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    ADMIN = "admin"
    SHIP_MANAGEMENT = "ship_management"
    OWNER = "owner"
    SURVEYOR = "surveyor"
    CARGO_MANAGER = "cargo_manager"
    USER = "user"

    @classmethod
    def parse(cls, value: object) -> "Role":
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        try:
            return cls(text)
        except ValueError:
            raise ValueError(f"Unknown role: {value!r}") from None


@dataclass(frozen=True)
class Identity:
    """Authenticated caller, as supplied by the upstream authenticator.

    The engine never validates credentials; it trusts ``id`` and ``role``.
    """

    id: str
    role: Role

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id.strip():
            raise ValueError("Identity id must be a non-empty string")
        object.__setattr__(self, "role", Role.parse(self.role))

    def __str__(self) -> str:
        return f"{self.role.value}:{self.id}"


_current_identity: ContextVar[Identity | None] = ContextVar("current_identity", default=None)


def set_identity(identity: Identity | None) -> Token[Identity | None]:
    """Set the caller for the current request and return a reset token."""
    return _current_identity.set(identity)


def reset_identity(token: Token[Identity | None]) -> None:
    _current_identity.reset(token)


def get_identity() -> Identity:
    """Get the current caller or raise RuntimeError."""
    identity = _current_identity.get()
    if identity is None:
        raise RuntimeError("No caller identity set")
    return identity


def get_identity_optional() -> Identity | None:
    return _current_identity.get()
