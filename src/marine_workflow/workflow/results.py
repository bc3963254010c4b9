"""Uniform success/failure envelope."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import ValidationError

from marine_workflow.domain.errors import ErrorKind, WorkflowError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    ok: bool
    value: T | None = None
    kind: ErrorKind | None = None
    message: str | None = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "Result[T]":
        return cls(ok=False, kind=kind, message=message)

    def unwrap(self) -> T:
        if not self.ok:
            raise RuntimeError(f"{self.kind.value if self.kind else 'Failure'}: {self.message}")
        return self.value  # type: ignore[return-value]

    def to_dict(self) -> dict[str, Any]:
        if self.ok:
            return {"ok": True, "value": _public(self.value)}
        return {
            "ok": False,
            "kind": self.kind.value if self.kind else ErrorKind.UNAVAILABLE.value,
            "message": self.message,
        }


def _public(value: object) -> object:
    if hasattr(value, "to_public"):
        return value.to_public()
    if isinstance(value, list):
        return [_public(item) for item in value]
    return value


def format_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "Input validation failed: " + "; ".join(parts)


def run_operation(operation: str, func: Callable[[], T]) -> Result[T]:
    """Run ``func`` and report its outcome; nothing raises past this point."""
    try:
        return Result.success(func())
    except WorkflowError as exc:
        if exc.kind is ErrorKind.UNAVAILABLE:
            logger.error("%s failed: %s", operation, exc.message)
        else:
            logger.info("%s rejected (%s): %s", operation, exc.kind.value, exc.message)
        return Result.failure(exc.kind, exc.message)
    except ValidationError as exc:
        message = format_validation_error(exc)
        logger.info("%s rejected (%s): %s", operation, ErrorKind.VALIDATION_ERROR.value, message)
        return Result.failure(ErrorKind.VALIDATION_ERROR, message)
    except Exception:
        logger.exception("%s failed with an unexpected error", operation)
        return Result.failure(ErrorKind.UNAVAILABLE, "Service temporarily unavailable")
