"""Domain objects for workflow operations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from marine_workflow.domain.records import WorkflowStatus


class Operation(str, Enum):
    CREATE = "create"
    READ = "read"
    LIST = "list"
    UPDATE = "update"
    DECIDE = "decide"
    ASSIGN = "assign"
    DELETE = "delete"
    VESSEL_OWNER_VIEW = "vessel_owner_view"


class DecisionAction(str, Enum):
    ACCEPT = "accept"
    DECLINE = "decline"

    @property
    def resulting_status(self) -> WorkflowStatus:
        if self is DecisionAction.ACCEPT:
            return WorkflowStatus.ACCEPTED
        return WorkflowStatus.DECLINED


@dataclass(frozen=True)
class OperationRef:
    family: str
    operation: Operation

    @property
    def key(self) -> str:
        return f"{self.family}:{self.operation.value}"
