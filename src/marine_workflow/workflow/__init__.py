"""Workflow lifecycle: engine, state machine, consistency checks and results."""

from marine_workflow.workflow.engine import WorkflowEngine
from marine_workflow.workflow.results import Result, run_operation

__all__ = ["Result", "WorkflowEngine", "run_operation"]
