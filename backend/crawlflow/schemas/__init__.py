"""Pydantic schemas for workflows, tasks and validation results."""

from crawlflow.schemas.validation import ValidationResult
from crawlflow.schemas.workflow import (
    ROOT_TRIGGER,
    CloneRequest,
    GraphNodeResponse,
    TaskUpdate,
    Workflow,
    WorkflowCreate,
    WorkflowGraphResponse,
    WorkflowStats,
    WorkflowTask,
    WorkflowUpdate,
)

__all__ = [
    "ROOT_TRIGGER",
    "CloneRequest",
    "GraphNodeResponse",
    "TaskUpdate",
    "ValidationResult",
    "Workflow",
    "WorkflowCreate",
    "WorkflowGraphResponse",
    "WorkflowStats",
    "WorkflowTask",
    "WorkflowUpdate",
]
