"""Pydantic schemas for workflows and their tasks.

A workflow is a flat, ordered list of tasks. Each task names the task that
triggers it, or the ROOT_TRIGGER sentinel when it is the entry point. The
trigger relation is what the graph layer turns into a DAG.

The domain schemas here deliberately accept malformed documents (empty or
duplicate names, dangling triggers): the validator reports those problems
as data, so the schemas must be able to hold them.
"""

from __future__ import annotations

from datetime import UTC, datetime  # noqa: TC003 - Required at runtime for Pydantic
from typing import Final
from uuid import UUID, uuid4  # noqa: TC003 - Required at runtime for Pydantic

from pydantic import ConfigDict, Field

from crawlflow.schemas.base import (
    BaseSchema,
    DescriptionField,
    NameField,
    OptionalNameField,
)

# Entry-point sentinel. Part of the stored format; never change it.
ROOT_TRIGGER: Final[str] = "_run_"


def _utcnow() -> datetime:
    return datetime.now(UTC)


# =============================================================================
# Task Schemas
# =============================================================================


class WorkflowTask(BaseSchema):
    """A single task placement inside a workflow.

    Names and triggers are kept byte for byte, since triggers match names
    exactly.
    """

    model_config = ConfigDict(str_strip_whitespace=False)

    task_id: str = Field(
        ...,
        description="Opaque reference to a task definition in the task registry",
        examples=["task_1718000000000_k3j9x2p1q"],
    )
    name: str = Field(
        ...,
        max_length=255,
        description="Name unique within the workflow; other tasks use it as trigger",
        examples=["crawl", "filter", "screenshot"],
    )
    trigger: str = Field(
        ...,
        max_length=255,
        description=f"'{ROOT_TRIGGER}' for the entry point, otherwise another task's name",
        examples=[ROOT_TRIGGER, "crawl"],
    )
    config: str | None = Field(
        default=None,
        description="Task specific settings as a serialized blob; never parsed here",
        examples=['{"selector": "article a", "depth": 2}'],
    )

    @property
    def is_entry_point(self) -> bool:
        """Whether this task is started by the run signal."""
        return self.trigger == ROOT_TRIGGER


class TaskUpdate(BaseSchema):
    """Partial update for a task. Only fields that are set are applied."""

    model_config = ConfigDict(str_strip_whitespace=False)

    task_id: str | None = Field(default=None)
    name: str | None = Field(default=None, max_length=255)
    trigger: str | None = Field(default=None, max_length=255)
    config: str | None = Field(default=None)


# =============================================================================
# Workflow Schemas
# =============================================================================


class Workflow(BaseSchema):
    """A named, owned collection of tasks connected by triggers."""

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique identifier (UUID v4)",
    )
    name: str = Field(
        ...,
        max_length=255,
        description="Display name",
        examples=["Daily product crawl"],
    )
    description: str | None = DescriptionField
    tasks: list[WorkflowTask] = Field(
        default_factory=list,
        description="Tasks in declaration order",
    )
    created_at: datetime = Field(
        default_factory=_utcnow,
        description="Timestamp when the workflow was created",
    )
    updated_at: datetime = Field(
        default_factory=_utcnow,
        description="Timestamp when the workflow was last saved",
    )

    def task_names(self) -> set[str]:
        """Names of all tasks in the workflow."""
        return {task.name for task in self.tasks}

    def find_task(self, name: str) -> WorkflowTask | None:
        """Return the first task with the given name, if any."""
        for task in self.tasks:
            if task.name == name:
                return task
        return None

    def entry_points(self) -> list[WorkflowTask]:
        """Tasks triggered by the run signal."""
        return [task for task in self.tasks if task.is_entry_point]

    def dependents_of(self, name: str) -> list[WorkflowTask]:
        """Tasks whose trigger is the given task name."""
        return [task for task in self.tasks if task.trigger == name]


class WorkflowCreate(BaseSchema):
    """Schema for creating and saving a workflow in one request."""

    name: str = NameField
    description: str | None = DescriptionField
    tasks: list[WorkflowTask] = Field(
        default_factory=list,
        description="Initial tasks; a saved workflow needs at least one",
    )


class WorkflowUpdate(BaseSchema):
    """Schema for replacing a workflow's definition.

    Omitted fields keep their stored value; a provided task list replaces
    the stored one as a whole.
    """

    name: str | None = OptionalNameField
    description: str | None = DescriptionField
    tasks: list[WorkflowTask] | None = Field(default=None)


class CloneRequest(BaseSchema):
    """Schema for cloning a workflow."""

    name: str | None = OptionalNameField


class WorkflowStats(BaseSchema):
    """Derived statistics for a workflow graph."""

    total_tasks: int = Field(..., ge=0, description="Number of tasks")
    entry_points: int = Field(..., ge=0, le=1, description="1 when a root exists")
    leaf_nodes: int = Field(..., ge=0, description="Tasks that trigger nothing")
    max_depth: int = Field(
        ...,
        ge=0,
        description="Tasks on the longest path from the root",
    )


# =============================================================================
# Graph Schemas
# =============================================================================


class GraphNodeResponse(BaseSchema):
    """One task in a rendered workflow graph."""

    task_id: str
    trigger: str
    children: list[str] = Field(default_factory=list)
    parents: list[str] = Field(default_factory=list)


class WorkflowGraphResponse(BaseSchema):
    """Rendered task graph of a stored workflow."""

    root: str | None = Field(default=None, description="Entry-point task, if any")
    nodes: dict[str, GraphNodeResponse] = Field(default_factory=dict)
    order: list[str] = Field(
        default_factory=list,
        description="Execution order from the entry point",
    )
    tree: str = Field(..., description="Indented text rendering from the entry point")


__all__ = [
    "ROOT_TRIGGER",
    "CloneRequest",
    "GraphNodeResponse",
    "TaskUpdate",
    "Workflow",
    "WorkflowCreate",
    "WorkflowGraphResponse",
    "WorkflowStats",
    "WorkflowTask",
    "WorkflowUpdate",
]
