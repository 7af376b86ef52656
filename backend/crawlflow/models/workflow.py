"""Persistence models for workflows and their tasks.

Tables:
- workflows: one row per workflow (name, description, timestamps)
- workflow_tasks: one row per task placement, holding the trigger edge

The trigger column stores either the "_run_" entry-point sentinel or the
name of another task in the same workflow; this is the durable edge format
and is read back verbatim. Task rows are owned by their workflow: deleting
the workflow deletes them, and saving a workflow replaces its task rows as
a whole. The position column preserves declaration order.
"""

import uuid

from sqlalchemy import ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crawlflow.models.base import GUID, Base, TimestampMixin, UUIDMixin


class WorkflowRecord(UUIDMixin, TimestampMixin, Base):
    """Stored workflow header.

    Attributes:
        id: UUID primary key (from UUIDMixin)
        name: Display name of the workflow
        description: Optional description
        created_at: Timestamp of creation (from TimestampMixin)
        updated_at: Timestamp of last save (from TimestampMixin)
        tasks: Owned task rows, ordered by position
    """

    __tablename__ = "workflows"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )

    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    tasks: Mapped[list["WorkflowTaskRecord"]] = relationship(
        "WorkflowTaskRecord",
        back_populates="workflow",
        cascade="all, delete-orphan",
        order_by="WorkflowTaskRecord.position",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        """Return string representation of the workflow."""
        return f"<WorkflowRecord(id={self.id}, name='{self.name}', tasks={len(self.tasks)})>"


class WorkflowTaskRecord(Base):
    """Stored task placement and its trigger edge.

    Attributes:
        id: Surrogate integer key
        workflow_id: Owning workflow
        position: Declaration order inside the workflow
        task_id: Opaque task registry reference
        name: Task name, unique per workflow
        trigger: "_run_" or the name of the triggering task
        config: Opaque serialized task settings
    """

    __tablename__ = "workflow_tasks"

    __table_args__ = (
        UniqueConstraint("workflow_id", "name", name="uq_workflow_tasks_workflow_name"),
        Index("ix_workflow_tasks_workflow_trigger", "workflow_id", "trigger"),
    )

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    workflow_id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        ForeignKey("workflows.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    task_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    trigger: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    config: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    workflow: Mapped["WorkflowRecord"] = relationship(
        "WorkflowRecord",
        back_populates="tasks",
    )

    def __repr__(self) -> str:
        """Return string representation of the task."""
        return f"<WorkflowTaskRecord(name='{self.name}', trigger='{self.trigger}')>"


__all__ = [
    "WorkflowRecord",
    "WorkflowTaskRecord",
]
