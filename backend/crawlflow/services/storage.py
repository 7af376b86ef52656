"""Workflow storage gateways.

The workflow manager talks to persistence only through the WorkflowStore
interface. Two implementations are provided:

- InMemoryWorkflowStore: dictionary backed, for tests and embedding
- SQLWorkflowStore: SQLAlchemy async store over the workflows and
  workflow_tasks tables

Stores do no validation. Whatever is handed to save() is written as is;
the manager only hands over workflows that passed validation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError

from crawlflow.core.exceptions import StorageError
from crawlflow.core.logging import get_logger
from crawlflow.models.workflow import WorkflowRecord, WorkflowTaskRecord
from crawlflow.schemas.workflow import Workflow

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = get_logger(__name__)


class WorkflowStore(ABC):
    """Abstract persistence interface for workflows."""

    @abstractmethod
    async def save(self, workflow: Workflow) -> None:
        """Insert or replace a workflow, including its full task list."""
        ...

    @abstractmethod
    async def get(self, workflow_id: UUID) -> Workflow | None:
        """Load a workflow by id."""
        ...

    @abstractmethod
    async def list(self) -> list[Workflow]:
        """Load all workflows, most recently updated first."""
        ...

    @abstractmethod
    async def search(self, query: str) -> list[Workflow]:
        """Case-insensitive substring search on name or description."""
        ...

    @abstractmethod
    async def delete(self, workflow_id: UUID) -> bool:
        """Delete a workflow and its tasks. Returns False if it did not exist."""
        ...


# =============================================================================
# In-memory store
# =============================================================================


class InMemoryWorkflowStore(WorkflowStore):
    """Dictionary backed store.

    Workflows are deep-copied on the way in and out, so callers never share
    mutable state with the store.
    """

    def __init__(self) -> None:
        self._workflows: dict[UUID, Workflow] = {}

    async def save(self, workflow: Workflow) -> None:
        self._workflows[workflow.id] = workflow.model_copy(deep=True)

    async def get(self, workflow_id: UUID) -> Workflow | None:
        workflow = self._workflows.get(workflow_id)
        return workflow.model_copy(deep=True) if workflow is not None else None

    async def list(self) -> list[Workflow]:
        ordered = sorted(
            self._workflows.values(),
            key=lambda w: w.updated_at,
            reverse=True,
        )
        return [w.model_copy(deep=True) for w in ordered]

    async def search(self, query: str) -> list[Workflow]:
        needle = query.casefold()
        return [
            w
            for w in await self.list()
            if needle in w.name.casefold()
            or (w.description is not None and needle in w.description.casefold())
        ]

    async def delete(self, workflow_id: UUID) -> bool:
        return self._workflows.pop(workflow_id, None) is not None

    def __len__(self) -> int:
        return len(self._workflows)


# =============================================================================
# SQL store
# =============================================================================


class SQLWorkflowStore(WorkflowStore):
    """SQLAlchemy async store.

    Every operation opens its own session and transaction from the given
    factory and commits before returning. Driver errors are wrapped into
    StorageError with the original exception chained.

    Args:
        session_factory: async_sessionmaker bound to the target engine.

    Example:
        >>> store = SQLWorkflowStore(async_session)
        >>> await store.save(workflow)
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._sessions = session_factory

    async def save(self, workflow: Workflow) -> None:
        try:
            async with self._sessions() as session, session.begin():
                record = await session.get(WorkflowRecord, workflow.id)
                if record is None:
                    record = WorkflowRecord(id=workflow.id, tasks=[])
                    session.add(record)
                elif record.tasks:
                    # Delete the old rows first; UNIQUE(workflow_id, name)
                    # would reject re-inserted names otherwise.
                    record.tasks.clear()
                    await session.flush()

                record.name = workflow.name
                record.description = workflow.description
                record.created_at = workflow.created_at
                record.updated_at = workflow.updated_at
                record.tasks.extend(
                    WorkflowTaskRecord(
                        position=position,
                        task_id=task.task_id,
                        name=task.name,
                        trigger=task.trigger,
                        config=task.config,
                    )
                    for position, task in enumerate(workflow.tasks)
                )
        except SQLAlchemyError as e:
            raise self._wrap("save", workflow.id, e) from e

    async def get(self, workflow_id: UUID) -> Workflow | None:
        try:
            async with self._sessions() as session, session.begin():
                record = await session.get(WorkflowRecord, workflow_id)
                return Workflow.model_validate(record) if record is not None else None
        except SQLAlchemyError as e:
            raise self._wrap("get", workflow_id, e) from e

    async def list(self) -> list[Workflow]:
        stmt = select(WorkflowRecord).order_by(WorkflowRecord.updated_at.desc())
        try:
            async with self._sessions() as session, session.begin():
                records = (await session.scalars(stmt)).all()
                return [Workflow.model_validate(record) for record in records]
        except SQLAlchemyError as e:
            raise self._wrap("list", None, e) from e

    async def search(self, query: str) -> list[Workflow]:
        # Escaped so % and _ in the query match literally
        stmt = (
            select(WorkflowRecord)
            .where(
                or_(
                    WorkflowRecord.name.icontains(query, autoescape=True),
                    WorkflowRecord.description.icontains(query, autoescape=True),
                )
            )
            .order_by(WorkflowRecord.updated_at.desc())
        )
        try:
            async with self._sessions() as session, session.begin():
                records = (await session.scalars(stmt)).all()
                return [Workflow.model_validate(record) for record in records]
        except SQLAlchemyError as e:
            raise self._wrap("search", None, e) from e

    async def delete(self, workflow_id: UUID) -> bool:
        try:
            async with self._sessions() as session, session.begin():
                record = await session.get(WorkflowRecord, workflow_id)
                if record is None:
                    return False
                await session.delete(record)
                return True
        except SQLAlchemyError as e:
            raise self._wrap("delete", workflow_id, e) from e

    @staticmethod
    def _wrap(
        operation: str,
        workflow_id: UUID | None,
        error: SQLAlchemyError,
    ) -> StorageError:
        logger.error(
            f"Workflow store {operation} failed",
            extra={
                "context": {
                    "operation": operation,
                    "workflow_id": str(workflow_id) if workflow_id else None,
                    "error_type": type(error).__name__,
                }
            },
        )
        reason = getattr(error, "orig", None) or error
        return StorageError(operation, workflow_id, str(reason))


__all__ = [
    "InMemoryWorkflowStore",
    "SQLWorkflowStore",
    "WorkflowStore",
]
