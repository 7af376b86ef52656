"""Workflow manager service layer.

The WorkflowManager is the single entry point for changing workflows. It
ties the structural validator and the mutation guard to a WorkflowStore:

- whole-workflow saves are validated before anything is written
- single edits (add / remove / update task) are pre-checked by the guard,
  applied to a copy, then saved through the same validated path, so a
  rejected edit leaves the stored workflow untouched
- edits addressed to the same workflow are serialized by a per-workflow
  asyncio lock held across read, check, apply and save

Storage failures (StorageError) propagate unchanged; structural problems
are returned as ValidationResult data.
"""

from __future__ import annotations

import asyncio
import weakref
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from crawlflow.core.config import settings
from crawlflow.core.logging import get_logger
from crawlflow.schemas.validation import ValidationResult
from crawlflow.schemas.workflow import Workflow, WorkflowStats
from crawlflow.services.workflow import (
    GraphAlgorithms,
    MutationGuard,
    TaskGraph,
    WorkflowValidator,
    build_graph,
)

if TYPE_CHECKING:
    from uuid import UUID

    from crawlflow.schemas.workflow import TaskUpdate, WorkflowTask
    from crawlflow.services.storage import WorkflowStore

logger = get_logger(__name__)

# Fields of WorkflowTask that may not be cleared by an update
_REQUIRED_TASK_FIELDS = ("task_id", "name", "trigger")


# =============================================================================
# Locks
# =============================================================================


class WorkflowLocks:
    """Registry of per-workflow asyncio locks.

    Locks are held weakly: an entry disappears once no coroutine holds or
    waits on it, so the registry does not grow with every workflow id ever
    edited.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[UUID, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def for_workflow(self, workflow_id: UUID) -> asyncio.Lock:
        """Return the lock guarding the given workflow."""
        lock = self._locks.get(workflow_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[workflow_id] = lock
        return lock

    def __len__(self) -> int:
        return len(self._locks)


# Shared by managers that are not given their own registry
default_locks = WorkflowLocks()


# =============================================================================
# WorkflowManager
# =============================================================================


class WorkflowManager:
    """Service for creating, editing and persisting workflows.

    Args:
        store: Persistence gateway.
        validator: Structural validator. Defaults to a new WorkflowValidator.
        guard: Mutation guard. Defaults to a new MutationGuard.
        locks: Lock registry. Defaults to the process-wide registry so that
            separate manager instances still serialize edits per workflow.

    Example:
        >>> manager = WorkflowManager(InMemoryWorkflowStore())
        >>> workflow = manager.create_workflow("Daily crawl")
        >>> workflow.tasks.append(WorkflowTask(task_id="t1", name="crawl", trigger="_run_"))
        >>> result = await manager.save_workflow(workflow)
    """

    def __init__(
        self,
        store: WorkflowStore,
        validator: WorkflowValidator | None = None,
        guard: MutationGuard | None = None,
        locks: WorkflowLocks | None = None,
    ) -> None:
        self.store = store
        self.validator = validator or WorkflowValidator()
        self.guard = guard or MutationGuard()
        self.locks = locks or default_locks

    # -------------------------------------------------------------------------
    # Whole-workflow operations
    # -------------------------------------------------------------------------

    def create_workflow(self, name: str, description: str | None = None) -> Workflow:
        """Create an empty workflow in memory.

        The workflow is not persisted: it has no tasks yet, and a workflow
        without tasks never passes validation.
        """
        now = datetime.now(UTC)
        return Workflow(
            name=name,
            description=description,
            tasks=[],
            created_at=now,
            updated_at=now,
        )

    async def save_workflow(self, workflow: Workflow) -> ValidationResult:
        """Validate and persist a whole workflow.

        Args:
            workflow: Workflow to store. It is not modified; the stored copy
                carries a fresh updated_at.

        Returns:
            The validation result. When it is invalid nothing was written.

        Raises:
            StorageError: If the store fails to write.
        """
        async with self.locks.for_workflow(workflow.id):
            return await self._save(workflow)

    async def get_workflow(self, workflow_id: UUID) -> Workflow | None:
        return await self.store.get(workflow_id)

    async def list_workflows(self) -> list[Workflow]:
        return await self.store.list()

    async def search_workflows(self, query: str) -> list[Workflow]:
        return await self.store.search(query)

    async def delete_workflow(self, workflow_id: UUID) -> bool:
        """Delete a workflow. Returns False if it did not exist."""
        async with self.locks.for_workflow(workflow_id):
            deleted = await self.store.delete(workflow_id)

        if deleted:
            logger.info(
                "Workflow deleted",
                extra={"context": {"workflow_id": str(workflow_id)}},
            )
        return deleted

    async def clone_workflow(
        self,
        workflow_id: UUID,
        new_name: str | None = None,
    ) -> Workflow | None:
        """Copy a workflow under a new id.

        The clone has the same tasks, triggers and configs, fresh timestamps
        and, unless a name is given, the source name plus the configured
        clone suffix. It is written directly: its structure is the source's,
        so it validates exactly as the source does.

        Returns:
            The stored clone, or None if the source does not exist.
        """
        source = await self.store.get(workflow_id)
        if source is None:
            return None

        now = datetime.now(UTC)
        clone = Workflow(
            name=new_name or f"{source.name}{settings.CLONE_NAME_SUFFIX}",
            description=source.description,
            tasks=[task.model_copy() for task in source.tasks],
            created_at=now,
            updated_at=now,
        )
        await self.store.save(clone)

        logger.info(
            "Workflow cloned",
            extra={
                "context": {
                    "source_id": str(workflow_id),
                    "workflow_id": str(clone.id),
                    "tasks": len(clone.tasks),
                }
            },
        )
        return clone

    # -------------------------------------------------------------------------
    # Single edits
    # -------------------------------------------------------------------------

    async def add_task(self, workflow_id: UUID, task: WorkflowTask) -> ValidationResult:
        """Append a task after checking it against the current workflow."""
        async with self.locks.for_workflow(workflow_id):
            workflow = await self.store.get(workflow_id)
            if workflow is None:
                return self._not_found(workflow_id)

            check = self.guard.can_add_task(workflow, task)
            if not check.valid:
                self._log_rejected(workflow_id, "add_task", check)
                return check

            edited = workflow.model_copy(update={"tasks": [*workflow.tasks, task]})
            result = await self._save(edited)
            return result.with_warnings(check.warnings)

    async def remove_task(self, workflow_id: UUID, name: str) -> ValidationResult:
        """Remove a task by name.

        Tasks it triggered are not re-parented. If that leaves them
        unreachable the save is rejected and nothing changes.
        """
        async with self.locks.for_workflow(workflow_id):
            workflow = await self.store.get(workflow_id)
            if workflow is None:
                return self._not_found(workflow_id)

            check = self.guard.can_remove_task(workflow, name)
            if not check.valid:
                self._log_rejected(workflow_id, "remove_task", check)
                return check

            edited = workflow.model_copy(
                update={"tasks": [t for t in workflow.tasks if t.name != name]}
            )
            result = await self._save(edited)
            return result.with_warnings(check.warnings)

    async def update_task(
        self,
        workflow_id: UUID,
        name: str,
        changes: TaskUpdate,
    ) -> ValidationResult:
        """Apply a partial update to one task.

        Only fields set on ``changes`` are applied. A trigger change is
        checked by the guard first; renames are left to the full validation
        on save, which rejects any trigger the rename leaves dangling.
        """
        async with self.locks.for_workflow(workflow_id):
            workflow = await self.store.get(workflow_id)
            if workflow is None:
                return self._not_found(workflow_id)

            task = workflow.find_task(name)
            if task is None:
                return ValidationResult.failure(f'Task "{name}" does not exist')

            updates = changes.model_dump(exclude_unset=True)
            for field in _REQUIRED_TASK_FIELDS:
                if updates.get(field, "") is None:
                    del updates[field]

            check = ValidationResult.from_messages()
            new_trigger = updates.get("trigger")
            if new_trigger is not None and new_trigger != task.trigger:
                check = self.guard.can_change_trigger(workflow, name, new_trigger)
                if not check.valid:
                    self._log_rejected(workflow_id, "update_task", check)
                    return check

            updated = task.model_copy(update=updates)
            edited = workflow.model_copy(
                update={"tasks": [updated if t is task else t for t in workflow.tasks]}
            )
            result = await self._save(edited)
            return result.with_warnings(check.warnings)

    # -------------------------------------------------------------------------
    # Read-only analysis
    # -------------------------------------------------------------------------

    async def validate_workflow(self, workflow_id: UUID) -> ValidationResult:
        """Run full validation on the stored workflow."""
        workflow = await self.store.get(workflow_id)
        if workflow is None:
            return self._not_found(workflow_id)
        return self.validator.validate(workflow)

    async def get_workflow_graph(self, workflow_id: UUID) -> TaskGraph | None:
        """Build the task graph of the stored workflow."""
        workflow = await self.store.get(workflow_id)
        if workflow is None:
            return None
        return build_graph(workflow.tasks)

    async def get_workflow_stats(self, workflow_id: UUID) -> WorkflowStats | None:
        """Summarize the stored workflow's graph.

        Returns:
            Task count, entry points (0 or 1), leaf count and the number of
            tasks on the longest path from the entry point.
        """
        workflow = await self.store.get(workflow_id)
        if workflow is None:
            return None

        graph = build_graph(workflow.tasks)
        return WorkflowStats(
            total_tasks=len(workflow.tasks),
            entry_points=1 if graph.root is not None else 0,
            leaf_nodes=sum(1 for _ in GraphAlgorithms.leaf_nodes(graph)),
            max_depth=GraphAlgorithms.max_depth(graph),
        )

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _save(self, workflow: Workflow) -> ValidationResult:
        # Callers hold the workflow's lock.
        result = self.validator.validate(workflow)
        if not result.valid:
            self._log_rejected(workflow.id, "save", result)
            return result

        stored = workflow.model_copy(update={"updated_at": datetime.now(UTC)})
        await self.store.save(stored)

        logger.info(
            "Workflow saved",
            extra={
                "context": {
                    "workflow_id": str(workflow.id),
                    "tasks": len(workflow.tasks),
                    "warnings": len(result.warnings),
                }
            },
        )
        return result

    @staticmethod
    def _not_found(workflow_id: UUID) -> ValidationResult:
        return ValidationResult.failure(f"Workflow {workflow_id} not found")

    @staticmethod
    def _log_rejected(workflow_id: UUID, action: str, result: ValidationResult) -> None:
        logger.warning(
            f"Workflow {action} rejected",
            extra={
                "context": {
                    "workflow_id": str(workflow_id),
                    "action": action,
                    "errors": result.errors,
                }
            },
        )


__all__ = [
    "WorkflowLocks",
    "WorkflowManager",
    "default_locks",
]
