"""Structural validation service for workflows.

This module provides WorkflowValidator, which checks a workflow document
against the full rule set a workflow must satisfy before it is persisted:

1. The workflow has a name and at least one task
2. Task names are non-empty and unique
3. Exactly one task uses the ROOT_TRIGGER entry point
4. Every trigger is non-empty, refers to an existing task, and is not the
   task's own name
5. The trigger graph is acyclic and every task is reachable from the root
6. (warning) no task is isolated from every other task

Validation never raises. All problems are collected and returned as data
so a caller sees the complete problem set in one pass.
"""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING

from crawlflow.core.logging import get_logger
from crawlflow.schemas.validation import ValidationResult
from crawlflow.schemas.workflow import ROOT_TRIGGER
from crawlflow.services.workflow.algorithms import GraphAlgorithms
from crawlflow.services.workflow.graph import build_graph

if TYPE_CHECKING:
    from crawlflow.schemas.workflow import Workflow, WorkflowTask
    from crawlflow.services.workflow.graph import TaskGraph

logger = get_logger(__name__)


class WorkflowValidator:
    """Stateless validator for whole workflow documents.

    Example:
        >>> validator = WorkflowValidator()
        >>> result = validator.validate(workflow)
        >>> if not result.valid:
        ...     print(result.errors)
    """

    def validate(self, workflow: Workflow) -> ValidationResult:
        """Validate a workflow and return every error and warning found.

        Graph checks (cycle and reachability) only run when the field-level
        checks found nothing, since they are meaningless on a document with
        duplicate names or dangling triggers.

        Args:
            workflow: The workflow document to check.

        Returns:
            ValidationResult; valid is True when errors is empty.
        """
        errors: list[str] = []
        warnings: list[str] = []

        # 1. Basic checks
        if not workflow.name or not workflow.name.strip():
            errors.append("Workflow name is required")

        if not workflow.tasks:
            errors.append("A workflow needs at least one task")
            return self._finish(workflow, errors, warnings)

        # 2. Task name uniqueness
        names = self._validate_names(workflow.tasks, errors)

        # 3. Entry point
        self._validate_entry_point(workflow.tasks, errors)

        # 4. Trigger references
        self._validate_triggers(workflow.tasks, names, errors)

        graph = build_graph(workflow.tasks)

        # 5. Graph structure
        if not errors:
            self._validate_structure(graph, errors)

        # 6. Isolated tasks
        isolated = GraphAlgorithms.isolated_nodes(graph)
        if isolated:
            warnings.append(
                f"Isolated tasks (not connected to any other task): {', '.join(isolated)}"
            )

        return self._finish(workflow, errors, warnings)

    # -------------------------------------------------------------------------
    # Rule groups
    # -------------------------------------------------------------------------

    @staticmethod
    def _validate_names(tasks: list[WorkflowTask], errors: list[str]) -> set[str]:
        """Report empty names and one aggregated error for all duplicates."""
        seen: Counter[str] = Counter()

        for task in tasks:
            if not task.name or not task.name.strip():
                errors.append("Task name must not be empty")
                continue
            seen[task.name] += 1

        duplicates = [name for name, count in seen.items() if count > 1]
        if duplicates:
            errors.append(f"Duplicate task names: {', '.join(duplicates)}")

        return set(seen)

    @staticmethod
    def _validate_entry_point(tasks: list[WorkflowTask], errors: list[str]) -> None:
        entry_points = sum(1 for task in tasks if task.trigger == ROOT_TRIGGER)

        if entry_points == 0:
            errors.append(
                f'No entry point: exactly one task must use the "{ROOT_TRIGGER}" trigger'
            )
        elif entry_points > 1:
            errors.append(
                f"Found {entry_points} entry points: only one task may use "
                f'the "{ROOT_TRIGGER}" trigger'
            )

    @staticmethod
    def _validate_triggers(
        tasks: list[WorkflowTask],
        names: set[str],
        errors: list[str],
    ) -> None:
        for task in tasks:
            if not task.trigger or not task.trigger.strip():
                errors.append(f'Task "{task.name}" has an empty trigger')
                continue

            if task.trigger != ROOT_TRIGGER and task.trigger not in names:
                errors.append(
                    f'Task "{task.name}" refers to unknown trigger "{task.trigger}"'
                )

            if task.trigger == task.name:
                errors.append(f'Task "{task.name}" cannot trigger itself')

    @staticmethod
    def _validate_structure(graph: TaskGraph, errors: list[str]) -> None:
        cycle = GraphAlgorithms.find_cycle(graph)
        if cycle:
            errors.append(
                f"Cycle detected: {' -> '.join(cycle)}. "
                "A workflow must be a directed acyclic graph"
            )

        unreachable = GraphAlgorithms.unreachable_from_root(graph)
        if unreachable:
            errors.append(
                f"Tasks not reachable from the entry point: {', '.join(unreachable)}"
            )

    @staticmethod
    def _finish(
        workflow: Workflow,
        errors: list[str],
        warnings: list[str],
    ) -> ValidationResult:
        result = ValidationResult.from_messages(errors, warnings)
        logger.debug(
            "Validated workflow %s: %d error(s), %d warning(s)",
            workflow.id,
            len(result.errors),
            len(result.warnings),
        )
        return result


__all__ = [
    "WorkflowValidator",
]
