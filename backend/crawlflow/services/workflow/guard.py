"""Pre-commit checks for single workflow edits.

The MutationGuard answers "may this one change be applied to this
workflow?" before anything is written. Each check receives the current
workflow snapshot and the proposed change explicitly and never mutates the
snapshot. Where a change could introduce a cycle, the check simulates the
change on a copy and runs cycle detection over the whole resulting graph,
not just the edited edge.

The guard is a fast pre-filter. The workflow manager still runs the full
validator on the edited workflow before saving it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from crawlflow.schemas.validation import ValidationResult
from crawlflow.schemas.workflow import ROOT_TRIGGER
from crawlflow.services.workflow.algorithms import GraphAlgorithms
from crawlflow.services.workflow.graph import build_graph

if TYPE_CHECKING:
    from crawlflow.schemas.workflow import Workflow, WorkflowTask


class MutationGuard:
    """Validates add, remove and trigger-change edits against a snapshot.

    All checks return a ValidationResult so callers share one error path
    with full validation.

    Example:
        >>> guard = MutationGuard()
        >>> check = guard.can_add_task(workflow, new_task)
        >>> if check.valid:
        ...     workflow.tasks.append(new_task)
    """

    def can_add_task(self, workflow: Workflow, task: WorkflowTask) -> ValidationResult:
        """Check that appending a task keeps the workflow consistent.

        Args:
            workflow: Current workflow snapshot.
            task: Task proposed for addition.

        Returns:
            ValidationResult with every reason the addition is rejected.
        """
        errors: list[str] = []
        names = workflow.task_names()

        if task.name in names:
            errors.append(f'A task named "{task.name}" already exists')

        if task.trigger != ROOT_TRIGGER:
            if task.trigger not in names:
                errors.append(f'Trigger "{task.trigger}" does not exist')
        elif workflow.entry_points():
            errors.append("Only one entry point is allowed")

        cycle = GraphAlgorithms.find_cycle(build_graph([*workflow.tasks, task]))
        if cycle:
            errors.append(f"Adding this task would create a cycle: {' -> '.join(cycle)}")

        return ValidationResult.from_messages(errors)

    def can_remove_task(self, workflow: Workflow, name: str) -> ValidationResult:
        """Check that a task exists and report what its removal disconnects.

        Removal is never blocked here. Tasks triggered by the removed task
        are listed as a warning; they are not re-parented.
        """
        if workflow.find_task(name) is None:
            return ValidationResult.failure(f'Task "{name}" does not exist')

        warnings: list[str] = []
        dependents = [task.name for task in workflow.dependents_of(name)]
        if dependents:
            warnings.append(
                f"Removing this task disconnects the tasks it triggers: {', '.join(dependents)}"
            )

        return ValidationResult.from_messages(warnings=warnings)

    def can_change_trigger(
        self,
        workflow: Workflow,
        name: str,
        new_trigger: str,
    ) -> ValidationResult:
        """Check that re-pointing a task's trigger keeps the graph acyclic.

        Args:
            workflow: Current workflow snapshot.
            name: Task whose trigger changes.
            new_trigger: ROOT_TRIGGER or the name of an existing task.
        """
        if workflow.find_task(name) is None:
            return ValidationResult.failure(f'Task "{name}" does not exist')

        if new_trigger != ROOT_TRIGGER and workflow.find_task(new_trigger) is None:
            return ValidationResult.failure(f'Trigger "{new_trigger}" does not exist')

        if new_trigger == name:
            return ValidationResult.failure("A task cannot trigger itself")

        simulated = [
            task.model_copy(update={"trigger": new_trigger}) if task.name == name else task
            for task in workflow.tasks
        ]
        cycle = GraphAlgorithms.find_cycle(build_graph(simulated))
        if cycle:
            return ValidationResult.failure(
                f"Changing the trigger would create a cycle: {' -> '.join(cycle)}"
            )

        return ValidationResult.from_messages()


__all__ = [
    "MutationGuard",
]
