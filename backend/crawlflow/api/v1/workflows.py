"""Workflow API Router.

This module provides REST API endpoints for managing workflows and their
tasks: CRUD on whole workflows, guarded single-task edits, and read-only
validation, statistics and graph views.

Rejected saves and edits answer 422 with the ValidationResult body
({valid, errors, warnings}). Storage failures are mapped to 503 by the
application-level StorageError handler.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID  # noqa: TC003 - Required at runtime for FastAPI

from fastapi import APIRouter, HTTPException, Query, Response, status
from fastapi.responses import JSONResponse

from crawlflow.api.deps import Manager  # noqa: TC001 - Required at runtime for FastAPI
from crawlflow.schemas.validation import ValidationResult
from crawlflow.schemas.workflow import (
    CloneRequest,
    TaskUpdate,
    Workflow,
    WorkflowCreate,
    WorkflowGraphResponse,
    WorkflowStats,
    WorkflowTask,
    WorkflowUpdate,
)
from crawlflow.services.workflow import GraphAlgorithms

router = APIRouter()

_UNPROCESSABLE = 422

_REJECTED = {
    _UNPROCESSABLE: {
        "model": ValidationResult,
        "description": "The change was rejected; nothing was written",
    }
}


# =============================================================================
# Helpers
# =============================================================================


def _rejected(result: ValidationResult) -> JSONResponse:
    """Answer 422 with the validation result as body."""
    return JSONResponse(
        status_code=_UNPROCESSABLE,
        content=result.model_dump(),
    )


def _not_found(workflow_id: UUID) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Workflow {workflow_id} not found",
    )


async def _require_workflow(manager: Manager, workflow_id: UUID) -> Workflow:
    workflow = await manager.get_workflow(workflow_id)
    if workflow is None:
        raise _not_found(workflow_id)
    return workflow


# =============================================================================
# Workflow Endpoints
# =============================================================================


@router.get(
    "/",
    response_model=list[Workflow],
    summary="List workflows",
    description="List workflows, most recently updated first. "
    "With q, only workflows whose name or description contains it.",
)
async def list_workflows(
    manager: Manager,
    q: Annotated[
        str | None,
        Query(max_length=255, description="Case-insensitive search text"),
    ] = None,
) -> list[Workflow]:
    if q:
        return await manager.search_workflows(q)
    return await manager.list_workflows()


@router.post(
    "/",
    response_model=Workflow,
    status_code=status.HTTP_201_CREATED,
    responses=_REJECTED,
    summary="Create workflow",
    description="Create a workflow with its tasks and save it if it is valid.",
)
async def create_workflow(
    manager: Manager,
    workflow_in: WorkflowCreate,
) -> Workflow | JSONResponse:
    """Create and save a workflow.

    Args:
        manager: Workflow manager.
        workflow_in: Name, description and initial tasks.

    Returns:
        The stored workflow, or a 422 response with the validation result.
    """
    workflow = manager.create_workflow(workflow_in.name, workflow_in.description)
    workflow.tasks = list(workflow_in.tasks)

    result = await manager.save_workflow(workflow)
    if not result.valid:
        return _rejected(result)

    return await _require_workflow(manager, workflow.id)


@router.get(
    "/{workflow_id}",
    response_model=Workflow,
    summary="Get workflow",
)
async def get_workflow(manager: Manager, workflow_id: UUID) -> Workflow:
    return await _require_workflow(manager, workflow_id)


@router.put(
    "/{workflow_id}",
    response_model=Workflow,
    responses=_REJECTED,
    summary="Update workflow",
    description="Replace name, description and/or the whole task list, then save.",
)
async def update_workflow(
    manager: Manager,
    workflow_id: UUID,
    workflow_in: WorkflowUpdate,
) -> Workflow | JSONResponse:
    """Replace parts of a workflow definition.

    Omitted fields keep their stored value. The edited workflow goes
    through full validation; when it is invalid nothing is written.
    """
    workflow = await _require_workflow(manager, workflow_id)

    updates = {
        field: getattr(workflow_in, field)
        for field in workflow_in.model_fields_set
        if getattr(workflow_in, field) is not None or field == "description"
    }
    result = await manager.save_workflow(workflow.model_copy(update=updates))
    if not result.valid:
        return _rejected(result)

    return await _require_workflow(manager, workflow_id)


@router.delete(
    "/{workflow_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete workflow",
)
async def delete_workflow(manager: Manager, workflow_id: UUID) -> Response:
    if not await manager.delete_workflow(workflow_id):
        raise _not_found(workflow_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{workflow_id}/clone",
    response_model=Workflow,
    status_code=status.HTTP_201_CREATED,
    summary="Clone workflow",
)
async def clone_workflow(
    manager: Manager,
    workflow_id: UUID,
    clone_in: CloneRequest | None = None,
) -> Workflow:
    clone = await manager.clone_workflow(
        workflow_id,
        clone_in.name if clone_in is not None else None,
    )
    if clone is None:
        raise _not_found(workflow_id)
    return clone


# =============================================================================
# Task Endpoints
# =============================================================================


@router.post(
    "/{workflow_id}/tasks",
    response_model=ValidationResult,
    responses=_REJECTED,
    summary="Add task",
    description="Append a task. Rejected when the name is taken, the trigger "
    "is unknown, a second entry point is added or a cycle would form.",
)
async def add_task(
    manager: Manager,
    workflow_id: UUID,
    task_in: WorkflowTask,
) -> ValidationResult | JSONResponse:
    await _require_workflow(manager, workflow_id)

    result = await manager.add_task(workflow_id, task_in)
    if not result.valid:
        return _rejected(result)
    return result


@router.patch(
    "/{workflow_id}/tasks/{task_name}",
    response_model=ValidationResult,
    responses=_REJECTED,
    summary="Update task",
)
async def update_task(
    manager: Manager,
    workflow_id: UUID,
    task_name: str,
    task_in: TaskUpdate,
) -> ValidationResult | JSONResponse:
    await _require_workflow(manager, workflow_id)

    result = await manager.update_task(workflow_id, task_name, task_in)
    if not result.valid:
        return _rejected(result)
    return result


@router.delete(
    "/{workflow_id}/tasks/{task_name}",
    response_model=ValidationResult,
    responses=_REJECTED,
    summary="Remove task",
    description="Remove a task. Tasks it triggered are not re-parented, so the "
    "removal is rejected when it would leave tasks unreachable.",
)
async def remove_task(
    manager: Manager,
    workflow_id: UUID,
    task_name: str,
) -> ValidationResult | JSONResponse:
    await _require_workflow(manager, workflow_id)

    result = await manager.remove_task(workflow_id, task_name)
    if not result.valid:
        return _rejected(result)
    return result


# =============================================================================
# Analysis Endpoints
# =============================================================================


@router.get(
    "/{workflow_id}/validation",
    response_model=ValidationResult,
    summary="Validate workflow",
    description="Run full structural validation on the stored workflow.",
)
async def validate_workflow(manager: Manager, workflow_id: UUID) -> ValidationResult:
    await _require_workflow(manager, workflow_id)
    return await manager.validate_workflow(workflow_id)


@router.get(
    "/{workflow_id}/stats",
    response_model=WorkflowStats,
    summary="Workflow statistics",
)
async def get_workflow_stats(manager: Manager, workflow_id: UUID) -> WorkflowStats:
    stats = await manager.get_workflow_stats(workflow_id)
    if stats is None:
        raise _not_found(workflow_id)
    return stats


@router.get(
    "/{workflow_id}/graph",
    response_model=WorkflowGraphResponse,
    summary="Workflow graph",
    description="Nodes with their children and parents, execution order and "
    "an indented tree rendering from the entry point.",
)
async def get_workflow_graph(manager: Manager, workflow_id: UUID) -> WorkflowGraphResponse:
    graph = await manager.get_workflow_graph(workflow_id)
    if graph is None:
        raise _not_found(workflow_id)

    order = [] if GraphAlgorithms.has_cycle(graph) else GraphAlgorithms.topological_order(graph)
    return WorkflowGraphResponse(
        **GraphAlgorithms.to_dict(graph),
        order=order,
        tree=GraphAlgorithms.to_tree_string(graph),
    )


__all__ = [
    "router",
]
