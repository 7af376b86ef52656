"""Service layer: workflow manager and storage gateways."""

from crawlflow.services.storage import (
    InMemoryWorkflowStore,
    SQLWorkflowStore,
    WorkflowStore,
)
from crawlflow.services.workflow_service import (
    WorkflowLocks,
    WorkflowManager,
    default_locks,
)

__all__ = [
    "InMemoryWorkflowStore",
    "SQLWorkflowStore",
    "WorkflowLocks",
    "WorkflowManager",
    "WorkflowStore",
    "default_locks",
]
