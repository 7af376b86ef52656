"""Common exception classes.

Structural problems with a workflow are never raised; they are returned as
ValidationResult data. Exceptions are reserved for failures the workflow
layer has no domain knowledge to recover from, which today means the
storage backend.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

# =============================================================================
# Base
# =============================================================================


class AppError(Exception):
    """Base application exception."""


# =============================================================================
# Storage
# =============================================================================


class StorageError(AppError):
    """Raised when the workflow store fails to read or write.

    The original driver exception is chained as __cause__. The workflow
    manager never retries or swallows this error.

    Attributes:
        operation: Store operation that failed (save, get, list, search, delete)
        workflow_id: Workflow addressed by the operation, if any

    Example:
        >>> raise StorageError("save", workflow_id, "database is locked")
    """

    def __init__(
        self,
        operation: str,
        workflow_id: UUID | None = None,
        reason: str | None = None,
    ) -> None:
        self.operation = operation
        self.workflow_id = workflow_id
        self.reason = reason

        target = f" workflow {workflow_id}" if workflow_id is not None else ""
        message = f"Workflow store failed to {operation}{target}"
        if reason:
            message = f"{message}: {reason}"

        super().__init__(message)


__all__ = [
    "AppError",
    "StorageError",
]
