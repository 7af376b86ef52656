"""API dependencies.

Shared dependencies for the API routes: the request database session and
the workflow manager.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from crawlflow.db.session import async_session, get_db
from crawlflow.services.storage import SQLWorkflowStore
from crawlflow.services.workflow_service import WorkflowManager

# =============================================================================
# Database Session Dependency
# =============================================================================

DBSession = Annotated[AsyncSession, Depends(get_db)]
"""Type alias for database session dependency injection.

Usage:
    @router.get("/items")
    async def get_items(db: DBSession):
        result = await db.execute(select(Item))
        return result.scalars().all()
"""


# =============================================================================
# Workflow Manager Dependency
# =============================================================================


@lru_cache
def get_manager() -> WorkflowManager:
    """Get the process-wide workflow manager.

    The manager owns its transactions through the session factory, so it is
    not tied to a request session.
    """
    return WorkflowManager(SQLWorkflowStore(async_session))


Manager = Annotated[WorkflowManager, Depends(get_manager)]
"""Type alias for workflow manager dependency injection.

Usage:
    @router.get("/workflows/{workflow_id}")
    async def get_workflow(manager: Manager, workflow_id: UUID):
        return await manager.get_workflow(workflow_id)
"""


__all__ = [
    "DBSession",
    "Manager",
    "get_db",
    "get_manager",
]
