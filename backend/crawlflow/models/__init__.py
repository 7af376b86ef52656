"""SQLAlchemy models for the workflow store."""

from crawlflow.models.base import GUID, Base, TimestampMixin, UTCDateTime, UUIDMixin
from crawlflow.models.workflow import WorkflowRecord, WorkflowTaskRecord

__all__ = [
    "GUID",
    "Base",
    "TimestampMixin",
    "UTCDateTime",
    "UUIDMixin",
    "WorkflowRecord",
    "WorkflowTaskRecord",
]
