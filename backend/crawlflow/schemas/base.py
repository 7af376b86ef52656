"""Base Pydantic schemas with common patterns.

This module defines the base schema and the reusable field definitions
shared by the workflow and validation schemas.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from pydantic.fields import FieldInfo


class BaseSchema(BaseModel):
    """Base schema with common configuration for all schemas.

    Configures Pydantic v2 settings for consistent behavior across all schemas.
    from_attributes lets persistence records be validated straight into
    domain schemas.
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        use_enum_values=True,
    )


class ErrorResponse(BaseSchema):
    """Standard error response schema."""

    error: str = Field(
        ...,
        description="Error type identifier",
        examples=["StorageError"],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
        examples=["Workflow store failed to save"],
    )


# Common field definitions for reuse
NameField: FieldInfo = cast(
    "FieldInfo",
    Field(
        ...,
        min_length=1,
        max_length=255,
        description="Display name",
        examples=["Daily product crawl"],
    ),
)

OptionalNameField: FieldInfo = cast(
    "FieldInfo",
    Field(
        default=None,
        min_length=1,
        max_length=255,
        description="Display name",
        examples=["Daily product crawl"],
    ),
)

DescriptionField: FieldInfo = cast(
    "FieldInfo",
    Field(
        default=None,
        max_length=2000,
        description="Optional description",
        examples=["Crawls the catalogue and screenshots every product page"],
    ),
)


__all__ = [
    "BaseSchema",
    "DescriptionField",
    "ErrorResponse",
    "NameField",
    "OptionalNameField",
]
