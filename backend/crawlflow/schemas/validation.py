"""Pydantic schemas for workflow validation results.

Every structural check (full validation and the single-edit guard checks)
reports through the same ValidationResult shape, so callers have one
error-handling path. Errors block persistence; warnings never do.
"""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import Field

from crawlflow.schemas.base import BaseSchema


class ValidationResult(BaseSchema):
    """Outcome of a validation or guard check."""

    valid: bool = Field(
        ...,
        description="True when no blocking errors were found",
    )
    errors: list[str] = Field(
        default_factory=list,
        description="Blocking problems, in the order they were found",
    )
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking observations",
    )

    @classmethod
    def from_messages(
        cls,
        errors: Iterable[str] = (),
        warnings: Iterable[str] = (),
    ) -> ValidationResult:
        """Build a result whose validity follows from the error list."""
        error_list = list(errors)
        return cls(valid=not error_list, errors=error_list, warnings=list(warnings))

    @classmethod
    def failure(cls, *errors: str) -> ValidationResult:
        """Build an invalid result carrying the given errors."""
        return cls(valid=False, errors=list(errors), warnings=[])

    def with_warnings(self, warnings: Iterable[str]) -> ValidationResult:
        """Return a copy with extra warnings placed before the existing ones."""
        extra = [w for w in warnings if w not in self.warnings]
        return self.model_copy(update={"warnings": [*extra, *self.warnings]})


__all__ = [
    "ValidationResult",
]
