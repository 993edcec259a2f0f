"""Error kinds shared by every stage of a reconciliation run.

Recoverable conditions travel as values (``Outcome``) so callers branch on
``Outcome.error`` instead of catching broadly. Conditions that must abort the
whole run are raised as ``ExternalServiceError``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    EXTERNAL_SERVICE_FAILURE = "external_service_failure"
    PER_ANNOTATION_FAILURE = "per_annotation_failure"


@dataclass(frozen=True)
class Outcome(Generic[T]):
    value: T | None = None
    error: ErrorKind | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T | None = None) -> Outcome[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, detail: str = "") -> Outcome[T]:
        return cls(error=kind, detail=detail)


class ExternalServiceError(Exception):
    """A GitHub or LLM call failed in a way the run cannot recover from.

    ``context`` carries owner/repo/sha/pr so the failure can be replayed by hand.
    """

    kind = ErrorKind.EXTERNAL_SERVICE_FAILURE

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.context: dict[str, Any] = dict(context or {})

    def with_context(self, **context: Any) -> ExternalServiceError:
        for key, value in context.items():
            self.context.setdefault(key, value)
        return self

    def __str__(self) -> str:
        message = super().__str__()
        if not self.context:
            return message
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{message} ({details})"


@dataclass
class AnnotationFailure:
    """A single create or delete that failed during reconciliation."""

    operation: str  # "create" | "delete"
    path: str
    detail: str
    comment_id: int | None = None
    kind: ErrorKind = field(default=ErrorKind.PER_ANNOTATION_FAILURE)
