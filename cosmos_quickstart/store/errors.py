"""
Document Store Errors

Error taxonomy shared by every document store backend. Point reads report
failures as a tagged ``Result`` so callers can branch on ``NOT_FOUND``
explicitly; every other operation raises ``StoreServiceError``.

Author: Cosmos Quickstart Contributors
Date: 2026-10-19
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar

T = TypeVar("T")


class StoreErrorKind(str, Enum):
    """Classification of a store failure, keyed off its HTTP status code."""

    BAD_REQUEST = "BadRequest"
    NOT_FOUND = "NotFound"
    CONFLICT = "Conflict"
    PRECONDITION_FAILED = "PreconditionFailed"
    SERVICE = "ServiceError"

    @classmethod
    def from_status(cls, status_code: Optional[int]) -> "StoreErrorKind":
        """Map an HTTP status code onto an error kind.

        Args:
            status_code: Status code reported by the store (may be None)

        Returns:
            Matching error kind, SERVICE for anything unrecognised
        """
        return _STATUS_KINDS.get(status_code, cls.SERVICE)


_STATUS_KINDS: Dict[Optional[int], StoreErrorKind] = {
    400: StoreErrorKind.BAD_REQUEST,
    404: StoreErrorKind.NOT_FOUND,
    409: StoreErrorKind.CONFLICT,
    412: StoreErrorKind.PRECONDITION_FAILED,
}

_KIND_STATUS: Dict[StoreErrorKind, int] = {
    StoreErrorKind.BAD_REQUEST: 400,
    StoreErrorKind.NOT_FOUND: 404,
    StoreErrorKind.CONFLICT: 409,
    StoreErrorKind.PRECONDITION_FAILED: 412,
    StoreErrorKind.SERVICE: 500,
}


@dataclass(frozen=True)
class StoreError:
    """
    A failure reported by the document store.

    Attributes:
        kind: Error classification
        status_code: HTTP status code from the store
        message: Human-readable message
        details: Diagnostic payload (activity id, resource ids, raw response)
    """

    kind: StoreErrorKind
    status_code: int
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def of(cls, kind: StoreErrorKind, message: str, **details: Any) -> "StoreError":
        """Build an error of the given kind with its canonical status code."""
        return cls(kind=kind, status_code=_KIND_STATUS[kind], message=message, details=details)

    @property
    def is_not_found(self) -> bool:
        return self.kind is StoreErrorKind.NOT_FOUND


class StoreServiceError(Exception):
    """
    Raised when a store operation fails.

    Carries the underlying ``StoreError`` so the top-level handler can log
    the status code and diagnostic payload.
    """

    def __init__(self, error: StoreError):
        super().__init__(error.message)
        self.error = error

    @property
    def status_code(self) -> int:
        return self.error.status_code

    @property
    def kind(self) -> StoreErrorKind:
        return self.error.kind

    @property
    def details(self) -> Dict[str, Any]:
        return self.error.details

    @classmethod
    def of(cls, kind: StoreErrorKind, message: str, **details: Any) -> "StoreServiceError":
        return cls(StoreError.of(kind, message, **details))

    def to_dict(self) -> Dict[str, Any]:
        """Convert the error to a dictionary for structured logging."""
        return {
            "error": {
                "code": self.error.kind.value,
                "status": self.error.status_code,
                "message": self.error.message,
                "details": self.error.details,
            }
        }


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Outcome of an operation that may fail with an expected error.

    Exactly one of ``value`` and ``error`` is set.
    """

    value: Optional[T] = None
    error: Optional[StoreError] = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: StoreError) -> "Result[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def is_not_found(self) -> bool:
        return self.error is not None and self.error.is_not_found

    def unwrap(self) -> T:
        """
        Return the value or raise the carried error.

        Raises:
            StoreServiceError: If the result is a failure
        """
        if self.error is not None:
            raise StoreServiceError(self.error)
        return self.value  # type: ignore[return-value]
