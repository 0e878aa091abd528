"""
errors.py — Error taxonomy and tagged results
Services and validators return a Result instead of raising; only the FastAPI
boundary turns an AppError into an exception (ApiException).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")


class ErrorKind(Enum):
    UNAUTHENTICATED = ("unauthenticated", 401)
    TOKEN_INVALID = ("token_invalid", 401)
    TOKEN_EXPIRED = ("token_expired", 401)
    INVALID_CREDENTIALS = ("invalid_credentials", 401)
    FORBIDDEN = ("forbidden", 403)
    NOT_FOUND = ("not_found", 404)
    METHOD_NOT_ALLOWED = ("method_not_allowed", 405)
    VALIDATION_FAILED = ("validation_failed", 400)
    DUPLICATE = ("duplicate", 400)
    STORE_UNAVAILABLE = ("store_unavailable", 500)
    INTERNAL = ("internal", 500)

    @property
    def status_code(self) -> int:
        return self.value[1]

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status_code < 500

    @property
    def envelope_status(self) -> str:
        return "fail" if self.is_client_error else "error"


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def to_dict(self) -> dict:
        return {"field": self.field, "message": self.message}


@dataclass(frozen=True)
class AppError:
    kind: ErrorKind
    message: str
    errors: list[FieldError] = field(default_factory=list)

    @property
    def status_code(self) -> int:
        return self.kind.status_code


@dataclass(frozen=True)
class Result(Generic[T]):
    value: T | None = None
    error: AppError | None = None

    @classmethod
    def ok(cls, value: Any = None) -> "Result":
        return cls(value=value)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str, errors: list[FieldError] | None = None) -> "Result":
        return cls(error=AppError(kind, message, list(errors or [])))

    @classmethod
    def from_error(cls, error: AppError) -> "Result":
        return cls(error=error)

    @property
    def is_ok(self) -> bool:
        return self.error is None

    def then(self, fn: Callable[[T], "Result"]) -> "Result":
        """Feed the value to the next step, or pass the failure through untouched."""
        return fn(self.value) if self.is_ok else self


def validation_failed(errors: list[FieldError]) -> Result:
    return Result.fail(ErrorKind.VALIDATION_FAILED, "Validation failed", errors)


class ApiException(Exception):
    """Raised only where FastAPI needs an exception to short-circuit (dependencies)."""

    def __init__(self, error: AppError):
        super().__init__(error.message)
        self.error = error
