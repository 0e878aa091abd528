"""
validation.py — Request validation
Pure checks applied before any store access. Every function returns a Result;
all violated rules of one request are reported together as VALIDATION_FAILED.
"""

import re
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Annotated, Any, ClassVar, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError, field_validator

from expense_api.config import DEFAULT_LIMIT, DEFAULT_PAGE, MAX_LIMIT
from expense_api.errors import FieldError, Result, validation_failed

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
DATE_FORMAT_MESSAGE = "Invalid date format. Use ISO8601 format"


def parse_iso8601(value: Any) -> datetime:
    """Parse an ISO-8601 date or datetime string. Raises ValueError otherwise."""
    if not isinstance(value, str) or not value.strip():
        raise ValueError(DATE_FORMAT_MESSAGE)
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        raise ValueError(DATE_FORMAT_MESSAGE) from None


def to_utc_naive(value: datetime) -> datetime:
    """Aware datetimes are converted to UTC; naive ones are taken as UTC already."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.replace(tzinfo=None)


def start_of_day(value: datetime) -> datetime:
    return to_utc_naive(value).replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(value: datetime) -> datetime:
    return to_utc_naive(value).replace(hour=23, minute=59, second=59, microsecond=999000)


# ── shared field rules ────────────────────────────────────────────
def _check_amount(value):
    # bool is an int subclass; "true" is not an amount
    if isinstance(value, bool):
        raise ValueError("Amount must be a positive number")
    return value


def _check_text(value):
    if not isinstance(value, str) or not value.strip():
        raise ValueError("must be a non-empty string")
    return value.strip()


def _check_note(value):
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError("Note must be a string")
    return value.strip()


def _check_date(value):
    if value is None or isinstance(value, datetime):
        return value
    return to_utc_naive(parse_iso8601(value))


def _check_email(value):
    if not isinstance(value, str) or not EMAIL_RE.match(value.strip()):
        raise ValueError("Please provide a valid email")
    return value.strip()


PositiveAmount = Annotated[float, BeforeValidator(_check_amount), Field(gt=0, allow_inf_nan=False)]
RequiredText = Annotated[str, BeforeValidator(_check_text)]
NoteText = Annotated[Optional[str], BeforeValidator(_check_note)]
IsoDateTime = Annotated[Optional[datetime], BeforeValidator(_check_date)]
EmailText = Annotated[str, BeforeValidator(_check_email)]


class ExpenseCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    amount: PositiveAmount
    category: RequiredText
    note: NoteText = None
    date: IsoDateTime = None

    messages: ClassVar[dict[str, str]] = {
        "amount": "Amount must be a positive number",
        "category": "Category is required",
        "note": "Note must be a string",
        "date": DATE_FORMAT_MESSAGE,
    }


class ExpenseUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    amount: Optional[PositiveAmount] = None
    category: Optional[RequiredText] = None
    note: NoteText = None
    date: IsoDateTime = None

    messages: ClassVar[dict[str, str]] = {
        "amount": "Amount must be a positive number",
        "category": "Category cannot be empty",
        "note": "Note must be a string",
        "date": DATE_FORMAT_MESSAGE,
    }

    @field_validator("amount", "category", "date")
    @classmethod
    def _not_null(cls, value, info):
        # Only note may be cleared with an explicit null
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class RegisterRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: RequiredText
    email: EmailText
    password: str = Field(..., min_length=6)

    messages: ClassVar[dict[str, str]] = {
        "name": "Name is required",
        "email": "Please provide a valid email",
        "password": "Password must be at least 6 characters long",
    }


class LoginRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email: EmailText
    password: str = Field(..., min_length=1)

    messages: ClassVar[dict[str, str]] = {
        "email": "Please provide a valid email",
        "password": "Password is required",
    }


@dataclass(frozen=True)
class ExpenseQuery:
    category: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


# ── entry points ──────────────────────────────────────────────────
def _field_errors(exc: ValidationError, messages: dict[str, str]) -> list[FieldError]:
    errors, seen = [], set()
    for err in exc.errors():
        field = str(err["loc"][0]) if err["loc"] else "body"
        if field in seen:
            continue
        seen.add(field)
        errors.append(FieldError(field, messages.get(field, err["msg"])))
    return errors


def _validate_model(model_cls, payload: Any) -> Result:
    if not isinstance(payload, Mapping):
        return validation_failed([FieldError("body", "Request body must be a JSON object")])
    try:
        return Result.ok(model_cls.model_validate(dict(payload)))
    except ValidationError as exc:
        return validation_failed(_field_errors(exc, model_cls.messages))


def validate_create(payload: Any) -> Result:
    return _validate_model(ExpenseCreate, payload)


def validate_update(payload: Any) -> Result:
    return _validate_model(ExpenseUpdate, payload)


def validate_registration(payload: Any) -> Result:
    return _validate_model(RegisterRequest, payload)


def validate_login(payload: Any) -> Result:
    return _validate_model(LoginRequest, payload)


# Largest OFFSET the store can bind as a signed 64-bit integer
MAX_OFFSET = 2**63 - 1


def _positive_int(raw: Any, default: int, maximum: int | None = None) -> int:
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return default
    if value <= 0 or (maximum is not None and value > maximum):
        return default
    return value


def validate_query(params: Mapping[str, Any]) -> Result:
    """Filters for list/summary. Bad dates fail; bad page/limit fall back to defaults."""
    errors = []
    start = end = None

    raw_start = params.get("startDate")
    if raw_start not in (None, ""):
        try:
            start = start_of_day(parse_iso8601(raw_start))
        except ValueError:
            errors.append(FieldError("startDate", "Invalid start date format. Use ISO8601 format"))

    raw_end = params.get("endDate")
    if raw_end not in (None, ""):
        try:
            end = end_of_day(parse_iso8601(raw_end))
        except ValueError:
            errors.append(FieldError("endDate", "Invalid end date format. Use ISO8601 format"))

    if errors:
        return validation_failed(errors)

    category = params.get("category")
    category = category.strip() if isinstance(category, str) else None

    limit = _positive_int(params.get("limit"), DEFAULT_LIMIT, MAX_LIMIT)
    page = _positive_int(params.get("page"), DEFAULT_PAGE, MAX_OFFSET // limit + 1)

    return Result.ok(ExpenseQuery(
        category=category or None,
        start_date=start,
        end_date=end,
        page=page,
        limit=limit,
    ))


def validate_expense_id(value: Any) -> Result:
    try:
        return Result.ok(str(uuid.UUID(str(value))))
    except ValueError:
        return validation_failed([FieldError("id", "Invalid expense ID format")])
