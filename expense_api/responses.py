"""
responses.py — Response envelope
Success: {"status": "success", "data": ...}
Failure: {"status": "fail" | "error", "message": ..., "code": ..., "errors"?: [...], "stack"?: ...}
"""

from datetime import datetime, timezone

from fastapi import Response, status
from fastapi.responses import JSONResponse

from expense_api.config import IS_DEVELOPMENT
from expense_api.errors import AppError, ErrorKind, Result


def iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def serialize_user(user) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "createdAt": iso(user.created_at),
        "updatedAt": iso(user.updated_at),
    }


def serialize_expense(expense) -> dict:
    return {
        "id": expense.id,
        "amount": expense.amount,
        "category": expense.category,
        "note": expense.note,
        "date": iso(expense.date),
        "userId": expense.user_id,
        "createdAt": iso(expense.created_at),
        "updatedAt": iso(expense.updated_at),
    }


def serialize_page(page) -> dict:
    return {
        "expenses": [serialize_expense(e) for e in page.items],
        "pagination": {
            "page": page.page,
            "limit": page.limit,
            "total": page.total,
            "totalPages": page.total_pages,
            "hasNextPage": page.has_next_page,
            "hasPrevPage": page.has_prev_page,
        },
    }


def serialize_summary(summary) -> dict:
    return {
        "summary": [
            {"category": c.category, "total": c.total, "count": c.count}
            for c in summary.categories
        ],
        "total": summary.total,
    }


def success(data=None, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": "success", "data": data})


def failure(error: AppError, stack: str | None = None) -> JSONResponse:
    body = {
        "status": error.kind.envelope_status,
        "message": error.message,
        "code": error.kind.name,
    }
    if error.errors:
        body["errors"] = [e.to_dict() for e in error.errors]
    if stack and IS_DEVELOPMENT:
        body["stack"] = stack

    headers = None
    if error.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(status_code=error.status_code, content=body, headers=headers)


def respond(result: Result, render, status_code: int = status.HTTP_200_OK) -> Response:
    """Turn a service Result into an HTTP response; render shapes the success payload."""
    if not result.is_ok:
        return failure(result.error)
    if status_code == status.HTTP_204_NO_CONTENT:
        return Response(status_code=status_code)
    return success(render(result.value), status_code)


def internal_error(stack: str | None = None) -> JSONResponse:
    return failure(AppError(ErrorKind.INTERNAL, "Something went wrong"), stack)
