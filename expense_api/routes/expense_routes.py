from typing import Any

from fastapi import APIRouter, Body, Depends, Request, status
from sqlalchemy.orm import Session

from expense_api.auth import get_current_user
from expense_api.config import API_PREFIX
from expense_api.database import get_db
from expense_api.models.user import User
from expense_api.responses import respond, serialize_expense, serialize_page, serialize_summary
from expense_api.services.expense_service import ExpenseService
from expense_api.validation import validate_create, validate_expense_id, validate_query, validate_update

router = APIRouter(prefix=f"{API_PREFIX}/expenses", tags=["Expenses"])


def _expense_payload(expense) -> dict:
    return {"expense": serialize_expense(expense)}


@router.post("")
def create_expense(
    payload: Any = Body(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    result = validate_create(payload).then(lambda data: ExpenseService.create(db, user.id, data))
    return respond(result, _expense_payload, status.HTTP_201_CREATED)


@router.get("")
def list_expenses(request: Request, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    result = validate_query(request.query_params).then(lambda q: ExpenseService.list(db, user.id, q))
    return respond(result, serialize_page)


# Must stay above /{expense_id} so "summary" is not read as an id
@router.get("/summary")
def expense_summary(request: Request, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    result = validate_query(request.query_params).then(lambda q: ExpenseService.summary(db, user.id, q))
    return respond(result, serialize_summary)


@router.get("/{expense_id}")
def get_expense(expense_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    result = validate_expense_id(expense_id).then(lambda eid: ExpenseService.get_by_id(db, user.id, eid))
    return respond(result, _expense_payload)


@router.patch("/{expense_id}")
def update_expense(
    expense_id: str,
    payload: Any = Body(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    result = validate_expense_id(expense_id).then(
        lambda eid: validate_update(payload).then(
            lambda changes: ExpenseService.update(db, user.id, eid, changes)
        )
    )
    return respond(result, _expense_payload)


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_expense(expense_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    result = validate_expense_id(expense_id).then(lambda eid: ExpenseService.delete(db, user.id, eid))
    return respond(result, None, status.HTTP_204_NO_CONTENT)
