from typing import Any

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.orm import Session

from expense_api.auth import get_current_user, issue_token
from expense_api.config import API_PREFIX
from expense_api.database import get_db
from expense_api.models.user import User
from expense_api.responses import respond, serialize_user, success
from expense_api.services.user_service import UserService
from expense_api.validation import validate_login, validate_registration

router = APIRouter(prefix=f"{API_PREFIX}/auth", tags=["Auth"])


def _session_payload(user: User) -> dict:
    return {
        "user": serialize_user(user),
        "token": issue_token(user.id, user.email),
    }


@router.post("/register")
def register(payload: Any = Body(None), db: Session = Depends(get_db)):
    """Create an account and log it in straight away."""
    result = validate_registration(payload).then(lambda data: UserService.register(db, data))
    return respond(result, _session_payload, status.HTTP_201_CREATED)


@router.post("/login")
def login(payload: Any = Body(None), db: Session = Depends(get_db)):
    """Authenticate with email + password."""
    result = validate_login(payload).then(lambda data: UserService.authenticate(db, data))
    return respond(result, _session_payload)


@router.get("/me")
def me(user: User = Depends(get_current_user)):
    """Return the current user's profile from the token."""
    return success({"user": serialize_user(user)})
