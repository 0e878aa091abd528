import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import bcrypt
from fastapi import Depends, Request
from jose import jwt, JWTError
from jose.exceptions import ExpiredSignatureError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from expense_api.config import JWT_SECRET, JWT_ALGORITHM, JWT_EXPIRY_DAYS
from expense_api.database import get_db
from expense_api.errors import ApiException, ErrorKind, Result
from expense_api.models.user import User

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class TokenClaims:
    id: str
    email: str
    jti: str | None = None


def hash_password(password: str) -> str:
    """Hash a plain-text password using bcrypt."""
    # Ensure it doesn't exceed 72 bytes to prevent bcrypt ValueError
    pw_bytes = password.encode("utf-8")[:72]
    hashed = bcrypt.hashpw(pw_bytes, bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain-text password against a bcrypt hash."""
    try:
        pw_bytes = plain_password.encode("utf-8")[:72]
        hash_bytes = hashed_password.encode("utf-8")
        return bcrypt.checkpw(pw_bytes, hash_bytes)
    except ValueError as e:
        logger.warning(f"Bcrypt verification error: {e}")
        return False


def issue_token(user_id: str, email: str, issued_at: datetime | None = None) -> str:
    """Create a signed JWT for the user, valid for JWT_EXPIRY_DAYS from issuance."""
    issued_at = issued_at or datetime.now(timezone.utc)
    to_encode = {
        "id": user_id,
        "email": email,
        "iat": issued_at,
        "exp": issued_at + timedelta(days=JWT_EXPIRY_DAYS),
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(to_encode, JWT_SECRET, algorithm=JWT_ALGORITHM)


def verify_token(token: str) -> Result:
    """Decode and verify a JWT. Expiry and every other failure map to distinct kinds."""
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except ExpiredSignatureError:
        return Result.fail(ErrorKind.TOKEN_EXPIRED, "Your token has expired! Please log in again.")
    except JWTError:
        return Result.fail(ErrorKind.TOKEN_INVALID, "Invalid token. Please log in again!")

    user_id = payload.get("id")
    if not user_id:
        return Result.fail(ErrorKind.TOKEN_INVALID, "Token payload missing required claims")
    return Result.ok(TokenClaims(id=str(user_id), email=payload.get("email", ""), jti=payload.get("jti")))


def extract_bearer(auth_header: str | None) -> str | None:
    if not auth_header or not auth_header.startswith(BEARER_PREFIX):
        return None
    token = auth_header[len(BEARER_PREFIX):].strip()
    return token or None


def authenticate(db: Session, auth_header: str | None) -> Result:
    """Resolve an Authorization header to a live User row."""
    token = extract_bearer(auth_header)
    if token is None:
        return Result.fail(ErrorKind.UNAUTHENTICATED, "You are not logged in. Please log in to get access.")

    verified = verify_token(token)
    if not verified.is_ok:
        return verified

    try:
        user = db.query(User).filter(User.id == verified.value.id).first()
    except SQLAlchemyError:
        logger.exception("User lookup failed during authentication")
        return Result.fail(ErrorKind.STORE_UNAVAILABLE, "Something went wrong with authentication")

    if user is None:
        return Result.fail(ErrorKind.UNAUTHENTICATED, "The user belonging to this token no longer exists.")
    return Result.ok(user)


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """
    FastAPI dependency — extracts the Bearer token from the Authorization
    header, verifies it, and returns the owning User.
    Raises ApiException (rendered as a 401 envelope) otherwise.
    """
    result = authenticate(db, request.headers.get("Authorization"))
    if not result.is_ok:
        raise ApiException(result.error)
    return result.value
