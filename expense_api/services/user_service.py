"""
user_service.py — Accounts
Registration and credential checks. Password hashes never leave this layer
except inside the User row.
"""

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from expense_api.auth import hash_password, verify_password
from expense_api.errors import ErrorKind, Result
from expense_api.models.user import User
from expense_api.validation import LoginRequest, RegisterRequest

logger = logging.getLogger(__name__)


class UserService:
    @staticmethod
    def register(db: Session, data: RegisterRequest) -> Result:
        try:
            if db.query(User).filter(User.email == data.email).first() is not None:
                return Result.fail(ErrorKind.DUPLICATE, "User already exists")

            user = User(
                name=data.name,
                email=data.email,
                hashed_password=hash_password(data.password),
            )
            db.add(user)
            db.commit()
            db.refresh(user)
        except IntegrityError:
            # Lost a race against a concurrent registration of the same email
            db.rollback()
            return Result.fail(ErrorKind.DUPLICATE, "User already exists")
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Registration failed")
            return Result.fail(ErrorKind.STORE_UNAVAILABLE, "Something went wrong during registration")

        logger.info(f"Registered user {user.id}")
        return Result.ok(user)

    @staticmethod
    def authenticate(db: Session, data: LoginRequest) -> Result:
        """Unknown email and wrong password are reported identically."""
        try:
            user = db.query(User).filter(User.email == data.email).first()
        except SQLAlchemyError:
            logger.exception("Login lookup failed")
            return Result.fail(ErrorKind.STORE_UNAVAILABLE, "Something went wrong during login")

        if user is None or not verify_password(data.password, user.hashed_password):
            logger.info("Login failed: invalid credentials")
            return Result.fail(ErrorKind.INVALID_CREDENTIALS, "Invalid credentials")
        return Result.ok(user)
