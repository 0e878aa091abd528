from __future__ import annotations

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import expense_api.models  # noqa: F401  # Ensure models are registered with metadata
from expense_api import database
from expense_api.auth import hash_password, issue_token
from expense_api.database import Base, enable_sqlite_foreign_keys
from expense_api.main import create_app
from expense_api.models import Expense, User


@pytest.fixture()
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(test_engine)
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture()
def db_session(engine):
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session: Session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def app(engine):
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    application = create_app(init_database=False)
    application.dependency_overrides[database.get_db] = override_get_db
    return application


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def make_user(db_session):
    def _make_user(email: str = "alice@example.com", name: str = "Alice", password: str = "secret123") -> User:
        user = User(email=email, name=name, hashed_password=hash_password(password))
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def make_expense(db_session):
    def _make_expense(user: User, amount: float = 10.0, category: str = "Food",
                      date: datetime | None = None, note: str | None = None) -> Expense:
        expense = Expense(user_id=user.id, amount=amount, category=category, note=note,
                          date=date or datetime(2024, 1, 15, 12, 0))
        db_session.add(expense)
        db_session.commit()
        db_session.refresh(expense)
        return expense

    return _make_expense


@pytest.fixture()
def auth_headers():
    def _auth_headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {issue_token(user.id, user.email)}"}

    return _auth_headers
