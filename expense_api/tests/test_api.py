from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from expense_api import responses
from expense_api.auth import issue_token
from expense_api.models import User

API = "/api"


def _register(client, email="alice@example.com", name="Alice", password="secret123"):
    return client.post(f"{API}/auth/register", json={"name": name, "email": email, "password": password})


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def test_healthcheck(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert body["data"]["status"] == "ok"


def test_register_returns_token_and_user_without_password(client):
    response = _register(client)
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["token"]
    assert data["user"]["email"] == "alice@example.com"
    assert "password" not in data["user"]
    assert "hashedPassword" not in data["user"]


def test_register_duplicate_email_is_rejected(client, db_session):
    _register(client)
    response = _register(client, name="Alice Again")
    assert response.status_code == 400
    assert response.json()["status"] == "fail"
    assert response.json()["message"] == "User already exists"
    assert db_session.query(User).filter(User.email == "alice@example.com").count() == 1


def test_register_validation_errors(client):
    response = client.post(f"{API}/auth/register", json={"email": "bad", "password": "1"})
    assert response.status_code == 400
    body = response.json()
    assert body["status"] == "fail"
    assert body["code"] == "VALIDATION_FAILED"
    assert {e["field"] for e in body["errors"]} == {"name", "email", "password"}


def test_login(client):
    _register(client)
    response = client.post(f"{API}/auth/login", json={"email": "alice@example.com", "password": "secret123"})
    assert response.status_code == 200
    token = response.json()["data"]["token"]

    me = client.get(f"{API}/auth/me", headers=_bearer(token))
    assert me.status_code == 200
    assert me.json()["data"]["user"]["name"] == "Alice"


def test_login_with_wrong_password_or_unknown_email(client):
    _register(client)
    wrong = client.post(f"{API}/auth/login", json={"email": "alice@example.com", "password": "nope-nope"})
    unknown = client.post(f"{API}/auth/login", json={"email": "who@example.com", "password": "secret123"})
    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json()["message"] == unknown.json()["message"] == "Invalid credentials"


def test_expenses_require_authentication(client):
    response = client.get(f"{API}/expenses")
    assert response.status_code == 401
    body = response.json()
    assert body["status"] == "fail"
    assert body["code"] == "UNAUTHENTICATED"
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_expired_and_invalid_tokens_have_distinct_codes(client, make_user):
    user = make_user()
    expired = issue_token(user.id, user.email, issued_at=datetime.now(timezone.utc) - timedelta(days=8))

    expired_response = client.get(f"{API}/expenses", headers=_bearer(expired))
    invalid_response = client.get(f"{API}/expenses", headers=_bearer("garbage.token.value"))
    assert expired_response.json()["code"] == "TOKEN_EXPIRED"
    assert invalid_response.json()["code"] == "TOKEN_INVALID"
    assert expired_response.status_code == invalid_response.status_code == 401


def test_create_and_retrieve_expense(client, make_user, auth_headers):
    alice = make_user()
    headers = auth_headers(alice)

    create_resp = client.post(
        f"{API}/expenses",
        json={"amount": 45.1, "category": "Travel", "note": " Train ticket ", "date": "2024-04-02", "userId": "x"},
        headers=headers,
    )
    assert create_resp.status_code == 201
    expense = create_resp.json()["data"]["expense"]
    assert expense["userId"] == alice.id
    assert expense["note"] == "Train ticket"
    assert expense["date"] == "2024-04-02T00:00:00Z"

    get_resp = client.get(f"{API}/expenses/{expense['id']}", headers=headers)
    assert get_resp.status_code == 200
    payload = get_resp.json()
    assert payload["status"] == "success"
    assert payload["data"]["expense"]["amount"] == 45.1
    assert payload["data"]["expense"]["category"] == "Travel"


def test_create_expense_validation(client, make_user, auth_headers):
    response = client.post(f"{API}/expenses", json={"amount": -1}, headers=auth_headers(make_user()))
    assert response.status_code == 400
    errors = {e["field"]: e["message"] for e in response.json()["errors"]}
    assert errors == {"amount": "Amount must be a positive number", "category": "Category is required"}


def test_malformed_json_body_is_a_validation_failure(client, make_user, auth_headers):
    headers = {**auth_headers(make_user()), "Content-Type": "application/json"}
    response = client.post(f"{API}/expenses", content="{not json", headers=headers)
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_FAILED"


def test_list_expenses_pagination(client, make_user, make_expense, auth_headers):
    alice = make_user()
    for i in range(25):
        make_expense(alice, amount=i + 1, date=datetime(2024, 1, 1) + timedelta(hours=i))

    response = client.get(f"{API}/expenses", params={"page": 2, "limit": 10}, headers=auth_headers(alice))
    assert response.status_code == 200
    data = response.json()["data"]
    assert len(data["expenses"]) == 10
    assert data["pagination"] == {
        "page": 2,
        "limit": 10,
        "total": 25,
        "totalPages": 3,
        "hasNextPage": True,
        "hasPrevPage": True,
    }


def test_list_expenses_bad_paging_uses_defaults(client, make_user, auth_headers):
    response = client.get(f"{API}/expenses", params={"page": "x", "limit": "y"}, headers=auth_headers(make_user()))
    assert response.status_code == 200
    pagination = response.json()["data"]["pagination"]
    assert (pagination["page"], pagination["limit"]) == (1, 10)


def test_list_expenses_rejects_bad_dates(client, make_user, auth_headers):
    response = client.get(f"{API}/expenses", params={"startDate": "not-a-date"}, headers=auth_headers(make_user()))
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "startDate"


def test_summary_route_is_not_taken_for_an_id(client, make_user, make_expense, auth_headers):
    alice = make_user()
    make_expense(alice, amount=10, category="Food")
    make_expense(alice, amount=30, category="Rent")

    response = client.get(f"{API}/expenses/summary", headers=auth_headers(alice))
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["summary"] == [
        {"category": "Rent", "total": 30.0, "count": 1},
        {"category": "Food", "total": 10.0, "count": 1},
    ]
    assert data["total"] == 40.0


def test_summary_empty(client, make_user, auth_headers):
    response = client.get(f"{API}/expenses/summary", headers=auth_headers(make_user()))
    assert response.json()["data"] == {"summary": [], "total": 0.0}


def test_get_with_malformed_id(client, make_user, auth_headers):
    response = client.get(f"{API}/expenses/not-a-uuid", headers=auth_headers(make_user()))
    assert response.status_code == 400
    assert response.json()["errors"] == [{"field": "id", "message": "Invalid expense ID format"}]


def test_other_users_cannot_touch_an_expense(client, make_user, make_expense, auth_headers):
    alice = make_user()
    bob = make_user(email="bob@example.com", name="Bob")
    expense = make_expense(alice, amount=10)
    bob_headers = auth_headers(bob)

    read = client.get(f"{API}/expenses/{expense.id}", headers=bob_headers)
    update = client.patch(f"{API}/expenses/{expense.id}", json={"amount": 1}, headers=bob_headers)
    delete = client.delete(f"{API}/expenses/{expense.id}", headers=bob_headers)
    assert read.status_code == 404
    assert update.status_code == 403
    assert delete.status_code == 403

    still_there = client.get(f"{API}/expenses/{expense.id}", headers=auth_headers(alice))
    assert still_there.json()["data"]["expense"]["amount"] == 10


def test_patch_and_delete(client, make_user, make_expense, auth_headers):
    alice = make_user()
    headers = auth_headers(alice)
    expense = make_expense(alice, amount=10, category="Food", note="lunch")

    patched = client.patch(f"{API}/expenses/{expense.id}", json={"category": "Groceries"}, headers=headers)
    assert patched.status_code == 200
    body = patched.json()["data"]["expense"]
    assert body["category"] == "Groceries"
    assert body["note"] == "lunch"
    assert body["amount"] == 10

    deleted = client.delete(f"{API}/expenses/{expense.id}", headers=headers)
    assert deleted.status_code == 204
    assert deleted.content == b""

    gone = client.get(f"{API}/expenses/{expense.id}", headers=headers)
    assert gone.status_code == 404


def test_unknown_route_uses_envelope(client):
    response = client.get(f"{API}/nothing-here")
    assert response.status_code == 404
    assert response.json() == {"status": "fail", "message": "Not Found", "code": "NOT_FOUND"}


def test_malformed_json_error_points_at_the_body(client, make_user, auth_headers):
    headers = {**auth_headers(make_user()), "Content-Type": "application/json"}
    response = client.post(f"{API}/expenses", content='{"amount": 5,,}', headers=headers)
    assert response.status_code == 400
    assert [e["field"] for e in response.json()["errors"]] == ["body"]


def test_wrong_method_uses_envelope(client):
    response = client.put(f"{API}/expenses")
    assert response.status_code == 405
    assert response.json() == {"status": "fail", "message": "Method Not Allowed", "code": "METHOD_NOT_ALLOWED"}


def test_huge_page_falls_back_to_first_page(client, make_user, make_expense, auth_headers):
    alice = make_user()
    make_expense(alice)
    response = client.get(f"{API}/expenses", params={"page": "99999999999999999999"}, headers=auth_headers(alice))
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["pagination"]["page"] == 1
    assert len(data["expenses"]) == 1


def test_huge_limit_falls_back_to_default(client, make_user, auth_headers):
    response = client.get(
        f"{API}/expenses",
        params={"page": "2", "limit": "99999999999999999999"},
        headers=auth_headers(make_user()),
    )
    assert response.status_code == 200
    assert response.json()["data"]["pagination"]["limit"] == 10


def _failing_app(app):
    def explode():
        raise RuntimeError("kaboom")

    app.add_api_route("/explode", explode)
    return TestClient(app, raise_server_exceptions=False)


def test_unhandled_error_hides_stack_outside_development(app, monkeypatch):
    monkeypatch.setattr(responses, "IS_DEVELOPMENT", False)
    response = _failing_app(app).get("/explode")
    assert response.status_code == 500
    assert response.json() == {"status": "error", "message": "Something went wrong", "code": "INTERNAL"}


def test_unhandled_error_includes_stack_in_development(app, monkeypatch):
    monkeypatch.setattr(responses, "IS_DEVELOPMENT", True)
    response = _failing_app(app).get("/explode")
    assert response.status_code == 500
    body = response.json()
    assert body["code"] == "INTERNAL"
    assert "RuntimeError: kaboom" in body["stack"]
