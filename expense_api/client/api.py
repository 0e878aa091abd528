"""
api.py — HTTP client for the expense tracker API
Mirrors what the mobile app needs: auth, expense CRUD, summaries and a
short-lived cache for expense lists. Uses one httpx.Client, injectable for tests.
"""

import logging
from datetime import date, datetime
from typing import Any
from urllib.parse import urlencode

import httpx

from expense_api.client.cache import ExpiringCache
from expense_api.client.envelope import ApiError, parse_envelope
from expense_api.client.models import Expense, ExpensePage, Session, Summary, User
from expense_api.client.session import TokenStore

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3000"
DEFAULT_TIMEOUT = 10.0
# A 401 here means bad credentials, not a dead session
CREDENTIAL_PATHS = ("/auth/login", "/auth/register")


def _iso_param(value: date | datetime | str | None) -> str | None:
    if value is None or isinstance(value, str):
        return value
    return value.isoformat()


class ExpenseClient:
    def __init__(
        self,
        http: httpx.Client,
        api_prefix: str = "/api",
        token_store: TokenStore | None = None,
        cache: ExpiringCache | None = None,
    ):
        self._http = http
        self._prefix = api_prefix.rstrip("/")
        self.token_store = token_store or TokenStore()
        self.cache = cache or ExpiringCache()

    @classmethod
    def connect(cls, base_url: str = DEFAULT_BASE_URL, timeout: float = DEFAULT_TIMEOUT, **kwargs) -> "ExpenseClient":
        http = httpx.Client(
            base_url=base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
        )
        return cls(http, **kwargs)

    def close(self) -> None:
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    # ------------------------------------------------------------------
    @property
    def is_authenticated(self) -> bool:
        return self.token_store.token is not None

    def _request(self, method: str, path: str, *, prefixed: bool = True, **kwargs) -> Any:
        url = f"{self._prefix}{path}" if prefixed else path
        headers = {}
        token = self.token_store.token
        if token:
            headers["Authorization"] = f"Bearer {token}"

        response = self._http.request(method, url, headers=headers, **kwargs)
        try:
            return parse_envelope(response)
        except ApiError as e:
            if e.status_code == 401 and path not in CREDENTIAL_PATHS:
                # The stored session is no good any more; force a fresh login
                logger.info(f"Session rejected ({e.code}), clearing stored credentials")
                self.logout()
            raise

    # ── auth ──────────────────────────────────────────────────────
    def register(self, name: str, email: str, password: str) -> Session:
        data = self._request("POST", "/auth/register", json={"name": name, "email": email, "password": password})
        session = Session.from_dict(data)
        self.token_store.save(session)
        self.cache.invalidate()
        return session

    def login(self, email: str, password: str) -> Session:
        data = self._request("POST", "/auth/login", json={"email": email, "password": password})
        session = Session.from_dict(data)
        self.token_store.save(session)
        self.cache.invalidate()
        return session

    def logout(self) -> None:
        self.token_store.clear()
        self.cache.invalidate()

    def me(self) -> User:
        return User.from_dict(self._request("GET", "/auth/me")["user"])

    # ── expenses ──────────────────────────────────────────────────
    def create_expense(
        self,
        amount: float,
        category: str,
        note: str | None = None,
        date: date | datetime | str | None = None,
    ) -> Expense:
        body = {"amount": amount, "category": category}
        if note is not None:
            body["note"] = note
        if date is not None:
            body["date"] = _iso_param(date)
        data = self._request("POST", "/expenses", json=body)
        self.cache.invalidate()
        return Expense.from_dict(data["expense"])

    def list_expenses(
        self,
        category: str | None = None,
        start_date: date | datetime | str | None = None,
        end_date: date | datetime | str | None = None,
        page: int = 1,
        limit: int = 10,
        force: bool = False,
    ) -> ExpensePage:
        """Fetch one page of expenses; a fresh cached page is reused unless force is set."""
        params = {
            "category": category,
            "startDate": _iso_param(start_date),
            "endDate": _iso_param(end_date),
            "page": page,
            "limit": limit,
        }
        params = {k: v for k, v in params.items() if v is not None}
        key = urlencode(sorted(params.items()))

        if not force:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        result = ExpensePage.from_dict(self._request("GET", "/expenses", params=params))
        self.cache.put(key, result)
        return result

    def get_expense(self, expense_id: str) -> Expense:
        return Expense.from_dict(self._request("GET", f"/expenses/{expense_id}")["expense"])

    def update_expense(self, expense_id: str, **changes) -> Expense:
        if "date" in changes:
            changes["date"] = _iso_param(changes["date"])
        data = self._request("PATCH", f"/expenses/{expense_id}", json=changes)
        self.cache.invalidate()
        return Expense.from_dict(data["expense"])

    def delete_expense(self, expense_id: str) -> None:
        self._request("DELETE", f"/expenses/{expense_id}")
        self.cache.invalidate()

    def summary(
        self,
        start_date: date | datetime | str | None = None,
        end_date: date | datetime | str | None = None,
    ) -> Summary:
        params = {"startDate": _iso_param(start_date), "endDate": _iso_param(end_date)}
        params = {k: v for k, v in params.items() if v is not None}
        return Summary.from_dict(self._request("GET", "/expenses/summary", params=params))

    def health(self) -> dict:
        return self._request("GET", "/health", prefixed=False)
