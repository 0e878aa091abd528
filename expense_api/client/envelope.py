"""
envelope.py — Response envelope decoding
The server always answers {"status": "success", "data": ...} or
{"status": "fail" | "error", "message": ..., "code": ..., "errors"?: [...]}.
"""

from typing import Any

import httpx


class ApiError(Exception):
    def __init__(
        self,
        status_code: int,
        status: str,
        message: str,
        code: str | None = None,
        errors: list[dict] | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.status = status
        self.message = message
        self.code = code
        self.errors = errors or []

    @property
    def is_client_error(self) -> bool:
        return self.status == "fail"

    @property
    def session_expired(self) -> bool:
        return self.code == "TOKEN_EXPIRED"

    @property
    def login_required(self) -> bool:
        return self.code in ("UNAUTHENTICATED", "TOKEN_INVALID")

    def field_messages(self) -> dict[str, str]:
        return {e.get("field", ""): e.get("message", "") for e in self.errors}

    def __repr__(self):
        return f"ApiError({self.status_code}, {self.code!r}, {self.message!r})"


def parse_envelope(response: httpx.Response) -> Any:
    """Return the envelope's data, or raise ApiError for a failure envelope."""
    if response.status_code == 204:
        return None

    try:
        body = response.json()
    except ValueError:
        raise ApiError(response.status_code, "error", "Invalid response from server") from None

    if not isinstance(body, dict) or body.get("status") not in ("success", "fail", "error"):
        raise ApiError(response.status_code, "error", "Unexpected response format")

    if body["status"] == "success":
        return body.get("data")

    raise ApiError(
        response.status_code,
        body["status"],
        body.get("message", "Something went wrong"),
        body.get("code"),
        body.get("errors"),
    )
