from expense_api.client.models import Session


class TokenStore:
    """Holds the logged-in session. Persisting it securely is up to the host app."""

    def __init__(self, session: Session | None = None):
        self._session = session

    @property
    def token(self) -> str | None:
        return self._session.token if self._session else None

    def load(self) -> Session | None:
        return self._session

    def save(self, session: Session) -> None:
        self._session = session

    def clear(self) -> None:
        self._session = None
