from expense_api.client.api import ExpenseClient
from expense_api.client.cache import CacheRecord, ExpiringCache
from expense_api.client.envelope import ApiError, parse_envelope
from expense_api.client.session import TokenStore

__all__ = [
    "ExpenseClient",
    "CacheRecord",
    "ExpiringCache",
    "ApiError",
    "parse_envelope",
    "TokenStore",
]
