"""Expense tracker REST backend and its API client."""

__version__ = "1.0.0"
