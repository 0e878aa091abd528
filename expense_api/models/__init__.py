# Import all models so they register with SQLAlchemy Base.metadata
# This ensures Base.metadata.create_all() creates all tables

from expense_api.models.user import User
from expense_api.models.expense import Expense

__all__ = [
    "User",
    "Expense",
]
