"""
expense_service.py — Owner-scoped expense repository
Every operation takes the authenticated owner id and never trusts an owner id
coming from the client. Operations return Result values instead of raising.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from expense_api.errors import ErrorKind, Result
from expense_api.models.expense import Expense
from expense_api.validation import ExpenseCreate, ExpenseQuery, ExpenseUpdate

logger = logging.getLogger(__name__)

STORE_MESSAGE = "The expense store is unavailable"


@dataclass
class ExpensePage:
    items: list[Expense]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev_page(self) -> bool:
        return self.page > 1


@dataclass
class CategoryTotal:
    category: str
    total: float
    count: int


@dataclass
class ExpenseSummary:
    categories: list[CategoryTotal] = field(default_factory=list)
    total: float = 0.0


def _store_failure(db: Session, action: str) -> Result:
    db.rollback()
    logger.exception(f"Expense store failure while trying to {action}")
    return Result.fail(ErrorKind.STORE_UNAVAILABLE, STORE_MESSAGE)


def _date_window(query, start: datetime | None, end: datetime | None):
    if start is not None:
        query = query.filter(Expense.date >= start)
    if end is not None:
        query = query.filter(Expense.date <= end)
    return query


class ExpenseService:
    @staticmethod
    def create(db: Session, owner_id: str, data: ExpenseCreate) -> Result:
        try:
            expense = Expense(
                user_id=owner_id,
                amount=data.amount,
                category=data.category,
                note=data.note,
                date=data.date or datetime.now(timezone.utc).replace(tzinfo=None),
            )
            db.add(expense)
            db.commit()
            db.refresh(expense)
        except SQLAlchemyError:
            return _store_failure(db, "create an expense")
        logger.info(f"Expense {expense.id} created for user {owner_id}")
        return Result.ok(expense)

    @staticmethod
    def list(db: Session, owner_id: str, filters: ExpenseQuery) -> Result:
        """One page of the owner's expenses, newest first, plus the total match count."""
        try:
            query = db.query(Expense).filter(Expense.user_id == owner_id)
            if filters.category:
                query = query.filter(Expense.category == filters.category)
            query = _date_window(query, filters.start_date, filters.end_date)

            total = query.order_by(None).count()
            items = (
                query.order_by(Expense.date.desc())
                .offset(filters.offset)
                .limit(filters.limit)
                .all()
            )
        except SQLAlchemyError:
            return _store_failure(db, "list expenses")
        return Result.ok(ExpensePage(items=items, total=total, page=filters.page, limit=filters.limit))

    @staticmethod
    def get_by_id(db: Session, owner_id: str, expense_id: str) -> Result:
        # Someone else's expense reads exactly like a missing one
        try:
            expense = (
                db.query(Expense)
                .filter(Expense.id == expense_id, Expense.user_id == owner_id)
                .first()
            )
        except SQLAlchemyError:
            return _store_failure(db, "fetch an expense")
        if expense is None:
            return Result.fail(ErrorKind.NOT_FOUND, "Expense not found")
        return Result.ok(expense)

    @staticmethod
    def summary(db: Session, owner_id: str, filters: ExpenseQuery) -> Result:
        """Per-category totals ordered by amount spent, and the grand total."""
        try:
            total_expr = func.coalesce(func.sum(Expense.amount), 0.0)
            base = _date_window(
                db.query(Expense).filter(Expense.user_id == owner_id),
                filters.start_date,
                filters.end_date,
            )
            rows = (
                base.with_entities(
                    Expense.category,
                    total_expr.label("total"),
                    func.count(Expense.id).label("expense_count"),
                )
                .group_by(Expense.category)
                .order_by(total_expr.desc())
                .all()
            )
            grand_total = base.with_entities(total_expr).scalar()
        except SQLAlchemyError:
            return _store_failure(db, "summarise expenses")

        return Result.ok(ExpenseSummary(
            categories=[CategoryTotal(category=r.category, total=float(r.total), count=r.expense_count) for r in rows],
            total=float(grand_total or 0.0),
        ))

    @staticmethod
    def _owned_for_write(db: Session, owner_id: str, expense_id: str, action: str) -> Result:
        expense = db.query(Expense).filter(Expense.id == expense_id).first()
        if expense is None:
            return Result.fail(ErrorKind.NOT_FOUND, "Expense not found")
        if expense.user_id != owner_id:
            logger.warning(f"User {owner_id} tried to {action} expense {expense_id} owned by someone else")
            return Result.fail(ErrorKind.FORBIDDEN, f"Not authorized to {action} this expense")
        return Result.ok(expense)

    @staticmethod
    def update(db: Session, owner_id: str, expense_id: str, data: ExpenseUpdate) -> Result:
        """Apply only the supplied fields. Last write wins, there is no version check."""
        try:
            found = ExpenseService._owned_for_write(db, owner_id, expense_id, "update")
            if not found.is_ok:
                return found

            expense = found.value
            changes = data.changes()
            if not changes:
                return Result.ok(expense)

            for key, value in changes.items():
                setattr(expense, key, value)
            db.commit()
            db.refresh(expense)
        except SQLAlchemyError:
            return _store_failure(db, "update an expense")
        return Result.ok(expense)

    @staticmethod
    def delete(db: Session, owner_id: str, expense_id: str) -> Result:
        try:
            found = ExpenseService._owned_for_write(db, owner_id, expense_id, "delete")
            if not found.is_ok:
                return found

            db.delete(found.value)
            db.commit()
        except SQLAlchemyError:
            return _store_failure(db, "delete an expense")
        logger.info(f"Expense {expense_id} deleted by user {owner_id}")
        return Result.ok()
