from dataclasses import dataclass, field
from datetime import datetime


def parse_datetime(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


@dataclass(frozen=True)
class User:
    id: str
    name: str
    email: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "User":
        return cls(
            id=data["id"],
            name=data["name"],
            email=data["email"],
            created_at=parse_datetime(data.get("createdAt")),
            updated_at=parse_datetime(data.get("updatedAt")),
        )


@dataclass(frozen=True)
class Session:
    token: str
    user: User

    @classmethod
    def from_dict(cls, data: dict) -> "Session":
        return cls(token=data["token"], user=User.from_dict(data["user"]))


@dataclass(frozen=True)
class Expense:
    id: str
    amount: float
    category: str
    date: datetime
    user_id: str
    note: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "Expense":
        return cls(
            id=data["id"],
            amount=float(data["amount"]),
            category=data["category"],
            date=parse_datetime(data["date"]),
            user_id=data["userId"],
            note=data.get("note"),
            created_at=parse_datetime(data.get("createdAt")),
            updated_at=parse_datetime(data.get("updatedAt")),
        )


@dataclass(frozen=True)
class Pagination:
    page: int
    limit: int
    total: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def from_dict(cls, data: dict) -> "Pagination":
        return cls(
            page=data["page"],
            limit=data["limit"],
            total=data["total"],
            total_pages=data["totalPages"],
            has_next_page=data["hasNextPage"],
            has_prev_page=data["hasPrevPage"],
        )


@dataclass(frozen=True)
class ExpensePage:
    expenses: list[Expense]
    pagination: Pagination

    @classmethod
    def from_dict(cls, data: dict) -> "ExpensePage":
        return cls(
            expenses=[Expense.from_dict(e) for e in data["expenses"]],
            pagination=Pagination.from_dict(data["pagination"]),
        )


@dataclass(frozen=True)
class CategoryTotal:
    category: str
    total: float
    count: int = 0


@dataclass(frozen=True)
class Summary:
    total: float
    categories: list[CategoryTotal] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "Summary":
        return cls(
            total=float(data["total"]),
            categories=[
                CategoryTotal(category=c["category"], total=float(c["total"]), count=c.get("count", 0))
                for c in data["summary"]
            ],
        )
