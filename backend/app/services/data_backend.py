"""
Backend query interface consumed by the identity and dashboard services.

Collections are addressed by table name. Filters are simple column/operator/value
triples; a query ANDs its filters and, when ``any_of`` is given, additionally
requires at least one of those to match.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Sequence
from app.auth import Role

PATIENTS = "patients"
DOCTORS = "doctors"
ADMINS = "admins"
APPOINTMENTS = "appointments"
BILLS = "bills"

IDENTITY_TABLES = {
    Role.PATIENT: PATIENTS,
    Role.DOCTOR: DOCTORS,
    Role.ADMIN: ADMINS,
}

OPERATORS = ("eq", "neq", "gt", "gte", "lt", "lte", "in")


@dataclass(frozen=True)
class Filter:
    column: str
    op: str
    value: Any

    def __post_init__(self):
        if self.op not in OPERATORS:
            raise ValueError(f"Unsupported filter operator: {self.op}")


def eq(column: str, value: Any) -> Filter:
    return Filter(column, "eq", value)


def neq(column: str, value: Any) -> Filter:
    return Filter(column, "neq", value)


def gte(column: str, value: Any) -> Filter:
    return Filter(column, "gte", value)


def in_(column: str, values: Sequence[Any]) -> Filter:
    return Filter(column, "in", tuple(values))


class DataBackend(ABC):
    """Collection-scoped reads and writes plus the doctor/admin credential checks."""

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        *,
        any_of: Sequence[Filter] = (),
        columns: Optional[Sequence[str]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict]:
        ...

    async def select_one(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        *,
        any_of: Sequence[Filter] = (),
        columns: Optional[Sequence[str]] = None,
    ) -> Optional[dict]:
        rows = await self.select(table, filters, any_of=any_of, columns=columns, limit=1)
        return rows[0] if rows else None

    @abstractmethod
    async def count(self, table: str, filters: Sequence[Filter] = ()) -> int:
        ...

    @abstractmethod
    async def insert(self, table: str, row: dict) -> dict:
        ...

    @abstractmethod
    async def delete(self, table: str, filters: Sequence[Filter]) -> int:
        ...

    @abstractmethod
    async def verify_credentials(self, role: Role, email: str, password: str) -> Optional[dict]:
        """Return the doctor/admin record matching email and password, or None."""
        ...

    def set_access_token(self, token: Optional[str]) -> None:
        """Act on behalf of a signed-in session. Backends without row-level auth ignore it."""

    async def close(self) -> None:
        pass
