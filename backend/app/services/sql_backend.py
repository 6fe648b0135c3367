"""Data backend over a direct SQL connection to the relational store."""

from typing import Optional, Sequence
import bcrypt
from sqlalchemy import select, func, or_, delete as sa_delete
from sqlalchemy.exc import SQLAlchemyError
from app.auth import Role
from app.database import create_engine, create_sessionmaker
from app.exceptions import BackendError
from app.models import Patient, Doctor, Admin, Appointment, Bill
from app.services.data_backend import DataBackend, Filter, IDENTITY_TABLES

MODELS = {
    "patients": Patient,
    "doctors": Doctor,
    "admins": Admin,
    "appointments": Appointment,
    "bills": Bill,
}

# Never leave the data layer through a select.
SECRET_COLUMNS = {"password_hash"}

_OPS = {
    "eq": lambda c, v: c == v,
    "neq": lambda c, v: c != v,
    "gt": lambda c, v: c > v,
    "gte": lambda c, v: c >= v,
    "lt": lambda c, v: c < v,
    "lte": lambda c, v: c <= v,
    "in": lambda c, v: c.in_(list(v)),
}


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed hash or over-long password
        return False


class SqlDataBackend(DataBackend):
    def __init__(self, engine=None):
        self.engine = engine or create_engine()
        self._sessionmaker = create_sessionmaker(self.engine)

    @staticmethod
    def _table(name: str):
        model = MODELS.get(name)
        if model is None:
            raise BackendError(f"Unknown table {name}")
        return model.__table__

    @staticmethod
    def _column(table, name: str):
        try:
            return table.c[name]
        except KeyError as e:
            raise BackendError(f"Unknown column {table.name}.{name}") from e

    def _conditions(self, table, filters: Sequence[Filter]) -> list:
        return [_OPS[f.op](self._column(table, f.column), f.value) for f in filters]

    @staticmethod
    def _row_to_dict(mapping) -> dict:
        return {k: v for k, v in mapping.items() if k not in SECRET_COLUMNS}

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
        t = self._table(table)
        if columns:
            stmt = select(*[self._column(t, c) for c in columns])
        else:
            stmt = select(t)
        stmt = stmt.where(*self._conditions(t, filters))
        if any_of:
            stmt = stmt.where(or_(*self._conditions(t, any_of)))
        if order_by:
            col = self._column(t, order_by)
            stmt = stmt.order_by(col.desc() if descending else col.asc())
        if limit is not None:
            stmt = stmt.limit(limit)

        try:
            async with self._sessionmaker() as session:
                result = await session.execute(stmt)
                return [self._row_to_dict(row._mapping) for row in result]
        except SQLAlchemyError as e:
            raise BackendError(f"select from {table} failed: {e}") from e

    async def count(self, table: str, filters: Sequence[Filter] = ()) -> int:
        t = self._table(table)
        stmt = select(func.count()).select_from(t).where(*self._conditions(t, filters))
        try:
            async with self._sessionmaker() as session:
                return await session.scalar(stmt) or 0
        except SQLAlchemyError as e:
            raise BackendError(f"count on {table} failed: {e}") from e

    async def insert(self, table: str, row: dict) -> dict:
        model = MODELS.get(table)
        if model is None:
            raise BackendError(f"Unknown table {table}")
        try:
            obj = model(**row)
        except TypeError as e:
            raise BackendError(f"Invalid row for {table}: {e}") from e

        try:
            async with self._sessionmaker() as session:
                session.add(obj)
                await session.commit()
                await session.refresh(obj)
                return {
                    c.name: getattr(obj, c.key)
                    for c in model.__table__.columns
                    if c.name not in SECRET_COLUMNS
                }
        except SQLAlchemyError as e:
            raise BackendError(f"insert into {table} failed: {e}") from e

    async def delete(self, table: str, filters: Sequence[Filter]) -> int:
        if not filters:
            raise BackendError("Refusing to delete without filters", details={"table": table})
        t = self._table(table)
        try:
            async with self._sessionmaker() as session:
                result = await session.execute(sa_delete(t).where(*self._conditions(t, filters)))
                await session.commit()
                return result.rowcount or 0
        except SQLAlchemyError as e:
            raise BackendError(f"delete from {table} failed: {e}") from e

    async def verify_credentials(self, role: Role, email: str, password: str) -> Optional[dict]:
        if role not in (Role.DOCTOR, Role.ADMIN):
            raise ValueError(f"No credential check for role {role.value}")
        t = self._table(IDENTITY_TABLES[role])
        try:
            async with self._sessionmaker() as session:
                result = await session.execute(select(t).where(t.c.email == email).limit(1))
                row = result.first()
        except SQLAlchemyError as e:
            raise BackendError(f"credential check on {t.name} failed: {e}") from e

        if row is None or not verify_password(password, row._mapping["password_hash"] or ""):
            return None
        return self._row_to_dict(row._mapping)

    async def close(self) -> None:
        await self.engine.dispose()
