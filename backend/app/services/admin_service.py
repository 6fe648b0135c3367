import asyncio
import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional
from app.auth import Role
from app.schemas.dashboard import AdminMetrics, SystemMetric, Revenue, ManagedUser, AdminDashboard
from app.services.coerce import as_date, as_datetime, as_float
from app.services.data_backend import DataBackend, PATIENTS, DOCTORS, ADMINS, APPOINTMENTS, BILLS, eq
from app.services.fanout import gather_strict

logger = logging.getLogger(__name__)

# Shown next to each metric card. Placeholders until month-over-month history exists.
PLACEHOLDER_CHANGES = {
    "Total Users": 12,
    "Active Doctors": 3,
    "Active Patients": 9,
    "Total Bookings": 28,
}

USER_TABLES = (
    (Role.PATIENT, PATIENTS),
    (Role.DOCTOR, DOCTORS),
    (Role.ADMIN, ADMINS),
)


def metric_cards(metrics: AdminMetrics) -> list[SystemMetric]:
    values = {
        "Total Users": metrics.total_users,
        "Active Doctors": metrics.active_doctors,
        "Active Patients": metrics.active_patients,
        "Total Bookings": metrics.total_bookings,
    }
    return [
        SystemMetric(label=label, value=value, change=PLACEHOLDER_CHANGES[label])
        for label, value in values.items()
    ]


def bucket_revenue(bills: Iterable[dict], now: datetime) -> Revenue:
    """
    Sum bill amounts into today / last 7 days / last 30 days / all time.

    Boundaries are measured back from local midnight of ``now`` and are
    inclusive, so a bill stamped exactly at a boundary counts in that bucket.
    """
    now = as_datetime(now)
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    week_ago = today - timedelta(days=7)
    month_ago = today - timedelta(days=30)

    revenue = Revenue()
    for bill in bills:
        amount = as_float(bill.get("amount"))
        revenue.total += amount
        created = as_datetime(bill.get("created_at"))
        if created is None:
            continue
        if created >= today:
            revenue.today += amount
        if created >= week_ago:
            revenue.week += amount
        if created >= month_ago:
            revenue.month += amount
    return revenue


def managed_user(role: Role, row: dict) -> ManagedUser:
    return ManagedUser(
        id=str(row.get("id")),
        name=row.get("name") or "",
        email=row.get("email") or "",
        role=role,
        join_date=as_date(row.get("created_at")),
        status=row.get("status") or "active",
    )


class AdminService:
    def __init__(self, backend: DataBackend):
        self.backend = backend

    async def get_metrics(self) -> AdminMetrics:
        try:
            patients, doctors, bookings = await gather_strict(
                self.backend.count(PATIENTS),
                self.backend.count(DOCTORS, [eq("status", "active")]),
                self.backend.count(APPOINTMENTS),
            )
        except Exception:
            logger.exception("Error loading metrics")
            return AdminMetrics()

        return AdminMetrics(
            total_users=patients + doctors,
            active_doctors=doctors,
            active_patients=patients,
            total_bookings=bookings,
        )

    async def get_revenue(self, now: Optional[datetime] = None) -> Revenue:
        try:
            bills = await self.backend.select(
                BILLS, [eq("status", "paid")], columns=["amount", "created_at", "status"]
            )
            return bucket_revenue(bills, now or datetime.now().astimezone())
        except Exception:
            logger.exception("Error loading revenue")
            return Revenue()

    async def get_users(self) -> list[ManagedUser]:
        try:
            results = await gather_strict(
                *(self.backend.select(table) for _, table in USER_TABLES)
            )
            users = []
            for (role, _), rows in zip(USER_TABLES, results):
                users.extend(managed_user(role, row) for row in rows)
            return users
        except Exception:
            logger.exception("Error loading users")
            return []

    async def delete_user(self, user_id: str) -> bool:
        """Delete the user from whichever identity table holds that id."""
        try:
            results = await asyncio.gather(
                *(self.backend.delete(table, [eq("id", user_id)]) for _, table in USER_TABLES),
                return_exceptions=True,
            )
        except Exception:
            logger.exception("Error deleting user %s", user_id)
            return False

        for (role, _), result in zip(USER_TABLES, results):
            if isinstance(result, Exception):
                logger.warning("Delete of %s from %s table failed: %s", user_id, role.value, result)
        return True

    async def get_dashboard(self, now: Optional[datetime] = None) -> AdminDashboard:
        metrics, revenue, users = await asyncio.gather(
            self.get_metrics(),
            self.get_revenue(now),
            self.get_users(),
        )
        return AdminDashboard(metrics=metric_cards(metrics), revenue=revenue, users=users)
