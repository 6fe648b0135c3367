"""Tests for the admin dashboard aggregations."""

from datetime import datetime, timedelta, timezone
from app.auth import Role
from app.schemas.dashboard import AdminMetrics, Revenue
from app.services.admin_service import AdminService, bucket_revenue, metric_cards

NOW = datetime(2024, 3, 15, 14, 30, tzinfo=timezone.utc)
MIDNIGHT = datetime(2024, 3, 15, tzinfo=timezone.utc)


def test_revenue_boundaries_are_inclusive():
    bills = [
        {"amount": 100, "created_at": MIDNIGHT},
        {"amount": 20, "created_at": MIDNIGHT - timedelta(days=7)},
        {"amount": 3, "created_at": MIDNIGHT - timedelta(days=30)},
        {"amount": 0.5, "created_at": MIDNIGHT - timedelta(days=30, seconds=1)},
    ]

    revenue = bucket_revenue(bills, NOW)

    assert revenue.today == 100
    assert revenue.week == 120
    assert revenue.month == 123
    assert revenue.total == 123.5


def test_revenue_accepts_rest_style_strings():
    bills = [
        {"amount": "49.99", "created_at": "2024-03-15T09:00:00+00:00"},
        {"amount": "10", "created_at": "2024-03-01T09:00:00Z"},
    ]

    revenue = bucket_revenue(bills, NOW)

    assert revenue.today == 49.99
    assert revenue.week == 49.99
    assert revenue.month == 59.99


def test_metric_cards_carry_placeholder_changes():
    cards = metric_cards(AdminMetrics(total_users=5, active_doctors=2, active_patients=3, total_bookings=8))

    assert [(c.label, c.value, c.change) for c in cards] == [
        ("Total Users", 5, 12),
        ("Active Doctors", 2, 3),
        ("Active Patients", 3, 9),
        ("Total Bookings", 8, 28),
    ]


async def test_metrics_count_active_doctors_only(backend, make_patient, make_doctor):
    await make_patient(email="a@example.com")
    await make_patient(email="b@example.com")
    await make_doctor(email="d1@example.com", status="active")
    await make_doctor(email="d2@example.com", status="inactive")
    await backend.insert("appointments", {"patient_id": "p", "doctor_id": "d", "date": MIDNIGHT.date()})

    metrics = await AdminService(backend).get_metrics()

    assert metrics == AdminMetrics(total_users=3, active_doctors=1, active_patients=2, total_bookings=1)


async def test_revenue_only_counts_paid_bills(backend):
    await backend.insert("bills", {"amount": 250, "status": "paid", "created_at": NOW})
    await backend.insert("bills", {"amount": 999, "status": "pending", "created_at": NOW})

    revenue = await AdminService(backend).get_revenue(now=NOW)

    assert revenue == Revenue(today=250, week=250, month=250, total=250)


async def test_users_listed_across_identity_tables(backend, make_patient, make_doctor, make_admin):
    await make_patient(email="jane@example.com", created_at=datetime(2024, 1, 2, 8, 0))
    await make_doctor(email="house@example.com")
    await make_admin(email="cuddy@example.com", status="suspended")

    users = await AdminService(backend).get_users()

    by_role = {u.role: u for u in users}
    assert set(by_role) == {Role.PATIENT, Role.DOCTOR, Role.ADMIN}
    assert by_role[Role.PATIENT].join_date.isoformat() == "2024-01-02"
    assert by_role[Role.ADMIN].status == "suspended"


async def test_delete_user_removes_from_owning_table(backend, make_patient, make_doctor):
    patient = await make_patient(email="jane@example.com")
    await make_doctor(email="house@example.com")

    assert await AdminService(backend).delete_user(patient["id"]) is True

    assert await backend.count("patients") == 0
    assert await backend.count("doctors") == 1


async def test_dashboard_combines_all_views(backend, make_patient):
    await make_patient(email="jane@example.com")
    await backend.insert("bills", {"amount": 40, "status": "paid", "created_at": NOW})

    dashboard = await AdminService(backend).get_dashboard(now=NOW)

    assert dashboard.metrics[2].label == "Active Patients"
    assert dashboard.metrics[2].value == 1
    assert dashboard.revenue.today == 40
    assert len(dashboard.users) == 1


async def test_unreachable_backend_yields_zeroed_defaults(failing_backend):
    service = AdminService(failing_backend)

    assert await service.get_metrics() == AdminMetrics()
    assert await service.get_revenue(now=NOW) == Revenue()
    assert await service.get_users() == []
    assert await service.delete_user("anything") is True
    dashboard = await service.get_dashboard(now=NOW)
    assert [m.value for m in dashboard.metrics] == [0, 0, 0, 0]
