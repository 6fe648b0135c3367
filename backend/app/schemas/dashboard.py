from pydantic import BaseModel
import datetime as dt
from typing import Optional
from app.auth import Role


class AdminMetrics(BaseModel):
    total_users: int = 0
    active_doctors: int = 0
    active_patients: int = 0
    total_bookings: int = 0


class SystemMetric(BaseModel):
    label: str
    value: int
    change: int  # percent vs. last month; fixed placeholder, not a computed trend


class Revenue(BaseModel):
    today: float = 0.0
    week: float = 0.0
    month: float = 0.0
    total: float = 0.0


class ManagedUser(BaseModel):
    id: str
    name: str
    email: str
    role: Role
    join_date: Optional[dt.date] = None
    status: str = "active"


class DoctorStats(BaseModel):
    today_appointments: int = 0
    total_patients: int = 0
    month_appointments: int = 0


class PatientRecord(BaseModel):
    id: str
    name: str
    age: int = 0
    condition: str = "General Checkup"
    last_visit: Optional[dt.date] = None


class PendingActions(BaseModel):
    pending_appointments: int = 0
    new_reports: int = 0  # no reports table in the store; always 0
    prescription_updates: int = 0  # no prescriptions table in the store; always 0


class AppointmentSummary(BaseModel):
    id: str
    patient_id: Optional[str] = None
    patient_name: str = "Unknown"
    date: Optional[dt.date] = None
    time: Optional[str] = None
    status: str = "pending"
    reason: Optional[str] = None


class AdminDashboard(BaseModel):
    metrics: list[SystemMetric] = []
    revenue: Revenue = Revenue()
    users: list[ManagedUser] = []


class DoctorDashboard(BaseModel):
    stats: DoctorStats = DoctorStats()
    patients: list[PatientRecord] = []
    pending_actions: PendingActions = PendingActions()
    appointments: list[AppointmentSummary] = []
