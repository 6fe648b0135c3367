import asyncio
import logging
from datetime import date
from typing import Optional
from app.schemas.dashboard import DoctorStats, PatientRecord, PendingActions, AppointmentSummary, DoctorDashboard
from app.services.coerce import as_date, age_on
from app.services.data_backend import DataBackend, DOCTORS, PATIENTS, APPOINTMENTS, eq, neq, gte, in_
from app.services.fanout import gather_strict

logger = logging.getLogger(__name__)

MAX_PATIENT_RECORDS = 6
CANCELLED = "cancelled"
PENDING = "pending"


class DoctorService:
    def __init__(self, backend: DataBackend):
        self.backend = backend

    async def _doctor_id(self, email: str) -> Optional[str]:
        doctor = await self.backend.select_one(DOCTORS, [eq("email", email)], columns=["id"])
        return doctor["id"] if doctor else None

    async def _patients_by_id(self, patient_ids: list) -> dict:
        if not patient_ids:
            return {}
        rows = await self.backend.select(PATIENTS, [in_("id", patient_ids)])
        return {str(row["id"]): row for row in rows}

    async def get_stats(self, email: str, today: Optional[date] = None) -> DoctorStats:
        try:
            doctor_id = await self._doctor_id(email)
            if doctor_id is None:
                return DoctorStats()

            today = today or date.today()
            first_of_month = today.replace(day=1)
            active = [eq("doctor_id", doctor_id), neq("status", CANCELLED)]

            today_count, patient_rows, month_count = await gather_strict(
                self.backend.count(APPOINTMENTS, active + [eq("date", today)]),
                self.backend.select(APPOINTMENTS, active, columns=["patient_id"]),
                self.backend.count(APPOINTMENTS, active + [gte("date", first_of_month)]),
            )
        except Exception:
            logger.exception("Error fetching doctor stats for %s", email)
            return DoctorStats()

        unique_patients = {row["patient_id"] for row in patient_rows if row.get("patient_id")}
        return DoctorStats(
            today_appointments=today_count,
            total_patients=len(unique_patients),
            month_appointments=month_count,
        )

    async def get_patients(self, email: str, today: Optional[date] = None) -> list[PatientRecord]:
        """Most recently seen patients first, one record per patient."""
        try:
            doctor_id = await self._doctor_id(email)
            if doctor_id is None:
                return []

            appointments = await self.backend.select(
                APPOINTMENTS,
                [eq("doctor_id", doctor_id)],
                columns=["patient_id", "date"],
                order_by="date",
                descending=True,
            )
            patient_ids = list(dict.fromkeys(
                str(a["patient_id"]) for a in appointments if a.get("patient_id")
            ))
            patients = await self._patients_by_id(patient_ids)

            today = today or date.today()
            records: dict[str, PatientRecord] = {}
            for appointment in appointments:
                patient = patients.get(str(appointment.get("patient_id")))
                if patient is None:
                    continue
                patient_id = str(patient["id"])
                if patient_id in records:
                    continue
                records[patient_id] = PatientRecord(
                    id=patient_id,
                    name=patient.get("name") or "Unknown",
                    age=age_on(as_date(patient.get("date_of_birth")), today),
                    condition=patient.get("condition") or "General Checkup",
                    last_visit=as_date(appointment.get("date")),
                )
                if len(records) == MAX_PATIENT_RECORDS:
                    break
            return list(records.values())
        except Exception:
            logger.exception("Error fetching doctor patients for %s", email)
            return []

    async def get_pending_actions(self, email: str) -> PendingActions:
        """Pending appointment count; the report and prescription counts stay 0."""
        try:
            doctor_id = await self._doctor_id(email)
            if doctor_id is None:
                return PendingActions()
            pending = await self.backend.count(
                APPOINTMENTS, [eq("doctor_id", doctor_id), eq("status", PENDING)]
            )
        except Exception:
            logger.exception("Error fetching pending actions for %s", email)
            return PendingActions()

        return PendingActions(pending_appointments=pending)

    async def get_appointments(self, email: str, limit: int = 10) -> list[AppointmentSummary]:
        try:
            doctor_id = await self._doctor_id(email)
            if doctor_id is None:
                return []
            appointments = await self.backend.select(
                APPOINTMENTS,
                [eq("doctor_id", doctor_id)],
                order_by="date",
                descending=True,
                limit=limit,
            )
            patients = await self._patients_by_id(list(dict.fromkeys(
                str(a["patient_id"]) for a in appointments if a.get("patient_id")
            )))

            summaries = []
            for a in appointments:
                patient_id = str(a["patient_id"]) if a.get("patient_id") else None
                patient = patients.get(patient_id) or {}
                summaries.append(AppointmentSummary(
                    id=str(a["id"]),
                    patient_id=patient_id,
                    patient_name=patient.get("name") or "Unknown",
                    date=as_date(a.get("date")),
                    time=a.get("time"),
                    status=a.get("status") or PENDING,
                    reason=a.get("reason"),
                ))
            return summaries
        except Exception:
            logger.exception("Error fetching appointments for %s", email)
            return []

    async def get_dashboard(self, email: str, today: Optional[date] = None) -> DoctorDashboard:
        stats, patients, pending, appointments = await asyncio.gather(
            self.get_stats(email, today),
            self.get_patients(email, today),
            self.get_pending_actions(email),
            self.get_appointments(email),
        )
        return DoctorDashboard(
            stats=stats,
            patients=patients,
            pending_actions=pending,
            appointments=appointments,
        )
