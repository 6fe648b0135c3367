from fastapi import APIRouter, Depends
from app.auth import Role, User, get_portal, require_role
from app.schemas.dashboard import (
    AdminDashboard, SystemMetric, Revenue, ManagedUser,
    DoctorDashboard, DoctorStats, PatientRecord, PendingActions, AppointmentSummary,
)
from app.services.admin_service import metric_cards

router = APIRouter()

admin_only = require_role(Role.ADMIN)
doctor_only = require_role(Role.DOCTOR)


# -- admin --------------------------------------------------------------

@router.get("/admin", response_model=AdminDashboard)
async def admin_dashboard(portal=Depends(get_portal), _: User = Depends(admin_only)):
    return await portal.admin.get_dashboard()


@router.get("/admin/metrics", response_model=list[SystemMetric])
async def admin_metrics(portal=Depends(get_portal), _: User = Depends(admin_only)):
    return metric_cards(await portal.admin.get_metrics())


@router.get("/admin/revenue", response_model=Revenue)
async def admin_revenue(portal=Depends(get_portal), _: User = Depends(admin_only)):
    return await portal.admin.get_revenue()


@router.get("/admin/users", response_model=list[ManagedUser])
async def admin_users(portal=Depends(get_portal), _: User = Depends(admin_only)):
    return await portal.admin.get_users()


@router.delete("/admin/users/{user_id}")
async def admin_delete_user(user_id: str, portal=Depends(get_portal), _: User = Depends(admin_only)):
    deleted = await portal.admin.delete_user(user_id)
    return {"deleted": deleted, "user_id": user_id}


# -- doctor -------------------------------------------------------------

@router.get("/doctor", response_model=DoctorDashboard)
async def doctor_dashboard(portal=Depends(get_portal), user: User = Depends(doctor_only)):
    return await portal.doctor.get_dashboard(user.email)


@router.get("/doctor/stats", response_model=DoctorStats)
async def doctor_stats(portal=Depends(get_portal), user: User = Depends(doctor_only)):
    return await portal.doctor.get_stats(user.email)


@router.get("/doctor/patients", response_model=list[PatientRecord])
async def doctor_patients(portal=Depends(get_portal), user: User = Depends(doctor_only)):
    return await portal.doctor.get_patients(user.email)


@router.get("/doctor/pending-actions", response_model=PendingActions)
async def doctor_pending_actions(portal=Depends(get_portal), user: User = Depends(doctor_only)):
    return await portal.doctor.get_pending_actions(user.email)


@router.get("/doctor/appointments", response_model=list[AppointmentSummary])
async def doctor_appointments(portal=Depends(get_portal), user: User = Depends(doctor_only)):
    return await portal.doctor.get_appointments(user.email)
