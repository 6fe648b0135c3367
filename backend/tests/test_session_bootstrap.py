"""Tests for choosing between the local record, the provider session, and neither."""

import json
from app.auth import Role, ProfileStatus
from app.services.auth_service import AuthService

CURRENT_USER_KEY = "portal-current-user"


def doctor_record(email="house@example.com", **extra):
    return json.dumps({"id": "doc-1", "name": "Dr. House", "email": email, "role": "doctor", **extra})


async def test_no_local_record_and_no_session(auth_service):
    assert await auth_service.get_current_user() is None


async def test_local_doctor_record_takes_precedence_over_patient_session(
    auth_service, provider, store, make_doctor, make_patient
):
    await make_doctor(email="house@example.com")
    patient = provider.register("jane@example.com", "secret12")
    await make_patient(email="jane@example.com", user_id=patient.id)
    provider.start_session("jane@example.com")
    store.set(CURRENT_USER_KEY, doctor_record())

    user = await auth_service.get_current_user()

    assert user.role == Role.DOCTOR
    assert user.email == "house@example.com"
    assert user.profile_status == ProfileStatus.VERIFIED


async def test_local_record_for_deleted_account_is_cleared(auth_service, provider, store, make_patient):
    patient = provider.register("jane@example.com", "secret12")
    await make_patient(email="jane@example.com", user_id=patient.id)
    provider.start_session("jane@example.com")
    store.set(CURRENT_USER_KEY, doctor_record(email="gone@example.com"))

    user = await auth_service.get_current_user()

    assert store.get(CURRENT_USER_KEY) is None
    assert user.role == Role.PATIENT
    assert user.email == "jane@example.com"


async def test_corrupt_local_record_is_cleared(auth_service, store):
    store.set(CURRENT_USER_KEY, "{not json")

    assert await auth_service.get_current_user() is None
    assert store.get(CURRENT_USER_KEY) is None


async def test_local_record_for_patient_role_is_rejected(auth_service, store):
    store.set(CURRENT_USER_KEY, json.dumps({"email": "jane@example.com", "role": "patient"}))

    assert await auth_service.get_current_user() is None
    assert store.get(CURRENT_USER_KEY) is None


async def test_session_without_profile_row_resolves_to_default_patient(auth_service, provider):
    provider.register("drifter@example.com", "secret12", user_id="auth-42")
    provider.start_session("drifter@example.com")

    user = await auth_service.get_current_user()

    assert user.id == "auth-42"
    assert user.role == Role.PATIENT
    assert user.name == "drifter"
    assert user.profile_status == ProfileStatus.UNVERIFIED


async def test_unreachable_backend_keeps_cached_local_identity(failing_backend, provider, store):
    store.set(CURRENT_USER_KEY, doctor_record())
    service = AuthService(failing_backend, provider, store)

    user = await service.get_current_user()

    assert user.role == Role.DOCTOR
    assert user.id == "doc-1"
    assert user.profile_status == ProfileStatus.UNVERIFIED
    assert store.get(CURRENT_USER_KEY) is not None
