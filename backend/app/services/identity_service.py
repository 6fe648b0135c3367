"""
Identity resolution: which role does this caller have, and what is their profile?

Roles live in three disjoint tables and are probed in a fixed order, patients
first, then doctors, then admins. The first table holding a matching row
decides the role. Doctors and admins are provisioned out-of-band and keyed
by email only; patients self-register through the session provider, so an
authenticated session with no matching row still resolves, as an unverified
default patient.
"""

import logging
from typing import Optional
from app.auth import Role, User, ProfileStatus
from app.services.data_backend import DataBackend, IDENTITY_TABLES, PATIENTS, DOCTORS, ADMINS, eq

logger = logging.getLogger(__name__)


def default_patient(session_id: str, email: str) -> User:
    """Identity for an authenticated session with no profile row."""
    return User(
        id=session_id,
        name=email.split("@")[0] if email else "User",
        email=email,
        role=Role.PATIENT,
        profile=None,
        profile_status=ProfileStatus.UNVERIFIED,
    )


def user_from_row(role: Role, row: dict, session_id: Optional[str] = None, email: str = "") -> User:
    if role == Role.PATIENT:
        user_id = session_id or row.get("user_id") or row.get("id")
    else:
        user_id = row.get("id")
    row_email = row.get("email") or email
    return User(
        id=str(user_id),
        name=row.get("name") or row_email.split("@")[0],
        email=row_email,
        role=role,
        profile=row,
        profile_status=ProfileStatus.VERIFIED,
    )


class IdentityService:
    def __init__(self, backend: DataBackend):
        self.backend = backend

    async def lookup_identity(self, role: Role, email: str) -> Optional[User]:
        """Find the identity row for a role by email. Backend errors propagate."""
        row = await self.backend.select_one(IDENTITY_TABLES[role], [eq("email", email)])
        if row is None:
            return None
        return user_from_row(role, row, email=email)

    async def _probe(self, session_id: Optional[str], email: str) -> Optional[User]:
        patient_keys = []
        if session_id:
            patient_keys.append(eq("user_id", session_id))
        if email:
            patient_keys.append(eq("email", email))
        if patient_keys:
            patient = await self.backend.select_one(PATIENTS, any_of=patient_keys)
            if patient:
                return user_from_row(Role.PATIENT, patient, session_id, email)

        if not email:
            return None

        doctor = await self.backend.select_one(DOCTORS, [eq("email", email)])
        if doctor:
            return user_from_row(Role.DOCTOR, doctor, email=email)

        admin = await self.backend.select_one(ADMINS, [eq("email", email)])
        if admin:
            return user_from_row(Role.ADMIN, admin, email=email)

        return None

    async def resolve_identity(self, session_id: Optional[str], email: str) -> Optional[User]:
        """
        Resolve role and profile from a session id and/or email.

        Never raises. With no matching row, an authenticated session becomes a
        default patient and anything else resolves to None. A backend failure
        degrades to the default patient when an email is known.
        """
        email = (email or "").strip()
        try:
            user = await self._probe(session_id, email)
        except Exception:
            logger.exception("Identity lookup failed for %s", email or session_id)
            if not email:
                return None
            return default_patient(session_id or email, email)

        if user is not None:
            return user
        if session_id:
            logger.warning("Session %s has no profile row, using default patient identity", session_id)
            return default_patient(session_id, email)
        return None
