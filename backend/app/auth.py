"""
Auth module: the resolved User identity and the FastAPI dependencies that gate
routes by role.

Role is never stored on a single users table. It is inferred from which of the
three identity tables (patients, doctors, admins) holds the caller's record, so
User carries it as an explicit discriminant alongside the opaque profile row.
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional
from fastapi import Depends, HTTPException, Request


class Role(str, Enum):
    PATIENT = "patient"
    DOCTOR = "doctor"
    ADMIN = "admin"


class ProfileStatus(str, Enum):
    VERIFIED = "verified"      # backed by a row in the role's identity table
    UNVERIFIED = "unverified"  # synthesized or cached, no row confirmed


@dataclass
class User:
    """Resolved identity for the current session."""
    id: str
    name: str
    email: str
    role: Role
    profile: Optional[dict] = None
    profile_status: ProfileStatus = ProfileStatus.VERIFIED

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_doctor(self) -> bool:
        return self.role == Role.DOCTOR

    @property
    def is_patient(self) -> bool:
        return self.role == Role.PATIENT

    @property
    def uses_local_credentials(self) -> bool:
        """Doctors and admins never hold a session-provider session."""
        return self.role in (Role.DOCTOR, Role.ADMIN)

    def to_record(self) -> dict:
        """Serializable form stored in local persistence."""
        data = asdict(self)
        data["role"] = self.role.value
        data["profile_status"] = self.profile_status.value
        return data


def get_portal(request: Request):
    return request.app.state.portal


async def get_current_user(request: Request) -> Optional[User]:
    """FastAPI dependency. Returns the context's user, or None when signed out."""
    return get_portal(request).user


def require_role(*roles: Role):
    """Build a dependency that admits only the given roles."""

    async def dependency(user: Optional[User] = Depends(get_current_user)) -> User:
        if user is None:
            raise HTTPException(status_code=401, detail="Not authenticated")
        if user.role not in roles:
            raise HTTPException(
                status_code=403,
                detail=f"Access denied: requires role {' or '.join(r.value for r in roles)}",
            )
        return user

    return dependency
