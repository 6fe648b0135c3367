"""
Login, signup, logout and session bootstrap.

Two authentication mechanisms share one User type: doctors and admins are
checked against their identity tables by the data backend and remembered in
local storage, patients sign in through the session provider.
"""

import json
import logging
from dataclasses import dataclass
from typing import Optional
from app.auth import Role, User, ProfileStatus
from app.config import get_settings
from app.exceptions import AuthProviderError, BackendError
from app.services.data_backend import DataBackend, PATIENTS
from app.services.identity_service import IdentityService, user_from_row
from app.services.local_store import LocalStore
from app.services.session_provider import SessionProvider

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
MISSING_CREDENTIALS = "Email and password are required"
LOCAL_CREDENTIAL_ROLES = (Role.DOCTOR, Role.ADMIN)


@dataclass
class AuthResult:
    user: Optional[User] = None
    error: Optional[str] = None


class AuthService:
    def __init__(self, backend: DataBackend, provider: SessionProvider, store: LocalStore, identity: IdentityService = None):
        self.backend = backend
        self.provider = provider
        self.store = store
        self.identity = identity or IdentityService(backend)
        self.current_user_key = get_settings().current_user_key

    # -- local doctor/admin record ---------------------------------------

    def _remember(self, user: User) -> None:
        self.store.set(self.current_user_key, json.dumps(user.to_record(), default=str))

    def _forget(self) -> None:
        self.store.remove(self.current_user_key)

    def _read_local_record(self) -> Optional[dict]:
        raw = self.store.get(self.current_user_key)
        if not raw:
            return None
        try:
            record = json.loads(raw)
            role = Role(record["role"])
            email = record["email"]
        except (ValueError, KeyError, TypeError):
            logger.warning("Discarding unreadable local session record")
            self._forget()
            return None
        if role not in LOCAL_CREDENTIAL_ROLES or not isinstance(email, str) or not email:
            logger.warning("Discarding local session record for role %s", role.value)
            self._forget()
            return None
        record["role"] = role
        return record

    async def _check_local_record(self) -> Optional[User]:
        record = self._read_local_record()
        if record is None:
            return None
        role, email = record["role"], record["email"]
        try:
            user = await self.identity.lookup_identity(role, email)
        except Exception:
            # Backend unreachable: keep the record, but do not claim it was confirmed.
            logger.exception("Could not re-validate local %s record for %s", role.value, email)
            return User(
                id=str(record.get("id") or email),
                name=record.get("name") or email.split("@")[0],
                email=email,
                role=role,
                profile=record.get("profile"),
                profile_status=ProfileStatus.UNVERIFIED,
            )
        if user is None:
            logger.warning("Local %s record for %s no longer matches an account", role.value, email)
            self._forget()
        return user

    # -- public operations ------------------------------------------------

    async def get_current_user(self) -> Optional[User]:
        """
        Bootstrap the session. The local doctor/admin record wins over any
        provider session; otherwise the provider's session is resolved to a
        role. Never raises.
        """
        try:
            user = await self._check_local_record()
            if user is not None:
                return user

            session = await self.provider.get_session()
            if session is None:
                return None
            return await self.identity.resolve_identity(session.user.id, session.user.email)
        except Exception:
            logger.exception("Error getting current user")
            return None

    async def _check_credentials(self, role: Role, email: str, password: str) -> Optional[dict]:
        try:
            return await self.backend.verify_credentials(role, email, password)
        except BackendError as e:
            logger.warning("%s credential check failed for %s: %s", role.value, email, e.reason)
            return None

    async def login(self, email: str, password: str) -> AuthResult:
        email = (email or "").strip()
        if not email or not password:
            return AuthResult(error=MISSING_CREDENTIALS)

        try:
            for role in LOCAL_CREDENTIAL_ROLES:
                record = await self._check_credentials(role, email, password)
                if record:
                    user = user_from_row(role, record, email=email)
                    self._remember(user)
                    logger.info("%s %s signed in", role.value, email)
                    return AuthResult(user=user)

            try:
                session = await self.provider.sign_in_with_password(email, password)
            except AuthProviderError as e:
                logger.info("Password sign-in rejected for %s: %s", email, e.message)
                return AuthResult(error=INVALID_CREDENTIALS)

            # A patient session now replaces any remembered doctor/admin.
            self._forget()
            user = await self.identity.resolve_identity(session.user.id, session.user.email or email)
            return AuthResult(user=user)
        except Exception:
            logger.exception("Login failed for %s", email)
            return AuthResult(error="Login failed")

    async def signup(self, email: str, password: str, name: str) -> AuthResult:
        """Register a patient. A failed profile insert is logged, not surfaced."""
        email = (email or "").strip()
        name = (name or "").strip() or email.split("@")[0]
        if not email or not password:
            return AuthResult(error=MISSING_CREDENTIALS)

        try:
            try:
                auth_user, _ = await self.provider.sign_up(email, password, {"name": name, "role": Role.PATIENT.value})
            except AuthProviderError as e:
                return AuthResult(error=e.message)
            if auth_user is None:
                return AuthResult(error="No user data returned")

            self._forget()

            try:
                await self.backend.insert(PATIENTS, {
                    "user_id": auth_user.id,
                    "name": name,
                    "email": email,
                    "status": "active",
                })
            except BackendError as e:
                logger.error("Error creating patient profile for %s: %s", email, e.reason)

            user = await self.identity.resolve_identity(auth_user.id, email)
            return AuthResult(user=user)
        except Exception:
            logger.exception("Signup failed for %s", email)
            return AuthResult(error="Signup failed")

    async def logout(self) -> None:
        self._forget()
        try:
            await self.provider.sign_out()
        except AuthProviderError as e:
            logger.warning("Remote sign-out failed: %s", e.message)
