"""
PortalContext: the one object that owns a running portal's collaborators and
its current user. Created in the application lifespan and handed to routes
through ``app.state.portal``.
"""

import asyncio
import logging
from typing import Optional
from app.auth import User
from app.config import Settings, get_settings
from app.services.admin_service import AdminService
from app.services.auth_service import AuthService, AuthResult
from app.services.data_backend import DataBackend
from app.services.doctor_service import DoctorService
from app.services.identity_service import IdentityService
from app.services.local_store import LocalStore, Preferences
from app.services.session_provider import SessionProvider, GoTrueSessionProvider, AuthEvent, AuthSession

logger = logging.getLogger(__name__)


def build_backend(settings: Settings) -> DataBackend:
    if settings.data_backend == "sql":
        from app.services.sql_backend import SqlDataBackend
        return SqlDataBackend()
    if settings.data_backend == "rest":
        from app.services.rest_backend import RestDataBackend
        return RestDataBackend()
    raise ValueError(f"Unknown DATA_BACKEND: {settings.data_backend}")


class PortalContext:
    def __init__(self, backend: DataBackend, provider: SessionProvider, store: LocalStore):
        self.backend = backend
        self.provider = provider
        self.store = store
        self.identity = IdentityService(backend)
        self.auth = AuthService(backend, provider, store, self.identity)
        self.admin = AdminService(backend)
        self.doctor = DoctorService(backend)
        self.preferences = Preferences(store)
        self.user: Optional[User] = None
        # Held while login, signup or logout runs; they set the user themselves.
        self._auth_lock = asyncio.Lock()
        self._unsubscribe = provider.on_auth_state_change(self._on_auth_event)

    @classmethod
    def from_settings(cls, settings: Settings = None) -> "PortalContext":
        settings = settings or get_settings()
        store = LocalStore(settings.local_store_path)
        return cls(build_backend(settings), GoTrueSessionProvider(store), store)

    async def _on_auth_event(self, event: AuthEvent, session: Optional[AuthSession]) -> None:
        self.backend.set_access_token(session.access_token if session else None)
        if self._auth_lock.locked():
            return
        if event == AuthEvent.SIGNED_IN:
            self.user = await self.auth.get_current_user()
        elif event == AuthEvent.SIGNED_OUT:
            if self.user is not None and self.user.is_patient:
                self.user = None
        # TOKEN_REFRESHED and USER_UPDATED do not change who is signed in

    async def bootstrap(self) -> Optional[User]:
        try:
            session = await self.provider.get_session()
        except Exception:
            logger.exception("Could not read the provider session")
            session = None
        self.backend.set_access_token(session.access_token if session else None)
        self.user = await self.auth.get_current_user()
        logger.info("Session bootstrap: %s", f"{self.user.role.value} {self.user.email}" if self.user else "signed out")
        return self.user

    async def login(self, email: str, password: str) -> AuthResult:
        async with self._auth_lock:
            result = await self.auth.login(email, password)
            if result.user is not None:
                self.user = result.user
        return result

    async def signup(self, email: str, password: str, name: str) -> AuthResult:
        async with self._auth_lock:
            result = await self.auth.signup(email, password, name)
            if result.user is not None:
                self.user = result.user
        return result

    async def logout(self) -> None:
        async with self._auth_lock:
            await self.auth.logout()
            self.user = None

    async def close(self) -> None:
        self._unsubscribe()
        await self.backend.close()
