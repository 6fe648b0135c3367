"""
Shared pytest fixtures for the portal tests.

Service tests run against the SQL backend on a throwaway aiosqlite database
and an in-memory session provider, so no network is involved.
"""

import uuid
import time
import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from app.database import create_tables
from app.exceptions import AuthProviderError, BackendError
from app.services.data_backend import DataBackend
from app.services.local_store import LocalStore
from app.services.session_provider import SessionProvider, AuthEvent, AuthSession, AuthUser
from app.services.sql_backend import SqlDataBackend, hash_password
from app.services.auth_service import AuthService
from app.services.identity_service import IdentityService


class FakeSessionProvider(SessionProvider):
    """Session provider holding accounts and the active session in memory."""

    def __init__(self):
        super().__init__()
        self.accounts = {}
        self.session = None
        self.sign_in_calls = 0
        self.sign_up_calls = 0

    def register(self, email, password, user_id=None, metadata=None):
        user = AuthUser(id=user_id or str(uuid.uuid4()), email=email, metadata=metadata or {})
        self.accounts[email] = (password, user)
        return user

    def _session_for(self, user):
        return AuthSession(
            access_token=f"token-{user.id}",
            refresh_token=f"refresh-{user.id}",
            expires_at=int(time.time()) + 3600,
            user=user,
        )

    def start_session(self, email):
        """Simulate a session the provider already holds when the app starts."""
        self.session = self._session_for(self.accounts[email][1])
        return self.session

    async def sign_in_with_password(self, email, password):
        self.sign_in_calls += 1
        account = self.accounts.get(email)
        if account is None or account[0] != password:
            raise AuthProviderError("Invalid login credentials", status_code=400)
        self.session = self._session_for(account[1])
        await self._emit(AuthEvent.SIGNED_IN, self.session)
        return self.session

    async def sign_up(self, email, password, metadata=None):
        self.sign_up_calls += 1
        if email in self.accounts:
            raise AuthProviderError("User already registered", status_code=422)
        user = self.register(email, password, metadata=metadata)
        self.session = self._session_for(user)
        await self._emit(AuthEvent.SIGNED_IN, self.session)
        return user, self.session

    async def sign_out(self):
        self.session = None
        await self._emit(AuthEvent.SIGNED_OUT, None)

    async def get_session(self):
        return self.session


class FailingBackend(DataBackend):
    """A data backend that cannot be reached."""

    def __init__(self):
        self.calls = 0

    def _fail(self):
        self.calls += 1
        raise BackendError("backend unreachable")

    async def select(self, table, filters=(), **kwargs):
        self._fail()

    async def count(self, table, filters=()):
        self._fail()

    async def insert(self, table, row):
        self._fail()

    async def delete(self, table, filters):
        self._fail()

    async def verify_credentials(self, role, email, password):
        self._fail()


@pytest.fixture
def store(tmp_path):
    return LocalStore(str(tmp_path / "local_storage.json"))


@pytest.fixture
def provider():
    return FakeSessionProvider()


@pytest.fixture
async def backend(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'portal.db'}")
    await create_tables(engine)
    backend = SqlDataBackend(engine)
    yield backend
    await backend.close()


@pytest.fixture
def failing_backend():
    return FailingBackend()


@pytest.fixture
def identity(backend):
    return IdentityService(backend)


@pytest.fixture
def auth_service(backend, provider, store):
    return AuthService(backend, provider, store)


@pytest.fixture
def make_doctor(backend):
    async def _make(email="house@example.com", password="vicodin1", name="Dr. House", **extra):
        return await backend.insert("doctors", {
            "name": name,
            "email": email,
            "password_hash": hash_password(password),
            **extra,
        })
    return _make


@pytest.fixture
def make_admin(backend):
    async def _make(email="cuddy@example.com", password="dean1234", name="Lisa Cuddy", **extra):
        return await backend.insert("admins", {
            "name": name,
            "email": email,
            "password_hash": hash_password(password),
            **extra,
        })
    return _make


@pytest.fixture
def make_patient(backend):
    async def _make(email="jane@example.com", name="Jane Doe", user_id=None, **extra):
        return await backend.insert("patients", {
            "name": name,
            "email": email,
            "user_id": user_id,
            **extra,
        })
    return _make
