"""
Session provider: password sessions issued by the hosted auth service.

Only patients hold sessions here. Doctors and admins authenticate through the
data backend's credential checks and never appear in this provider.
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Awaitable, Callable, Optional
import httpx
from jose import jwt, JWTError
from app.config import get_settings
from app.exceptions import AuthProviderError
from app.services.local_store import LocalStore

logger = logging.getLogger(__name__)

EXPIRY_MARGIN_SECONDS = 10


class AuthEvent(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


@dataclass
class AuthUser:
    id: str
    email: str
    metadata: dict = field(default_factory=dict)


@dataclass
class AuthSession:
    access_token: str
    refresh_token: str
    expires_at: int
    user: AuthUser

    @property
    def is_expired(self) -> bool:
        return self.expires_at <= int(time.time()) + EXPIRY_MARGIN_SECONDS

    @classmethod
    def from_payload(cls, data: dict) -> "AuthSession":
        user = data.get("user") or {}
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token", ""),
            expires_at=token_expiry(data),
            user=AuthUser(
                id=user["id"],
                email=user.get("email") or "",
                metadata=user.get("user_metadata") or {},
            ),
        )


Listener = Callable[[AuthEvent, Optional[AuthSession]], Awaitable[None]]


def token_expiry(data: dict) -> int:
    """Expiry from the access token's exp claim, falling back to the response fields."""
    try:
        claims = jwt.get_unverified_claims(data["access_token"])
        if "exp" in claims:
            return int(claims["exp"])
    except (JWTError, KeyError):
        pass
    if data.get("expires_at"):
        return int(data["expires_at"])
    return int(time.time()) + int(data.get("expires_in", 3600))


class SessionProvider(ABC):
    def __init__(self):
        self._listeners: list[Listener] = []

    @abstractmethod
    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        ...

    @abstractmethod
    async def sign_up(self, email: str, password: str, metadata: dict = None) -> tuple[Optional[AuthUser], Optional[AuthSession]]:
        ...

    @abstractmethod
    async def sign_out(self) -> None:
        ...

    @abstractmethod
    async def get_session(self) -> Optional[AuthSession]:
        ...

    def on_auth_state_change(self, listener: Listener) -> Callable[[], None]:
        """Subscribe to session transitions. Returns a function that unsubscribes."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _emit(self, event: AuthEvent, session: Optional[AuthSession]) -> None:
        for listener in list(self._listeners):
            try:
                await listener(event, session)
            except Exception:
                logger.exception("Auth state listener failed on %s", event.value)


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    return (
        data.get("error_description")
        or data.get("msg")
        or data.get("message")
        or data.get("error")
        or f"HTTP {response.status_code}"
    )


class GoTrueSessionProvider(SessionProvider):
    """Client for the hosted auth service (GoTrue dialect)."""

    def __init__(self, store: LocalStore, base_url: str = None, api_key: str = None, timeout: float = None, transport=None):
        super().__init__()
        settings = get_settings()
        self.store = store
        self.storage_key = settings.auth_token_key
        self.base_url = (base_url or settings.backend_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.backend_anon_key
        self.timeout = timeout or settings.http_timeout_seconds
        self._transport = transport
        self._session: Optional[AuthSession] = None

    async def _post(self, path: str, body: dict = None, params: dict = None, token: str = None) -> dict:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {token or self.api_key}",
        }
        try:
            async with httpx.AsyncClient(
                base_url=f"{self.base_url}/auth/v1",
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(path, json=body or {}, params=params, headers=headers)
        except httpx.HTTPError as e:
            raise AuthProviderError(f"Auth service unreachable: {e}") from e

        if response.is_error:
            raise AuthProviderError(_error_message(response), status_code=response.status_code)
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise AuthProviderError("Malformed auth service response", status_code=response.status_code) from e

    def _persist(self, session: Optional[AuthSession]) -> None:
        self._session = session
        if session is None:
            self.store.remove(self.storage_key)
        else:
            self.store.set(self.storage_key, json.dumps(asdict(session)))

    def _restore(self) -> Optional[AuthSession]:
        raw = self.store.get(self.storage_key)
        if not raw:
            return None
        try:
            data = json.loads(raw)
            return AuthSession(
                access_token=data["access_token"],
                refresh_token=data["refresh_token"],
                expires_at=int(data["expires_at"]),
                user=AuthUser(**data["user"]),
            )
        except (ValueError, KeyError, TypeError):
            logger.warning("Discarding unreadable persisted session")
            self.store.remove(self.storage_key)
            return None

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        data = await self._post("/token", {"email": email, "password": password}, params={"grant_type": "password"})
        try:
            session = AuthSession.from_payload(data)
        except KeyError as e:
            raise AuthProviderError("No session returned") from e
        self._persist(session)
        await self._emit(AuthEvent.SIGNED_IN, session)
        return session

    async def sign_up(self, email: str, password: str, metadata: dict = None):
        data = await self._post("/signup", {"email": email, "password": password, "data": metadata or {}})
        if data.get("access_token"):
            session = AuthSession.from_payload(data)
            self._persist(session)
            await self._emit(AuthEvent.SIGNED_IN, session)
            return session.user, session

        # Email confirmation pending: the service returns the bare user.
        user = data.get("user") or data
        if not user.get("id"):
            return None, None
        return AuthUser(id=user["id"], email=user.get("email") or email, metadata=user.get("user_metadata") or {}), None

    async def refresh_session(self, session: AuthSession) -> Optional[AuthSession]:
        try:
            data = await self._post(
                "/token", {"refresh_token": session.refresh_token}, params={"grant_type": "refresh_token"}
            )
            refreshed = AuthSession.from_payload(data)
        except (AuthProviderError, KeyError) as e:
            logger.warning("Session refresh failed, signing out locally: %s", e)
            self._persist(None)
            await self._emit(AuthEvent.SIGNED_OUT, None)
            return None
        self._persist(refreshed)
        await self._emit(AuthEvent.TOKEN_REFRESHED, refreshed)
        return refreshed

    async def get_session(self) -> Optional[AuthSession]:
        session = self._session or self._restore()
        if session is None:
            return None
        if session.is_expired:
            return await self.refresh_session(session)
        self._session = session
        return session

    async def sign_out(self) -> None:
        session = self._session or self._restore()
        self._persist(None)
        try:
            if session is not None:
                await self._post("/logout", token=session.access_token)
        finally:
            await self._emit(AuthEvent.SIGNED_OUT, None)
