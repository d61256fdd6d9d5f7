"""Session based authentication and an in-memory session store."""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, ClassVar, Generic, TypeVar

from himo.auth.base import (
    AuthError,
    BaseAuth,
    Identity,
    InvalidUserError,
    UserProvider,
    Verified,
)

C = TypeVar("C")
U = TypeVar("U")
P = TypeVar("P")


class InvalidSessionIDError(AuthError):
    default_message = "invalid session id"


class SessionNotFoundError(AuthError):
    default_message = "session not found"


class SessionExpiredError(AuthError):
    default_message = "session expired"


class SessionAuth(BaseAuth[C, U, P], Generic[C, U, P]):
    """A handler that logs users in and out through a session driver."""

    def __init__(self, driver: Any, user_provider: UserProvider) -> None:
        super().__init__(user_provider, driver)

    def validate(self, proof: P) -> Verified[U]:
        """Validate a session proof through the driver."""
        return self._driver.validate(proof)

    def attempt(self, creds: C) -> tuple[U, str]:
        """Authenticate the credentials and open a session for the user."""
        try:
            user = self.authenticate(creds)
        except Exception as exc:
            exc.add_note("authenticate")
            raise
        try:
            session_id = self.login(user)
        except Exception as exc:
            exc.add_note("login")
            raise
        return user, session_id

    def login(self, user: U) -> str:
        """Open a session for the user and return its id."""
        return self._driver.login(user)

    def logout(self, session_id: str) -> None:
        """Close the session with the given id."""
        self._driver.logout(session_id)


@dataclass
class _Session:
    id: str
    uid: str
    expires_at: datetime
    last_activity: datetime


class MemorySessionDriver:
    """Keeps sessions in memory; each lasts ``ttl`` from login."""

    ttl: ClassVar[timedelta] = timedelta(hours=1)

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[str, _Session] = {}

    def validate(self, proof: Any) -> Verified[Identity]:
        """Check that the session exists and has not expired."""
        if not isinstance(proof, str):
            raise InvalidSessionIDError()
        with self._lock:
            session = self._sessions.get(proof)
            if session is None:
                raise SessionNotFoundError()
            now = datetime.now(timezone.utc)
            if now > session.expires_at:
                raise SessionExpiredError()
            session.last_activity = now
            return Verified(user=Identity(session.uid))

    def login(self, user: Any) -> str:
        """Create a session for an Identity and return its id."""
        if not isinstance(user, Identity) or not user.id:
            raise InvalidUserError()
        with self._lock:
            session_id = str(uuid.uuid4())
            now = datetime.now(timezone.utc)
            self._sessions[session_id] = _Session(
                id=session_id,
                uid=user.id,
                expires_at=now + self.ttl,
                last_activity=now,
            )
            return session_id

    def logout(self, session_id: str) -> None:
        """Remove the session with the given id."""
        with self._lock:
            if self._sessions.pop(session_id, None) is None:
                raise SessionNotFoundError()