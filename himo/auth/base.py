"""Core authentication types: errors, protocols, verified results and the base handler."""

from __future__ import annotations

import contextvars
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Generic, Protocol, TypeVar, runtime_checkable

U = TypeVar("U")
C = TypeVar("C")
P = TypeVar("P")


class AuthError(Exception):
    """Base class for every authentication error."""

    default_message = "authentication error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class HandlerNotFoundError(AuthError):
    default_message = "handler not found"


class HandlerAlreadyRegisteredError(AuthError):
    default_message = "handler already registered"


class NotSupportedError(AuthError):
    """Raised when a handler or driver lacks an optional capability."""

    default_message = "operation not supported"


class RegisterUserNotSupportedError(NotSupportedError):
    default_message = "register user not supported"


class LoginNotSupportedError(NotSupportedError):
    default_message = "login not supported"


class LogoutNotSupportedError(NotSupportedError):
    default_message = "logout not supported"


class IssueTokenNotSupportedError(NotSupportedError):
    default_message = "issue token not supported"


class RefreshTokenNotSupportedError(NotSupportedError):
    default_message = "refresh token not supported"


class RevokeTokenNotSupportedError(NotSupportedError):
    default_message = "revoke token not supported"


class InvalidUserError(AuthError):
    default_message = "invalid user"


@dataclass(frozen=True)
class Identity:
    """A minimal authenticated user, known only by its identifier."""

    id: str


@dataclass
class Verified(Generic[U]):
    """The result of a successful proof validation."""

    user: U
    permissions: list[str] = field(default_factory=list)


@runtime_checkable
class UserProvider(Protocol):
    """Looks up a user from credentials."""

    def find_by_credentials(self, creds: Any) -> Any: ...


@runtime_checkable
class Authenticator(Protocol):
    """Authenticates a user from credentials."""

    def authenticate(self, creds: Any) -> Any: ...


@runtime_checkable
class Validator(Protocol):
    """Validates a proof such as a token or a session id."""

    def validate(self, proof: Any) -> Verified[Any]: ...


@runtime_checkable
class UserRegisterer(Protocol):
    """Registers new users."""

    def register_user(self, user: Any) -> Any: ...


@runtime_checkable
class LoginHandler(Protocol):
    """Logs a user in and returns a session id."""

    def login(self, user: Any) -> str: ...


@runtime_checkable
class LogoutHandler(Protocol):
    """Logs out a session by its id."""

    def logout(self, session_id: str) -> None: ...


@runtime_checkable
class TokenIssuer(Protocol):
    """Issues tokens for users."""

    def issue_token(self, user: Any) -> Any: ...


@runtime_checkable
class TokenRefresher(Protocol):
    """Issues a fresh token from a refresh token."""

    def refresh_token(self, refresh_token: str) -> Any: ...


@runtime_checkable
class TokenRevoker(Protocol):
    """Revokes tokens explicitly."""

    def revoke_token(self, token: str) -> None: ...


@runtime_checkable
class Handler(Authenticator, Validator, Protocol):
    """Authenticates credentials and validates proofs."""


class BaseAuth(Generic[C, U, P]):
    """Joins a user provider and a validating driver into a handler."""

    def __init__(self, user_provider: UserProvider, driver: Validator) -> None:
        self._user_provider = user_provider
        self._driver = driver

    def authenticate(self, creds: C) -> U:
        """Find the user matching the credentials."""
        return self._user_provider.find_by_credentials(creds)

    def validate(self, proof: P) -> Verified[U]:
        """Check a proof and return the verified user."""
        return self._driver.validate(proof)


_current_user: contextvars.ContextVar[Any] = contextvars.ContextVar(
    "himo_current_user", default=None
)


@contextmanager
def with_user(user: Any) -> Iterator[Any]:
    """Make ``user`` the current user for the duration of the block."""
    reset_point = _current_user.set(user)
    try:
        yield user
    finally:
        _current_user.reset(reset_point)


def current_user() -> Any:
    """Return the user set by the innermost ``with_user`` block, or None."""
    return _current_user.get()