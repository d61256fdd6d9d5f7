"""Token based authentication: a token handler and an HMAC JWT driver."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Generic, TypeVar

import jwt

from himo.auth.base import (
    AuthError,
    BaseAuth,
    Identity,
    InvalidUserError,
    RefreshTokenNotSupportedError,
    RevokeTokenNotSupportedError,
    TokenRefresher,
    TokenRevoker,
    UserProvider,
    Verified,
)

C = TypeVar("C")
U = TypeVar("U")
P = TypeVar("P")

_DEFAULT_VERIFY_KEY = b"secret"
_TOKEN_LIFETIME = timedelta(minutes=15)
_HMAC_ALGORITHMS = ["HS256", "HS384", "HS512"]


class JWTExpiredError(AuthError):
    default_message = "JWT is expired"


class JWTInvalidError(AuthError):
    default_message = "JWT is invalid"


class TokenAuth(BaseAuth[C, U, P], Generic[C, U, P]):
    """A handler that issues, validates, refreshes and revokes tokens."""

    def __init__(self, driver: Any, user_provider: UserProvider) -> None:
        super().__init__(user_provider, driver)

    def validate(self, token: P) -> Verified[U]:
        """Validate a token through the driver."""
        return self._driver.validate(token)

    def issue_token(self, user: U) -> P:
        """Issue a token for the user through the driver."""
        return self._driver.issue_token(user)

    def refresh_token(self, token: str) -> P:
        """Refresh a token, if the driver supports it."""
        if isinstance(self._driver, TokenRefresher):
            return self._driver.refresh_token(token)
        raise RefreshTokenNotSupportedError()

    def revoke_token(self, token: str) -> None:
        """Revoke a token, if the driver supports it."""
        if isinstance(self._driver, TokenRevoker):
            self._driver.revoke_token(token)
            return
        raise RevokeTokenNotSupportedError()


def _from_numeric(value: Any) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(value, timezone.utc)


@dataclass(frozen=True)
class Claims:
    """The JWT payload used by JWTDriver."""

    user_id: str
    id: str = ""
    issued_at: datetime | None = None
    expires_at: datetime | None = None
    not_before: datetime | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Claims:
        user_id = payload.get("UserID", "")
        token_id = payload.get("jti", "")
        if not isinstance(user_id, str) or not isinstance(token_id, str):
            raise JWTInvalidError()
        return cls(
            user_id=user_id,
            id=token_id,
            issued_at=_from_numeric(payload.get("iat")),
            expires_at=_from_numeric(payload.get("exp")),
            not_before=_from_numeric(payload.get("nbf")),
        )


class JWTDriver:
    """Signs and verifies HMAC-SHA256 JWTs carrying a user id."""

    def __init__(self, verify_key: bytes = _DEFAULT_VERIFY_KEY) -> None:
        self._verify_key = verify_key

    def sign(self, uid: str) -> tuple[str, datetime]:
        """Return a signed token for ``uid`` and the moment it expires."""
        now = datetime.now(timezone.utc).replace(microsecond=0)
        expires = now + _TOKEN_LIFETIME
        payload = {
            "UserID": uid,
            "jti": str(uuid.uuid4()),
            "iat": int(now.timestamp()),
            "exp": int(expires.timestamp()),
            "nbf": int(now.timestamp()),
        }
        try:
            signed = jwt.encode(payload, self._verify_key, algorithm="HS256")
        except jwt.PyJWTError as exc:
            raise AuthError(f"signing token: {exc}") from exc
        return signed, expires

    def parse(self, token: str) -> Claims:
        """Verify a token and return its claims."""
        try:
            payload = jwt.decode(token, self._verify_key, algorithms=_HMAC_ALGORITHMS)
        except jwt.ExpiredSignatureError as exc:
            raise JWTExpiredError() from exc
        except jwt.DecodeError as exc:
            raise JWTInvalidError() from exc
        except jwt.PyJWTError as exc:
            raise AuthError(f"parsing token: {exc}") from exc
        return Claims.from_payload(payload)

    def issue_token(self, user: Any) -> str:
        """Issue a token for an Identity."""
        if not isinstance(user, Identity):
            raise InvalidUserError()
        signed, _ = self.sign(user.id)
        return signed

    def validate(self, proof: Any) -> Verified[Identity]:
        """Verify a token string and return the identity it names."""
        if not isinstance(proof, str):
            raise JWTInvalidError()
        claims = self.parse(proof)
        return Verified(user=Identity(claims.user_id))