"""One-way password hashing with interchangeable, named algorithms."""

from __future__ import annotations

import threading
from enum import StrEnum
from typing import Protocol, runtime_checkable

import bcrypt
from nacl import pwhash
from nacl.exceptions import InvalidkeyError

_BCRYPT_COST = 10
_BCRYPT_MAX_PASSWORD_BYTES = 72
_ARGON2ID_OPSLIMIT = 1
_ARGON2ID_MEMLIMIT = 64 * 1024 * 1024


class HasherNotFoundError(LookupError):
    """Raised when no hasher is registered under a method name."""

    def __init__(self, message: str = "hasher not found") -> None:
        super().__init__(message)


class Method(StrEnum):
    """Names of the built-in hashing algorithms."""

    BCRYPT = "bcrypt"
    ARGON2ID = "argon2id"


@runtime_checkable
class Hasher(Protocol):
    """Hashes passwords and checks passwords against hashes."""

    def hash(self, password: str) -> str: ...

    def check(self, password: str, hashed: str) -> bool: ...


class BcryptHasher:
    """Hashes passwords with bcrypt at the default cost."""

    def hash(self, password: str) -> str:
        """Return the bcrypt hash of the password."""
        data = password.encode()
        if len(data) > _BCRYPT_MAX_PASSWORD_BYTES:
            raise ValueError("bcrypt hash: password length exceeds 72 bytes")
        return bcrypt.hashpw(data, bcrypt.gensalt(rounds=_BCRYPT_COST)).decode("ascii")

    def check(self, password: str, hashed: str) -> bool:
        """Tell whether the password matches; a malformed hash is an error."""
        try:
            return bcrypt.checkpw(password.encode(), hashed.encode())
        except ValueError as exc:
            raise ValueError(f"bcrypt compare password hash: {exc}") from exc

    def __eq__(self, other: object) -> bool:
        return isinstance(other, BcryptHasher)

    def __hash__(self) -> int:
        return hash(BcryptHasher)


def _is_argon2id_hash(hashed: str) -> bool:
    parts = hashed.split("$")
    return len(parts) == 6 and parts[0] == "" and parts[1] == "argon2id"


class Argon2IDHasher:
    """Hashes passwords with argon2id."""

    def hash(self, password: str) -> str:
        """Return the encoded argon2id hash of the password."""
        encoded = pwhash.argon2id.str(
            password.encode(),
            opslimit=_ARGON2ID_OPSLIMIT,
            memlimit=_ARGON2ID_MEMLIMIT,
        )
        return encoded.decode("ascii")

    def check(self, password: str, hashed: str) -> bool:
        """Tell whether the password matches; a malformed hash is an error."""
        if not _is_argon2id_hash(hashed):
            raise ValueError(
                "argon compare password hash: hash is not in the correct format"
            )
        try:
            return pwhash.argon2id.verify(hashed.encode(), password.encode())
        except InvalidkeyError:
            return False
        except ValueError as exc:
            raise ValueError(f"argon compare password hash: {exc}") from exc

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Argon2IDHasher)

    def __hash__(self) -> int:
        return hash(Argon2IDHasher)


class Manager:
    """A thread-safe registry of hashers with a default method."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._hashers: dict[str, Hasher] = {
            str(Method.BCRYPT): BcryptHasher(),
            str(Method.ARGON2ID): Argon2IDHasher(),
        }
        self._default = str(Method.BCRYPT)

    def _default_hasher(self) -> Hasher:
        with self._lock:
            return self.must_hasher(self._default)

    def hash(self, password: str) -> str:
        """Hash the password with the default method."""
        return self._default_hasher().hash(password)

    def check(self, password: str, hashed: str) -> bool:
        """Check the password against the hash with the default method."""
        return self._default_hasher().check(password, hashed)

    def hasher(self, method: str) -> Hasher:
        """Return the hasher for the method or raise HasherNotFoundError."""
        with self._lock:
            try:
                return self._hashers[str(method)]
            except KeyError:
                raise HasherNotFoundError(f"hasher not found: {method}") from None

    def must_hasher(self, method: str) -> Hasher:
        """Return the hasher for the method; a missing one is a configuration fault."""
        with self._lock:
            try:
                return self._hashers[str(method)]
            except KeyError:
                raise HasherNotFoundError(f"hasher '{method}' not found") from None

    def extend(self, method: str, hasher: Hasher) -> None:
        """Register a hasher under the method, replacing any existing one."""
        with self._lock:
            self._hashers[str(method)] = hasher

    def set_default(self, method: str) -> None:
        """Make the method the one used by hash and check."""
        with self._lock:
            if str(method) not in self._hashers:
                raise HasherNotFoundError(f"hasher not found: {method}")
            self._default = str(method)


_shared: Manager | None = None
_shared_lock = threading.Lock()


def _manager() -> Manager:
    global _shared
    with _shared_lock:
        if _shared is None:
            _shared = Manager()
        return _shared


def hash_password(password: str) -> str:
    """Hash the password with the shared manager's default method."""
    return _manager().hash(password)


def check_password(password: str, hashed: str) -> bool:
    """Check a password with the shared manager's default method."""
    return _manager().check(password, hashed)


def lookup_hasher(method: str) -> Hasher:
    """Find a hasher in the shared manager."""
    return _manager().hasher(method)


def must_hasher(method: str) -> Hasher:
    """Return a hasher from the shared manager."""
    return _manager().must_hasher(method)


def extend(method: str, hasher: Hasher) -> None:
    """Register a hasher in the shared manager."""
    _manager().extend(method, hasher)


def set_default(method: str) -> None:
    """Choose the default method of the shared manager."""
    _manager().set_default(method)