"""A registry of named authentication handlers and a process-wide default registry."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any

from himo.auth.base import (
    AuthError,
    Handler,
    HandlerAlreadyRegisteredError,
    HandlerNotFoundError,
    IssueTokenNotSupportedError,
    LoginHandler,
    LoginNotSupportedError,
    LogoutHandler,
    LogoutNotSupportedError,
    RefreshTokenNotSupportedError,
    RegisterUserNotSupportedError,
    RevokeTokenNotSupportedError,
    TokenIssuer,
    TokenRefresher,
    TokenRevoker,
    UserProvider,
    UserRegisterer,
    Validator,
    Verified,
)
from himo.auth.tokens import JWTDriver

DEFAULT_HANDLER_NAME = "default"


@dataclass
class HandlerOption:
    """The driver and user provider a handler is built from."""

    driver: Validator | None = None
    user_provider: UserProvider | None = None


class _Handler:
    """Delegates to a driver and a user provider, using what each supports."""

    def __init__(self, driver: Validator, user_provider: UserProvider | None) -> None:
        self.driver = driver
        self.user_provider = user_provider

    def register_user(self, user: Any) -> Any:
        if isinstance(self.user_provider, UserRegisterer):
            return self.user_provider.register_user(user)
        raise RegisterUserNotSupportedError()

    def authenticate(self, creds: Any) -> Any:
        if self.user_provider is None:
            raise AuthError("no user provider configured")
        return self.user_provider.find_by_credentials(creds)

    def validate(self, proof: Any) -> Verified[Any]:
        return self.driver.validate(proof)

    def login(self, user: Any) -> str:
        if isinstance(self.driver, LoginHandler):
            return self.driver.login(user)
        raise LoginNotSupportedError()

    def logout(self, session_id: str) -> None:
        if isinstance(self.driver, LogoutHandler):
            self.driver.logout(session_id)
            return
        raise LogoutNotSupportedError()

    def issue_token(self, user: Any) -> Any:
        if isinstance(self.driver, TokenIssuer):
            return self.driver.issue_token(user)
        raise IssueTokenNotSupportedError()

    def refresh_token(self, refresh_token: str) -> Any:
        if isinstance(self.driver, TokenRefresher):
            return self.driver.refresh_token(refresh_token)
        raise RefreshTokenNotSupportedError()

    def revoke_token(self, token: str) -> None:
        if isinstance(self.driver, TokenRevoker):
            self.driver.revoke_token(token)
            return
        raise RevokeTokenNotSupportedError()


class Manager:
    """Holds named handlers and sends every call to the default one."""

    def __init__(self, option: HandlerOption | None = None) -> None:
        self._lock = threading.RLock()
        self._handlers: dict[str, Handler] = {}
        option = option or HandlerOption()
        driver = option.driver if option.driver is not None else JWTDriver()
        self._default = DEFAULT_HANDLER_NAME
        self._handlers[DEFAULT_HANDLER_NAME] = _Handler(driver, option.user_provider)

    def _default_handler(self) -> Handler:
        with self._lock:
            return self.must_handler(self._default)

    def register_user(self, user: Any) -> Any:
        """Register a user through the default handler, if it supports that."""
        handler = self._default_handler()
        if isinstance(handler, UserRegisterer):
            return handler.register_user(user)
        raise RegisterUserNotSupportedError()

    def authenticate(self, creds: Any) -> Any:
        """Authenticate credentials through the default handler."""
        return self._default_handler().authenticate(creds)

    def validate(self, proof: Any) -> Verified[Any]:
        """Validate a proof through the default handler."""
        return self._default_handler().validate(proof)

    def login(self, user: Any) -> str:
        """Log a user in through the default handler, if it supports that."""
        handler = self._default_handler()
        if isinstance(handler, LoginHandler):
            return handler.login(user)
        raise LoginNotSupportedError()

    def logout(self, session_id: str) -> None:
        """Log a session out through the default handler, if it supports that."""
        handler = self._default_handler()
        if isinstance(handler, LogoutHandler):
            handler.logout(session_id)
            return
        raise LogoutNotSupportedError()

    def issue_token(self, user: Any) -> Any:
        """Issue a token through the default handler, if it supports that."""
        handler = self._default_handler()
        if isinstance(handler, TokenIssuer):
            return handler.issue_token(user)
        raise IssueTokenNotSupportedError()

    def refresh_token(self, refresh_token: str) -> Any:
        """Refresh a token through the default handler, if it supports that."""
        handler = self._default_handler()
        if isinstance(handler, TokenRefresher):
            return handler.refresh_token(refresh_token)
        raise RefreshTokenNotSupportedError()

    def revoke_token(self, token: str) -> None:
        """Revoke a token through the default handler, if it supports that."""
        handler = self._default_handler()
        if isinstance(handler, TokenRevoker):
            handler.revoke_token(token)
            return
        raise RevokeTokenNotSupportedError()

    def lookup_handler(self, name: str) -> Handler:
        """Return the named handler or raise HandlerNotFoundError."""
        with self._lock:
            try:
                return self._handlers[name]
            except KeyError:
                raise HandlerNotFoundError(f"handler not found: {name}") from None

    def must_handler(self, name: str) -> Handler:
        """Return the named handler; a missing one is a configuration fault."""
        with self._lock:
            try:
                return self._handlers[name]
            except KeyError:
                raise HandlerNotFoundError(f"handler '{name}' not found") from None

    def register_handler(self, name: str, handler: Handler) -> None:
        """Add a handler under a new name; the first one becomes the default."""
        with self._lock:
            if name in self._handlers:
                raise HandlerAlreadyRegisteredError(
                    f"handler already registered: {name}"
                )
            if not self._handlers:
                self._default = name
            self._handlers[name] = handler

    def extend(self, name: str, option: HandlerOption) -> None:
        """Add or replace a handler built from a driver and a user provider."""
        if option.user_provider is None or option.driver is None:
            raise ValueError("user provider and driver must both be given")
        with self._lock:
            if not self._handlers:
                self._default = name
            self._handlers[name] = _Handler(option.driver, option.user_provider)

    def set_default(self, name: str) -> None:
        """Make the named handler the default one."""
        with self._lock:
            if name not in self._handlers:
                raise HandlerNotFoundError(f"handler not found: {name}")
            self._default = name


_shared: Manager | None = None
_shared_lock = threading.Lock()


def _manager() -> Manager:
    global _shared
    with _shared_lock:
        if _shared is None:
            _shared = Manager()
        return _shared


def register_user(user: Any) -> Any:
    """Register a user with the shared manager."""
    return _manager().register_user(user)


def authenticate(creds: Any) -> Any:
    """Authenticate credentials with the shared manager."""
    return _manager().authenticate(creds)


def validate(proof: Any) -> Verified[Any]:
    """Validate a proof with the shared manager."""
    return _manager().validate(proof)


def login(user: Any) -> str:
    """Log a user in with the shared manager."""
    return _manager().login(user)


def logout(session_id: str) -> None:
    """Log a session out with the shared manager."""
    _manager().logout(session_id)


def issue_token(user: Any) -> Any:
    """Issue a token with the shared manager."""
    return _manager().issue_token(user)


def refresh_token(refresh_token: str) -> Any:
    """Refresh a token with the shared manager."""
    return _manager().refresh_token(refresh_token)


def revoke_token(token: str) -> None:
    """Revoke a token with the shared manager."""
    _manager().revoke_token(token)


def lookup_handler(name: str) -> Handler:
    """Find a named handler in the shared manager."""
    return _manager().lookup_handler(name)


def must_handler(name: str) -> Handler:
    """Return a named handler from the shared manager."""
    return _manager().must_handler(name)


def register_handler(name: str, handler: Handler) -> None:
    """Add a handler to the shared manager."""
    _manager().register_handler(name, handler)


def extend(name: str, option: HandlerOption) -> None:
    """Add or replace a handler in the shared manager."""
    _manager().extend(name, option)


def set_default(name: str) -> None:
    """Choose the default handler of the shared manager."""
    _manager().set_default(name)


def use_driver(driver: Validator) -> None:
    """Swap the driver of the shared manager's default handler."""
    manager = _manager()
    with manager._lock:
        handler = manager._handlers.get(manager._default)
        if isinstance(handler, _Handler):
            handler.driver = driver


def use_user_provider(provider: UserProvider) -> None:
    """Swap the user provider of the shared manager's default handler."""
    manager = _manager()
    with manager._lock:
        handler = manager._handlers.get(manager._default)
        if isinstance(handler, _Handler):
            handler.user_provider = provider