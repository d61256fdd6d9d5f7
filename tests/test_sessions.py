from datetime import timedelta

import pytest

from himo.auth.base import Identity, InvalidUserError
from himo.auth.sessions import (
    InvalidSessionIDError,
    MemorySessionDriver,
    SessionAuth,
    SessionExpiredError,
    SessionNotFoundError,
)


class FakeProvider:
    def __init__(self, user=None, fail=False):
        self.user = user
        self.fail = fail

    def find_by_credentials(self, creds):
        if self.fail:
            raise ValueError("credentials error")
        return self.user


class FailingLoginDriver(MemorySessionDriver):
    def login(self, user):
        raise RuntimeError("mock error login")


def test_login_then_validate():
    driver = MemorySessionDriver()
    session_id = driver.login(Identity("234"))
    assert driver.validate(session_id).user == Identity("234")


def test_session_ids_are_unique():
    driver = MemorySessionDriver()
    first = driver.login(Identity("1"))
    second = driver.login(Identity("1"))
    assert first != second
    assert driver.validate(first).user == driver.validate(second).user


def test_logout_removes_session():
    driver = MemorySessionDriver()
    session_id = driver.login(Identity("1"))
    driver.logout(session_id)
    with pytest.raises(SessionNotFoundError):
        driver.validate(session_id)
    with pytest.raises(SessionNotFoundError, match="session not found"):
        driver.logout(session_id)


def test_unknown_session_not_found():
    with pytest.raises(SessionNotFoundError):
        MemorySessionDriver().validate("missing")


def test_non_string_proof_is_invalid():
    with pytest.raises(InvalidSessionIDError, match="invalid session id"):
        MemorySessionDriver().validate(42)


@pytest.mark.parametrize("user", [Identity(""), {"id": "1"}, None])
def test_login_rejects_invalid_user(user):
    with pytest.raises(InvalidUserError):
        MemorySessionDriver().login(user)


def test_expired_session():
    driver = MemorySessionDriver()
    driver.ttl = timedelta(seconds=-1)
    session_id = driver.login(Identity("1"))
    with pytest.raises(SessionExpiredError, match="session expired"):
        driver.validate(session_id)


def test_session_auth_attempt_and_validate():
    user = Identity("123")
    handler = SessionAuth(MemorySessionDriver(), FakeProvider(user))
    got_user, session_id = handler.attempt("creds")
    assert got_user == user
    assert handler.validate(session_id).user == user
    handler.logout(session_id)
    with pytest.raises(SessionNotFoundError):
        handler.validate(session_id)


def test_session_auth_attempt_authenticate_failure():
    handler = SessionAuth(MemorySessionDriver(), FakeProvider(fail=True))
    with pytest.raises(ValueError, match="credentials error") as excinfo:
        handler.attempt("creds")
    assert excinfo.value.__notes__ == ["authenticate"]


def test_session_auth_attempt_login_failure():
    handler = SessionAuth(FailingLoginDriver(), FakeProvider(Identity("1")))
    with pytest.raises(RuntimeError, match="mock error login") as excinfo:
        handler.attempt("creds")
    assert excinfo.value.__notes__ == ["login"]


def test_session_auth_login_rejects_invalid_user():
    handler = SessionAuth(MemorySessionDriver(), FakeProvider(None))
    with pytest.raises(InvalidUserError):
        handler.attempt("creds")