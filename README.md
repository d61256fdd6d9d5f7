# himo

Building blocks for Python applications:

- **`himo.auth`**: pluggable authentication. A named set of handlers, each
  joining a *user provider* (finds users by credentials) to a *driver*
  (validates proofs such as JWTs or session IDs). JWT and in-memory session
  drivers are included.
- **`himo.hashing`**: one-way password hashing with bcrypt (default) and
  argon2id, plus room for hashers of your own.
- **`himo.events`**: typed event buses, with a broker that sends each event to
  the bus for its type.
- **`himo.logs`**: a structured logger writing text or JSON to stdout or a file.
- **`himo.mail`**: multipart mail over SMTP, through a manager that can hold
  more drivers.

## Installation

```
pip install himo
```

Python 3.11 or later is required.

## Authentication

A `Manager` holds named handlers. The first one registered becomes the
default, and every call on the manager goes to the default handler. A handler
is built from a `HandlerOption` that pairs a user provider with a driver:

```python
from himo.auth.manager import HandlerOption, Manager


class AccountProvider:
    def find_by_credentials(self, creds):
        ...  # look the user up and return it, or raise


class ApiKeyDriver:
    def validate(self, proof):
        ...  # return a Verified for the proof, or raise


manager = Manager(HandlerOption(driver=ApiKeyDriver(), user_provider=AccountProvider()))
user = manager.authenticate({"email": "user@example.com", "password": "password"})
verified = manager.validate("token")
```

Further handlers are added with `extend(name, option)` or
`register_handler(name, handler)`, then chosen with `set_default(name)` or
fetched with `lookup_handler(name)` and `must_handler(name)`.

Operations a handler cannot perform (`register_user`, `login`, `logout`,
`issue_token`, `refresh_token`, `revoke_token`) raise a subclass of
`NotSupportedError`, for example `LoginNotSupportedError`. An unknown handler
name raises `HandlerNotFoundError`. Registering a name twice raises
`HandlerAlreadyRegisteredError`. All of these derive from `AuthError`.

The module-level functions in `himo.auth.manager` (`authenticate`, `validate`,
`login`, `logout`, `issue_token`, …) work on a shared process-wide manager.
`use_driver` and `use_user_provider` swap one half of its default handler:

```python
from himo.auth import manager
from himo.auth.sessions import MemorySessionDriver

manager.use_driver(MemorySessionDriver())
```

### Tokens

`JWTDriver` signs HS256 tokens that are valid for fifteen minutes.
`validate` raises `JWTInvalidError` for a bad signature or a malformed token,
and `JWTExpiredError` once the token has expired. `TokenAuth` joins a token
driver to a user provider and adds `issue_token`, `refresh_token` and
`revoke_token`.

```python
from himo.auth.tokens import JWTDriver

driver = JWTDriver(b"secret")
```

### Sessions

`MemorySessionDriver` keeps sessions in memory for one hour. `SessionAuth`
joins a session driver to a user provider. `attempt(creds)` authenticates and
logs in with one call, and returns the user and the new session ID. Looking up
an unknown session raises `SessionNotFoundError`, and an expired one raises
`SessionExpiredError`.

### Request context

`with_user(user)` stores the authenticated user for the current context, and
`current_user()` reads it back. Both are in `himo.auth.base`.

## Password hashing

```python
from himo.hashing import Method, check_password, hash_password, must_hasher

password = "password"
hashed = hash_password(password)
assert check_password(password, hashed)
assert not check_password("wrong", hashed)

argon = must_hasher(Method("argon2id"))
assert argon.check(password, argon.hash(password))
```

`extend(method, hasher)` registers your own hasher, which is any object with
`hash(password)` and `check(password, hashed)`. `set_default(method)` makes it
the default. An unknown method raises `HasherNotFoundError`.

## Events

```python
from dataclasses import dataclass

from himo.events import Broker, Bus


@dataclass
class UserRegistered:
    email: str


bus = Bus(UserRegistered)
bus.subscribe(lambda event: print("welcome", event.email))

broker = Broker()
broker.register_bus(bus)
broker.publish(UserRegistered("user@example.com"))
```

Every handler runs even if an earlier one fails, and the failures are raised
together. `subscribe_async` runs a handler in the background.

## Logging

`StructuredLogger` takes a `LogConfig` and writes text by default, or JSON if
the config asks for it. Output goes to stdout, or to a file whose directory is
created when needed. `bind(...)` returns a logger that adds the given
key/value pairs to every record. Call `close()` when logging to a file.

## Mail

`MailManager` is built from a `MailConfig` and starts with an SMTP driver.
`send(message)` hands a `Message` to the default driver. More drivers can be
added with `register_driver` and chosen with `set_default_driver`. On port 465
`SMTPMailer` connects over TLS. On other ports it upgrades with STARTTLS when
the server offers it. `build_message` returns the raw multipart text without
sending it.

## Running the tests

```
pip install "himo[test]"
pytest
```