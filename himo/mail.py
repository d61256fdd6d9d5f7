"""Outgoing mail: a registry of named mailers and an SMTP mailer."""

from __future__ import annotations

import base64
import smtplib
import ssl
import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager, suppress
from dataclasses import dataclass, field
from email.quoprimime import header_encode
from email.utils import format_datetime
from datetime import datetime
from enum import StrEnum
from typing import Protocol, runtime_checkable

_MESSAGE_ID_DOMAIN = "testdomain.dev"
_IMPLICIT_TLS_PORT = 465
_NAME_SPECIALS = set("\"#$%&'(),.:;<>@[]^`{|}~")


class MailError(Exception):
    """Raised when a mail cannot be routed or delivered."""


class Driver(StrEnum):
    """Names of the built-in mail drivers."""

    SMTP = "smtp"
    CUSTOM = "custom"


@dataclass(frozen=True)
class Address:
    """A mailbox with an optional display name."""

    name: str
    address: str

    def __str__(self) -> str:
        angle = f"<{self.address}>"
        if not self.name:
            return angle
        if all(" " <= ch <= "~" or ch == "\t" for ch in self.name):
            escaped = self.name.replace("\\", "\\\\").replace('"', '\\"')
            return f'"{escaped}" {angle}'
        raw = self.name.encode("utf-8")
        if any(ch in _NAME_SPECIALS for ch in self.name):
            encoded = f"=?utf-8?b?{base64.b64encode(raw).decode('ascii')}?="
        else:
            encoded = header_encode(raw, "utf-8")
        return f"{encoded} {angle}"


@dataclass
class Message:
    """An e-mail with optional plain-text and HTML bodies."""

    sender: Address
    to: list[Address] = field(default_factory=list)
    subject: str = ""
    html: str = ""
    text: str = ""
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class MailConfig:
    """Settings for the mail registry and its SMTP mailer."""

    driver: str = ""
    host: str = ""
    port: int = 0
    username: str = ""
    password: str = field(default="", repr=False)
    skip_tls_verify: bool = False


@runtime_checkable
class Mailer(Protocol):
    """Delivers messages."""

    def send(self, message: Message) -> None: ...


@contextmanager
def _step(label: str) -> Iterator[None]:
    try:
        yield
    except (smtplib.SMTPException, OSError) as exc:
        raise MailError(f"{label}: {exc}") from exc


@dataclass
class SMTPMailer:
    """Sends multipart messages through an SMTP server."""

    host: str
    port: int
    username: str
    password: str = field(repr=False)
    skip_tls_verify: bool = False

    @classmethod
    def from_config(cls, config: MailConfig) -> SMTPMailer:
        """Build a mailer from the SMTP settings of a MailConfig."""
        return cls(
            host=config.host,
            port=config.port,
            username=config.username,
            password=config.password,
            skip_tls_verify=config.skip_tls_verify,
        )

    def build_message(self, message: Message) -> str:
        """Render the message as a multipart/alternative document with CRLF lines."""
        boundary = str(uuid.uuid4())
        lines = [
            "MIME-Version: 1.0",
            f"Date: {format_datetime(datetime.now().astimezone())}",
            f"Message-ID: <{time.time_ns()}@{_MESSAGE_ID_DOMAIN}>",
            f"Subject: {message.subject}",
            f"From: {message.sender}",
        ]
        if message.to:
            lines.append(f"To: {', '.join(str(a) for a in message.to)}")
        lines.append(f"Content-Type: multipart/alternative; boundary={boundary}")
        head = "".join(f"{line}\r\n" for line in lines) + "\r\n"

        parts = [
            (kind, body)
            for kind, body in (("plain", message.text), ("html", message.html))
            if body
        ]
        body = "".join(
            f"--{boundary}\r\n"
            f'Content-Type: text/{kind}; charset="UTF-8"\r\n'
            "Content-Transfer-Encoding: quoted-printable\r\n"
            "Content-Disposition: inline\r\n\r\n"
            f"{content}\r\n\r\n"
            for kind, content in parts
        )
        return f"{head}{body}--{boundary}--\r\n"

    def _tls_context(self) -> ssl.SSLContext:
        context = ssl.create_default_context()
        if self.skip_tls_verify:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    def _connect(self, context: ssl.SSLContext) -> smtplib.SMTP:
        if self.port == _IMPLICIT_TLS_PORT:
            with _step("dial tls"):
                return smtplib.SMTP_SSL(self.host, self.port, context=context)
        with _step("smtp dial"):
            client = smtplib.SMTP(self.host, self.port)
        try:
            with _step("start tls"):
                client.ehlo_or_helo_if_needed()
                if client.has_extn("starttls"):
                    client.starttls(context=context)
                    client.ehlo()
        except MailError:
            with suppress(smtplib.SMTPException, OSError):
                client.quit()
            raise
        return client

    def send(self, message: Message) -> None:
        """Deliver the message, stopping at the first refused step."""
        payload = self.build_message(message).encode("utf-8")
        client = self._connect(self._tls_context())
        try:
            with _step("client auth"):
                client.login(self.username, self.password)
            with _step("client mail"):
                code, reply = client.mail(message.sender.address)
                if code != 250:
                    raise smtplib.SMTPSenderRefused(code, reply, message.sender.address)
            for recipient in message.to:
                with _step(f"client rcpt: {recipient.address}"):
                    code, reply = client.rcpt(recipient.address)
                    if code not in (250, 251):
                        raise smtplib.SMTPRecipientsRefused(
                            {recipient.address: (code, reply)}
                        )
            with _step("client data"):
                client.data(payload)
        finally:
            with suppress(smtplib.SMTPException, OSError):
                client.quit()


class MailManager:
    """Holds named mailers and sends through the default one."""

    def __init__(self, config: MailConfig | None = None) -> None:
        config = config or MailConfig()
        self._mailers: dict[str, Mailer] = {
            str(Driver.SMTP): SMTPMailer.from_config(config)
        }
        self._default = config.driver or str(Driver.SMTP)

    def mailer(self, driver: str) -> Mailer:
        """Return the mailer registered under the driver name."""
        try:
            return self._mailers[str(driver)]
        except KeyError:
            raise MailError("mailer not found") from None

    def send(self, message: Message) -> None:
        """Send the message with the default mailer."""
        self.mailer(self._default).send(message)

    def register_driver(self, driver: str, mailer: Mailer) -> None:
        """Add a mailer under a driver name that is not taken yet."""
        if str(driver) in self._mailers:
            raise MailError("driver already exists")
        self._mailers[str(driver)] = mailer

    def set_default_driver(self, driver: str) -> None:
        """Make a registered driver the default one."""
        if str(driver) not in self._mailers:
            raise MailError("driver not found")
        self._default = str(driver)