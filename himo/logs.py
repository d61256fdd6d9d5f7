"""A small structured logger writing key=value text or JSON lines."""

from __future__ import annotations

import copy
import json
import logging
import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

_LEVELS = {
    "debug": logging.DEBUG,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

_LEVEL_NAMES = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    logging.WARNING: "WARN",
    logging.ERROR: "ERROR",
}

_BAD_KEY = "!BADKEY"
_ATTRS_FIELD = "himo_attrs"


@dataclass
class LogConfig:
    """Where and how a StructuredLogger writes; empty values take the defaults."""

    level: str = "info"
    format: str = "text"
    path: str = "./log/app.log"
    output: str = "stdout"

    def __post_init__(self) -> None:
        self.level = self.level or "info"
        self.format = self.format or "text"
        self.path = self.path or "./log/app.log"
        self.output = self.output or "stdout"


def _pairs(args: tuple[Any, ...]) -> list[tuple[str, Any]]:
    """Turn alternating keys and values into pairs, marking strays as bad keys."""
    pairs: list[tuple[str, Any]] = []
    items = list(args)
    while items:
        head = items.pop(0)
        if isinstance(head, str) and items:
            pairs.append((head, items.pop(0)))
        else:
            pairs.append((_BAD_KEY, head))
    return pairs


def _plain(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "<nil>"
    return str(value)


def _text_value(value: Any) -> str:
    text = _plain(value)
    needs_quoting = not text or any(
        ch.isspace() or ch in '="' or not ch.isprintable() for ch in text
    )
    return json.dumps(text, ensure_ascii=False) if needs_quoting else text


class _Formatter(logging.Formatter):
    def __init__(self, as_json: bool) -> None:
        super().__init__()
        self._as_json = as_json

    def format(self, record: logging.LogRecord) -> str:
        attrs: list[tuple[str, Any]] = getattr(record, _ATTRS_FIELD, [])
        level = _LEVEL_NAMES.get(record.levelno, record.levelname)
        moment = datetime.fromtimestamp(record.created).astimezone()
        message = record.getMessage()
        if self._as_json:
            document: dict[str, Any] = {
                "time": moment.strftime("%Y-%m-%d %H:%M:%S"),
                "level": level,
                "msg": message,
            }
            document.update(attrs)
            return json.dumps(document, default=str, ensure_ascii=False)
        fields = [
            ("time", moment.isoformat(timespec="milliseconds")),
            ("level", level),
            ("msg", message),
            *attrs,
        ]
        return " ".join(f"{_text_value(k)}={_text_value(v)}" for k, v in fields)


class StructuredLogger:
    """Logs messages with key/value attributes to stdout or an append-only file."""

    def __init__(self, config: LogConfig | None = None) -> None:
        config = config or LogConfig()
        if config.output.lower() == "file":
            path = Path(config.path)
            path.parent.mkdir(parents=True, exist_ok=True)
            handler: logging.Handler = logging.FileHandler(
                path, mode="a", encoding="utf-8"
            )
        else:
            handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(_Formatter(as_json=config.format == "json"))

        self._logger = logging.Logger(f"himo.{id(self)}")
        self._logger.setLevel(_LEVELS.get(config.level.lower(), logging.INFO))
        self._logger.addHandler(handler)
        self._handler = handler
        self._owns_handler = True
        self._attrs: list[tuple[str, Any]] = []

    def bind(self, *args: Any) -> StructuredLogger:
        """Return a logger that adds these key/value attributes to every line."""
        bound = copy.copy(self)
        bound._attrs = self._attrs + _pairs(args)
        bound._owns_handler = False
        return bound

    def _log(self, level: int, msg: str, args: tuple[Any, ...]) -> None:
        if self._logger.isEnabledFor(level):
            self._logger.log(
                level, msg, extra={_ATTRS_FIELD: self._attrs + _pairs(args)}
            )

    def debug(self, msg: str, *args: Any) -> None:
        """Log at debug level."""
        self._log(logging.DEBUG, msg, args)

    def info(self, msg: str, *args: Any) -> None:
        """Log at info level."""
        self._log(logging.INFO, msg, args)

    def warn(self, msg: str, *args: Any) -> None:
        """Log at warning level."""
        self._log(logging.WARNING, msg, args)

    def error(self, msg: str, *args: Any) -> None:
        """Log at error level."""
        self._log(logging.ERROR, msg, args)

    def close(self) -> None:
        """Release the output this logger opened; bound loggers own nothing."""
        if self._owns_handler:
            self._owns_handler = False
            self._logger.removeHandler(self._handler)
            self._handler.close()

    def __enter__(self) -> StructuredLogger:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()