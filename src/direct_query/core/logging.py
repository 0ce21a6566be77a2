"""
Centralised logging helpers for the direct query core.

Components never reach for a process-wide logger. They accept a
:class:`logging.LoggerAdapter` at construction time and fall back to
:func:`get_logger` when the caller does not inject one. Structured metadata is
passed through ``extra`` and rendered by :class:`StructuredLogFormatter` as
``key=value`` pairs after the message.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from copy import copy
from logging import Logger, LoggerAdapter
from typing import Any, Iterable, Mapping, MutableMapping, Optional, Sequence

DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_LEVEL = "INFO"
_ENV_LEVEL = "DIRECT_QUERY_LOG_LEVEL"
_ENV_COLOR = "DIRECT_QUERY_LOG_COLOR"
_EXTRA_FOCUS_ORDER: Sequence[str] = (
    "datasource",
    "connector",
    "query_id",
    "session_id",
    "query_type",
    "resource_type",
    "method",
    "url",
    "status_code",
    "tags",
)

_LEVEL_STYLES = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[95m",
}
_RESET = "\033[0m"

_RESERVED_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}

_configured = False


def _resolve_level(level: Optional[int | str]) -> int:
    if isinstance(level, int):
        return level
    candidate = (level or os.getenv(_ENV_LEVEL) or DEFAULT_LEVEL).upper()
    resolved = logging.getLevelName(candidate)
    return resolved if isinstance(resolved, int) else logging.INFO


def _coerce_bool(value: str) -> Optional[bool]:
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    return None


def _supports_color(stream: Any) -> bool:
    preference = os.getenv(_ENV_COLOR)
    if preference:
        resolved = _coerce_bool(preference)
        if resolved is not None:
            return resolved
    return hasattr(stream, "isatty") and bool(stream.isatty())


def _iter_extras(record: logging.LogRecord) -> Iterable[tuple[str, Any]]:
    payload = {key: value for key, value in record.__dict__.items() if key not in _RESERVED_ATTRS and not key.startswith("_") and value is not None}

    for key in _EXTRA_FOCUS_ORDER:
        if key in payload:
            yield key, payload.pop(key)

    for key in sorted(payload):
        yield key, payload[key]


def _format_extra_value(value: Any) -> str:
    if isinstance(value, (list, tuple, set)):
        return "[" + ", ".join(_format_extra_value(item) for item in value) + "]"
    if isinstance(value, Mapping):
        try:
            return json.dumps(value, ensure_ascii=False, default=str)
        except TypeError:
            return repr(dict(value))
    if isinstance(value, float):
        return f"{value:.4g}"
    return str(value)


class StructuredLoggerAdapter(LoggerAdapter):
    """Adapter that merges per-call ``extra`` fields over the bound ones."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        merged = dict(self.extra) if isinstance(self.extra, Mapping) else {}
        call_extra = kwargs.get("extra")
        if call_extra:
            merged.update(call_extra)
        kwargs["extra"] = merged
        return msg, kwargs


class StructuredLogFormatter(logging.Formatter):
    """Formatter that appends structured extras and supports optional colour output."""

    def __init__(self, *, use_color: bool = False) -> None:
        super().__init__(DEFAULT_FORMAT, datefmt=DEFAULT_DATE_FORMAT)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        working = copy(record)
        if self.use_color:
            style = _LEVEL_STYLES.get(working.levelname.strip().upper())
            if style:
                working.levelname = f"{style}{working.levelname}{_RESET}"
        base = super().format(working)
        extras = " ".join(f"{key}={_format_extra_value(value)}" for key, value in _iter_extras(record))
        if extras:
            return f"{base} | {extras}"
        return base


def _build_handler(level: Optional[int | str]) -> logging.Handler:
    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setLevel(_resolve_level(level))
    handler.setFormatter(StructuredLogFormatter(use_color=_supports_color(handler.stream)))
    return handler


def configure_logging(level: Optional[int | str] = None, *, force: bool = False) -> None:
    """
    Configure root logging handlers unless already initialised.

    Parameters
    ----------
    level:
        Optional logging level override. Falls back to ``DIRECT_QUERY_LOG_LEVEL`` or ``INFO``.
    force:
        When ``True`` the configuration is reapplied even if previously initialised.
    """

    global _configured
    if _configured and not force:
        return
    logging.basicConfig(level=_resolve_level(level), handlers=[_build_handler(level)], force=force)
    _configured = True


def get_logger(
    name: str,
    *,
    level: Optional[int | str] = None,
    tags: Optional[Sequence[str]] = None,
    extra: Optional[Mapping[str, object]] = None,
) -> LoggerAdapter:
    """
    Return a configured :class:`logging.LoggerAdapter` instance.

    Parameters
    ----------
    name:
        Logger namespace, typically ``__name__`` or ``module.ClassName``.
    level:
        Optional per-logger level override.
    tags:
        Optional observability tags attached to the ``extra`` payload.
    extra:
        Additional structured metadata recorded with each log entry.
    """

    configure_logging(level)
    base: Logger = logging.getLogger(name)
    if level is not None:
        base.setLevel(_resolve_level(level))
    payload: MutableMapping[str, object] = {}
    if tags:
        payload["tags"] = tuple(tags)
    if extra:
        payload.update({key: value for key, value in extra.items() if value is not None})
    return StructuredLoggerAdapter(base, payload)


def bind_extra(logger: LoggerAdapter, **extra: object) -> LoggerAdapter:
    """
    Create a child logger carrying additional structured fields.

    The original adapter is left untouched so a component's logger can be
    narrowed per request (e.g. with ``datasource=`` and ``query_id=``).
    """

    merged = dict(logger.extra) if isinstance(logger.extra, Mapping) else {}
    merged.update({key: value for key, value in extra.items() if value is not None})
    return StructuredLoggerAdapter(logger.logger, merged)


def bind_tags(logger: LoggerAdapter, tags: Sequence[str]) -> LoggerAdapter:
    """Create a child logger with additional observability tags."""

    current = dict(logger.extra) if isinstance(logger.extra, Mapping) else {}
    merged_tags = tuple(dict.fromkeys((*current.get("tags", ()), *tags)))
    current["tags"] = merged_tags
    return StructuredLoggerAdapter(logger.logger, current)
