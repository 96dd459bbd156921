"""
JSON-lines logging for the receipt pipeline.

Every record is one JSON object. Structured fields are passed through
``log_event`` / ``log_exception`` and merged with whatever is bound in the
current context (the upload being processed, the OCR variant being tried).
"""

from __future__ import annotations

import contextvars
import json
import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

from receipt_points.core.config import settings

ROOT_LOGGER = "receipt_points"

# Raw OCR text can run to kilobytes; longer string fields are cut.
MAX_FIELD_CHARS = 2000

_bound: contextvars.ContextVar[dict[str, Any] | None] = contextvars.ContextVar(
    "receipt_points_log_context", default=None
)

_configured = False


def _clip(value: Any) -> Any:
    if isinstance(value, str) and len(value) > MAX_FIELD_CHARS:
        return value[:MAX_FIELD_CHARS] + f"...(+{len(value) - MAX_FIELD_CHARS} chars)"
    return value


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        if ts.endswith("+00:00"):
            ts = ts[:-6] + "Z"
        payload: dict[str, Any] = {
            "ts": ts,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        event = getattr(record, "event", None)
        if event:
            payload["event"] = event
        fields = getattr(record, "fields", None)
        if isinstance(fields, dict):
            payload.update({k: _clip(v) for k, v in fields.items() if v is not None})
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=True)


def configure_logging() -> None:
    global _configured  # noqa: PLW0603
    if _configured:
        return
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.handlers = [handler]
    logger.propagate = False
    _configured = True


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)


def bound_fields() -> dict[str, Any]:
    return dict(_bound.get() or {})


def bind(**fields: Any) -> contextvars.Token:
    """Add fields to the log context; undo with ``unbind(token)``."""
    merged = bound_fields()
    merged.update({k: v for k, v in fields.items() if v is not None})
    return _bound.set(merged)


def unbind(token: contextvars.Token) -> None:
    _bound.reset(token)


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    token = bind(**fields)
    try:
        yield
    finally:
        unbind(token)


def set_upload_context(*, upload_id: str | None, user_id: str | None) -> contextvars.Token:
    return bind(upload_id=upload_id, user_id=user_id)


def reset_upload_context(token: contextvars.Token) -> None:
    unbind(token)


def get_upload_id() -> str | None:
    return bound_fields().get("upload_id")


def log_event(
    logger: logging.Logger, event: str, *, level: int = logging.INFO, **fields: Any
) -> None:
    if not logger.isEnabledFor(level):
        return
    payload = bound_fields()
    payload.update({k: v for k, v in fields.items() if v is not None})
    logger.log(level, event, extra={"event": event, "fields": payload})


def log_exception(logger: logging.Logger, event: str, **fields: Any) -> None:
    payload = bound_fields()
    payload.update({k: v for k, v in fields.items() if v is not None})
    logger.exception(event, extra={"event": event, "fields": payload})


def monotonic_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
