"""JSON logging for scaler.

Each record becomes one JSON object per line::

    {"ts": "2026-07-01T12:00:00.123456+00:00", "level": "INFO",
     "logger": "scaler.client", "message": "transform complete",
     "op": "transform", "outputs": 2, "totalMs": 812.4}

Structured fields travel in ``extra={"extra_fields": {...}}`` and pass
through :func:`scaler.utils.redact` before they are written, so a signed URL
or a bearer token handed to a log call loses its secret part::

    from scaler.observability import get_logger

    log = get_logger("scaler.transport")
    log.warning("download failed", extra={"extra_fields": {"url": signed_url}})
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from scaler.utils.redact import redact


class StructuredFormatter(logging.Formatter):
    """Render a :class:`logging.LogRecord` as single-line JSON.

    Always present: ``ts`` (UTC, ISO-8601), ``level``, ``logger`` and
    ``message``.  Redacted ``extra_fields`` are merged at the top level;
    ``exception`` and ``stack_info`` appear when the record carries them.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        fields = getattr(record, "extra_fields", None)
        if fields:
            entry.update(redact(fields))

        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(entry, default=str)


_configured_loggers: set[str] = set()


def get_logger(
    name: str = "scaler",
    *,
    level: int | str = logging.DEBUG,
    stream: Any | None = None,
) -> logging.Logger:
    """Return the logger *name* with a :class:`StructuredFormatter` handler.

    Parameters
    ----------
    name:
        Logger name.  SDK modules use ``"scaler.<module>"``.
    level:
        Level set on first configuration, as an ``int`` or a name such as
        ``"info"``.
    stream:
        Handler stream, ``sys.stderr`` by default.

    Only the first call for a given *name* attaches a handler; later calls
    return the configured logger unchanged.
    """
    logger = logging.getLogger(name)
    if name in _configured_loggers:
        return logger

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logger.setLevel(level)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())
    logger.addHandler(handler)
    logger.propagate = False

    _configured_loggers.add(name)
    return logger
