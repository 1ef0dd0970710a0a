"""Logging utilities for Repo Rover.

Records are written as one JSON object per line. Context bound with
:func:`bind_context` travels on the record as ``ctx_<key>`` attributes and is
rendered under a ``context`` object.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any, MutableMapping

import orjson

CONTEXT_PREFIX = "ctx_"
QUIET_LOGGERS = ("httpx", "httpcore")


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = {
            key[len(CONTEXT_PREFIX) :]: value
            for key, value in record.__dict__.items()
            if key.startswith(CONTEXT_PREFIX)
        }
        if context:
            payload["context"] = context
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return orjson.dumps(payload, default=str).decode("utf-8")


class ContextAdapter(logging.LoggerAdapter):
    """Attach bound key/value pairs to every record as ``ctx_`` extras."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        for key, value in self.extra.items():
            extra.setdefault(f"{CONTEXT_PREFIX}{key}", value)
        kwargs["extra"] = extra
        return msg, kwargs


def bind_context(logger: logging.Logger, **context: Any) -> ContextAdapter:
    return ContextAdapter(logger, context)


def configure_logging(level: str | int | None = None, use_json: bool = True) -> None:
    """Install a single stdout handler on the root logger.

    ``level`` defaults to ``RROV_LOG_LEVEL`` (``INFO`` when unset). HTTP client
    loggers are held at WARNING since the pipeline issues a request per file.
    """
    logging.captureWarnings(True)
    root = logging.getLogger()
    root.setLevel(level or os.environ.get("RROV_LOG_LEVEL", "INFO"))
    handler = logging.StreamHandler(sys.stdout)
    if use_json:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root.handlers = [handler]
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str = "repo_rover") -> logging.Logger:
    if not logging.getLogger().handlers:
        configure_logging()
    return logging.getLogger(name)


__all__ = ["JsonFormatter", "ContextAdapter", "bind_context", "configure_logging", "get_logger"]
