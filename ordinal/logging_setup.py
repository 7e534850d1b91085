"""Logging for the ordinal service.

One stdout handler on the root logger. Every record carries ``request_id``,
taken from the request being served (set by ``RequestIdMiddleware``) or
``-`` outside a request, so service log lines such as ``item.created id=…``
can be tied back to the response that reported them.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from logging.config import dictConfig

request_id_var: ContextVar[str] = ContextVar("ordinal_request_id", default="-")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"

_DICT_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {"service": {"format": LOG_FORMAT}},
    "handlers": {
        "stdout": {
            "class": "logging.StreamHandler",
            "formatter": "service",
            "stream": "ext://sys.stdout",
        }
    },
    "root": {"level": "INFO", "handlers": ["stdout"]},
    "loggers": {
        # uvicorn ships its own handlers; route them through ours instead
        "uvicorn": {"handlers": ["stdout"], "propagate": False},
        "uvicorn.access": {"handlers": ["stdout"], "propagate": False},
        # SQL echo only when asked for explicitly
        "sqlalchemy.engine": {"level": "WARNING"},
    },
}


def _install_request_id_factory() -> None:
    base = logging.getLogRecordFactory()
    if getattr(base, "_tags_request_id", False):
        return

    def factory(*args, **kwargs):  # type: ignore[no-untyped-def]
        record = base(*args, **kwargs)
        record.request_id = request_id_var.get()
        return record

    factory._tags_request_id = True  # type: ignore[attr-defined]
    logging.setLogRecordFactory(factory)


def configure_logging(level: str | int | None = None) -> None:
    """Configure service logging; safe to call once per app instance.

    Handlers are only installed when the root logger has none (a reloader or
    pytest may already own them); records are tagged either way.
    """
    _install_request_id_factory()
    root = logging.getLogger()
    if not root.handlers:
        dictConfig(_DICT_CONFIG)
    if level is not None:
        root.setLevel(level)


__all__ = ["LOG_FORMAT", "configure_logging", "request_id_var"]
