# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""loguru sinks for the gallery backend.

Records are tagged with the id of the request being served, so the CSRF,
rate limit and reCAPTCHA lines of one request can be grepped together.
"""

from __future__ import annotations

import logging
import os
import re
import sys
from contextvars import ContextVar, Token
from typing import Any

from loguru import logger

from .sensitive_filter import sanitize_record

NO_REQUEST = "-"

_FMT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<lvl>{level:<8}</lvl> | "
    "<magenta>{extra[request_id]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> | "
    "<lvl>{message}</lvl>"
)

_REQUEST_ID: ContextVar[str] = ContextVar("request_id", default=NO_REQUEST)
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def _log_file_path() -> str:
    path = os.getenv("LOG_FILE") or os.path.join(
        os.path.dirname(__file__), "..", "..", "instance", "app.log"
    )
    return os.path.abspath(path)


def _tag_request(record: dict[str, Any]) -> None:
    record["extra"].setdefault("request_id", _REQUEST_ID.get())


class _StdlibToLoguru(logging.Handler):
    """Routes werkzeug and httpx records into the loguru sinks."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(depth=6, exception=record.exc_info).log(level, record.getMessage())


def is_valid_request_id(value: str | None) -> bool:
    return bool(value) and _REQUEST_ID_RE.match(value) is not None


def set_request_id(value: str) -> Token[str]:
    return _REQUEST_ID.set(value)


def current_request_id() -> str:
    return _REQUEST_ID.get()


def reset_request_id(token: Token[str] | None) -> None:
    if token is None:
        _REQUEST_ID.set(NO_REQUEST)
    else:
        _REQUEST_ID.reset(token)


def setup_logging(*, debug_mode: bool = False) -> None:
    level = (os.getenv("LOG_LEVEL") or ("DEBUG" if debug_mode else "INFO")).upper()
    log_file = _log_file_path()
    os.makedirs(os.path.dirname(log_file), exist_ok=True)

    logger.remove()
    logger.configure(patcher=_tag_request)
    sink_options: dict[str, Any] = {
        "level": level,
        "format": _FMT,
        "filter": sanitize_record,
        "backtrace": False,
        "diagnose": False,
    }
    logger.add(sys.stderr, colorize=True, **sink_options)
    logger.add(log_file, colorize=False, enqueue=True, encoding="utf-8", **sink_options)

    logging.basicConfig(handlers=[_StdlibToLoguru()], level=0, force=True)
    logging.getLogger("werkzeug").setLevel(logging.INFO)
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


__all__ = [
    "NO_REQUEST",
    "current_request_id",
    "is_valid_request_id",
    "logger",
    "reset_request_id",
    "set_request_id",
    "setup_logging",
]
