# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Double-submit cookie CSRF protection.

Safe requests receive an ``XSRF-TOKEN`` cookie readable by client script.
State-changing requests must echo that value in the ``X-XSRF-TOKEN`` header.
Outside production the check is skipped and only the cookie is issued.
"""

from __future__ import annotations

import secrets
from collections.abc import Callable
from dataclasses import dataclass
from functools import wraps
from typing import Any

from flask import Flask, Response, g, make_response, request

from gallery_backend.shared.config import AppConfig
from gallery_backend.shared.errors import CsrfInvalidError, CsrfMissingError
from gallery_backend.shared.logging import logger

SAFE_METHODS: tuple[str, ...] = ("GET", "HEAD", "OPTIONS")
CSRF_COOKIE_NAME = "XSRF-TOKEN"
CSRF_HEADER_NAME = "X-XSRF-TOKEN"
CSRF_MAX_AGE = 60 * 60 * 24


def generate_csrf_token() -> str:
    return secrets.token_hex(32)


@dataclass(frozen=True, slots=True)
class CsrfGuard:
    production: bool
    cookie_name: str = CSRF_COOKIE_NAME
    header_name: str = CSRF_HEADER_NAME
    max_age: int = CSRF_MAX_AGE

    @classmethod
    def from_config(cls, config: AppConfig) -> CsrfGuard:
        return cls(
            production=config.is_production(),
            cookie_name=config.security.csrf_cookie_name,
            header_name=config.security.csrf_header_name,
            max_age=config.security.csrf_max_age,
        )

    def is_safe(self, method: str) -> bool:
        return method.upper() in SAFE_METHODS

    def token_to_issue(self, cookie_token: str | None) -> str | None:
        """Return a fresh token when the client holds none, else ``None``."""
        if cookie_token:
            return None
        return generate_csrf_token()

    def cookie_options(self, *, strict: bool = False) -> dict[str, Any]:
        return {
            # client script must read it back into the header
            "httponly": False,
            "secure": self.production,
            "samesite": "Strict" if self.production or strict else "Lax",
            "max_age": self.max_age,
            "path": "/",
        }

    def check(self, method: str, cookie_token: str | None, header_token: str | None) -> None:
        if self.is_safe(method) or not self.production:
            return
        if not cookie_token or not header_token:
            raise CsrfMissingError()
        if not secrets.compare_digest(cookie_token.encode(), header_token.encode()):
            raise CsrfInvalidError()


def _issue_cookie(resp: Response, guard: CsrfGuard, *, strict: bool = False) -> Response:
    if g.get("csrf_token_issued"):
        return resp
    token = guard.token_to_issue(request.cookies.get(guard.cookie_name))
    if token:
        resp.set_cookie(guard.cookie_name, token, **guard.cookie_options(strict=strict))
        g.csrf_token_issued = True
        logger.debug(f"csrf: issued token cookie on {request.method} {request.path}")
    return resp


def configure_csrf(app: Flask, guard: CsrfGuard) -> None:
    if not guard.production:
        logger.info("csrf: validation bypassed outside production, issuing cookies only")

    @app.before_request
    def _validate_csrf_token() -> None:
        guard.check(
            request.method,
            request.cookies.get(guard.cookie_name),
            request.headers.get(guard.header_name),
        )

    @app.after_request
    def _ensure_csrf_cookie(resp: Response) -> Response:
        if guard.is_safe(request.method):
            return _issue_cookie(resp, guard)
        return resp


def ensure_csrf_cookie(guard: CsrfGuard) -> Callable[[Callable], Callable]:
    """Hand out a strict token cookie from a view regardless of its method."""

    def decorator(f: Callable):
        @wraps(f)
        def wrapper(*args, **kwargs):
            resp = make_response(f(*args, **kwargs))
            return _issue_cookie(resp, guard, strict=True)

        return wrapper

    return decorator


__all__ = [
    "CSRF_COOKIE_NAME",
    "CSRF_HEADER_NAME",
    "CSRF_MAX_AGE",
    "SAFE_METHODS",
    "CsrfGuard",
    "configure_csrf",
    "ensure_csrf_cookie",
    "generate_csrf_token",
]
