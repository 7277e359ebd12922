# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""reCAPTCHA v3 verification for form endpoints."""

from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum
from functools import wraps
from typing import Any

import httpx
from flask import g, request

from gallery_backend.shared.config import AppConfig
from gallery_backend.shared.errors import (
    RecaptchaActionMismatchError,
    RecaptchaFailedError,
    RecaptchaLowScoreError,
    RecaptchaMissingError,
    RecaptchaServiceError,
)
from gallery_backend.shared.logging import logger
from gallery_backend.shared.utils.http import client_ip

RECAPTCHA_VERIFY_URL = "https://www.google.com/recaptcha/api/siteverify"
RECAPTCHA_HEADER_NAME = "X-Recaptcha-Token"
RECAPTCHA_BODY_FIELD = "recaptchaToken"


class RecaptchaAction(StrEnum):
    LOGIN = "login"
    REGISTER = "register"
    FORGOT_PASSWORD = "forgot_password"
    CONTACT = "contact"


class RecaptchaVerifier:
    def __init__(
        self,
        secret_key: str | None,
        *,
        min_score: float = 0.5,
        verify_url: str = RECAPTCHA_VERIFY_URL,
        timeout: float = 10.0,
        production: bool = False,
        client: httpx.Client | None = None,
    ) -> None:
        self._secret_key = secret_key
        self._min_score = min_score
        self._verify_url = verify_url
        self._timeout = timeout
        self._production = production
        self._client = client

    @classmethod
    def from_config(cls, config: AppConfig, client: httpx.Client | None = None) -> RecaptchaVerifier:
        return cls(
            config.recaptcha.secret_key,
            min_score=config.recaptcha.min_score,
            verify_url=config.recaptcha.verify_url,
            timeout=config.recaptcha.timeout,
            production=config.is_production(),
            client=client,
        )

    @property
    def enabled(self) -> bool:
        return bool(self._secret_key)

    @property
    def production(self) -> bool:
        return self._production

    def _siteverify(self, token: str, remote_ip: str | None) -> dict[str, Any]:
        params = {"secret": self._secret_key, "response": token}
        if remote_ip:
            params["remoteip"] = remote_ip
        if self._client is not None:
            resp = self._client.post(self._verify_url, params=params, timeout=self._timeout)
        else:
            with httpx.Client(timeout=self._timeout) as http:
                resp = http.post(self._verify_url, params=params)
        resp.raise_for_status()
        data = resp.json()
        if not isinstance(data, dict):
            raise ValueError("unexpected siteverify payload")
        return data

    def verify(self, token: str, action: str, remote_ip: str | None = None) -> float | None:
        """Check ``token`` for ``action`` and return its score.

        Returns ``None`` when the verification service failed in production;
        the request is let through so an outage upstream does not lock users out.
        """
        try:
            data = self._siteverify(token, remote_ip)
            success = bool(data.get("success"))
            response_action = data.get("action")
            score = float(data.get("score") or 0.0)
            error_codes = [str(code) for code in data.get("error-codes") or []]
        except (httpx.HTTPError, ValueError, TypeError) as exc:
            logger.error(f"recaptcha: verification error {type(exc).__name__}: {exc}")
            if self._production:
                logger.error("recaptcha: allowing request due to verification service error")
                return None
            raise RecaptchaServiceError() from exc

        logger.info(
            f"recaptcha: result success={success} score={score} "
            f"action={response_action} expected={action}"
        )

        if not success:
            logger.warning(f"recaptcha: verification failed {error_codes}")
            raise RecaptchaFailedError(error_codes)

        # binds the token to the form it was minted for
        if response_action != action:
            logger.warning(f"recaptcha: action mismatch expected={action} got={response_action}")
            raise RecaptchaActionMismatchError(action, response_action)

        if score < self._min_score:
            logger.warning(f"recaptcha: score too low {score} < {self._min_score}")
            raise RecaptchaLowScoreError()

        return score


def _request_token() -> str | None:
    body = request.get_json(silent=True)
    token = body.get(RECAPTCHA_BODY_FIELD) if isinstance(body, dict) else None
    return token or request.headers.get(RECAPTCHA_HEADER_NAME) or None


def verify_recaptcha(action: str, verifier: RecaptchaVerifier) -> Callable[[Callable], Callable]:
    def decorator(f: Callable):
        @wraps(f)
        def wrapper(*args, **kwargs):
            if not verifier.enabled:
                if verifier.production:
                    logger.warning("recaptcha: secret key not configured, skipping verification")
                else:
                    logger.info("recaptcha: skipping verification, not configured")
                return f(*args, **kwargs)

            token = _request_token()
            if not isinstance(token, str) or not token:
                raise RecaptchaMissingError()

            g.recaptcha_score = verifier.verify(token, str(action), client_ip())
            return f(*args, **kwargs)

        return wrapper

    return decorator


__all__ = [
    "RECAPTCHA_HEADER_NAME",
    "RECAPTCHA_VERIFY_URL",
    "RecaptchaAction",
    "RecaptchaVerifier",
    "verify_recaptcha",
]
