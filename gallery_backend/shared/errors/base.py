# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any


@dataclass(slots=True)
class AppError(Exception):
    code: str
    status: HTTPStatus
    message: str = ""
    context: Mapping[str, Any] | None = None
    headers: Mapping[str, str] | None = None

    def __post_init__(self) -> None:
        Exception.__init__(self, self.message or self.code)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"message": self.message or self.code, "code": self.code}
        if self.context:
            payload["context"] = dict(self.context)
        return payload


class CsrfMissingError(AppError):
    def __init__(self) -> None:
        super().__init__(
            code="CSRF_MISSING",
            status=HTTPStatus.FORBIDDEN,
            message="CSRF token missing. Please refresh the page and try again.",
        )


class CsrfInvalidError(AppError):
    def __init__(self) -> None:
        super().__init__(
            code="CSRF_INVALID",
            status=HTTPStatus.FORBIDDEN,
            message="Invalid CSRF token. Please refresh the page and try again.",
        )


class RecaptchaMissingError(AppError):
    def __init__(self) -> None:
        super().__init__(
            code="RECAPTCHA_MISSING",
            status=HTTPStatus.BAD_REQUEST,
            message="reCAPTCHA token is required",
        )


class RecaptchaFailedError(AppError):
    def __init__(self, error_codes: list[str] | None = None) -> None:
        super().__init__(
            code="RECAPTCHA_FAILED",
            status=HTTPStatus.BAD_REQUEST,
            message="reCAPTCHA verification failed",
            context={"errorCodes": error_codes} if error_codes else None,
        )


class RecaptchaActionMismatchError(AppError):
    def __init__(self, expected: str, actual: str | None) -> None:
        super().__init__(
            code="RECAPTCHA_ACTION_MISMATCH",
            status=HTTPStatus.BAD_REQUEST,
            message="reCAPTCHA action mismatch",
            context={"expected": expected, "actual": actual},
        )


class RecaptchaLowScoreError(AppError):
    def __init__(self) -> None:
        super().__init__(
            code="RECAPTCHA_LOW_SCORE",
            status=HTTPStatus.BAD_REQUEST,
            message="Request appears to be automated. Please try again.",
        )


class RecaptchaServiceError(AppError):
    def __init__(self) -> None:
        super().__init__(
            code="RECAPTCHA_SERVICE_ERROR",
            status=HTTPStatus.INTERNAL_SERVER_ERROR,
            message="reCAPTCHA verification service error",
        )


class RateLimitedError(AppError):
    def __init__(
        self, message: str, retry_after: int, headers: Mapping[str, str] | None = None
    ) -> None:
        super().__init__(
            code="RATE_LIMITED",
            status=HTTPStatus.TOO_MANY_REQUESTS,
            message=message,
            context={"retryAfter": retry_after},
            headers=headers or {"Retry-After": str(retry_after)},
        )
