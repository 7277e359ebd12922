from .base import (
    AppError,
    CsrfInvalidError,
    CsrfMissingError,
    RateLimitedError,
    RecaptchaActionMismatchError,
    RecaptchaFailedError,
    RecaptchaLowScoreError,
    RecaptchaMissingError,
    RecaptchaServiceError,
)
from .http import handle_app_error, register_error_handler

__all__ = [
    "AppError",
    "CsrfInvalidError",
    "CsrfMissingError",
    "RateLimitedError",
    "RecaptchaActionMismatchError",
    "RecaptchaFailedError",
    "RecaptchaLowScoreError",
    "RecaptchaMissingError",
    "RecaptchaServiceError",
    "handle_app_error",
    "register_error_handler",
]
