# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

import sys
from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _parse_flag(value: str | bool) -> bool:
    if isinstance(value, str):
        return value.lower() in ("1", "true", "yes")
    return bool(value)


class SecurityConfig(BaseModel):
    # CSRF protection
    enable_csrf: bool = Field(True, alias="ENABLE_CSRF")
    csrf_cookie_name: str = Field("XSRF-TOKEN", alias="CSRF_COOKIE_NAME")
    csrf_header_name: str = Field("X-XSRF-TOKEN", alias="CSRF_HEADER_NAME")
    csrf_max_age: int = Field(60 * 60 * 24, ge=1, alias="CSRF_MAX_AGE")

    # Rate limiting
    enable_rate_limit: bool = Field(True, alias="ENABLE_RATE_LIMIT")

    # HSTS
    enable_hsts: bool = Field(False, alias="ENABLE_HSTS")

    model_config = ConfigDict(validate_by_name=True)

    @field_validator("enable_csrf", "enable_rate_limit", "enable_hsts", mode="before")
    @classmethod
    def _parse_bool(cls, value: str | bool) -> bool:
        return _parse_flag(value)


class RecaptchaConfig(BaseModel):
    site_key: str | None = Field(None, alias="RECAPTCHA_SITE_KEY")
    secret_key: str | None = Field(None, alias="RECAPTCHA_SECRET_KEY")
    # 0.0 - 1.0, higher is more likely human
    min_score: float = Field(0.5, ge=0.0, le=1.0, alias="RECAPTCHA_MIN_SCORE")
    verify_url: str = Field(
        "https://www.google.com/recaptcha/api/siteverify", alias="RECAPTCHA_VERIFY_URL"
    )
    timeout: float = Field(10.0, ge=0.1, alias="RECAPTCHA_TIMEOUT")

    model_config = ConfigDict(validate_by_name=True)

    def is_enabled(self) -> bool:
        return bool(self.site_key and self.secret_key)


class RateLimitConfig(BaseModel):
    api_limit: int = Field(100, ge=1, alias="RL_API_LIMIT")
    api_testing_limit: int = Field(500, ge=1, alias="RL_API_TESTING_LIMIT")
    api_window: float = Field(15 * 60.0, ge=0.1, alias="RL_API_WINDOW")
    auth_limit: int = Field(10, ge=1, alias="RL_AUTH_LIMIT")
    auth_testing_limit: int = Field(100, ge=1, alias="RL_AUTH_TESTING_LIMIT")
    auth_window: float = Field(60 * 60.0, ge=0.1, alias="RL_AUTH_WINDOW")

    model_config = ConfigDict(validate_by_name=True)


def _security_config_factory() -> SecurityConfig:
    return SecurityConfig()  # type: ignore[call-arg]


def _recaptcha_config_factory() -> RecaptchaConfig:
    return RecaptchaConfig()  # type: ignore[call-arg]


def _rate_limit_config_factory() -> RateLimitConfig:
    return RateLimitConfig()  # type: ignore[call-arg]


class AppConfig(BaseSettings):
    app_env: str = Field("development", alias="APP_ENV")
    secret_key: str = Field("dev", alias="SECRET_KEY")
    client_url: str = Field("http://localhost:5173", alias="CLIENT_URL")
    debug_logging: bool = Field(False, alias="DEBUG_LOGGING")
    testing_phase: bool = Field(False, alias="TESTING_PHASE")
    # reverse proxies in front of the app allowed to set X-Forwarded-*
    trusted_proxy_hops: int = Field(0, ge=0, alias="TRUSTED_PROXY_HOPS")

    security: SecurityConfig = Field(default_factory=_security_config_factory)
    recaptcha: RecaptchaConfig = Field(default_factory=_recaptcha_config_factory)
    rate_limit: RateLimitConfig = Field(default_factory=_rate_limit_config_factory)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        validate_by_name=True,
        validate_assignment=True,
        extra="ignore",
    )

    @field_validator("app_env", mode="after")
    @classmethod
    def _check_env(cls, value: str) -> str:
        value = value.strip().lower()
        if value == "prod":
            value = "production"
        if value not in ("development", "production", "test"):
            raise ValueError("APP_ENV must be one of development, production, test")
        return value

    @field_validator("debug_logging", "testing_phase", mode="before")
    @classmethod
    def _parse_bool(cls, value: str | bool) -> bool:
        return _parse_flag(value)

    @model_validator(mode="after")
    def _validate_production_settings(self) -> "AppConfig":
        if not self.is_production():
            return self

        if self.secret_key in ("dev", "development", "test", ""):
            print(
                "\n❌ CRITICAL SECURITY ERROR: Insecure SECRET_KEY detected in production!\n"
                "   SECRET_KEY must be a strong random value in production.\n"
                "   Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(32))\"\n",
                file=sys.stderr,
            )
            sys.exit(1)

        return self

    def security_warnings(self) -> list[str]:
        if not self.is_production():
            return []
        warnings = []
        if not self.security.enable_csrf:
            warnings.append("⚠️  CSRF protection is DISABLED")
        if not self.client_url.startswith("https://"):
            warnings.append("⚠️  CLIENT_URL is not HTTPS, secure cookies will not be sent")
        if not self.security.enable_hsts:
            warnings.append("⚠️  HSTS is DISABLED (recommended for HTTPS)")
        if not self.recaptcha.is_enabled():
            warnings.append("⚠️  reCAPTCHA is not configured")
        return warnings

    def is_production(self) -> bool:
        return self.app_env == "production"

    def is_development(self) -> bool:
        return self.app_env == "development"

    def is_testing_phase(self) -> bool:
        return self.is_development() or self.testing_phase


@lru_cache(maxsize=1)
def load_config() -> AppConfig:
    return AppConfig()  # type: ignore[call-arg]


__all__ = ["AppConfig", "RateLimitConfig", "RecaptchaConfig", "SecurityConfig", "load_config"]
