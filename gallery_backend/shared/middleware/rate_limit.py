# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import math
import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from functools import wraps

from flask import Flask, Response, g, make_response, request

from gallery_backend.shared.config import AppConfig
from gallery_backend.shared.errors import RateLimitedError
from gallery_backend.shared.logging import logger
from gallery_backend.shared.utils.http import client_ip

API_LIMIT_MESSAGE = "Too many requests from this IP, please try again after 15 minutes"
AUTH_LIMIT_MESSAGE = "Too many login attempts from this IP, please try again after an hour"

_PURGE_EVERY = 1000


@dataclass
class Bucket:
    timestamps: deque[float]


@dataclass(frozen=True)
class RateLimitState:
    allowed: bool
    limit: int
    remaining: int
    reset_seconds: int

    def headers(self) -> dict[str, str]:
        return {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(self.reset_seconds),
        }


class InMemoryRateLimiter:
    def __init__(self, limit: int, window_seconds: float) -> None:
        self._limit = max(1, int(limit))
        self._window = max(0.1, float(window_seconds))
        self._lock = threading.Lock()
        self._buckets: dict[str, Bucket] = {}
        self._calls = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._buckets)

    @property
    def limit(self) -> int:
        return self._limit

    def _drop_expired(self, key: str, now: float) -> Bucket | None:
        bucket = self._buckets.get(key)
        if bucket is None:
            return None
        while bucket.timestamps and (now - bucket.timestamps[0]) > self._window:
            bucket.timestamps.popleft()
        if not bucket.timestamps:
            del self._buckets[key]
            return None
        return bucket

    def _purge(self, now: float) -> int:
        before = len(self._buckets)
        for key in list(self._buckets):
            self._drop_expired(key, now)
        return before - len(self._buckets)

    def purge_expired(self) -> int:
        with self._lock:
            return self._purge(time.monotonic())

    def hit(self, key: str) -> RateLimitState:
        now = time.monotonic()
        with self._lock:
            self._calls += 1
            if self._calls % _PURGE_EVERY == 0:
                self._purge(now)

            bucket = self._drop_expired(key, now)
            if bucket is None:
                bucket = Bucket(deque(maxlen=self._limit))
                self._buckets[key] = bucket

            allowed = len(bucket.timestamps) < self._limit
            if allowed:
                bucket.timestamps.append(now)
            reset = max(1, math.ceil(self._window - (now - bucket.timestamps[0])))
            return RateLimitState(
                allowed=allowed,
                limit=self._limit,
                remaining=self._limit - len(bucket.timestamps),
                reset_seconds=reset,
            )

    def allow(self, key: str) -> bool:
        return self.hit(key).allowed


@dataclass(frozen=True)
class RateLimitProfile:
    limit: int
    window_seconds: float
    message: str
    enabled: bool = True

    @classmethod
    def api(cls, config: AppConfig) -> RateLimitProfile:
        rl = config.rate_limit
        return cls(
            limit=rl.api_testing_limit if config.is_testing_phase() else rl.api_limit,
            window_seconds=rl.api_window,
            message=API_LIMIT_MESSAGE,
            enabled=_limits_enabled(config),
        )

    @classmethod
    def auth(cls, config: AppConfig) -> RateLimitProfile:
        rl = config.rate_limit
        return cls(
            limit=rl.auth_testing_limit if config.is_testing_phase() else rl.auth_limit,
            window_seconds=rl.auth_window,
            message=AUTH_LIMIT_MESSAGE,
            enabled=_limits_enabled(config),
        )


def _limits_enabled(config: AppConfig) -> bool:
    # skipped entirely in local development
    return config.security.enable_rate_limit and not config.is_development()


def _enforce(limiter: InMemoryRateLimiter, key: str, message: str) -> RateLimitState:
    state = limiter.hit(key)
    if state.allowed:
        return state
    logger.warning(f"rate_limit: rejected {request.method} {request.path} key={key}")
    raise RateLimitedError(
        message,
        state.reset_seconds,
        headers={**state.headers(), "Retry-After": str(state.reset_seconds)},
    )


def rate_limit(profile: RateLimitProfile) -> Callable[[Callable], Callable]:
    limiter = InMemoryRateLimiter(profile.limit, profile.window_seconds)

    def decorator(f: Callable):
        if not profile.enabled:
            return f

        @wraps(f)
        def wrapper(*args, **kwargs):
            state = _enforce(limiter, f"{request.path}:{client_ip()}", profile.message)
            resp = make_response(f(*args, **kwargs))
            resp.headers.update(state.headers())
            return resp

        return wrapper

    return decorator


def configure_rate_limiting(app: Flask, config: AppConfig) -> None:
    profile = RateLimitProfile.api(config)
    if not profile.enabled:
        logger.info("rate_limit: disabled")
        return
    limiter = InMemoryRateLimiter(profile.limit, profile.window_seconds)

    @app.before_request
    def _limit_api_requests() -> None:
        if request.path.startswith("/api/"):
            g.rate_limit_state = _enforce(limiter, client_ip(), profile.message)

    @app.after_request
    def _add_rate_limit_headers(resp: Response) -> Response:
        state = g.get("rate_limit_state")
        if state is not None:
            for name, value in state.headers().items():
                resp.headers.setdefault(name, value)
        return resp


__all__ = [
    "InMemoryRateLimiter",
    "RateLimitProfile",
    "RateLimitState",
    "configure_rate_limiting",
    "rate_limit",
]
