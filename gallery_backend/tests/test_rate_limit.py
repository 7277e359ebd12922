from __future__ import annotations

import time

from flask import Flask, jsonify

from gallery_backend.app import create_app
from gallery_backend.shared.middleware.error_handler import configure_error_handling
from gallery_backend.shared.middleware.rate_limit import (
    AUTH_LIMIT_MESSAGE,
    InMemoryRateLimiter,
    RateLimitProfile,
    rate_limit,
)


def test_limiter_allows_up_to_limit() -> None:
    limiter = InMemoryRateLimiter(limit=3, window_seconds=60.0)

    assert [limiter.allow("1.2.3.4") for _ in range(3)] == [True, True, True]
    blocked = limiter.hit("1.2.3.4")
    assert blocked.allowed is False
    assert blocked.remaining == 0
    assert 1 <= blocked.reset_seconds <= 60

    fresh = limiter.hit("5.6.7.8")
    assert fresh.allowed is True
    assert fresh.limit == 3
    assert fresh.remaining == 2


def test_limiter_evicts_expired_buckets() -> None:
    limiter = InMemoryRateLimiter(limit=2, window_seconds=0.1)
    for i in range(5):
        limiter.allow(f"198.51.100.{i}")
    assert len(limiter) == 5

    time.sleep(0.2)

    assert limiter.purge_expired() == 5
    assert len(limiter) == 0
    assert limiter.allow("198.51.100.0") is True


def test_profiles_follow_environment(make_config) -> None:
    prod = make_config(app_env="production")
    assert RateLimitProfile.api(prod).limit == 100
    assert RateLimitProfile.auth(prod).limit == 10
    assert RateLimitProfile.auth(prod).window_seconds == 3600.0
    assert RateLimitProfile.auth(prod).enabled is True

    testing = make_config(app_env="production", testing_phase=True)
    assert RateLimitProfile.api(testing).limit == 500
    assert RateLimitProfile.auth(testing).limit == 100

    dev = make_config(app_env="development")
    assert RateLimitProfile.api(dev).enabled is False
    assert RateLimitProfile.auth(dev).enabled is False


def _login_app(limit: int) -> Flask:
    app = Flask(__name__)
    configure_error_handling(app)
    profile = RateLimitProfile(limit=limit, window_seconds=60.0, message=AUTH_LIMIT_MESSAGE)

    @app.post("/api/auth/login")
    @rate_limit(profile)
    def _login():
        return jsonify({"ok": True})

    return app


def test_decorator_rejects_after_limit() -> None:
    app = _login_app(limit=2)

    with app.test_client() as client:
        statuses = [client.post("/api/auth/login").status_code for _ in range(2)]
        blocked = client.post("/api/auth/login")
        spoofed = client.post(
            "/api/auth/login", headers={"X-Forwarded-For": "203.0.113.9, 10.0.0.1"}
        )
    with app.test_client() as other:
        other_ip = other.post("/api/auth/login", environ_base={"REMOTE_ADDR": "203.0.113.9"})

    assert statuses == [200, 200]
    assert blocked.status_code == 429
    payload = blocked.get_json()
    assert payload["code"] == "RATE_LIMITED"
    assert payload["message"] == AUTH_LIMIT_MESSAGE
    assert payload["context"]["retryAfter"] >= 1
    assert spoofed.status_code == 429
    assert other_ip.status_code == 200


def test_decorator_sets_rate_limit_headers() -> None:
    app = _login_app(limit=1)

    with app.test_client() as client:
        allowed = client.post("/api/auth/login")
        blocked = client.post("/api/auth/login")

    assert allowed.headers["RateLimit-Limit"] == "1"
    assert allowed.headers["RateLimit-Remaining"] == "0"
    assert blocked.status_code == 429
    assert int(blocked.headers["Retry-After"]) >= 1
    assert blocked.headers["Retry-After"] == str(blocked.get_json()["context"]["retryAfter"])
    assert blocked.headers["RateLimit-Limit"] == "1"
    assert blocked.headers["RateLimit-Remaining"] == "0"


def test_disabled_profile_leaves_view_untouched() -> None:
    def view():
        return "ok"

    profile = RateLimitProfile(limit=1, window_seconds=1.0, message="", enabled=False)
    assert rate_limit(profile)(view) is view


def test_app_limits_api_paths_only(make_config) -> None:
    config = make_config(app_env="production", rate_limit={"api_limit": 2})
    app = create_app(config)

    with app.test_client() as client:
        api = [client.get("/api/config") for _ in range(3)]
        health = [client.get("/health") for _ in range(3)]

    assert [r.status_code for r in api] == [200, 200, 429]
    assert [r.headers["RateLimit-Remaining"] for r in api] == ["1", "0", "0"]
    assert api[0].headers["RateLimit-Limit"] == "2"
    assert int(api[2].headers["Retry-After"]) >= 1
    assert [r.status_code for r in health] == [200, 200, 200]
    assert "RateLimit-Limit" not in health[0].headers


def test_app_ignores_forwarded_for_without_trusted_proxy(make_config) -> None:
    config = make_config(app_env="production", rate_limit={"api_limit": 2})
    app = create_app(config)

    with app.test_client() as client:
        statuses = [
            client.get("/api/config", headers={"X-Forwarded-For": f"198.51.100.{i}"}).status_code
            for i in range(20)
        ]

    assert statuses[:2] == [200, 200]
    assert set(statuses[2:]) == {429}


def test_app_keys_on_forwarded_for_behind_trusted_proxy(make_config) -> None:
    config = make_config(app_env="production", trusted_proxy_hops=1, rate_limit={"api_limit": 1})
    app = create_app(config)

    with app.test_client() as client:
        first = client.get("/api/config", headers={"X-Forwarded-For": "198.51.100.1"})
        repeat = client.get("/api/config", headers={"X-Forwarded-For": "198.51.100.1"})
        other = client.get("/api/config", headers={"X-Forwarded-For": "198.51.100.2"})

    assert [first.status_code, repeat.status_code, other.status_code] == [200, 429, 200]
