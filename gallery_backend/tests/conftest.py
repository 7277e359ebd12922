from __future__ import annotations

from collections.abc import Callable

import pytest
from flask import Flask, jsonify

from gallery_backend.app import create_app
from gallery_backend.shared.config import AppConfig

PROD_SECRET = "k3Jq9-prod-secret-value-for-tests-0001"


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.setenv("LOG_FILE", str(tmp_path / "app.log"))
    for name in ("APP_ENV", "SECRET_KEY", "TESTING_PHASE", "DEBUG_LOGGING", "CLIENT_URL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def make_config() -> Callable[..., AppConfig]:
    def _make(**overrides) -> AppConfig:
        if overrides.get("app_env") == "production":
            overrides.setdefault("secret_key", PROD_SECRET)
            overrides.setdefault("client_url", "https://gallery.example")
        return AppConfig(**overrides)

    return _make


def _add_write_routes(app: Flask) -> Flask:
    @app.post("/api/orders")
    def _create_order():
        return jsonify({"ok": True}), 201

    @app.delete("/api/orders/<int:order_id>")
    def _delete_order(order_id: int):
        return jsonify({"deleted": order_id})

    return app


@pytest.fixture()
def dev_app(make_config) -> Flask:
    return _add_write_routes(create_app(make_config(app_env="development")))


@pytest.fixture()
def prod_app(make_config) -> Flask:
    return _add_write_routes(create_app(make_config(app_env="production")))
