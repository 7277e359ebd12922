# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from datetime import UTC, datetime

from flask import Blueprint, jsonify

from gallery_backend.shared.config import AppConfig


class MiscController:
    def __init__(self, config: AppConfig) -> None:
        self._config = config

    def as_blueprint(self) -> Blueprint:
        bp = Blueprint("misc", __name__)
        bp.add_url_rule("/health", view_func=self.health, methods=["GET"])
        bp.add_url_rule("/api/config", view_func=self.public_config, methods=["GET"])
        return bp

    def health(self):
        return jsonify({"status": "ok", "timestamp": datetime.now(UTC).isoformat()})

    def public_config(self):
        recaptcha = self._config.recaptcha
        return jsonify(
            {
                "recaptchaSiteKey": recaptcha.site_key,
                "recaptchaEnabled": recaptcha.is_enabled(),
            }
        )
