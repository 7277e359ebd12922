# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from flask import Flask, Response
from flask_cors import CORS
from werkzeug.middleware.proxy_fix import ProxyFix

from gallery_backend.interfaces.http.controllers.misc_controller import MiscController
from gallery_backend.shared.config import AppConfig, load_config
from gallery_backend.shared.logging import logger, setup_logging
from gallery_backend.shared.middleware.csrf import CsrfGuard, configure_csrf
from gallery_backend.shared.middleware.error_handler import configure_error_handling
from gallery_backend.shared.middleware.rate_limit import configure_rate_limiting
from gallery_backend.shared.middleware.recaptcha import RecaptchaVerifier
from gallery_backend.shared.middleware.request_logger import configure_request_logging


def _configure_security_headers(app: Flask, config: AppConfig) -> None:
    @app.after_request
    def _add_security_headers(resp: Response) -> Response:
        resp.headers.setdefault("X-Frame-Options", "DENY")
        resp.headers.setdefault("Referrer-Policy", "no-referrer")
        resp.headers.setdefault("X-Content-Type-Options", "nosniff")
        resp.headers.setdefault("Cross-Origin-Resource-Policy", "same-origin")
        resp.headers.setdefault("Cross-Origin-Opener-Policy", "same-origin")
        resp.headers.setdefault("X-Permitted-Cross-Domain-Policies", "none")

        if config.security.enable_hsts:
            resp.headers.setdefault(
                "Strict-Transport-Security",
                "max-age=31536000; includeSubDomains; preload",
            )

        return resp


def create_app(config: AppConfig | None = None) -> Flask:
    config = config or load_config()
    setup_logging(debug_mode=config.debug_logging)

    app = Flask(__name__)
    app.config.update(SECRET_KEY=config.secret_key)
    if config.trusted_proxy_hops:
        hops = config.trusted_proxy_hops
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=hops, x_proto=hops)  # type: ignore[method-assign]
    app.extensions["gallery_config"] = config

    configure_error_handling(app, config)
    configure_request_logging(app, config)
    configure_rate_limiting(app, config)

    if config.security.enable_csrf:
        guard = CsrfGuard.from_config(config)
        configure_csrf(app, guard)
        app.extensions["csrf_guard"] = guard
    else:
        logger.warning("csrf: protection disabled by configuration")

    app.extensions["recaptcha_verifier"] = RecaptchaVerifier.from_config(config)

    CORS(
        app,
        resources={r"/api/*": {"origins": [config.client_url]}},
        supports_credentials=True,
        methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
        allow_headers=["Content-Type", "Authorization", config.security.csrf_header_name, "X-Recaptcha-Token"],
        expose_headers=[
            "RateLimit-Limit",
            "RateLimit-Remaining",
            "RateLimit-Reset",
            "Retry-After",
            "X-Request-ID",
        ],
    )
    _configure_security_headers(app, config)

    app.register_blueprint(MiscController(config).as_blueprint())

    for warning in config.security_warnings():
        logger.warning(f"config: {warning}")

    logger.info(f"Flask app initialized env={config.app_env}")
    return app
