# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from http import HTTPStatus

from flask import Flask, Response, g, jsonify, request
from werkzeug.exceptions import HTTPException, NotFound

from gallery_backend.shared.config import AppConfig, load_config
from gallery_backend.shared.logging import logger
from gallery_backend.shared.utils.http import client_ip

from .base import AppError


def handle_app_error(error: AppError) -> tuple[Response, HTTPStatus]:
    response = jsonify(error.to_dict())
    if error.headers:
        response.headers.update(error.headers)
    return response, error.status


def register_error_handler(
    app: Flask,
    config: AppConfig | None = None,
    *,
    default_status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR,
) -> None:
    config = config or load_config()
    debug_mode = config.debug_logging
    expose_errors = config.is_development()

    @app.errorhandler(AppError)
    def _handle_app_error(exc: AppError):
        logger.warning(f"Handled application error {exc.code} on {request.method} {request.path}")
        return handle_app_error(exc)

    @app.errorhandler(NotFound)
    def _handle_not_found(_exc: NotFound):
        return jsonify({"message": "Route not found"}), HTTPStatus.NOT_FOUND

    @app.errorhandler(HTTPException)
    def _handle_http(exc: HTTPException):
        return exc

    @app.errorhandler(Exception)
    def _handle_unexpected(exc: Exception):
        ip_address = client_ip()
        user_id = getattr(g, "user_id", None)

        if debug_mode:
            logger.exception(
                f"Unhandled exception: {request.method} {request.path} "
                f"from {ip_address}, user={user_id}, "
                f"query={dict(request.args)}, body_size={len(request.data)}"
            )
        else:
            logger.error(f"Error: {type(exc).__name__} on {request.method} {request.path}")

        payload: dict[str, object] = {"message": "Internal Server Error", "code": "INTERNAL_ERROR"}
        if expose_errors:
            payload["error"] = str(exc)
        return jsonify(payload), default_status
