# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from flask import Request, request


def client_ip(req: Request | None = None) -> str:
    """Peer address of the request.

    Forwarded headers are only honoured through ``ProxyFix`` in ``create_app``,
    which rewrites ``remote_addr`` for the configured number of trusted hops.
    """
    req = req or request
    return req.remote_addr or "unknown"
