# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from .logger import (
    NO_REQUEST,
    current_request_id,
    is_valid_request_id,
    logger,
    reset_request_id,
    set_request_id,
    setup_logging,
)
from .sensitive_filter import sanitize_message

__all__ = [
    "NO_REQUEST",
    "current_request_id",
    "is_valid_request_id",
    "logger",
    "reset_request_id",
    "sanitize_message",
    "set_request_id",
    "setup_logging",
]
