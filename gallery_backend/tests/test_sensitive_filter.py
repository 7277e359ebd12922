from __future__ import annotations

from gallery_backend.shared.logging import sanitize_message
from gallery_backend.shared.logging.sensitive_filter import sanitize_record

TOKEN = "9f86d081884c7d659a2feaa0c55ad015a3bf4f1b2b0b822cd15d6c15b0f00a08"


def test_csrf_header_value_redacted() -> None:
    message = sanitize_message(f"headers X-XSRF-TOKEN: {TOKEN}")

    assert TOKEN not in message
    assert "***REDACTED***" in message


def test_recaptcha_token_redacted() -> None:
    assert TOKEN not in sanitize_message(f"recaptchaToken={TOKEN}")


def test_email_masked() -> None:
    assert sanitize_message("contact from ada@gallery.example") == "contact from ***@gallery.example"


def test_plain_message_untouched() -> None:
    message = "GET /api/artworks -> 200 in 3.1 ms"
    assert sanitize_message(message) == message


def test_record_filter_rewrites_message() -> None:
    record = {"message": f"password={'hunter2hunter2'}"}

    assert sanitize_record(record) is True
    assert "hunter2" not in record["message"]
