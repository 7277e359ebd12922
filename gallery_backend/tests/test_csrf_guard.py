from __future__ import annotations

import re

import pytest

from gallery_backend.shared.errors import CsrfInvalidError, CsrfMissingError
from gallery_backend.shared.middleware.csrf import (
    CSRF_COOKIE_NAME,
    CSRF_HEADER_NAME,
    CsrfGuard,
    generate_csrf_token,
)

HEX_64 = re.compile(r"^[0-9a-f]{64}$")


def test_generated_token_is_64_hex_chars() -> None:
    assert HEX_64.match(generate_csrf_token())


def test_tokens_do_not_repeat() -> None:
    tokens = {generate_csrf_token() for _ in range(10_000)}
    assert len(tokens) == 10_000


@pytest.mark.parametrize("cookie", [None, ""])
def test_token_issued_when_cookie_absent(cookie: str | None) -> None:
    token = CsrfGuard(production=True).token_to_issue(cookie)
    assert token is not None and HEX_64.match(token)


def test_no_token_issued_when_cookie_present() -> None:
    assert CsrfGuard(production=False).token_to_issue("a" * 64) is None


def test_cookie_options_production() -> None:
    assert CsrfGuard(production=True).cookie_options() == {
        "httponly": False,
        "secure": True,
        "samesite": "Strict",
        "max_age": 86400,
        "path": "/",
    }


def test_cookie_options_development() -> None:
    options = CsrfGuard(production=False).cookie_options()
    assert options["secure"] is False
    assert options["samesite"] == "Lax"
    assert options["httponly"] is False


def test_strict_cookie_options_outside_production() -> None:
    options = CsrfGuard(production=False).cookie_options(strict=True)
    assert options["samesite"] == "Strict"
    assert options["secure"] is False


@pytest.mark.parametrize("method", ["GET", "HEAD", "OPTIONS", "get"])
def test_safe_methods_are_never_checked(method: str) -> None:
    CsrfGuard(production=True).check(method, None, None)


@pytest.mark.parametrize("method", ["POST", "PUT", "PATCH", "DELETE"])
def test_matching_tokens_pass_in_production(method: str) -> None:
    token = generate_csrf_token()
    CsrfGuard(production=True).check(method, token, token)


@pytest.mark.parametrize(
    ("cookie", "header"),
    [(None, "abc"), ("abc", None), (None, None), ("", "abc"), ("abc", "")],
)
def test_missing_token_in_production(cookie: str | None, header: str | None) -> None:
    with pytest.raises(CsrfMissingError) as exc_info:
        CsrfGuard(production=True).check("POST", cookie, header)
    assert exc_info.value.code == "CSRF_MISSING"
    assert exc_info.value.status == 403


def test_mismatched_tokens_in_production() -> None:
    with pytest.raises(CsrfInvalidError) as exc_info:
        CsrfGuard(production=True).check("PUT", generate_csrf_token(), generate_csrf_token())
    assert exc_info.value.code == "CSRF_INVALID"


def test_comparison_is_exact() -> None:
    token = generate_csrf_token()
    with pytest.raises(CsrfInvalidError):
        CsrfGuard(production=True).check("POST", token, token.upper())
    with pytest.raises(CsrfInvalidError):
        CsrfGuard(production=True).check("POST", token, f" {token}")


def test_validation_bypassed_outside_production() -> None:
    guard = CsrfGuard(production=False)
    guard.check("POST", None, None)
    guard.check("DELETE", "one", "two")


def test_from_config_reads_mode_and_names(make_config) -> None:
    guard = CsrfGuard.from_config(make_config(app_env="production"))
    assert guard.production is True
    assert guard.cookie_name == CSRF_COOKIE_NAME
    assert guard.header_name == CSRF_HEADER_NAME

    assert CsrfGuard.from_config(make_config(app_env="test")).production is False
