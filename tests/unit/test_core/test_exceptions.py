# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tests for exception handling and secret redaction."""
from __future__ import annotations

import pytest

from vimsh.core.exceptions import (
    REDACTED,
    ConnectionURIError,
    Fatal,
    LoginError,
    TrustError,
    VimshError,
    VMwareError,
    format_exception_for_cli,
)


@pytest.mark.unit
class TestExceptionHierarchy:
    """Test exception class hierarchy and basic functionality."""

    def test_base_exception_creation(self):
        err = VimshError(code=1, msg="Test error")

        assert err.code == 1
        assert err.msg == "Test error"
        assert err.cause is None
        assert err.context == {}
        assert err.args == ("Test error",)

    def test_subclasses(self):
        assert isinstance(Fatal(code=2, msg="x"), VimshError)
        assert isinstance(TrustError(msg="x"), VMwareError)
        assert isinstance(LoginError(msg="x"), VMwareError)
        assert not isinstance(ConnectionURIError(msg="x"), VMwareError)

    def test_exception_with_context(self):
        err = VimshError(code=1, msg="Error").with_context(host="esx01", conn="esx01:1")

        assert err.context["host"] == "esx01"
        assert err.context["conn"] == "esx01:1"

    def test_with_context_after_context_cleared(self):
        err = VimshError(msg="x")
        err.context = None

        assert err.with_context(host="esx01").context == {"host": "esx01"}

    def test_code_is_clamped(self):
        assert VimshError(code=999).code == 255
        assert VimshError(code=-4).code == 1
        assert VimshError(code="nope").code == 1  # type: ignore[arg-type]

    def test_message_is_one_line(self):
        err = VimshError(msg="first\nsecond\r\n  third")
        assert err.msg == "first second third"

    def test_empty_message_uses_class_name(self):
        assert TrustError(msg="").msg == "TrustError"


@pytest.mark.security
class TestSecretRedaction:
    """Test that secrets are redacted from error contexts."""

    def test_password_redacted_in_context(self):
        err = LoginError(msg="Login failed", context={"user": "root", "password": "hunter2"})
        text = err.user_message(include_context=True)

        assert "hunter2" not in text
        assert REDACTED in text
        assert "user='root'" in text

    def test_to_dict_redacts(self):
        err = VMwareError(msg="x", context={"session_key": "abc", "host": "vc01"})
        d = err.to_dict()
        assert d["context"]["session_key"] == REDACTED
        assert d["context"]["host"] == "vc01"
        assert d["type"] == "VMwareError"


@pytest.mark.unit
class TestCliFormatting:
    def test_verbosity_levels(self):
        err = VMwareError(msg="Failed", cause=OSError("reset"), context={"host": "esx01"})

        assert format_exception_for_cli(err) == "Failed"
        assert format_exception_for_cli(err, verbose=1) == "Failed [host='esx01']"
        assert format_exception_for_cli(err, verbose=2) == "Failed [host='esx01'] (cause: OSError: reset)"

    def test_foreign_exception(self):
        assert format_exception_for_cli(ValueError("bad value")) == "bad value"
        assert format_exception_for_cli(ValueError("bad value"), verbose=2) == "ValueError: bad value"
        assert format_exception_for_cli(RuntimeError()) == "RuntimeError"
