"""Tests for vouch.enforcers.errors - vendor error classification."""

from __future__ import annotations

from vouch.enforcers.errors import (
    CredentialError,
    EnforcerError,
    TransportError,
    UpstreamError,
    classify_vendor_error,
    is_transport_failure,
    status_of,
)


class APITimeoutError(Exception):
    pass


class ReadTimeout(APITimeoutError):
    pass


def _with_status(status: int) -> Exception:
    exc = Exception("vendor said no")
    exc.status_code = status  # type: ignore[attr-defined]
    return exc


class TestStatusOf:
    def test_status_code_attribute(self):
        assert status_of(_with_status(503)) == 503

    def test_missing_status(self):
        assert status_of(ValueError("x")) is None

    def test_bool_is_not_a_status(self):
        exc = Exception("x")
        exc.status = True  # type: ignore[attr-defined]
        assert status_of(exc) is None


class TestIsTransportFailure:
    def test_builtin_timeout(self):
        assert is_transport_failure(TimeoutError()) is True

    def test_subclass_of_named_error(self):
        assert is_transport_failure(ReadTimeout()) is True

    def test_status_error_is_not_transport(self):
        assert is_transport_failure(_with_status(500)) is False


class TestClassifyVendorError:
    def test_auth_failure_is_upstream(self):
        err = classify_vendor_error(_with_status(401), "openai")
        assert isinstance(err, UpstreamError)
        assert err.status_code == 401
        assert "authentication failed" in str(err)
        assert err.vendor == "openai"

    def test_rate_limit(self):
        err = classify_vendor_error(_with_status(429), "anthropic")
        assert isinstance(err, UpstreamError)
        assert "rate limit" in str(err)

    def test_server_error(self):
        err = classify_vendor_error(_with_status(503), "gemini")
        assert isinstance(err, UpstreamError)
        assert "server error" in str(err)

    def test_transport(self):
        err = classify_vendor_error(APITimeoutError(), "deepseek")
        assert isinstance(err, TransportError)
        assert isinstance(err, EnforcerError)

    def test_unknown_error_without_status(self):
        err = classify_vendor_error(RuntimeError("boom"), "openai")
        assert isinstance(err, UpstreamError)
        assert err.status_code is None

    def test_enforcer_errors_pass_through(self):
        original = CredentialError("no key", vendor="openai")
        assert classify_vendor_error(original, "openai") is original
