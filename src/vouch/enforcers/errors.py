"""Typed failures that abort an enforcement call.

These are distinct from a low-quality answer: a vendor that returns
garbage still produces a StructuredAnswer, while a vendor that cannot be
reached or rejects the call raises one of these for the caller to map to
an HTTP status.
"""

from __future__ import annotations

# Exception class names (across vendor SDKs and httpx) that mean the
# request never got a response.
TRANSPORT_ERROR_NAMES: frozenset[str] = frozenset(
    {
        "APIConnectionError",
        "APITimeoutError",
        "ConnectError",
        "ConnectTimeout",
        "ReadTimeout",
        "ReadError",
        "RemoteProtocolError",
    }
)


class EnforcerError(Exception):
    """Base class for enforcement failures surfaced to the caller."""

    def __init__(self, message: str, vendor: str | None = None) -> None:
        self.vendor = vendor
        super().__init__(message)


class CredentialError(EnforcerError):
    """Raised when no usable API key is available for a vendor."""


class UpstreamError(EnforcerError):
    """Raised when the vendor answers with an error.

    Attributes:
        status_code: HTTP-like status reported by the vendor, if any.
    """

    def __init__(
        self,
        message: str,
        vendor: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self.status_code = status_code
        super().__init__(message, vendor)


class TransportError(EnforcerError):
    """Raised when the vendor could not be reached (network, timeout)."""


def status_of(exc: BaseException) -> int | None:
    """Return the HTTP-like status carried by a vendor SDK exception."""
    for attr in ("status_code", "status", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def is_transport_failure(exc: BaseException) -> bool:
    if isinstance(exc, (TimeoutError, ConnectionError)):
        return True
    return any(cls.__name__ in TRANSPORT_ERROR_NAMES for cls in type(exc).__mro__)


def classify_vendor_error(exc: Exception, vendor: str) -> EnforcerError:
    """Translate a raw vendor SDK exception into the gateway taxonomy."""
    if isinstance(exc, EnforcerError):
        return exc

    if is_transport_failure(exc):
        return TransportError(
            f"{vendor} transport error: {type(exc).__name__}", vendor=vendor
        )

    status = status_of(exc)
    if status in (401, 403):
        reason = "authentication failed"
    elif status == 429:
        reason = "rate limit exceeded"
    elif status is not None and status >= 500:
        reason = "server error"
    else:
        reason = "request failed"
    detail = f" (status {status})" if status is not None else ""
    return UpstreamError(
        f"{vendor} {reason}{detail}: {type(exc).__name__}",
        vendor=vendor,
        status_code=status,
    )
