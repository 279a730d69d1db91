"""Error types for realtyhost.

Caller-facing errors carry a stable ``code`` that maps one-to-one onto the
status strings returned by the callable HTTP surface. Provider errors are
raised by the HTTP clients and translated into caller-facing errors by the
domain manager.
"""

from __future__ import annotations

from typing import Any


class RealtyHostError(Exception):
    """Base class for all caller-facing errors."""

    code = "INTERNAL"
    http_status = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"status": self.code, "message": self.message}


class InvalidArgumentError(RealtyHostError):
    """Required caller input is missing or malformed."""

    code = "INVALID_ARGUMENT"
    http_status = 400


class UnauthenticatedError(RealtyHostError):
    """No verified caller identity."""

    code = "UNAUTHENTICATED"
    http_status = 401

    def __init__(self, message: str = "User must be logged in.") -> None:
        super().__init__(message)


class FailedPreconditionError(RealtyHostError):
    """Provider credentials are missing from the environment."""

    code = "FAILED_PRECONDITION"
    http_status = 400


class NotFoundError(RealtyHostError):
    """Referenced tenant or custom domain does not exist."""

    code = "NOT_FOUND"
    http_status = 404


class AbortedError(RealtyHostError):
    """A conflict was reported but could not be resolved."""

    code = "ABORTED"
    http_status = 409


class InternalError(RealtyHostError):
    """Unexpected provider or network failure."""

    code = "INTERNAL"
    http_status = 500


class ProviderError(Exception):
    """Raised by an external provider client."""

    provider = "provider"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class DNSProviderError(ProviderError):
    """The DNS provider rejected a request or could not be reached."""

    provider = "dns"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        errors: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(message, status_code)
        self.errors = errors or []

    @property
    def error_codes(self) -> set[int]:
        codes = set()
        for error in self.errors:
            try:
                codes.add(int(error.get("code")))
            except (TypeError, ValueError):
                continue
        return codes


class ConflictError(DNSProviderError):
    """The DNS resource already exists."""


class RegistrarError(ProviderError):
    """The hosting registrar rejected a request or could not be reached."""

    provider = "registrar"


class RegistrarConflictError(RegistrarError):
    """The domain is already attached to the hosting site."""


def format_error_for_user(error: BaseException) -> str:
    """Render an exception as a single line suitable for terminal output."""
    if isinstance(error, RealtyHostError | ProviderError):
        return error.message
    text = str(error).strip()
    if not text:
        return type(error).__name__
    return f"{type(error).__name__}: {text}"
