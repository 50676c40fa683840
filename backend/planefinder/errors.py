"""
errors.py
~~~~~~~~~
Failure kinds surfaced by the service.

Each exception carries the HTTP status it maps to so ``main.py`` can render
every one of them through a single exception handler.
"""

from __future__ import annotations


class PlanefinderError(Exception):
    """Base class for every failure we report to a client."""

    status_code: int = 500

    def __init__(self, message: str, *, details: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body: dict = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(PlanefinderError):
    """Missing or malformed input; no upstream was contacted."""

    status_code = 400


class NotFoundError(PlanefinderError):
    """Upstream reachable, but nothing matched the request."""

    status_code = 404


class UpstreamError(PlanefinderError):
    """Transport failure or non-success response from a third party."""

    status_code = 502

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        status: int | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.provider = provider
        self.status = status

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["provider"] = self.provider
        return body


class ProviderNotConfigured(UpstreamError):
    """The selected provider needs credentials that were not supplied."""

    status_code = 503


class RateLimitExceeded(PlanefinderError):
    """Client exhausted its request window."""

    status_code = 429

    def __init__(self, *, limit: int, remaining: int, retry_after: int) -> None:
        super().__init__(
            "Too many requests",
            details=f"Rate limit exceeded. Please try again in {retry_after} seconds.",
        )
        self.limit = limit
        self.remaining = remaining
        self.retry_after = retry_after

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["retryAfter"] = self.retry_after
        return body


__all__ = [
    "NotFoundError",
    "PlanefinderError",
    "ProviderNotConfigured",
    "RateLimitExceeded",
    "UpstreamError",
    "ValidationError",
]
