#!/usr/bin/env python3
"""
Up API Error Taxonomy

Every failure surfaced by the API client is one of these classes, so callers
can branch on the classification (Unauthorized drives the retry policy).
"""

from typing import Any


class UpBankError(Exception):
    """Base class for Up API client failures."""


class TransportError(UpBankError):
    """The request never produced an HTTP response (connection failure, timeout)."""

    def __init__(self, cause: BaseException):
        super().__init__(f"Network request failed: {cause}")
        self.cause = cause


class DecodeError(UpBankError):
    """A response body could not be decoded into the expected shape."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Failed to decode response at {path or '<root>'}: {reason}")
        self.path = path
        self.reason = reason


class HttpError(UpBankError):
    """The API answered with a non-success status code."""

    def __init__(self, status: int, detail: str | None = None, errors: list[dict[str, Any]] | None = None):
        message = f"HTTP {status}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.status = status
        self.detail = detail
        self.errors = errors or []


class Unauthorized(HttpError):
    """401: the bearer token is missing, revoked or invalid."""

    def __init__(self, detail: str | None = None, errors: list[dict[str, Any]] | None = None):
        super().__init__(401, detail, errors)


class Forbidden(HttpError):
    """403: the token is valid but may not perform this request."""

    def __init__(self, detail: str | None = None, errors: list[dict[str, Any]] | None = None):
        super().__init__(403, detail, errors)


class RateLimited(HttpError):
    """429: too many requests."""

    def __init__(self, detail: str | None = None, errors: list[dict[str, Any]] | None = None):
        super().__init__(429, detail, errors)


class ClientError(HttpError):
    """Any other 4xx status."""


class ServerError(HttpError):
    """Any 5xx status."""


class UnexpectedStatus(HttpError):
    """A status outside the 2xx/4xx/5xx ranges (e.g. an unfollowed redirect)."""


def classify_status(status: int, detail: str | None = None, errors: list[dict[str, Any]] | None = None) -> HttpError:
    """
    Map an HTTP status code to its error class.

    Args:
        status: HTTP status code (must not be 2xx)
        detail: Human-readable detail extracted from the error body
        errors: Raw `errors` array from the JSON:API error body

    Returns:
        HttpError subclass instance for the status
    """
    if status == 401:
        return Unauthorized(detail, errors)
    if status == 403:
        return Forbidden(detail, errors)
    if status == 429:
        return RateLimited(detail, errors)
    if 400 <= status < 500:
        return ClientError(status, detail, errors)
    if 500 <= status < 600:
        return ServerError(status, detail, errors)
    return UnexpectedStatus(status, detail, errors)
