#!/usr/bin/env python3
"""
Up API HTTP Transport

Builds authenticated requests, applies query parameters, enforces a bounded
timeout, classifies HTTP failures and parses JSON bodies. Blocking `requests`
calls run in a worker thread so every request is an await point for callers.
"""

import asyncio
import logging
from typing import Any

import requests

from .errors import TransportError, classify_status
from .models import parse_body

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.up.com.au/api/v1"
DEFAULT_TIMEOUT = 30


def _error_detail(response: requests.Response) -> tuple[str | None, list[dict[str, Any]]]:
    """Pull `errors[].detail` out of a JSON:API error body, tolerating non-JSON bodies."""
    try:
        body = response.json()
    except ValueError:
        return None, []

    errors = body.get("errors") if isinstance(body, dict) else None
    if not isinstance(errors, list):
        return None, []

    errors = [e for e in errors if isinstance(e, dict)]
    details = [str(e["detail"]) for e in errors if e.get("detail")]
    return ("; ".join(details) or None), errors


class UpHttpTransport:
    """
    Thin request layer over a `requests.Session`.

    Paths are joined onto the base URL; absolute URLs (pagination links) are
    used unchanged and never get extra query parameters.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ):
        """
        Initialize transport.

        Args:
            base_url: API root including the version prefix
            timeout: Per-request timeout in seconds
            session: Optional session (tests inject a fake one)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def url_for(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    async def request(
        self,
        method: str,
        path: str,
        token: str,
        params: dict[str, str] | None = None,
        json_body: Any = None,
    ) -> Any:
        """
        Perform one authenticated request.

        Args:
            method: HTTP method
            path: Endpoint path (relative to base URL) or absolute pagination URL
            token: Bearer token
            params: Query parameters
            json_body: JSON-serializable request body

        Returns:
            Parsed JSON body, or None for empty responses (204)

        Raises:
            TransportError: Connection failure or timeout
            HttpError: Non-2xx status (see classify_status)
            DecodeError: 2xx response whose body is not JSON
        """
        return await asyncio.to_thread(self._send, method, path, token, params, json_body)

    def _send(
        self,
        method: str,
        path: str,
        token: str,
        params: dict[str, str] | None,
        json_body: Any,
    ) -> Any:
        url = self.url_for(path)
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        logger.debug(f"{method} {url} params={params}")
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"{method} {url} failed: {e}")
            raise TransportError(e) from e

        status = response.status_code
        if 200 <= status < 300:
            if status == 204 or not response.content:
                return None
            return parse_body(response.content)

        detail, errors = _error_detail(response)
        logger.warning(f"{method} {url} returned HTTP {status}: {detail or 'no detail'}")
        raise classify_status(status, detail, errors)
