#!/usr/bin/env python3
"""
Fake HTTP Session

Scripted replacement for requests.Session: responses are queued up front and
every request is recorded for assertions.
"""

import json
from dataclasses import dataclass
from typing import Any


class FakeResponse:
    """Minimal requests.Response stand-in."""

    def __init__(self, status_code: int = 200, body: Any = None, raw: bytes | None = None):
        self.status_code = status_code
        if raw is not None:
            self.content = raw
        elif body is None:
            self.content = b""
        else:
            self.content = json.dumps(body).encode("utf-8")

    def json(self) -> Any:
        return json.loads(self.content)


@dataclass
class RecordedRequest:
    method: str
    url: str
    params: dict[str, str] | None
    json: Any
    headers: dict[str, str]
    timeout: float | None


class FakeSession:
    """Returns queued responses (or raises queued exceptions) in order."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[RecordedRequest] = []

    def queue(self, *responses) -> "FakeSession":
        self.responses.extend(responses)
        return self

    def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        self.requests.append(RecordedRequest(method, url, params, json, headers or {}, timeout))
        if not self.responses:
            raise AssertionError(f"Unexpected request: {method} {url}")
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response
