#!/usr/bin/env python3
"""Tests for the Up API HTTP transport."""

import pytest
import requests

from tests.fixtures.fake_http import FakeResponse, FakeSession

from upbudget.up.errors import (
    ClientError,
    DecodeError,
    Forbidden,
    RateLimited,
    ServerError,
    TransportError,
    Unauthorized,
    UnexpectedStatus,
    classify_status,
)
from upbudget.up.http import UpHttpTransport

BASE_URL = "https://api.up.test/api/v1"


def make_transport(*responses) -> tuple[UpHttpTransport, FakeSession]:
    session = FakeSession(*responses)
    return UpHttpTransport(base_url=BASE_URL + "/", timeout=7, session=session), session


class TestClassifyStatus:
    """Test status code classification."""

    @pytest.mark.up
    @pytest.mark.parametrize(
        "status,error_cls",
        [
            (401, Unauthorized),
            (403, Forbidden),
            (429, RateLimited),
            (400, ClientError),
            (404, ClientError),
            (422, ClientError),
            (500, ServerError),
            (503, ServerError),
            (302, UnexpectedStatus),
            (100, UnexpectedStatus),
        ],
    )
    def test_classification(self, status, error_cls):
        error = classify_status(status, "detail")
        assert type(error) is error_cls
        assert error.status == status
        assert "detail" in str(error)


class TestRequests:
    """Test request construction and response handling."""

    @pytest.mark.up
    @pytest.mark.asyncio
    async def test_builds_authenticated_request(self):
        transport, session = make_transport(FakeResponse(200, {"meta": {"id": "abc"}}))

        body = await transport.request("GET", "/util/ping", "tok-1", params={"page[size]": "30"})

        assert body == {"meta": {"id": "abc"}}
        sent = session.requests[0]
        assert sent.method == "GET"
        assert sent.url == f"{BASE_URL}/util/ping"
        assert sent.params == {"page[size]": "30"}
        assert sent.headers["Authorization"] == "Bearer tok-1"
        assert sent.headers["Accept"] == "application/json"
        assert sent.timeout == 7

    @pytest.mark.up
    @pytest.mark.asyncio
    async def test_absolute_url_used_unchanged(self):
        transport, session = make_transport(FakeResponse(200, {"data": []}))
        url = f"{BASE_URL}/transactions?page%5Bafter%5D=xyz"

        await transport.request("GET", url, "tok-1")

        assert session.requests[0].url == url
        assert session.requests[0].params is None

    @pytest.mark.up
    @pytest.mark.asyncio
    async def test_no_content(self):
        transport, session = make_transport(FakeResponse(204))

        result = await transport.request("DELETE", "/webhooks/wh-1", "tok-1")

        assert result is None
        assert session.requests[0].method == "DELETE"

    @pytest.mark.up
    @pytest.mark.asyncio
    async def test_json_body_sent(self):
        transport, session = make_transport(FakeResponse(204))
        body = {"data": {"type": "categories", "id": "groceries"}}

        await transport.request("PATCH", "/transactions/t/relationships/category", "tok-1", json_body=body)

        assert session.requests[0].json == body

    @pytest.mark.up
    @pytest.mark.asyncio
    async def test_error_detail_extracted(self):
        error_body = {"errors": [{"status": "401", "title": "Not Authorized", "detail": "Token is invalid"}]}
        transport, _ = make_transport(FakeResponse(401, error_body))

        with pytest.raises(Unauthorized) as exc_info:
            await transport.request("GET", "/util/ping", "bad")

        assert exc_info.value.detail == "Token is invalid"
        assert exc_info.value.errors == error_body["errors"]

    @pytest.mark.up
    @pytest.mark.asyncio
    async def test_non_json_error_body(self):
        transport, _ = make_transport(FakeResponse(502, raw=b"<html>Bad Gateway</html>"))

        with pytest.raises(ServerError) as exc_info:
            await transport.request("GET", "/accounts", "tok-1")

        assert exc_info.value.status == 502
        assert exc_info.value.detail is None

    @pytest.mark.up
    @pytest.mark.asyncio
    async def test_timeout_is_transport_error(self):
        transport, _ = make_transport(requests.Timeout("read timed out"))

        with pytest.raises(TransportError) as exc_info:
            await transport.request("GET", "/accounts", "tok-1")

        assert isinstance(exc_info.value.cause, requests.Timeout)

    @pytest.mark.up
    @pytest.mark.asyncio
    async def test_success_with_invalid_json(self):
        transport, _ = make_transport(FakeResponse(200, raw=b"not json"))

        with pytest.raises(DecodeError):
            await transport.request("GET", "/accounts", "tok-1")
