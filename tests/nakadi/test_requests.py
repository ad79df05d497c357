"""
Tests for the single request/response executor.

Uses a mocked HttpTransport whose request() returns an async context
manager yielding a mocked aiohttp response.
"""

import json
import logging
from unittest.mock import AsyncMock, Mock, patch

import aiohttp
import pytest

from core.errors.exceptions import (
    ConfigurationError,
    ConnectivityError,
    DecodeError,
    ProblemError,
    TokenError,
)
from nakadi.requests import request_json
from nakadi.transport import HttpTransport

URL = "http://broker:8080/subscriptions"


def _response(status=200, body=b""):
    response = Mock(spec=aiohttp.ClientResponse)
    response.status = status
    response.url = URL
    response.read = AsyncMock(return_value=body)
    return response


def _transport(response=None, error=None):
    ctx = AsyncMock()
    ctx.__aenter__ = AsyncMock(return_value=response, side_effect=error)
    ctx.__aexit__ = AsyncMock(return_value=None)
    transport = Mock(spec=HttpTransport)
    transport.request = Mock(return_value=ctx)
    return transport


class TestRequestJson:

    @pytest.mark.asyncio
    async def test_returns_status_and_parsed_body(self):
        transport = _transport(_response(201, b'{"id": "sub-1"}'))

        status, data = await request_json(transport, "POST", URL, payload={"a": 1})

        assert status == 201
        assert data == {"id": "sub-1"}

    @pytest.mark.asyncio
    async def test_sends_json_payload_with_headers(self):
        transport = _transport(_response(200, b"{}"))

        await request_json(transport, "POST", URL, payload={"owning_application": "nakadi-client"})

        method, url = transport.request.call_args[0]
        kwargs = transport.request.call_args[1]
        assert (method, url) == ("POST", URL)
        assert json.loads(kwargs["data"]) == {"owning_application": "nakadi-client"}
        assert kwargs["headers"]["Content-Type"] == "application/json"
        assert kwargs["headers"]["Accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_no_payload_sends_no_body(self):
        transport = _transport(_response(200, b"{}"))

        await request_json(transport, "GET", URL)

        kwargs = transport.request.call_args[1]
        assert kwargs["data"] is None
        assert "Content-Type" not in kwargs["headers"]

    @pytest.mark.asyncio
    async def test_empty_body_is_none(self):
        transport = _transport(_response(200, b""))

        status, data = await request_json(transport, "POST", URL, payload=[{"x": 1}])

        assert status == 200
        assert data is None

    @pytest.mark.asyncio
    async def test_invalid_json_is_decode_error(self):
        transport = _transport(_response(200, b"{not json"))

        with pytest.raises(DecodeError, match="Invalid JSON"):
            await request_json(transport, "POST", URL)

    @pytest.mark.asyncio
    async def test_without_provider_no_authorization_header(self):
        transport = _transport(_response(200, b"{}"))

        await request_json(transport, "POST", URL)

        assert "Authorization" not in transport.request.call_args[1]["headers"]

    @pytest.mark.asyncio
    async def test_with_provider_sets_bearer_header(self):
        transport = _transport(_response(200, b"{}"))

        await request_json(transport, "POST", URL, token_provider=lambda: "t0k3n")

        assert transport.request.call_args[1]["headers"]["Authorization"] == "Bearer t0k3n"

    @pytest.mark.asyncio
    async def test_token_failure_sends_nothing(self):
        transport = _transport(_response(200, b"{}"))

        with pytest.raises(TokenError):
            await request_json(transport, "POST", URL, token_provider=Mock(side_effect=RuntimeError("idp")))

        transport.request.assert_not_called()

    @pytest.mark.asyncio
    async def test_problem_response_raises_problem_error(self):
        transport = _transport(_response(400, b'{"detail": "foo problem detail"}'))

        with pytest.raises(ProblemError, match="foo problem detail") as exc_info:
            await request_json(transport, "POST", URL)

        assert exc_info.value.status == 400

    @pytest.mark.asyncio
    async def test_accepted_status_is_returned(self):
        body = b'[{"publishing_status": "failed"}]'
        transport = _transport(_response(422, body))

        status, data = await request_json(transport, "POST", URL, accept=(207, 422))

        assert status == 422
        assert data == [{"publishing_status": "failed"}]

    @pytest.mark.asyncio
    async def test_accepted_status_with_non_json_body_is_problem(self):
        transport = _transport(_response(422, b"Unprocessable"))

        with pytest.raises(ProblemError, match="HTTP 422: Unprocessable"):
            await request_json(transport, "POST", URL, accept=(207, 422))

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            aiohttp.ClientConnectionError("Connection refused"),
            aiohttp.ServerDisconnectedError(),
            TimeoutError(),
            OSError("Network is unreachable"),
        ],
    )
    async def test_transport_failure_is_connectivity_error(self, error):
        transport = _transport(error=error)

        with patch("nakadi.requests.problem_from_response", new_callable=AsyncMock) as mock_problem:
            with pytest.raises(ConnectivityError, match="Connection error: POST") as exc_info:
                await request_json(transport, "POST", URL)

        assert exc_info.value.cause is error
        assert exc_info.value.is_retryable is True
        mock_problem.assert_not_called()

    @pytest.mark.asyncio
    async def test_connection_error_log_carries_category(self, caplog):
        transport = _transport(error=aiohttp.ServerDisconnectedError())

        with caplog.at_level(logging.ERROR, logger="nakadi.requests"):
            with pytest.raises(ConnectivityError):
                await request_json(transport, "POST", URL)

        record = next(r for r in caplog.records if r.getMessage() == "API connection error")
        assert record.error_category == "transient"
        assert record.is_retryable is True

    @pytest.mark.asyncio
    async def test_configuration_error_propagates(self):
        transport = _transport(_response(200, b"{}"))

        async def _failing_auth(provider, headers):
            raise ConfigurationError("no token func provided")

        with patch("nakadi.requests.apply_auth", side_effect=_failing_auth):
            with pytest.raises(ConfigurationError):
                await request_json(transport, "POST", URL)

        transport.request.assert_not_called()
