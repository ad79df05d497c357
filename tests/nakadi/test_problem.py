"""Tests for problem payload decoding."""

import json
from unittest.mock import AsyncMock, Mock

import aiohttp
import pytest

from core.errors.exceptions import ErrorCategory, ProblemError
from nakadi.models import Problem
from nakadi.problem import (
    SNIPPET_LENGTH,
    decode_problem,
    problem_from_payload,
    problem_from_response,
)


class TestDecodeProblem:

    def test_detail_in_message(self):
        err = decode_problem(400, b'{"detail": "foo problem detail"}')

        assert isinstance(err, ProblemError)
        assert "foo problem detail" in str(err)
        assert err.status == 400
        assert err.detail == "foo problem detail"
        assert isinstance(err.problem, Problem)

    def test_full_problem_document(self):
        body = json.dumps(
            {
                "type": "http://httpstatus.es/422",
                "title": "Unprocessable Entity",
                "status": 422,
                "detail": "event type does not exist",
                "instance": "/subscriptions",
            }
        )
        err = decode_problem(422, body)

        assert err.message == "event type does not exist (status 422, Unprocessable Entity)"
        assert err.problem.type == "http://httpstatus.es/422"
        assert err.problem.instance == "/subscriptions"

    def test_title_only_problem(self):
        err = decode_problem(403, b'{"title": "Forbidden", "status": 403}')

        assert err.message == "Forbidden (status 403)"
        assert err.detail is None
        assert err.problem.title == "Forbidden"

    def test_non_json_body_falls_back_to_snippet(self):
        err = decode_problem(502, b"<html>Bad Gateway</html>")

        assert err.problem is None
        assert err.message == "HTTP 502: <html>Bad Gateway</html>"
        assert err.category == ErrorCategory.TRANSIENT

    def test_json_without_problem_fields_falls_back(self):
        err = decode_problem(400, b'{"error": "nope"}')

        assert err.problem is None
        assert "HTTP 400" in err.message
        assert '"error": "nope"' in err.message

    def test_json_array_falls_back(self):
        err = decode_problem(500, b"[1, 2, 3]")

        assert err.problem is None
        assert err.message == "HTTP 500: [1, 2, 3]"

    def test_snippet_is_truncated(self):
        err = decode_problem(500, b"x" * (SNIPPET_LENGTH * 3))

        assert err.message == "HTTP 500: " + "x" * SNIPPET_LENGTH + "..."

    def test_empty_body(self):
        err = decode_problem(404, b"")

        assert err.message == "HTTP 404"
        assert err.category == ErrorCategory.PERMANENT

    def test_invalid_utf8_does_not_raise(self):
        err = decode_problem(500, b"\xff\xfe broken")

        assert err.status == 500
        assert "broken" in err.message

    def test_url_kept_in_context(self):
        err = decode_problem(401, b"{}", url="http://broker/subscriptions")

        assert err.context == {"http_status": 401, "http_url": "http://broker/subscriptions"}
        assert err.category == ErrorCategory.AUTH


class TestProblemFromPayload:

    def test_problem_dict(self):
        err = problem_from_payload(422, {"detail": "schema mismatch"})

        assert err.detail == "schema mismatch"
        assert err.status == 422

    def test_unexpected_payload(self):
        err = problem_from_payload(422, None)

        assert err.problem is None
        assert err.message == "HTTP 422: null"


class TestProblemFromResponse:

    def _response(self, status, body=None, read_error=None):
        response = Mock(spec=aiohttp.ClientResponse)
        response.status = status
        response.url = "http://broker/subscriptions"
        response.read = AsyncMock(return_value=body, side_effect=read_error)
        return response

    @pytest.mark.asyncio
    async def test_reads_and_decodes_body(self):
        response = self._response(400, b'{"detail": "foo problem detail"}')

        err = await problem_from_response(response)

        assert err.detail == "foo problem detail"
        assert err.context["http_url"] == "http://broker/subscriptions"

    @pytest.mark.asyncio
    async def test_unreadable_body_still_reports_status(self):
        response = self._response(503, read_error=aiohttp.ClientPayloadError("truncated"))

        err = await problem_from_response(response)

        assert err.status == 503
        assert err.message == "HTTP 503"
