"""
Problem payload decoding for non-2xx broker responses.

The broker reports failures as problem documents (``{"type", "title",
"status", "detail", "instance"}``). Well-formed problems become a
ProblemError whose message carries the detail verbatim; anything else
falls back to the status code and a truncated body snippet.
"""

import json
import logging
from typing import Any

import aiohttp
from pydantic import ValidationError

from core.errors.exceptions import ProblemError
from nakadi.models import Problem

logger = logging.getLogger(__name__)

# Max characters of a non-problem body kept in error messages
SNIPPET_LENGTH = 200


def _snippet(text: str) -> str:
    text = text.strip()
    if len(text) > SNIPPET_LENGTH:
        return text[:SNIPPET_LENGTH] + "..."
    return text


def _describe(problem: Problem, status: int) -> str:
    headline = problem.detail or problem.title or ""
    qualifiers = [f"status {problem.status or status}"]
    if problem.title and problem.title != headline:
        qualifiers.append(problem.title)
    return f"{headline} ({', '.join(qualifiers)})"


def _build_error(status: int, payload: Any, text: str, url: str | None) -> ProblemError:
    context = {"http_status": status, "http_url": url} if url else {"http_status": status}

    problem = None
    if isinstance(payload, dict):
        try:
            problem = Problem.model_validate(payload)
        except ValidationError:
            problem = None

    if problem is not None and (problem.detail or problem.title):
        return ProblemError(_describe(problem, status), status=status, problem=problem, context=context)

    snippet = _snippet(text)
    message = f"HTTP {status}: {snippet}" if snippet else f"HTTP {status}"
    return ProblemError(message, status=status, context=context)


def decode_problem(status: int, body: bytes | str, url: str | None = None) -> ProblemError:
    """
    Build the error for a non-2xx response from its status and raw body.

    Args:
        status: HTTP status code of the response
        body: Raw response body
        url: Request URL, kept in the error context for diagnostics

    Returns:
        ProblemError with ``problem`` set when the body was a problem document
    """
    text = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body
    try:
        payload = json.loads(text)
    except ValueError:
        payload = None
    return _build_error(status, payload, text, url)


def problem_from_payload(status: int, payload: Any, url: str | None = None) -> ProblemError:
    """Same as decode_problem for a body that was already parsed as JSON."""
    return _build_error(status, payload, json.dumps(payload, default=str), url)


async def problem_from_response(response: aiohttp.ClientResponse) -> ProblemError:
    """Read the body of a non-2xx aiohttp response and decode it."""
    url = str(response.url)
    try:
        body = await response.read()
    except (aiohttp.ClientError, TimeoutError) as e:
        logger.warning(
            "Unable to read error response body",
            extra={"http_status": response.status, "http_url": url, "error": str(e)},
        )
        body = b""

    return decode_problem(response.status, body, url=url)


__all__ = [
    "SNIPPET_LENGTH",
    "decode_problem",
    "problem_from_payload",
    "problem_from_response",
]
