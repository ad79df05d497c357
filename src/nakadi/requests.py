"""
Single authenticated request/response exchange with the broker.

Used for control-plane operations (subscription creation, publishing).
Performs no retries: every failure is raised to the caller as a typed error.
"""

import json
import logging
import time
from collections.abc import Container
from typing import Any

import aiohttp

from core.errors.exceptions import ConnectivityError, DecodeError, classify_exception, is_retryable_error
from core.types import TokenProvider
from core.utils.json_serializers import json_serializer
from nakadi.auth import apply_auth
from nakadi.problem import decode_problem, problem_from_response
from nakadi.transport import HttpTransport

logger = logging.getLogger(__name__)

# Requests slower than this are logged at INFO instead of DEBUG
SLOW_REQUEST_SECONDS = 2.0


def _parse_body(body: bytes, url: str, status: int) -> Any:
    if not body.strip():
        return None
    try:
        return json.loads(body)
    except ValueError as e:
        raise DecodeError(
            f"Invalid JSON in response from {url}",
            cause=e,
            context={"http_status": status, "http_url": url},
        ) from e


async def request_json(
    transport: HttpTransport,
    method: str,
    url: str,
    token_provider: TokenProvider | None = None,
    payload: Any = None,
    accept: Container[int] = (),
) -> tuple[int, Any]:
    """
    Send one JSON request and return the status with the decoded body.

    Args:
        transport: Bounded-timeout control-plane transport
        method: HTTP method
        url: Full request URL
        token_provider: Optional token provider; the request is unauthenticated without one
        payload: JSON-serializable body (pydantic models and datetimes allowed)
        accept: Non-2xx statuses handed back to the caller instead of raised

    Returns:
        Tuple of (status, parsed JSON body or None when the body is empty)

    Raises:
        ConfigurationError/TokenError: Authentication failed (no request sent)
        ConnectivityError: Transport failure before a response was received
        ProblemError: Non-2xx status not listed in ``accept``
        DecodeError: Response body is not valid JSON
    """
    headers = {"Accept": "application/json"}
    await apply_auth(token_provider, headers)

    data = None
    if payload is not None:
        data = json.dumps(payload, default=json_serializer)
        headers["Content-Type"] = "application/json"

    logger.debug(
        "API request starting",
        extra={"http_method": method, "http_url": url, "has_body": data is not None},
    )

    start_time = time.monotonic()
    try:
        async with transport.request(method, url, data=data, headers=headers) as response:
            duration = time.monotonic() - start_time
            status = response.status

            if not 200 <= status < 300 and status not in accept:
                error = await problem_from_response(response)
                logger.warning(
                    "API request failed",
                    extra={
                        "http_method": method,
                        "http_url": url,
                        "http_status": status,
                        "problem_detail": error.detail,
                        "error_category": error.category.value,
                        "is_retryable": error.is_retryable,
                        "duration_seconds": round(duration, 3),
                    },
                )
                raise error

            body = await response.read()

    except (aiohttp.ClientError, TimeoutError, OSError) as e:
        duration = time.monotonic() - start_time
        logger.error(
            "API connection error",
            exc_info=True,
            extra={
                "http_method": method,
                "http_url": url,
                "duration_seconds": round(duration, 3),
                "error_category": classify_exception(e).value,
                "is_retryable": is_retryable_error(e),
            },
        )
        raise ConnectivityError(f"Connection error: {method} {url}", cause=e) from e

    log_level = logging.INFO if duration > SLOW_REQUEST_SECONDS else logging.DEBUG
    log_msg = "Slow API request" if duration > SLOW_REQUEST_SECONDS else "API request succeeded"
    logger.log(
        log_level,
        log_msg,
        extra={
            "http_method": method,
            "http_url": url,
            "http_status": status,
            "duration_seconds": round(duration, 3),
        },
    )

    if not 200 <= status < 300:
        # Accepted error statuses must still carry JSON, anything else is a problem
        try:
            return status, json.loads(body)
        except ValueError:
            raise decode_problem(status, body, url=url) from None

    return status, _parse_body(body, url, status)


__all__ = [
    "SLOW_REQUEST_SECONDS",
    "request_json",
]
