"""
Bearer token authentication for outbound broker requests.

A token provider is any zero-argument callable returning the token, or a
coroutine function resolving to it. The provider is invoked for every
authenticated request; tokens are never cached here, so providers that talk
to an identity service should cache on their side.

Ready-made providers:
- static_token: a fixed token (tests, local brokers)
- token_from_env: read an environment variable on every call
- token_from_file: read a token file on every call (rotated by a sidecar)
"""

import inspect
import logging
import os
from collections.abc import MutableMapping
from pathlib import Path

from core.errors.exceptions import ConfigurationError, TokenError
from core.types import TokenProvider

logger = logging.getLogger(__name__)

AUTHORIZATION_HEADER = "Authorization"


async def authorize(provider: TokenProvider | None, headers: MutableMapping[str, str]) -> None:
    """
    Attach ``Authorization: Bearer <token>`` to the given request headers.

    Authentication is mandatory here: a missing provider is a configuration
    error. Headers are only touched once a token was obtained.

    Args:
        provider: Token provider to invoke
        headers: Outbound request headers, modified in place

    Raises:
        ConfigurationError: No provider given
        TokenError: The provider failed or returned an empty token
    """
    if provider is None:
        raise ConfigurationError("no token func provided")

    try:
        token = provider()
        if inspect.isawaitable(token):
            token = await token
    except Exception as e:
        logger.warning(
            "Token provider failed",
            extra={"error": str(e), "error_type": type(e).__name__},
        )
        raise TokenError("failed to retrieve token", cause=e) from e

    if not token:
        raise TokenError("failed to retrieve token: provider returned an empty token")

    headers[AUTHORIZATION_HEADER] = f"Bearer {token}"


async def apply_auth(provider: TokenProvider | None, headers: MutableMapping[str, str]) -> None:
    """Authorize the request if a provider is configured, otherwise leave it unauthenticated."""
    if provider is None:
        return
    await authorize(provider, headers)


def static_token(token: str) -> TokenProvider:
    """Provider that always returns the same token."""
    if not token:
        raise ConfigurationError("static_token requires a non-empty token")

    def _provider() -> str:
        return token

    return _provider


def token_from_env(variable: str) -> TokenProvider:
    """Provider reading the token from an environment variable on every call."""

    def _provider() -> str:
        token = os.getenv(variable, "").strip()
        if not token:
            raise TokenError(f"Environment variable {variable} is not set or empty")
        return token

    return _provider


def token_from_file(path: str | Path) -> TokenProvider:
    """
    Provider reading the token from a file on every call.

    The whole file content (stripped, BOM tolerated) is the token, which
    keeps tokens rotated on disk by an external agent picked up immediately.
    """
    token_path = Path(path)

    def _provider() -> str:
        try:
            content = token_path.read_text(encoding="utf-8-sig").strip()
        except FileNotFoundError as e:
            raise TokenError(f"Token file not found: {token_path}") from e
        except OSError as e:
            raise TokenError(f"Failed to read token file: {token_path}", cause=e) from e

        if not content:
            raise TokenError(f"Token file is empty: {token_path}")
        return content

    return _provider


__all__ = [
    "AUTHORIZATION_HEADER",
    "authorize",
    "apply_auth",
    "static_token",
    "token_from_env",
    "token_from_file",
]
