"""API key authentication and caller identity resolution.

The admission gate needs a stable, unique string per caller. Callers
authenticate with an ``X-API-Key`` header; the identity used for rate
limiting is a digest of that key, so raw credentials never enter a ledger
or a log record.

When authentication is disabled every request shares the ``anonymous``
identity and therefore one budget per policy.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Annotated

from fastapi import Header

from admission_gate.core.config import settings
from admission_gate.core.errors import AuthenticationAppError

logger = logging.getLogger(__name__)

ANONYMOUS_IDENTITY = "anonymous"


def parse_api_keys(keys_string: str | None) -> set[str]:
    """Parse comma-separated API keys into a set.

    Examples:
        >>> sorted(parse_api_keys("key1, key2 , key3 "))
        ['key1', 'key2', 'key3']
        >>> parse_api_keys(None)
        set()
    """
    if not keys_string:
        return set()

    return {key.strip() for key in keys_string.split(",") if key.strip()}


def hash_identity(value: str) -> str:
    """Short, stable digest safe to log or use as a ledger identity."""
    return hashlib.sha256(value.encode()).hexdigest()[:16]


def validate_api_key(provided_key: str | None) -> str:
    """Validate the provided API key and return the caller identity.

    Pure validation logic without FastAPI dependencies for easy testing.

    Args:
        provided_key: API key to validate.

    Returns:
        Identity string for the caller.

    Raises:
        AuthenticationAppError: If the key is missing or invalid, or if
            authentication is required but no keys are configured.
    """
    if not settings.app.api_key_required:
        return ANONYMOUS_IDENTITY

    valid_keys = parse_api_keys(settings.app.api_keys)
    if not valid_keys:
        logger.error(
            "auth.failed",
            extra={"reason": "api_keys_not_configured"},
        )
        raise AuthenticationAppError(
            code="api_keys_not_configured",
            message="API key authentication is enabled but no valid keys are configured",
            details={"hint": "Set APP_API_KEYS or disable auth with APP_API_KEY_REQUIRED=false"},
        )

    if not provided_key:
        logger.warning("auth.failed", extra={"reason": "missing_api_key"})
        raise AuthenticationAppError(
            code="missing_api_key",
            message="Missing API key. Provide X-API-Key header.",
        )

    key_hash = hash_identity(provided_key)
    if provided_key not in valid_keys:
        logger.warning(
            "auth.failed",
            extra={"reason": "invalid_api_key", "key_hash": key_hash},
        )
        raise AuthenticationAppError(
            code="invalid_api_key",
            message="Invalid or missing API key",
        )

    logger.debug("auth.success", extra={"key_hash": key_hash})
    return f"api_key:{key_hash}"


async def resolve_identity(
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> str:
    """FastAPI dependency returning the authenticated caller identity.

    Usage:
        @router.get("/protected")
        async def protected(identity: str = Depends(resolve_identity)): ...

    Raises:
        AuthenticationAppError: Translated to 403 by the exception handlers.
    """
    return validate_api_key(x_api_key)
