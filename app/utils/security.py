"""
JWT utilities for the financial dashboard API.

Tokens are signed by the identity service with the shared
``JWT_SECRET``; this module verifies them via python-jose.  Token
creation is kept for service-to-service calls and tests.  All
configuration is sourced from the application settings singleton so
that secrets are never hard-coded in source files.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from app.config import get_settings

logger = logging.getLogger(__name__)


def create_access_token(data: dict[str, Any]) -> str:
    """Create a signed JWT access token.

    The payload is a copy of *data* augmented with ``exp`` and ``iat``
    claims; ``exp`` is computed from ``JWT_EXPIRATION_MINUTES``.

    Args:
        data: Claims to embed; should contain ``sub`` and ``rol``.

    Returns:
        A compact, URL-safe JWT string.

    Example::

        token = create_access_token({"sub": "17", "rol": "CONTABILIDAD"})
    """
    settings = get_settings()
    payload = data.copy()
    now = datetime.now(timezone.utc)
    payload["exp"] = now + timedelta(minutes=settings.JWT_EXPIRATION_MINUTES)
    payload["iat"] = now

    return jwt.encode(
        payload,
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )


def verify_token(token: str) -> dict[str, Any]:
    """Decode and verify a JWT access token.

    Raises:
        ValueError: If the token is invalid, expired, or cannot be decoded.
                    Callers map this to an HTTP 401 response.
    """
    settings = get_settings()
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
        return payload
    except JWTError as exc:
        logger.debug("JWT verification failed: %s", exc)
        raise ValueError("Token inválido o expirado") from exc
