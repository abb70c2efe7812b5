"""
Authentication guard for the financial dashboard API.

Provides:
- ``get_current_user`` — FastAPI dependency that extracts and validates
  the Bearer JWT from the ``Authorization`` header.
- ``require_role`` — dependency factory that enforces role-based access
  control on top of ``get_current_user``.

Login and session handling belong to the identity service that issues
the tokens; no user table is kept here.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from app.schemas.auth import UsuarioActual
from app.utils.security import verify_token

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# OAuth2 scheme: tells FastAPI/Swagger where to find the Bearer token.
# ---------------------------------------------------------------------------

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


# ---------------------------------------------------------------------------
# FastAPI dependency: current authenticated user
# ---------------------------------------------------------------------------


def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
) -> UsuarioActual:
    """FastAPI dependency that resolves the caller's identity from a JWT.

    Args:
        token: Raw JWT string supplied by ``oauth2_scheme``.

    Returns:
        The caller's ``UsuarioActual`` claims.

    Raises:
        HTTPException 401: If the token is missing, invalid, or expired,
                           or carries no ``sub`` claim.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="No se pudo validar las credenciales",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = verify_token(token)
    except ValueError:
        raise credentials_exception

    sub = payload.get("sub")
    if sub is None:
        raise credentials_exception

    return UsuarioActual(
        sub=str(sub),
        username=payload.get("username"),
        rol=payload.get("rol"),
    )


# ---------------------------------------------------------------------------
# Role enforcement dependency factory
# ---------------------------------------------------------------------------


def require_role(*roles: str):
    """Return a FastAPI dependency that restricts access to the given roles.

    .. code-block:: python

        @router.put("/{regla_id}")
        def editar(
            current_user: UsuarioActual = Depends(require_role("ADMIN")),
        ):
            ...

    Args:
        *roles: One or more role codes from ``constants.ROLES``.

    Returns:
        A callable FastAPI dependency that resolves to the caller's
        ``UsuarioActual`` if their role is in *roles*, or raises HTTP 403.
    """
    allowed = frozenset(roles)

    def _check_role(
        current_user: Annotated[UsuarioActual, Depends(get_current_user)],
    ) -> UsuarioActual:
        if current_user.rol not in allowed:
            logger.debug(
                "Role %s rejected for user %s", current_user.rol, current_user.sub
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=(
                    f"Acceso denegado. Se requiere uno de los roles: "
                    f"{sorted(allowed)}"
                ),
            )
        return current_user

    return _check_role
