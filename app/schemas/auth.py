"""
Pydantic v2 schemas for the authentication guard.

Tokens are issued by the external identity service; this API only
verifies them and exposes the caller's identity claims.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class UsuarioActual(BaseModel):
    """Identity claims of the authenticated caller.

    Attributes:
        sub: Subject claim (user id in the identity service).
        username: Login name, when the token carries it.
        rol: Role code; one of ``constants.ROLES``.
    """

    sub: str = Field(..., description="Identificador del usuario (claim 'sub').")
    username: str | None = Field(default=None, description="Nombre de usuario.")
    rol: str | None = Field(default=None, description="Rol del usuario.")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"sub": "17", "username": "jperez", "rol": "CONTABILIDAD"}
        }
    )
