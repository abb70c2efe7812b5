"""
Authentication router for the financial dashboard API.

Mounts under ``/api/auth`` (prefix set in ``main.py``).  Tokens are issued
by the identity service; this API only exposes who the caller is.

Endpoints:
    GET /me — Return the identity claims of the authenticated caller.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from app.schemas.auth import UsuarioActual
from app.services.auth_service import get_current_user

router = APIRouter(tags=["Auth"])


@router.get(
    "/me",
    response_model=UsuarioActual,
    summary="Usuario autenticado",
    description="Retorna los datos de identidad contenidos en el token JWT.",
    responses={401: {"description": "Token JWT ausente o inválido."}},
)
def me(
    current_user: Annotated[UsuarioActual, Depends(get_current_user)],
) -> UsuarioActual:
    return current_user
