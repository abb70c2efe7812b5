"""
Hierarchy diagnostic router.

Mounts under ``/api/diagnostico`` (prefix set in ``main.py``).

Endpoints
---------
POST /jerarquia               — Diagnose an ad-hoc list of accounts.
GET  /jerarquia/{reporte_id}  — Diagnose every account of a stored report.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.auth import UsuarioActual
from app.schemas.diagnostico import JerarquiaRequest, JerarquiaResponse
from app.services.auth_service import get_current_user
from app.services import diagnostico_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Diagnóstico"])


@router.post(
    "/jerarquia",
    response_model=JerarquiaResponse,
    summary="Diagnóstico de jerarquía para una lista de cuentas",
    description=(
        "Calcula nivel, padre y familia de cada código y los compara con la heurística "
        "anterior de detección por familia y secuencia numérica."
    ),
    responses={401: {"description": "Token JWT ausente o inválido."}},
)
def diagnosticar_cuentas(
    body: JerarquiaRequest,
    _current_user: Annotated[UsuarioActual, Depends(get_current_user)],
) -> JerarquiaResponse:
    logger.debug("POST /diagnostico/jerarquia cuentas=%d", len(body.cuentas))
    return diagnostico_service.diagnosticar_cuentas(body)


@router.get(
    "/jerarquia/{reporte_id}",
    response_model=JerarquiaResponse,
    summary="Diagnóstico de jerarquía de un reporte",
    responses={
        401: {"description": "Token JWT ausente o inválido."},
        404: {"description": "Reporte no encontrado."},
    },
)
def diagnosticar_reporte(
    reporte_id: Annotated[int, Path(description="ID del reporte financiero.", ge=1)],
    db: Annotated[Session, Depends(get_db)],
    _current_user: Annotated[UsuarioActual, Depends(get_current_user)],
) -> JerarquiaResponse:
    try:
        return diagnostico_service.diagnosticar_reporte(db, reporte_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
