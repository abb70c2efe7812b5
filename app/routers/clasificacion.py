"""
Classification router.

Mounts under ``/api/clasificacion`` (prefix set in ``main.py``).

All endpoints require a valid JWT token (``get_current_user`` dependency).
None of them mutates data: they validate proposals, suggest tags and
report on the consistency of a stored report.

Endpoints
---------
POST /validar-antes-de-aplicar        — Reject tags that would double count.
POST /clasificar-con-contexto         — Sibling-pattern suggestion + family context.
POST /contexto-familia                — Family context only.
GET  /reportes/{id}/familias          — Per-family issues, completeness and approach.
GET  /reportes/{id}/familias/resumen  — Global summary only.
GET  /reportes/{id}/montos-jerarquia  — Parent amount vs children sum mismatches.
GET  /reportes/{id}/conciliacion      — Control totals vs classified totals.
GET  /historial/{codigo}              — Tag of a code across every report.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.auth import UsuarioActual
from app.schemas.clasificacion import (
    ClasificarConContextoRequest,
    ClasificarConContextoResponse,
    ConciliacionResponse,
    ContextoFamiliaRequest,
    ContextoFamiliaResponse,
    HistorialResponse,
    MontoJerarquiaItem,
    ResumenFamiliasResponse,
    ValidacionFamiliasResponse,
    ValidarClasificacionRequest,
    ValidarClasificacionResponse,
)
from app.services.auth_service import get_current_user
from app.services import clasificacion_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Clasificación"])

_NOT_FOUND = {404: {"description": "Reporte no encontrado."}}
_UNAUTHORIZED = {401: {"description": "Token JWT ausente o inválido."}}

ReporteId = Annotated[int, Path(description="ID del reporte financiero.", ge=1)]


def _not_found(exc: LookupError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


# ---------------------------------------------------------------------------
# POST /validar-antes-de-aplicar
# ---------------------------------------------------------------------------


@router.post(
    "/validar-antes-de-aplicar",
    response_model=ValidarClasificacionResponse,
    summary="Validar una clasificación antes de aplicarla",
    description=(
        "Verifica que la clasificación propuesta no genere doble conteo: se rechaza "
        "si una cuenta padre o alguna cuenta hija ya está clasificada en el reporte."
    ),
    responses={**_UNAUTHORIZED, **_NOT_FOUND, 422: {"description": "Campos requeridos ausentes."}},
)
def validar_antes_de_aplicar(
    body: ValidarClasificacionRequest,
    db: Annotated[Session, Depends(get_db)],
    _current_user: Annotated[UsuarioActual, Depends(get_current_user)],
) -> ValidarClasificacionResponse:
    logger.debug(
        "POST /validar-antes-de-aplicar codigo=%s reporte=%s",
        body.codigo_cuenta, body.reporte_id,
    )
    try:
        return clasificacion_service.validar_clasificacion(db, body)
    except LookupError as exc:
        raise _not_found(exc) from exc


# ---------------------------------------------------------------------------
# POST /clasificar-con-contexto, /contexto-familia
# ---------------------------------------------------------------------------


@router.post(
    "/clasificar-con-contexto",
    response_model=ClasificarConContextoResponse,
    summary="Sugerir clasificación a partir de las cuentas hermanas",
    description=(
        "Propone la clasificación dominante entre las cuentas hermanas clasificadas "
        "(mismo padre y nivel) cuando alcanza el umbral configurado. Nunca aplica la "
        "sugerencia; retorna el contexto completo de la familia para revisión."
    ),
    responses={**_UNAUTHORIZED, **_NOT_FOUND},
)
def clasificar_con_contexto(
    body: ClasificarConContextoRequest,
    db: Annotated[Session, Depends(get_db)],
    _current_user: Annotated[UsuarioActual, Depends(get_current_user)],
) -> ClasificarConContextoResponse:
    logger.debug("POST /clasificar-con-contexto codigo=%s", body.codigo)
    try:
        return clasificacion_service.clasificar_con_contexto(db, body)
    except LookupError as exc:
        raise _not_found(exc) from exc


@router.post(
    "/contexto-familia",
    response_model=ContextoFamiliaResponse,
    summary="Contexto de familia de una cuenta",
    responses={**_UNAUTHORIZED, **_NOT_FOUND},
)
def contexto_familia(
    body: ContextoFamiliaRequest,
    db: Annotated[Session, Depends(get_db)],
    _current_user: Annotated[UsuarioActual, Depends(get_current_user)],
) -> ContextoFamiliaResponse:
    try:
        return clasificacion_service.obtener_contexto_familia(db, body)
    except LookupError as exc:
        raise _not_found(exc) from exc


# ---------------------------------------------------------------------------
# GET /reportes/{id}/...
# ---------------------------------------------------------------------------


@router.get(
    "/reportes/{reporte_id}/familias",
    response_model=ValidacionFamiliasResponse,
    summary="Validación jerárquica por familias",
    description=(
        "Evalúa cada familia del reporte de abajo hacia arriba y retorna sus problemas "
        "(sobre-clasificación, hermanas mixtas, sub-clasificación), el impacto financiero, "
        "el porcentaje de completitud y el enfoque de clasificación recomendado."
    ),
    responses={**_UNAUTHORIZED, **_NOT_FOUND},
)
def validar_familias(
    reporte_id: ReporteId,
    db: Annotated[Session, Depends(get_db)],
    _current_user: Annotated[UsuarioActual, Depends(get_current_user)],
    incluir_perfectas: Annotated[
        bool, Query(description="Incluir también las familias sin problemas.")
    ] = False,
) -> ValidacionFamiliasResponse:
    logger.debug(
        "GET /reportes/%d/familias incluir_perfectas=%s", reporte_id, incluir_perfectas
    )
    try:
        return clasificacion_service.validar_familias_reporte(
            db, reporte_id, incluir_perfectas=incluir_perfectas
        )
    except LookupError as exc:
        raise _not_found(exc) from exc


@router.get(
    "/reportes/{reporte_id}/familias/resumen",
    response_model=ResumenFamiliasResponse,
    summary="Resumen global de la validación por familias",
    responses={**_UNAUTHORIZED, **_NOT_FOUND},
)
def resumen_familias(
    reporte_id: ReporteId,
    db: Annotated[Session, Depends(get_db)],
    _current_user: Annotated[UsuarioActual, Depends(get_current_user)],
) -> ResumenFamiliasResponse:
    try:
        return clasificacion_service.validar_familias_reporte(db, reporte_id).resumen
    except LookupError as exc:
        raise _not_found(exc) from exc


@router.get(
    "/reportes/{reporte_id}/montos-jerarquia",
    response_model=list[MontoJerarquiaItem],
    summary="Validación de montos padre vs hijos",
    description=(
        "Compara el monto de cada cuenta padre con la suma de sus hijas directas. "
        "Solo se retornan las diferencias (MINOR_VARIANCE, MAJOR_VARIANCE, CRITICAL_MISMATCH)."
    ),
    responses={**_UNAUTHORIZED, **_NOT_FOUND},
)
def montos_jerarquia(
    reporte_id: ReporteId,
    db: Annotated[Session, Depends(get_db)],
    _current_user: Annotated[UsuarioActual, Depends(get_current_user)],
) -> list[MontoJerarquiaItem]:
    try:
        return clasificacion_service.montos_jerarquia(db, reporte_id)
    except LookupError as exc:
        raise _not_found(exc) from exc


@router.get(
    "/reportes/{reporte_id}/conciliacion",
    response_model=ConciliacionResponse,
    summary="Conciliación con las cuentas de control",
    description=(
        "Compara el total clasificado de Ingresos y Egresos con sus cuentas de control "
        "(4100-0000-000-000 y 5000-0000-000-000). El reporte es aprobable solo si "
        "ambos cuadran dentro de la tolerancia configurada."
    ),
    responses={**_UNAUTHORIZED, **_NOT_FOUND},
)
def conciliacion(
    reporte_id: ReporteId,
    db: Annotated[Session, Depends(get_db)],
    _current_user: Annotated[UsuarioActual, Depends(get_current_user)],
) -> ConciliacionResponse:
    try:
        return clasificacion_service.conciliacion(db, reporte_id)
    except LookupError as exc:
        raise _not_found(exc) from exc


# ---------------------------------------------------------------------------
# GET /historial/{codigo}
# ---------------------------------------------------------------------------


@router.get(
    "/historial/{codigo}",
    response_model=HistorialResponse,
    summary="Historial de clasificación de una cuenta",
    responses={**_UNAUTHORIZED},
)
def historial(
    codigo: Annotated[str, Path(description="Código de cuenta.", max_length=30)],
    db: Annotated[Session, Depends(get_db)],
    _current_user: Annotated[UsuarioActual, Depends(get_current_user)],
) -> HistorialResponse:
    return clasificacion_service.historial_clasificacion(db, codigo)
