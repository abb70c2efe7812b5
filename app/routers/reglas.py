"""
Classification rules router.

Mounts under ``/api/reglas`` (prefix set in ``main.py``).

Reading requires a valid JWT token; every mutation requires role
``ADMIN`` or ``CONTABILIDAD``.

Endpoints
---------
GET    /                        — Active rules with live report count.
PUT    /{regla_id}              — Edit a rule, optionally retroactive.
DELETE /{regla_id}              — Supersede a rule (close its validity).
POST   /actualizar-para-futuro  — Upsert a batch of rule changes.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.auth import UsuarioActual
from app.schemas.reglas import (
    ActualizarParaFuturoRequest,
    ActualizarParaFuturoResponse,
    ActualizarReglaRequest,
    ActualizarReglaResponse,
    ReglaResponse,
)
from app.services import reglas_service
from app.services.auth_service import get_current_user, require_role
from app.services.clasificacion_service import etiqueta_desde_schema
from app.utils.constants import ROLES_EDICION_REGLAS

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Reglas de Clasificación"])

_editor = require_role(*ROLES_EDICION_REGLAS)

ReglaId = Annotated[int, Path(description="ID de la regla de clasificación.", ge=1)]


def _propagacion_fallida(exc: reglas_service.PropagacionError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={
            "mensaje": str(exc),
            "codigo_cuenta": exc.codigo,
            "registros_no_actualizados": exc.registros_no_actualizados,
        },
    )


@router.get(
    "",
    response_model=list[ReglaResponse],
    summary="Listar reglas activas",
    responses={401: {"description": "Token JWT ausente o inválido."}},
)
def listar_reglas(
    db: Annotated[Session, Depends(get_db)],
    _current_user: Annotated[UsuarioActual, Depends(get_current_user)],
    codigo_familia: Annotated[
        str | None,
        Query(description="Filtrar por familia, ej. '5000-2001'.", max_length=9),
    ] = None,
) -> list[ReglaResponse]:
    logger.debug("GET /reglas codigo_familia=%s", codigo_familia)
    return reglas_service.listar_reglas(db, codigo_familia)


@router.put(
    "/{regla_id}",
    response_model=ActualizarReglaResponse,
    summary="Actualizar una regla de clasificación",
    description=(
        "Modifica la etiqueta de la regla. Con ``aplicar_retroactivamente=true`` "
        "actualiza además todos los registros históricos con el mismo código, en una "
        "sola transacción: se aplican todos o ninguno."
    ),
    responses={
        403: {"description": "Rol sin permiso de edición."},
        404: {"description": "Regla no encontrada."},
        409: {"description": "La propagación falló y fue revertida."},
        422: {"description": "La regla ya fue reemplazada."},
    },
)
def actualizar_regla(
    regla_id: ReglaId,
    body: ActualizarReglaRequest,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[UsuarioActual, Depends(_editor)],
) -> ActualizarReglaResponse:
    logger.debug(
        "PUT /reglas/%d retroactivo=%s user=%s",
        regla_id, body.aplicar_retroactivamente, current_user.sub,
    )
    try:
        return reglas_service.actualizar_regla(
            db,
            regla_id,
            etiqueta_desde_schema(body.cambios),
            body.aplicar_retroactivamente,
            body.motivo,
            current_user.sub,
        )
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except reglas_service.PropagacionError as exc:
        raise _propagacion_fallida(exc) from exc
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc


@router.delete(
    "/{regla_id}",
    response_model=ReglaResponse,
    summary="Reemplazar (dar de baja) una regla",
    responses={
        403: {"description": "Rol sin permiso de edición."},
        404: {"description": "Regla no encontrada."},
        422: {"description": "La regla ya fue reemplazada o la fecha es inválida."},
    },
)
def reemplazar_regla(
    regla_id: ReglaId,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[UsuarioActual, Depends(_editor)],
    vigente_hasta: Annotated[
        date | None,
        Query(description="Último día de vigencia. Omitir para hoy."),
    ] = None,
) -> ReglaResponse:
    try:
        return reglas_service.reemplazar_regla(db, regla_id, vigente_hasta, current_user.sub)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc


@router.post(
    "/actualizar-para-futuro",
    response_model=ActualizarParaFuturoResponse,
    summary="Actualizar reglas para futuras importaciones",
    description=(
        "Crea o actualiza la regla activa de cada código. Los cambios marcados como "
        "retroactivos se propagan a los registros históricos; cada cambio es atómico."
    ),
    responses={
        403: {"description": "Rol sin permiso de edición."},
        409: {"description": "La propagación de un cambio falló y fue revertida."},
        422: {"description": "Código de cuenta inválido."},
    },
)
def actualizar_para_futuro(
    body: ActualizarParaFuturoRequest,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[UsuarioActual, Depends(_editor)],
) -> ActualizarParaFuturoResponse:
    logger.debug("POST /reglas/actualizar-para-futuro cambios=%d", len(body.cambios))
    try:
        return reglas_service.actualizar_reglas_para_futuro(
            db, body.cambios, current_user.sub
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc
    except reglas_service.PropagacionError as exc:
        raise _propagacion_fallida(exc) from exc
