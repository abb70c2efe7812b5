"""
Exportación router.

Mounts under ``/api/exportar`` (prefix set in ``main.py``).

All endpoints require a valid JWT token.  Files are streamed with
FastAPI's ``StreamingResponse`` and carry an
``attachment; filename=...`` ``Content-Disposition`` header so that
browsers prompt a download rather than displaying the file inline.

Endpoints
---------
GET /familias/excel  — Family-validation issues as .xlsx (query param: reporte_id)
"""

from __future__ import annotations

import io
import logging
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.auth import UsuarioActual
from app.services.auth_service import get_current_user
from app.services import exportacion_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Exportación"])


def _make_filename(reporte_id: int, extension: str) -> str:
    """Build a date-stamped download filename.

    Args:
        reporte_id: Exported report.
        extension: File extension without the leading dot (``xlsx``).

    Returns:
        A filename such as ``INEI_familias_reporte12_20260315.xlsx``.
    """
    today = date.today().strftime("%Y%m%d")
    return f"INEI_familias_reporte{reporte_id}_{today}.{extension}"


# ---------------------------------------------------------------------------
# GET /familias/excel
# ---------------------------------------------------------------------------


@router.get(
    "/familias/excel",
    summary="Exportar validación por familias a Excel (.xlsx)",
    description=(
        "Genera y descarga un archivo Excel con los problemas de clasificación de cada "
        "familia del reporte: severidad, impacto financiero, prioridad y completitud."
    ),
    response_class=StreamingResponse,
    responses={
        200: {
            "description": "Archivo Excel generado exitosamente.",
            "content": {
                "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": {}
            },
        },
        401: {"description": "Token JWT ausente o inválido."},
        404: {"description": "Reporte no encontrado."},
        500: {"description": "Error generando el archivo."},
    },
)
def export_familias_excel(
    reporte_id: Annotated[int, Query(description="ID del reporte financiero.", ge=1)],
    db: Annotated[Session, Depends(get_db)],
    _current_user: Annotated[UsuarioActual, Depends(get_current_user)],
) -> StreamingResponse:
    """Generate and stream the family-validation workbook of a report.

    Raises:
        HTTPException 404: If the report does not exist.
        HTTPException 500: If Excel generation fails unexpectedly.
    """
    logger.info("GET /exportar/familias/excel reporte_id=%d", reporte_id)

    try:
        file_bytes = exportacion_service.export_familias_excel(db, reporte_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("export_familias_excel failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error generando el archivo Excel: {exc}",
        ) from exc

    filename = _make_filename(reporte_id, "xlsx")
    headers = {
        "Content-Disposition": f'attachment; filename="{filename}"',
        "Content-Length": str(len(file_bytes)),
    }

    return StreamingResponse(
        io.BytesIO(file_bytes),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers=headers,
    )
