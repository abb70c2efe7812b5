"""
Export service layer.

Builds the family-validation workbook for ``GET /api/exportar/familias/excel``.
Reuses ``clasificacion_service.validar_familias_reporte`` so that the
export shows exactly what the remediation dashboard shows, then hands the
rows to the ``ExcelExporter`` builder.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from app.exporters.excel_exporter import ExcelExporter
from app.services import clasificacion_service

logger = logging.getLogger(__name__)

_HEADERS = [
    "Familia",
    "Nombre",
    "Severidad",
    "Tipo de error",
    "Impacto financiero",
    "Prioridad",
    "Completitud %",
    "Cuentas afectadas",
    "Mensaje",
]
_NUMERIC_COLS = {4, 6}
_SEVERITY_COL = 2


def export_familias_excel(db: Session, reporte_id: int) -> bytes:
    """Generate the .xlsx of every issue found in a report.

    Args:
        db: Active SQLAlchemy session.
        reporte_id: Report to validate.

    Returns:
        Raw ``.xlsx`` bytes.

    Raises:
        LookupError: If the report does not exist.
    """
    reporte = clasificacion_service.obtener_reporte(db, reporte_id)
    validacion = clasificacion_service.validar_familias_reporte(db, reporte_id)
    resumen = validacion.resumen

    kpis: dict[str, Any] = {
        "Familias": resumen.total_familias,
        "Con problemas": resumen.familias_con_problemas,
        "Perfectas": resumen.familias_perfectas,
        "Impacto total": resumen.impacto_financiero_total,
    }

    rows: list[list[Any]] = []
    for familia in validacion.familias:
        for issue in familia.issues:
            rows.append([
                familia.codigo_familia,
                familia.nombre_familia,
                issue.severidad,
                issue.tipo_error,
                issue.impacto_financiero,
                issue.prioridad,
                issue.porcentaje_completitud if issue.porcentaje_completitud is not None else "",
                ", ".join(issue.codigos_afectados),
                issue.mensaje,
            ])

    logger.info("Exporting %d issues of report %d to Excel", len(rows), reporte_id)
    exporter = ExcelExporter(
        title="Validación de familias",
        filters={
            "Reporte": reporte.nombre,
            "Periodo": f"{reporte.mes:02d}/{reporte.anio}",
        },
        sheet_name="Familias",
    )
    exporter.add_header()
    exporter.add_kpi_row(kpis)
    exporter.add_data_table(
        _HEADERS, rows, numeric_cols=_NUMERIC_COLS, severity_col=_SEVERITY_COL
    )
    return exporter.finalize()
