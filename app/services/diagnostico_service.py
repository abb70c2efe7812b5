"""
Hierarchy diagnostic service.

Runs ``construir_jerarquia`` over an ad-hoc list of accounts or over a
stored report and returns the canonical nodes next to the levels the
older family/numeric-sequence heuristic would have assigned.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy.orm import Session

from app.clasificacion import CuentaContable, construir_jerarquia
from app.schemas.diagnostico import (
    ComparacionNivelItem,
    JerarquiaRequest,
    JerarquiaResponse,
    NodoJerarquiaResponse,
    ResumenDiagnostico,
)
from app.services.clasificacion_service import cargar_cuentas

logger = logging.getLogger(__name__)


def _diagnosticar(cuentas: Iterable[CuentaContable]) -> JerarquiaResponse:
    nodos, comparacion = construir_jerarquia(cuentas)
    diferencias = sum(1 for c in comparacion if c["diferencia"] != 0)
    logger.debug("Hierarchy diagnostic: %d codes, %d differ", len(nodos), diferencias)
    return JerarquiaResponse(
        nodos=[
            NodoJerarquiaResponse(
                codigo=n.nodo.codigo,
                concepto=n.concepto,
                monto=round(n.monto, 2),
                nivel=n.nodo.nivel,
                codigo_padre=n.nodo.codigo_padre,
                padre_existe=n.padre_existe,
                codigo_familia=n.nodo.codigo_familia,
                prefijo_hijos=n.nodo.prefijo_hijos,
                hijos=n.hijos,
                valido=n.nodo.valido,
                advertencias=n.advertencias,
            )
            for n in nodos
        ],
        comparacion=[ComparacionNivelItem(**c) for c in comparacion],
        resumen=ResumenDiagnostico(
            total_cuentas=len(nodos),
            cuentas_con_diferencia=diferencias,
            codigos_invalidos=sum(1 for n in nodos if not n.nodo.valido),
        ),
    )


def diagnosticar_cuentas(request: JerarquiaRequest) -> JerarquiaResponse:
    return _diagnosticar(
        CuentaContable(codigo=c.codigo.strip(), concepto=c.concepto, monto=c.monto)
        for c in request.cuentas
    )


def diagnosticar_reporte(db: Session, reporte_id: int) -> JerarquiaResponse:
    """Raises ``LookupError`` if the report does not exist."""
    return _diagnosticar(cargar_cuentas(db, reporte_id))
