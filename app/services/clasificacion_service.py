"""
Classification service layer.

Loads the account rows of a report from the database, converts them into
engine values (``CuentaContable``) and runs the pure engine in
``app.clasificacion``.  Every public function is synchronous and receives
a SQLAlchemy ``Session``; engine thresholds come from the settings and
are passed explicitly as a ``ParametrosMotor``.

Endpoints served (see ``app/routers/clasificacion.py``):
    POST /validar-antes-de-aplicar
    POST /clasificar-con-contexto
    POST /contexto-familia
    GET  /reportes/{id}/familias
    GET  /reportes/{id}/montos-jerarquia
    GET  /reportes/{id}/conciliacion
    GET  /historial/{codigo}

Errors
------
- ``LookupError`` when the report does not exist (routers map it to 404).
"""

from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy.orm import Session

from app.clasificacion import (
    CuentaContable,
    EtiquetaClasificacion,
    FUENTE_PATRON_HERMANOS,
    IndiceJerarquia,
    ParametrosMotor,
    ResultadoFamilia,
    agrupar_familias,
    conciliar_totales,
    contexto_familia,
    recomendar_por_hermanos,
    resumir,
    validar_familias,
    validar_montos_jerarquia,
)
from app.config import Settings, get_settings
from app.models.cambio_clasificacion import CambioClasificacion
from app.models.registro_financiero import RegistroFinanciero
from app.models.reporte_financiero import ReporteFinanciero
from app.schemas.clasificacion import (
    ClasificarConContextoRequest,
    ClasificarConContextoResponse,
    ConciliacionResponse,
    ContextoFamiliaRequest,
    ContextoFamiliaResponse,
    EnfoqueResponse,
    HistorialCambioItem,
    HistorialRegistroItem,
    HistorialResponse,
    IssueResponse,
    MontoJerarquiaItem,
    ResultadoFamiliaResponse,
    ResumenFamiliasResponse,
    ValidacionFamiliasResponse,
    ValidarClasificacionRequest,
    ValidarClasificacionResponse,
)
from app.schemas.common import EtiquetaSchema

logger = logging.getLogger(__name__)

_REGLA_HERMANOS = (
    "Regla de consistencia entre hermanas: las cuentas del mismo nivel deben "
    "seguir el mismo patrón de clasificación"
)
_REGLA_MANUAL = "No se detectó un patrón automático: se requiere clasificación manual"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def parametros_desde_settings(settings: Settings | None = None) -> ParametrosMotor:
    """Build the engine parameters from the application settings."""
    settings = settings or get_settings()
    return ParametrosMotor(
        umbral_patron_hermanos=settings.CLASIFICACION_UMBRAL_HERMANOS,
        confianza_patron_hermanos=settings.CLASIFICACION_CONFIANZA_HERMANOS,
        umbral_resumen_nivel4=settings.CLASIFICACION_UMBRAL_RESUMEN_NIVEL4,
        tolerancia_conciliacion=settings.CLASIFICACION_TOLERANCIA_CONCILIACION,
        familias_resumen=dict(settings.CLASIFICACION_FAMILIAS_RESUMEN),
    )


def etiqueta_de_registro(registro: Any) -> EtiquetaClasificacion:
    """Read the tag columns of a ``RegistroFinanciero`` or ``ReglaClasificacion``."""
    return EtiquetaClasificacion.desde_valores(
        registro.tipo,
        registro.categoria_1,
        registro.sub_categoria,
        registro.clasificacion,
    )


def etiqueta_desde_schema(schema: EtiquetaSchema) -> EtiquetaClasificacion:
    return EtiquetaClasificacion.desde_valores(
        schema.tipo, schema.categoria_1, schema.sub_categoria, schema.clasificacion
    )


def etiqueta_a_schema(etiqueta: EtiquetaClasificacion | None) -> EtiquetaSchema:
    return EtiquetaSchema(**(etiqueta or EtiquetaClasificacion()).a_valores())


def obtener_reporte(db: Session, reporte_id: int) -> ReporteFinanciero:
    reporte = db.get(ReporteFinanciero, reporte_id)
    if reporte is None:
        raise LookupError(f"Reporte {reporte_id} no encontrado")
    return reporte


def cargar_cuentas(db: Session, reporte_id: int) -> list[CuentaContable]:
    """Load every account row of a report as engine values.

    Raises:
        LookupError: If the report does not exist.
    """
    obtener_reporte(db, reporte_id)
    registros = (
        db.query(RegistroFinanciero)
        .filter(RegistroFinanciero.reporte_id == reporte_id)
        .order_by(RegistroFinanciero.codigo)
        .all()
    )
    cuentas = [
        CuentaContable(
            codigo=r.codigo.strip(),
            concepto=r.concepto or "",
            monto=float(r.monto or 0),
            etiqueta=etiqueta_de_registro(r),
            planta=r.planta,
            reporte_id=r.reporte_id,
        )
        for r in registros
    ]
    logger.debug("Loaded %d accounts for report %d", len(cuentas), reporte_id)
    return cuentas


def _resultado_a_schema(resultado: ResultadoFamilia) -> ResultadoFamiliaResponse:
    return ResultadoFamiliaResponse(
        codigo_familia=resultado.codigo_familia,
        nombre_familia=resultado.nombre_familia,
        monto_total=resultado.monto_total,
        tiene_problemas=resultado.tiene_problemas,
        issues=[
            IssueResponse(
                tipo_error=i.tipo_error.value,
                severidad=i.severidad.value,
                impacto_financiero=i.impacto_financiero,
                codigos_afectados=list(i.codigos_afectados),
                codigo_familia=i.codigo_familia,
                codigo_padre=i.codigo_padre,
                codigos_clasificados=list(i.codigos_clasificados),
                porcentaje_completitud=i.porcentaje_completitud,
                mensaje=i.mensaje,
                acciones_sugeridas=list(i.acciones_sugeridas),
                prioridad=i.prioridad,
            )
            for i in resultado.issues
        ],
        impacto_financiero=resultado.impacto_financiero,
        porcentaje_completitud=resultado.porcentaje_completitud,
        enfoque_recomendado=EnfoqueResponse(
            enfoque=resultado.enfoque.enfoque,
            razonamiento=resultado.enfoque.razonamiento,
            acciones=list(resultado.enfoque.acciones),
        ),
        avisos=resultado.avisos,
    )


# ---------------------------------------------------------------------------
# Pre-submission validation
# ---------------------------------------------------------------------------


def validar_clasificacion(
    db: Session,
    request: ValidarClasificacionRequest,
    parametros: ParametrosMotor | None = None,
) -> ValidarClasificacionResponse:
    """Check whether applying a proposed tag would create a double count.

    A proposal that is not a complete classification can never collide.
    Otherwise it is rejected when a present ancestor of the account is
    already classified, or when any present descendant is.

    Args:
        db: Active SQLAlchemy session.
        request: Account code, proposed tag and report id.
        parametros: Engine thresholds; taken from settings when omitted.

    Returns:
        A ``ValidarClasificacionResponse``.

    Raises:
        LookupError: If the report does not exist.
    """
    parametros = parametros or parametros_desde_settings()
    codigo = request.codigo_cuenta.strip()
    propuesta = etiqueta_desde_schema(request.clasificacion_propuesta)
    cuentas = cargar_cuentas(db, request.reporte_id)

    if parametros.es_control(codigo):
        return ValidarClasificacionResponse(
            valido=False,
            error="CUENTA_DE_CONTROL",
            severidad="CRITICAL",
            impacto_financiero=0.0,
            mensaje=(
                f"{codigo} es una cuenta de control (total general) y no puede "
                "clasificarse individualmente."
            ),
            accion_sugerida="CLASSIFY_DETAIL_ACCOUNTS",
        )

    if not propuesta.completa:
        return ValidarClasificacionResponse(
            valido=True,
            mensaje="La clasificación propuesta está incompleta; no genera doble conteo.",
        )

    indice = IndiceJerarquia()
    nodo = indice.nodo(codigo)
    # Level-1 roots head their own family, so look across the whole report.
    miembros = {
        m.codigo: m
        for familia in agrupar_familias(cuentas, parametros, indice).values()
        for m in familia.miembros
    }

    padres = [
        miembros[c] for c in indice.cadena_ancestros(codigo)
        if c in miembros and miembros[c].clasificado
    ]
    if padres:
        propia = miembros.get(codigo)
        impacto = round(abs(propia.cuenta.monto), 2) if propia else 0.0
        logger.debug("Proposal for %s collides with parent %s", codigo, padres[0].codigo)
        return ValidarClasificacionResponse(
            valido=False,
            error="PARENT_ALREADY_CLASSIFIED",
            severidad="CRITICAL",
            impacto_financiero=impacto,
            mensaje=(
                f"La cuenta padre {padres[0].codigo} ({padres[0].cuenta.concepto}) ya "
                f"está clasificada; clasificar {codigo} contaría {impacto:,.2f} dos veces."
            ),
            accion_sugerida="UNCLASSIFY_PARENT_OR_USE_PARENT_ONLY",
            codigos_en_conflicto=[p.codigo for p in padres],
        )

    hijos = [
        m for m in miembros.values()
        if m.clasificado and nodo.es_descendiente(m.codigo)
    ]
    if hijos:
        impacto = round(sum(abs(h.cuenta.monto) for h in hijos), 2)
        logger.debug("Proposal for %s collides with %d children", codigo, len(hijos))
        return ValidarClasificacionResponse(
            valido=False,
            error="CHILDREN_ALREADY_CLASSIFIED",
            severidad="CRITICAL",
            impacto_financiero=impacto,
            mensaje=(
                f"{len(hijos)} cuentas hijas de {codigo} ya están clasificadas; "
                f"clasificar también el padre contaría {impacto:,.2f} dos veces."
            ),
            accion_sugerida="UNCLASSIFY_CHILDREN_OR_USE_CHILDREN_ONLY",
            codigos_en_conflicto=[h.codigo for h in hijos],
        )

    return ValidarClasificacionResponse(
        valido=True, mensaje="La clasificación no genera conflictos jerárquicos."
    )


# ---------------------------------------------------------------------------
# Sibling recommendation and family context
# ---------------------------------------------------------------------------


def clasificar_con_contexto(
    db: Session,
    request: ClasificarConContextoRequest,
    parametros: ParametrosMotor | None = None,
) -> ClasificarConContextoResponse:
    """Suggest a tag for an account from its classified siblings.

    The suggestion is returned for a reviewer; nothing is persisted.

    Raises:
        LookupError: If the report does not exist.
    """
    parametros = parametros or parametros_desde_settings()
    cuentas = cargar_cuentas(db, request.reporte_id)
    familias = agrupar_familias(cuentas, parametros)
    recomendacion = recomendar_por_hermanos(
        request.codigo.strip(), request.concepto, familias, parametros
    )
    return ClasificarConContextoResponse(
        clasificacion=etiqueta_a_schema(recomendacion.etiqueta),
        fuente=recomendacion.fuente,
        confianza=recomendacion.confianza,
        razonamiento=recomendacion.razonamiento,
        regla_familia=(
            _REGLA_HERMANOS
            if recomendacion.fuente == FUENTE_PATRON_HERMANOS
            else _REGLA_MANUAL
        ),
        contexto_familia=ContextoFamiliaResponse(**recomendacion.contexto_familia),
    )


def obtener_contexto_familia(
    db: Session,
    request: ContextoFamiliaRequest,
    parametros: ParametrosMotor | None = None,
) -> ContextoFamiliaResponse:
    parametros = parametros or parametros_desde_settings()
    familias = agrupar_familias(cargar_cuentas(db, request.reporte_id), parametros)
    return ContextoFamiliaResponse(
        **contexto_familia(request.codigo.strip(), familias, parametros)
    )


# ---------------------------------------------------------------------------
# Report-level validation
# ---------------------------------------------------------------------------


def validar_familias_reporte(
    db: Session,
    reporte_id: int,
    incluir_perfectas: bool = False,
    parametros: ParametrosMotor | None = None,
) -> ValidacionFamiliasResponse:
    """Validate every family of a report.

    The summary always covers all families, while ``familias`` lists only
    those with issues unless ``incluir_perfectas`` is set.

    Raises:
        LookupError: If the report does not exist.
    """
    parametros = parametros or parametros_desde_settings()
    cuentas = cargar_cuentas(db, reporte_id)
    todas = validar_familias(cuentas, parametros, incluir_perfectas=True)
    visibles = todas if incluir_perfectas else [r for r in todas if r.tiene_problemas]
    resumen = resumir(todas)
    logger.info(
        "Report %d validated: %d/%d families with issues, impact %.2f",
        reporte_id,
        resumen["familias_con_problemas"],
        resumen["total_familias"],
        resumen["impacto_financiero_total"],
    )
    return ValidacionFamiliasResponse(
        reporte_id=reporte_id,
        resumen=ResumenFamiliasResponse(**resumen),
        familias=[_resultado_a_schema(r) for r in visibles],
    )


def montos_jerarquia(
    db: Session, reporte_id: int, parametros: ParametrosMotor | None = None
) -> list[MontoJerarquiaItem]:
    parametros = parametros or parametros_desde_settings()
    filas = validar_montos_jerarquia(cargar_cuentas(db, reporte_id), parametros)
    return [MontoJerarquiaItem(**f) for f in filas]


def conciliacion(
    db: Session, reporte_id: int, parametros: ParametrosMotor | None = None
) -> ConciliacionResponse:
    """Reconcile the control totals of a report with its classified totals."""
    parametros = parametros or parametros_desde_settings()
    resultado = conciliar_totales(cargar_cuentas(db, reporte_id), parametros)
    return ConciliacionResponse(reporte_id=reporte_id, **resultado)


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


def _etiqueta_json(texto: str | None) -> EtiquetaSchema:
    valores = json.loads(texto) if texto else {}
    return etiqueta_a_schema(EtiquetaClasificacion.desde_valores(**valores))


def historial_clasificacion(db: Session, codigo: str) -> HistorialResponse:
    """Every record of a code across reports, newest period first,
    plus the audit rows written by retroactive propagations."""
    codigo = codigo.strip()
    filas = (
        db.query(RegistroFinanciero, ReporteFinanciero)
        .join(ReporteFinanciero, RegistroFinanciero.reporte_id == ReporteFinanciero.id)
        .filter(RegistroFinanciero.codigo == codigo)
        .order_by(ReporteFinanciero.anio.desc(), ReporteFinanciero.mes.desc())
        .all()
    )
    cambios = (
        db.query(CambioClasificacion)
        .filter(CambioClasificacion.codigo == codigo)
        .order_by(CambioClasificacion.fecha.desc(), CambioClasificacion.id.desc())
        .all()
    )
    logger.debug("GET /historial/%s -> %d records, %d changes", codigo, len(filas), len(cambios))
    return HistorialResponse(
        codigo=codigo,
        registros=[
            HistorialRegistroItem(
                registro_id=registro.id,
                reporte_id=reporte.id,
                reporte_nombre=reporte.nombre,
                mes=reporte.mes,
                anio=reporte.anio,
                concepto=registro.concepto,
                monto=float(registro.monto or 0),
                clasificacion=etiqueta_a_schema(etiqueta_de_registro(registro)),
            )
            for registro, reporte in filas
        ],
        cambios=[
            HistorialCambioItem(
                registro_id=c.registro_id,
                reporte_id=c.reporte_id,
                etiqueta_anterior=_etiqueta_json(c.etiqueta_anterior),
                etiqueta_nueva=_etiqueta_json(c.etiqueta_nueva),
                motivo=c.motivo,
                usuario_id=c.usuario_id,
                fecha=c.fecha,
            )
            for c in cambios
        ],
    )


