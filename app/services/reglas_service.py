"""
Classification rules service layer.

Rules are the source of truth the import pipeline applies to new ledger
rows.  Editing a rule may be marked retroactive, in which case every
historical ``RegistroFinanciero`` with the rule's account code is updated
in the same transaction and an audit row (``CambioClasificacion``) is
written per record.

Endpoints served (see ``app/routers/reglas.py``):
    GET    /                         — active rules with live report count
    PUT    /{regla_id}               — edit (optionally retroactive)
    DELETE /{regla_id}               — supersede
    POST   /actualizar-para-futuro   — upsert a batch of rule changes

Concurrency
-----------
Writes are serialised per account code through an in-process lock
registry: two retroactive edits of the same code never interleave, while
different codes proceed concurrently.  Each rule change commits or rolls
back as a whole; a storage failure raises ``PropagacionError`` listing
every record id that was left untouched.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.clasificacion import EtiquetaClasificacion, resolver_nodo
from app.models.cambio_clasificacion import CambioClasificacion
from app.models.registro_financiero import RegistroFinanciero
from app.models.regla_clasificacion import ReglaClasificacion
from app.schemas.reglas import (
    ActualizarParaFuturoResponse,
    ActualizarReglaResponse,
    CambioFuturo,
    ReglaResponse,
)
from app.services.clasificacion_service import (
    etiqueta_a_schema,
    etiqueta_de_registro,
    etiqueta_desde_schema,
)

logger = logging.getLogger(__name__)


class PropagacionError(RuntimeError):
    """A retroactive propagation failed in storage and was rolled back.

    Attributes:
        codigo: Account code of the rule.
        registros_no_actualizados: Ids of the records left with their
            previous tag (after rollback, every matching record).
    """

    def __init__(self, codigo: str, registros_no_actualizados: list[int]) -> None:
        self.codigo = codigo
        self.registros_no_actualizados = registros_no_actualizados
        super().__init__(
            f"No se pudo propagar la regla de {codigo}; "
            f"{len(registros_no_actualizados)} registros sin actualizar"
        )


# ---------------------------------------------------------------------------
# Per-code lock registry
# ---------------------------------------------------------------------------

_bloqueos: dict[str, threading.Lock] = {}
_bloqueos_guard = threading.Lock()


@contextmanager
def bloqueo_codigo(codigo: str) -> Iterator[None]:
    """Hold the write lock of one account code."""
    with _bloqueos_guard:
        bloqueo = _bloqueos.setdefault(codigo, threading.Lock())
    with bloqueo:
        yield


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _asignar_etiqueta(destino, etiqueta: EtiquetaClasificacion) -> None:
    for campo, valor in etiqueta.a_valores().items():
        setattr(destino, campo, valor)


def _conteo_reportes(db: Session, codigos: list[str]) -> dict[str, int]:
    if not codigos:
        return {}
    filas = (
        db.query(
            RegistroFinanciero.codigo,
            func.count(func.distinct(RegistroFinanciero.reporte_id)),
        )
        .filter(RegistroFinanciero.codigo.in_(codigos))
        .group_by(RegistroFinanciero.codigo)
        .all()
    )
    return {codigo: total for codigo, total in filas}


def _regla_a_schema(regla: ReglaClasificacion, aplica_a_reportes: int) -> ReglaResponse:
    return ReglaResponse(
        id=regla.id,
        codigo_cuenta=regla.codigo_cuenta,
        clasificacion=etiqueta_a_schema(etiqueta_de_registro(regla)),
        nivel_jerarquia=regla.nivel_jerarquia,
        codigo_familia=regla.codigo_familia,
        vigente_desde=regla.vigente_desde,
        vigente_hasta=regla.vigente_hasta,
        activa=regla.activa,
        aplica_a_reportes=aplica_a_reportes,
        motivo=regla.motivo,
    )


def _aplicar(
    db: Session,
    regla: ReglaClasificacion,
    nueva: EtiquetaClasificacion,
    aplicar_retroactivamente: bool,
    motivo: str | None,
    usuario_id: str | None,
) -> tuple[ActualizarReglaResponse, set[int]]:
    """Write the rule (and its records when retroactive) and commit.

    Must be called while holding ``bloqueo_codigo(regla.codigo_cuenta)``.
    """
    codigo = regla.codigo_cuenta
    _asignar_etiqueta(regla, nueva)
    regla.motivo = motivo
    regla.actualizado_por = usuario_id

    registros: list[RegistroFinanciero] = []
    if aplicar_retroactivamente:
        registros = (
            db.query(RegistroFinanciero)
            .filter(RegistroFinanciero.codigo == codigo)
            .order_by(RegistroFinanciero.id)
            .all()
        )
        nuevos_valores = json.dumps(nueva.a_valores(), ensure_ascii=False)
        for registro in registros:
            anterior = json.dumps(
                etiqueta_de_registro(registro).a_valores(), ensure_ascii=False
            )
            _asignar_etiqueta(registro, nueva)
            db.add(
                CambioClasificacion(
                    registro_id=registro.id,
                    regla_id=regla.id,
                    reporte_id=registro.reporte_id,
                    codigo=codigo,
                    etiqueta_anterior=anterior,
                    etiqueta_nueva=nuevos_valores,
                    motivo=motivo,
                    usuario_id=usuario_id,
                )
            )
        regla.aplica_a_reportes = len({r.reporte_id for r in registros})

    ids = [r.id for r in registros]
    reportes = {r.reporte_id for r in registros}
    impacto = round(sum(abs(float(r.monto or 0)) for r in registros), 2)

    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Rule propagation for %s rolled back", codigo)
        raise PropagacionError(codigo, ids) from exc

    logger.info(
        "Rule %d (%s) updated by %s: %d records in %d reports (retroactive=%s)",
        regla.id, codigo, usuario_id, len(ids), len(reportes), aplicar_retroactivamente,
    )
    respuesta = ActualizarReglaResponse(
        regla_id=regla.id,
        codigo_cuenta=codigo,
        registros_afectados=len(ids),
        reportes_afectados=len(reportes),
        impacto_financiero_total=impacto,
        cambios=etiqueta_a_schema(nueva),
    )
    return respuesta, reportes


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------


def listar_reglas(db: Session, codigo_familia: str | None = None) -> list[ReglaResponse]:
    """Active rules ordered by code, each with its live report count."""
    query = db.query(ReglaClasificacion).filter(ReglaClasificacion.activa.is_(True))
    if codigo_familia:
        query = query.filter(ReglaClasificacion.codigo_familia == codigo_familia)
    reglas = query.order_by(ReglaClasificacion.codigo_cuenta).all()
    conteos = _conteo_reportes(db, [r.codigo_cuenta for r in reglas])
    return [_regla_a_schema(r, conteos.get(r.codigo_cuenta, 0)) for r in reglas]


def actualizar_regla(
    db: Session,
    regla_id: int,
    cambios: EtiquetaClasificacion,
    aplicar_retroactivamente: bool,
    motivo: str | None,
    usuario_id: str | None = None,
) -> ActualizarReglaResponse:
    """Edit a rule and, when retroactive, every historical record of its code.

    Fields left unset in *cambios* keep their current value.  With
    ``aplicar_retroactivamente=False`` only the rule changes, so records
    already imported keep their tag.

    Args:
        db: Active SQLAlchemy session.
        regla_id: Primary key of the rule.
        cambios: Partial tag to overlay on the rule.
        aplicar_retroactivamente: Also update historical records.
        motivo: Reason recorded on the rule and in the audit trail.
        usuario_id: Token subject of the editor.

    Returns:
        Affected record and report counts.

    Raises:
        LookupError: If the rule does not exist.
        ValueError: If the rule was already superseded.
        PropagacionError: If storage rejects the update (nothing applied).
    """
    regla = db.get(ReglaClasificacion, regla_id)
    if regla is None:
        raise LookupError(f"Regla {regla_id} no encontrada")

    with bloqueo_codigo(regla.codigo_cuenta):
        db.refresh(regla)
        if not regla.activa:
            raise ValueError(f"La regla {regla_id} ya fue reemplazada y no puede editarse")
        nueva = etiqueta_de_registro(regla).combinar(cambios)
        respuesta, _ = _aplicar(
            db, regla, nueva, aplicar_retroactivamente, motivo, usuario_id
        )
    return respuesta


def reemplazar_regla(
    db: Session,
    regla_id: int,
    vigente_hasta: date | None = None,
    usuario_id: str | None = None,
) -> ReglaResponse:
    """Supersede a rule: close its validity range and deactivate it.

    Raises:
        LookupError: If the rule does not exist.
        ValueError: If the rule is already inactive or the end date
                    precedes its start date.
    """
    regla = db.get(ReglaClasificacion, regla_id)
    if regla is None:
        raise LookupError(f"Regla {regla_id} no encontrada")
    if not regla.activa:
        raise ValueError(f"La regla {regla_id} ya fue reemplazada")

    fin = vigente_hasta or date.today()
    if regla.vigente_desde is not None and fin < regla.vigente_desde:
        raise ValueError("vigente_hasta no puede ser anterior a vigente_desde")

    codigo = regla.codigo_cuenta
    with bloqueo_codigo(codigo):
        regla.vigente_hasta = fin
        regla.activa = False
        regla.actualizado_por = usuario_id
        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Superseding rule %d (%s) rolled back", regla_id, codigo)
            raise
        db.refresh(regla)

    logger.info("Rule %d (%s) superseded until %s", regla_id, regla.codigo_cuenta, fin)
    conteo = _conteo_reportes(db, [regla.codigo_cuenta]).get(regla.codigo_cuenta, 0)
    return _regla_a_schema(regla, conteo)


def actualizar_reglas_para_futuro(
    db: Session,
    cambios: list[CambioFuturo],
    usuario_id: str | None = None,
) -> ActualizarParaFuturoResponse:
    """Upsert the active rule of each changed code, propagating when asked.

    Each change is its own atomic unit, serialised on its account code.
    A missing rule is created with the code's derived level and family.

    Raises:
        ValueError: If a change carries a malformed account code.
        PropagacionError: If storage rejects one of the changes; earlier
            changes stay committed.
    """
    resultados: list[ActualizarReglaResponse] = []
    reportes: set[int] = set()

    for cambio in cambios:
        codigo = cambio.codigo_cuenta.strip()
        nodo = resolver_nodo(codigo)
        if not nodo.valido:
            raise ValueError(nodo.advertencia)
        etiqueta = etiqueta_desde_schema(cambio.clasificacion)

        with bloqueo_codigo(codigo):
            regla = (
                db.query(ReglaClasificacion)
                .filter(
                    ReglaClasificacion.codigo_cuenta == codigo,
                    ReglaClasificacion.activa.is_(True),
                )
                .first()
            )
            if regla is None:
                regla = ReglaClasificacion(
                    codigo_cuenta=codigo,
                    nivel_jerarquia=nodo.nivel,
                    codigo_familia=nodo.codigo_familia,
                    activa=True,
                )
                db.add(regla)
                db.flush()
                nueva = etiqueta
            else:
                nueva = etiqueta_de_registro(regla).combinar(etiqueta)

            respuesta, tocados = _aplicar(
                db,
                regla,
                nueva,
                cambio.aplicar_retroactivamente,
                cambio.motivo,
                usuario_id,
            )
        resultados.append(respuesta)
        reportes |= tocados

    return ActualizarParaFuturoResponse(
        registros_afectados=sum(r.registros_afectados for r in resultados),
        reportes_afectados=len(reportes),
        reglas=resultados,
    )
