"""Sibling pattern recommender.

Suggests a classification for an account from the dominant pattern of
its classified siblings.  The suggestion is never applied automatically.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from app.clasificacion.codigos import NodoJerarquia, resolver_nodo
from app.clasificacion.estado import EstadoClasificacion
from app.clasificacion.etiquetas import EtiquetaClasificacion
from app.clasificacion.familias import Familia, MiembroFamilia
from app.clasificacion.parametros import PARAMETROS_POR_DEFECTO, ParametrosMotor

logger = logging.getLogger(__name__)

FUENTE_PATRON_HERMANOS = "PATRON_HERMANOS"
FUENTE_SIN_CLASIFICAR = "SIN_CLASIFICAR"

ENFOQUE_DETALLE = "DETAIL_CLASSIFICATION"
ENFOQUE_RESUMEN = "SUMMARY_CLASSIFICATION"


@dataclass
class Recomendacion:
    etiqueta: EtiquetaClasificacion | None
    fuente: str
    confianza: float
    razonamiento: str
    contexto_familia: dict[str, Any] = field(default_factory=dict)


def _hermanos(familia: Familia | None, nodo: NodoJerarquia) -> list[MiembroFamilia]:
    if familia is None:
        return []
    return [
        m for m in familia.miembros
        if m.nodo.nivel == nodo.nivel
        and m.nodo.codigo_padre == nodo.codigo_padre
        and m.estado is not EstadoClasificacion.HIERARCHY
    ]


def contexto_familia(
    codigo: str,
    familias: Mapping[str, Familia],
    parametros: ParametrosMotor = PARAMETROS_POR_DEFECTO,
) -> dict[str, Any]:
    """Describe the sibling group of *codigo* for a human reviewer.

    The account itself is part of the sibling list when present in the
    batch.  Completeness is ``clasificados / total * 100``.
    """
    nodo = resolver_nodo(codigo)
    familia = familias.get(nodo.codigo_familia)
    hermanos = _hermanos(familia, nodo)

    clasificados = [h for h in hermanos if h.clasificado]
    total = len(hermanos)
    completitud = round(len(clasificados) / total * 100, 2) if total else 0.0
    pendientes = [
        h for h in hermanos
        if h.estado in (EstadoClasificacion.UNCLASSIFIED, EstadoClasificacion.PARTIAL)
    ]

    resumen = total > parametros.umbral_resumen_nivel4 or (
        parametros.nivel_resumen(nodo.codigo_familia) is not None
    )
    return {
        "codigo_familia": nodo.codigo_familia,
        "nombre_familia": familia.nombre if familia else "",
        "nivel": nodo.nivel,
        "hermanos": [
            {
                "codigo": h.codigo,
                "concepto": h.cuenta.concepto,
                "monto": h.cuenta.monto,
                "estado": h.estado.value,
                "clasificacion": h.cuenta.etiqueta.clasificacion,
            }
            for h in hermanos
        ],
        "hermanos_clasificados": len(clasificados),
        "total_hermanos": total,
        "porcentaje_completitud": completitud,
        "enfoque_recomendado": ENFOQUE_RESUMEN if resumen else ENFOQUE_DETALLE,
        "tiene_hermanos_mixtos": 0 < len(clasificados) < total,
        "monto_faltante": round(sum(abs(h.cuenta.monto) for h in pendientes), 2),
    }


def recomendar_por_hermanos(
    codigo: str,
    concepto: str,
    familias: Mapping[str, Familia],
    parametros: ParametrosMotor = PARAMETROS_POR_DEFECTO,
) -> Recomendacion:
    """Recommend a tag for *codigo* by majority vote among its siblings.

    Siblings share parent and level with the account; only CLASSIFIED
    siblings other than the account itself vote.  When the most frequent
    ``clasificacion`` reaches ``umbral_patron_hermanos`` of the votes, the
    most common full tag carrying that value is recommended.

    Args:
        codigo: Account to classify.
        concepto: Concept text, used only in the reasoning.
        familias: Family map of the report the account belongs to.
        parametros: Engine thresholds.

    Returns:
        A ``Recomendacion``; ``etiqueta`` is ``None`` when no pattern
        reaches the threshold.
    """
    contexto = contexto_familia(codigo, familias, parametros)
    nodo = resolver_nodo(codigo)
    votantes = [
        h for h in _hermanos(familias.get(nodo.codigo_familia), nodo)
        if h.clasificado and h.codigo != nodo.codigo
    ]

    if votantes:
        conteo = Counter(h.cuenta.etiqueta.clasificacion for h in votantes)
        dominante, votos = conteo.most_common(1)[0]
        if votos / len(votantes) >= parametros.umbral_patron_hermanos:
            etiqueta, _ = Counter(
                h.cuenta.etiqueta for h in votantes
                if h.cuenta.etiqueta.clasificacion == dominante
            ).most_common(1)[0]
            logger.debug(
                "Sibling pattern %r for %s (%d/%d votes)",
                dominante, codigo, votos, len(votantes),
            )
            return Recomendacion(
                etiqueta=etiqueta,
                fuente=FUENTE_PATRON_HERMANOS,
                confianza=parametros.confianza_patron_hermanos,
                razonamiento=(
                    f"{votos} de {len(votantes)} cuentas hermanas clasificadas usan "
                    f"la clasificación '{dominante}' para cuentas como '{concepto}'."
                ),
                contexto_familia=contexto,
            )

    return Recomendacion(
        etiqueta=None,
        fuente=FUENTE_SIN_CLASIFICAR,
        confianza=0.0,
        razonamiento=(
            "Clasificación manual requerida. La familia está "
            f"{contexto['porcentaje_completitud']:.1f}% completa."
        ),
        contexto_familia=contexto,
    )
