"""Family validation reporter.

Aggregates conflict findings per family and across a whole report.  A
validation pass is a pure function of the accounts it receives: running
it twice on the same batch yields identical results.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from app.clasificacion.codigos import IndiceJerarquia
from app.clasificacion.conflictos import Issue, TipoError, detectar_conflictos
from app.clasificacion.estado import EstadoClasificacion
from app.clasificacion.etiquetas import CuentaContable
from app.clasificacion.familias import Familia, agrupar_familias
from app.clasificacion.parametros import PARAMETROS_POR_DEFECTO, ParametrosMotor
from app.clasificacion.recomendador import ENFOQUE_DETALLE, ENFOQUE_RESUMEN

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnfoqueRecomendado:
    enfoque: str
    razonamiento: str
    acciones: tuple[str, ...] = ()


@dataclass
class ResultadoFamilia:
    codigo_familia: str
    nombre_familia: str
    monto_total: float
    issues: list[Issue]
    impacto_financiero: float
    porcentaje_completitud: float
    enfoque: EnfoqueRecomendado
    avisos: list[str] = field(default_factory=list)

    @property
    def tiene_problemas(self) -> bool:
        return bool(self.issues)


def _completitud(familia: Familia) -> float:
    """Share of non-control leaves that are classified or covered, 0-100."""
    hojas = [
        h for h in familia.hojas if h.estado is not EstadoClasificacion.HIERARCHY
    ]
    if not hojas:
        return 100.0
    cubiertas = sum(
        1 for h in hojas if h.clasificado or familia.tiene_ancestro_clasificado(h)
    )
    return round(cubiertas / len(hojas) * 100, 2)


def _enfoque(familia: Familia, parametros: ParametrosMotor) -> EnfoqueRecomendado:
    nivel4 = len(familia.nivel(4))
    nivel_resumen = parametros.nivel_resumen(familia.codigo_familia)
    if nivel_resumen is not None:
        return EnfoqueRecomendado(
            enfoque=ENFOQUE_RESUMEN,
            razonamiento=(
                f"La familia está configurada para clasificarse como resumen en el "
                f"nivel {nivel_resumen}."
            ),
            acciones=(
                f"Clasificar solo las cuentas de nivel {nivel_resumen}",
                "Dejar sin clasificar las cuentas de detalle que cubren",
            ),
        )
    if nivel4 > parametros.umbral_resumen_nivel4:
        return EnfoqueRecomendado(
            enfoque=ENFOQUE_RESUMEN,
            razonamiento=(
                f"La familia tiene {nivel4} cuentas de detalle (más de "
                f"{parametros.umbral_resumen_nivel4}); clasificar una vez en el nivel 3 "
                "reduce el trabajo manual sin perder los totales."
            ),
            acciones=(
                "Clasificar cada cuenta de nivel 3",
                "Desclasificar las cuentas de nivel 4 bajo esas cuentas",
            ),
        )
    return EnfoqueRecomendado(
        enfoque=ENFOQUE_DETALLE,
        razonamiento=(
            f"La familia tiene {nivel4} cuentas de detalle; clasificarlas una a una "
            "permite el análisis granular."
        ),
        acciones=(
            "Clasificar cada cuenta de nivel 4",
            "No clasificar las cuentas padre de esas cuentas",
        ),
    )


def _avisos(familia: Familia) -> list[str]:
    avisos = []
    for miembro in familia.miembros:
        nodo = miembro.nodo
        if nodo.advertencia:
            avisos.append(nodo.advertencia)
        elif (
            nodo.codigo_padre is not None
            and nodo.nivel > 2
            and familia.por_codigo(nodo.codigo_padre) is None
        ):
            avisos.append(
                f"{nodo.codigo}: cuenta padre {nodo.codigo_padre} no presente en el reporte"
            )
    return avisos


def validar_familia(
    familia: Familia, parametros: ParametrosMotor = PARAMETROS_POR_DEFECTO
) -> ResultadoFamilia:
    issues = detectar_conflictos(familia, parametros)
    return ResultadoFamilia(
        codigo_familia=familia.codigo_familia,
        nombre_familia=familia.nombre,
        monto_total=round(familia.monto_total, 2),
        issues=issues,
        impacto_financiero=round(sum(i.impacto_financiero for i in issues), 2),
        porcentaje_completitud=_completitud(familia),
        enfoque=_enfoque(familia, parametros),
        avisos=_avisos(familia),
    )


def validar_familias(
    cuentas: Iterable[CuentaContable],
    parametros: ParametrosMotor = PARAMETROS_POR_DEFECTO,
    incluir_perfectas: bool = False,
) -> list[ResultadoFamilia]:
    """Validate every family of a batch.

    Args:
        cuentas: Accounts of one report.
        parametros: Engine thresholds.
        incluir_perfectas: Also return families without issues.

    Returns:
        Family results ordered by financial impact (highest first), then
        by family code.
    """
    familias = agrupar_familias(cuentas, parametros, IndiceJerarquia())
    resultados = [validar_familia(f, parametros) for f in familias.values()]
    if not incluir_perfectas:
        resultados = [r for r in resultados if r.tiene_problemas]
    resultados.sort(key=lambda r: (-r.impacto_financiero, r.codigo_familia))
    logger.debug(
        "Validated %d families, %d with issues",
        len(familias),
        sum(1 for r in resultados if r.tiene_problemas),
    )
    return resultados


def resumir(resultados: list[ResultadoFamilia]) -> dict[str, Any]:
    """Global summary: families per issue type and total impact."""
    conteo: Counter[str] = Counter({t.value: 0 for t in TipoError})
    for resultado in resultados:
        for tipo in {i.tipo_error.value for i in resultado.issues}:
            conteo[tipo] += 1
    con_problemas = sum(1 for r in resultados if r.tiene_problemas)
    return {
        "total_familias": len(resultados),
        "familias_con_problemas": con_problemas,
        "familias_perfectas": len(resultados) - con_problemas,
        "conteo_por_tipo": dict(conteo),
        "impacto_financiero_total": round(
            sum(r.impacto_financiero for r in resultados), 2
        ),
    }
