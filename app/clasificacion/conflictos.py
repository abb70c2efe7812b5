"""
Conflict detector.

Walks one family bottom-up and returns the structural findings as
``Issue`` values.  Findings are domain output, never exceptions:

- ``MIXED_LEVEL4_SIBLINGS`` / ``MIXED_LEVEL3_SIBLINGS``: within one
  sibling group some accounts are classified and others are still
  pending (unclassified or partial).  Accounts under a classified
  ancestor are covered by that summary classification and do not count
  as pending.
- ``OVER_CLASSIFICATION``: a classified account has classified
  descendants, so the descendants' amounts are counted twice.  One issue
  per top-most classified account; impact is the sum of the nested
  classified amounts.
- ``UNDER_CLASSIFICATION``: the family carries money but nothing in it
  is classified.

Level 4 is evaluated before level 3 so that a level-3 summary
classification is only accepted when none of its children is also
classified.
"""

from __future__ import annotations

import enum
import logging
from collections import defaultdict
from dataclasses import dataclass, field

from app.clasificacion.estado import EstadoClasificacion
from app.clasificacion.familias import Familia, MiembroFamilia
from app.clasificacion.parametros import PARAMETROS_POR_DEFECTO, ParametrosMotor
from app.utils.constants import PRIORIDAD_MINIMA, PRIORIDAD_UMBRALES

logger = logging.getLogger(__name__)


class TipoError(str, enum.Enum):
    OVER_CLASSIFICATION = "OVER_CLASSIFICATION"
    MIXED_LEVEL3_SIBLINGS = "MIXED_LEVEL3_SIBLINGS"
    MIXED_LEVEL4_SIBLINGS = "MIXED_LEVEL4_SIBLINGS"
    UNDER_CLASSIFICATION = "UNDER_CLASSIFICATION"


class Severidad(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


@dataclass(frozen=True)
class Issue:
    """A single conflict finding inside a family.

    Attributes:
        tipo_error: Kind of finding.
        severidad: Severity level.
        impacto_financiero: Absolute amount affected, in currency units.
        codigos_afectados: Codes that need attention (pending siblings,
            or the nested classified accounts for over-classification).
        codigo_familia: Family the finding belongs to.
        codigo_padre: Parent of the sibling group, or the top classified
            account for over-classification.
        codigos_clasificados: Codes already classified in the group.
        porcentaje_completitud: Share of the group that is classified or
            covered, 0-100.
        mensaje: Human-readable explanation.
        acciones_sugeridas: Remediation options for a reviewer.
        prioridad: 1 (most urgent) to 5.
    """

    tipo_error: TipoError
    severidad: Severidad
    impacto_financiero: float
    codigos_afectados: tuple[str, ...]
    codigo_familia: str
    codigo_padre: str | None = None
    codigos_clasificados: tuple[str, ...] = ()
    porcentaje_completitud: float | None = None
    mensaje: str = ""
    acciones_sugeridas: tuple[str, ...] = field(default_factory=tuple)
    prioridad: int = PRIORIDAD_MINIMA


def calcular_prioridad(impacto: float) -> int:
    """Rank an impact amount: 1 for >= 5M down to 5 below 100k."""
    for umbral, prioridad in PRIORIDAD_UMBRALES:
        if abs(impacto) >= umbral:
            return prioridad
    return PRIORIDAD_MINIMA


def _monto(miembros: list[MiembroFamilia]) -> float:
    return round(sum(abs(m.cuenta.monto) for m in miembros), 2)


def _es_evaluable(miembro: MiembroFamilia) -> bool:
    return miembro.estado is not EstadoClasificacion.HIERARCHY


def _cubierto_por_detalle(familia: Familia, miembro: MiembroFamilia) -> bool:
    """True when every present descendant of *miembro* is classified."""
    descendientes = familia.descendientes(miembro)
    return bool(descendientes) and all(d.clasificado for d in descendientes)


# ---------------------------------------------------------------------------
# Mixed siblings
# ---------------------------------------------------------------------------


def _hermanos_mixtos(familia: Familia, nivel: int) -> list[Issue]:
    tipo = (
        TipoError.MIXED_LEVEL4_SIBLINGS if nivel == 4 else TipoError.MIXED_LEVEL3_SIBLINGS
    )
    grupos: dict[str, list[MiembroFamilia]] = defaultdict(list)
    for miembro in familia.nivel(nivel):
        if _es_evaluable(miembro) and miembro.nodo.codigo_padre is not None:
            grupos[miembro.nodo.codigo_padre].append(miembro)

    issues = []
    for codigo_padre in sorted(grupos):
        hermanos = grupos[codigo_padre]
        # A branch classified in full at detail level counts as classified.
        clasificados = [
            m for m in hermanos
            if m.clasificado or _cubierto_por_detalle(familia, m)
        ]
        pendientes = [
            m for m in hermanos
            if m not in clasificados and not familia.tiene_ancestro_clasificado(m)
        ]
        if not clasificados or not pendientes:
            continue

        total = len(hermanos)
        impacto = _monto(pendientes)
        completitud = round((total - len(pendientes)) / total * 100, 2)
        severidad = Severidad.HIGH if len(pendientes) / total > 0.5 else Severidad.MEDIUM
        acciones = [
            f"Clasificar las {len(pendientes)} cuentas faltantes:",
            *(
                f"{m.codigo} - {m.cuenta.concepto} ({abs(m.cuenta.monto):,.2f})"
                for m in pendientes
            ),
            (
                f"Alternativa: desclasificar las {len(clasificados)} cuentas hermanas "
                f"y clasificar el padre {codigo_padre} como resumen"
            ),
        ]
        issues.append(
            Issue(
                tipo_error=tipo,
                severidad=severidad,
                impacto_financiero=impacto,
                codigos_afectados=tuple(m.codigo for m in pendientes),
                codigo_familia=familia.codigo_familia,
                codigo_padre=codigo_padre,
                codigos_clasificados=tuple(m.codigo for m in clasificados),
                porcentaje_completitud=completitud,
                mensaje=(
                    f"Clasificación mixta en nivel {nivel} bajo {codigo_padre}: "
                    f"{len(clasificados)} de {total} cuentas hermanas están clasificadas."
                ),
                acciones_sugeridas=tuple(acciones),
                prioridad=calcular_prioridad(impacto),
            )
        )
    return issues


# ---------------------------------------------------------------------------
# Over-classification
# ---------------------------------------------------------------------------


def _sobre_clasificacion(familia: Familia, nivel_minimo: int) -> list[Issue]:
    issues = []
    for miembro in familia.miembros:
        if not miembro.clasificado or miembro.nodo.nivel < nivel_minimo:
            continue
        if any(
            a.clasificado and a.nodo.nivel >= nivel_minimo
            for a in familia.ancestros(miembro)
        ):
            # Reported under its top-most classified ancestor.
            continue
        anidados = [d for d in familia.descendientes(miembro) if d.clasificado]
        if not anidados:
            continue

        impacto = _monto(anidados)
        issues.append(
            Issue(
                tipo_error=TipoError.OVER_CLASSIFICATION,
                severidad=Severidad.CRITICAL,
                impacto_financiero=impacto,
                codigos_afectados=tuple(d.codigo for d in anidados),
                codigo_familia=familia.codigo_familia,
                codigo_padre=miembro.codigo,
                codigos_clasificados=(miembro.codigo, *(d.codigo for d in anidados)),
                mensaje=(
                    f"Sobre-clasificación: {miembro.codigo} ({miembro.cuenta.concepto}) "
                    f"está clasificada y también {len(anidados)} de sus cuentas hijas; "
                    f"{impacto:,.2f} se contarían dos veces."
                ),
                acciones_sugeridas=(
                    "Elegir un solo nivel de clasificación para evitar doble conteo",
                    f"Recomendado: mantener el detalle y desclasificar {miembro.codigo}",
                    f"Alternativa: mantener {miembro.codigo} como resumen y "
                    "desclasificar sus cuentas hijas",
                ),
                prioridad=1,
            )
        )
    return issues


# ---------------------------------------------------------------------------
# Under-classification
# ---------------------------------------------------------------------------


def _sub_clasificacion(familia: Familia) -> list[Issue]:
    evaluables = [m for m in familia.miembros if _es_evaluable(m)]
    if not evaluables or any(m.clasificado for m in evaluables):
        return []
    if all(m.cuenta.monto == 0 for m in evaluables):
        return []

    raices = [m for m in familia.raices if _es_evaluable(m)]
    impacto = _monto(raices)
    return [
        Issue(
            tipo_error=TipoError.UNDER_CLASSIFICATION,
            severidad=Severidad.MEDIUM,
            impacto_financiero=impacto,
            codigos_afectados=tuple(m.codigo for m in evaluables),
            codigo_familia=familia.codigo_familia,
            porcentaje_completitud=0.0,
            mensaje=(
                f"La familia {familia.codigo_familia} ({familia.nombre}) no tiene "
                f"ninguna cuenta clasificada; {impacto:,.2f} quedan fuera de los reportes."
            ),
            acciones_sugeridas=(
                "Clasificar las cuentas de detalle de la familia",
                "Alternativa: clasificar una sola cuenta resumen por rama",
            ),
            prioridad=calcular_prioridad(impacto),
        )
    ]


def detectar_conflictos(
    familia: Familia,
    parametros: ParametrosMotor = PARAMETROS_POR_DEFECTO,
) -> list[Issue]:
    """Return every finding for a family, bottom-up and ordered by code.

    Families listed in ``parametros.familias_resumen`` are checked for
    sibling completeness only at their summary level, and classified
    headers above that level are not reported as over-classification.
    """
    nivel_resumen = parametros.nivel_resumen(familia.codigo_familia)

    issues: list[Issue] = []
    for nivel in (4, 3):
        if nivel_resumen is None or nivel_resumen == nivel:
            issues.extend(_hermanos_mixtos(familia, nivel))
    issues.extend(_sobre_clasificacion(familia, nivel_resumen or 1))
    issues.extend(_sub_clasificacion(familia))

    if issues:
        logger.debug(
            "Family %s: %d issues (%s)",
            familia.codigo_familia,
            len(issues),
            ", ".join(sorted({i.tipo_error.value for i in issues})),
        )
    return issues
