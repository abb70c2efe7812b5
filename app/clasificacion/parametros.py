"""Engine configuration passed explicitly into every validation call."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from app.utils.constants import (
    CODIGOS_CONTROL,
    CONFIANZA_PATRON_HERMANOS,
    TOLERANCIA_CONCILIACION,
    UMBRAL_PATRON_HERMANOS,
    UMBRAL_RESUMEN_NIVEL4,
)


@dataclass(frozen=True)
class ParametrosMotor:
    """Immutable thresholds for one validation pass.

    Attributes:
        umbral_patron_hermanos: Minimum share of classified siblings that
            must agree on a ``clasificacion`` before it is recommended.
        confianza_patron_hermanos: Confidence reported with a sibling
            recommendation.
        umbral_resumen_nivel4: Families with more level-4 members than this
            are advised to classify once at level 3.
        tolerancia_conciliacion: Accepted difference between a control
            total and the classified total, in currency units.
        codigos_control: Control account code per tipo label.
        familias_resumen: Families explicitly classified at a single
            summary level, keyed by family code (``"5000-2001"``).
    """

    umbral_patron_hermanos: float = UMBRAL_PATRON_HERMANOS
    confianza_patron_hermanos: float = CONFIANZA_PATRON_HERMANOS
    umbral_resumen_nivel4: int = UMBRAL_RESUMEN_NIVEL4
    tolerancia_conciliacion: float = TOLERANCIA_CONCILIACION
    codigos_control: Mapping[str, str] = field(
        default_factory=lambda: dict(CODIGOS_CONTROL)
    )
    familias_resumen: Mapping[str, int] = field(default_factory=dict)

    def es_control(self, codigo: str) -> bool:
        return codigo in self.codigos_control.values()

    def nivel_resumen(self, codigo_familia: str) -> int | None:
        """Return the summary level configured for a family, if any."""
        return self.familias_resumen.get(codigo_familia)


PARAMETROS_POR_DEFECTO = ParametrosMotor()
