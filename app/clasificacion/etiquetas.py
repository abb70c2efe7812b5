"""Classification tag value types.

A ledger export stores each of the four tag fields as free text where an
"unset" field is spelled with a sentinel label (``"Indefinido"``,
``"Sin Categoría"``, ...).  Inside the engine every field is an optional
value instead: ``None`` means unset, anything else is the business value.
Conversion from and to the sentinel spelling happens only at the edges
(``EtiquetaClasificacion.desde_valores`` / ``a_valores``).
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, replace
from typing import Any

from app.utils.constants import (
    SIN_CATEGORIA,
    SIN_CLASIFICACION,
    SIN_SUBCATEGORIA,
    SIN_TIPO,
    TIPO_EGRESOS,
    TIPO_INGRESOS,
)

logger = logging.getLogger(__name__)


class TipoCuenta(str, enum.Enum):
    """Account type domain; an unset type is represented by ``None``."""

    INGRESOS = TIPO_INGRESOS
    EGRESOS = TIPO_EGRESOS


def _campo(valor: Any, centinela: str) -> str | None:
    """Normalise a raw text field: blanks and the sentinel label become ``None``."""
    if valor is None:
        return None
    texto = str(valor).strip()
    if not texto or texto == centinela:
        return None
    return texto


def _tipo(valor: Any) -> TipoCuenta | None:
    if isinstance(valor, TipoCuenta):
        return valor
    texto = _campo(valor, SIN_TIPO)
    if texto is None:
        return None
    for tipo in TipoCuenta:
        if tipo.value.lower() == texto.lower():
            return tipo
    logger.debug("Tipo de cuenta desconocido %r tratado como Indefinido", texto)
    return None


@dataclass(frozen=True)
class EtiquetaClasificacion:
    """Four-field business classification attached to an account record.

    Attributes:
        tipo: ``TipoCuenta`` or ``None`` when undefined.
        categoria_1: Top-level management category, or ``None``.
        sub_categoria: Sub-category, or ``None``.
        clasificacion: Final classification label, or ``None``.
    """

    tipo: TipoCuenta | None = None
    categoria_1: str | None = None
    sub_categoria: str | None = None
    clasificacion: str | None = None

    @classmethod
    def desde_valores(
        cls,
        tipo: Any = None,
        categoria_1: Any = None,
        sub_categoria: Any = None,
        clasificacion: Any = None,
    ) -> "EtiquetaClasificacion":
        """Build a tag from raw text values, mapping sentinel labels to ``None``."""
        return cls(
            tipo=_tipo(tipo),
            categoria_1=_campo(categoria_1, SIN_CATEGORIA),
            sub_categoria=_campo(sub_categoria, SIN_SUBCATEGORIA),
            clasificacion=_campo(clasificacion, SIN_CLASIFICACION),
        )

    def a_valores(self) -> dict[str, str]:
        """Return the four fields as text, spelling unset fields with their sentinel."""
        return {
            "tipo": self.tipo.value if self.tipo is not None else SIN_TIPO,
            "categoria_1": self.categoria_1 or SIN_CATEGORIA,
            "sub_categoria": self.sub_categoria or SIN_SUBCATEGORIA,
            "clasificacion": self.clasificacion or SIN_CLASIFICACION,
        }

    def combinar(self, cambios: "EtiquetaClasificacion") -> "EtiquetaClasificacion":
        """Overlay the fields that are set in *cambios* on top of this tag."""
        valores = {
            nombre: valor
            for nombre, valor in (
                ("tipo", cambios.tipo),
                ("categoria_1", cambios.categoria_1),
                ("sub_categoria", cambios.sub_categoria),
                ("clasificacion", cambios.clasificacion),
            )
            if valor is not None
        }
        return replace(self, **valores)

    @property
    def completa(self) -> bool:
        """True when tipo, categoria_1 and clasificacion are all set."""
        return (
            self.tipo is not None
            and self.categoria_1 is not None
            and self.clasificacion is not None
        )

    @property
    def subcategoria_completa(self) -> bool:
        return self.sub_categoria is not None


ETIQUETA_VACIA = EtiquetaClasificacion()


@dataclass(frozen=True)
class CuentaContable:
    """One account record as seen by the engine.

    ``monto`` is signed; ``reporte_id`` and ``planta`` are informational
    and never influence hierarchy or conflict analysis.
    """

    codigo: str
    concepto: str
    monto: float
    etiqueta: EtiquetaClasificacion = ETIQUETA_VACIA
    planta: str | None = None
    reporte_id: int | None = None
