"""Classification status of a single account record."""

from __future__ import annotations

import enum
from collections.abc import Iterable

from app.clasificacion.etiquetas import EtiquetaClasificacion
from app.utils.constants import CODIGOS_CONTROL


class EstadoClasificacion(str, enum.Enum):
    CLASSIFIED = "CLASSIFIED"
    PARTIAL = "PARTIAL"
    UNCLASSIFIED = "UNCLASSIFIED"
    # Reserved for the ledger grand-total control accounts.
    HIERARCHY = "HIERARCHY"


def clasificar_estado(
    etiqueta: EtiquetaClasificacion,
    codigo: str | None = None,
    codigos_control: Iterable[str] | None = None,
) -> EstadoClasificacion:
    """Return the classification status of a tag.

    Control accounts are always ``HIERARCHY`` whatever their tag says:
    they are reconciliation targets and must never count as classified.

    Args:
        etiqueta: The record's classification tag.
        codigo: Account code, used only to recognise control accounts.
        codigos_control: Control codes to recognise; defaults to the
            Ingresos/Egresos roots.

    Returns:
        ``CLASSIFIED`` when tipo, categoria_1 and clasificacion are set,
        ``PARTIAL`` when only tipo is set without categoria_1,
        ``UNCLASSIFIED`` otherwise.
    """
    control = CODIGOS_CONTROL.values() if codigos_control is None else codigos_control
    if codigo is not None and codigo in control:
        return EstadoClasificacion.HIERARCHY
    if etiqueta.completa:
        return EstadoClasificacion.CLASSIFIED
    if etiqueta.tipo is not None and etiqueta.categoria_1 is None:
        return EstadoClasificacion.PARTIAL
    return EstadoClasificacion.UNCLASSIFIED
