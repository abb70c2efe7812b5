"""Account hierarchy and classification-consistency engine.

Pure, synchronous functions over an in-memory batch of ``CuentaContable``
values.  Nothing in this package touches the database or the settings:
thresholds arrive through an explicit ``ParametrosMotor``.

Public API
----------
resolver_nodo            — Level, parent and children prefix of a code.
construir_jerarquia      — Resolve a batch and compare with the legacy heuristic.
clasificar_estado        — CLASSIFIED / PARTIAL / UNCLASSIFIED / HIERARCHY.
agrupar_familias         — One-pass map family code → ``Familia``.
detectar_conflictos      — Findings (``Issue``) for one family.
recomendar_por_hermanos  — Sibling majority-vote suggestion.
contexto_familia         — Sibling context block for reviewers.
validar_familias         — Per-family results for a whole report.
resumir                  — Global summary of family results.
conciliar_totales        — Control totals vs classified totals.
validar_montos_jerarquia — Parent amount vs direct children sum.

Usage example::

    from app.clasificacion import CuentaContable, EtiquetaClasificacion, validar_familias

    cuentas = [
        CuentaContable("5000-2001-000-000", "Sueldos", 304411.69,
                       EtiquetaClasificacion.desde_valores("Egresos", "Nómina", None, "Sueldos")),
    ]
    for resultado in validar_familias(cuentas):
        print(resultado.codigo_familia, resultado.impacto_financiero)
"""

from .codigos import (
    DetectadoPor,
    IndiceJerarquia,
    NodoJerarquia,
    codigo_familia,
    construir_jerarquia,
    nivel_legado,
    parse_codigo,
    resolver_nodo,
)
from .conciliacion import conciliar_totales, validar_montos_jerarquia
from .conflictos import Issue, Severidad, TipoError, calcular_prioridad, detectar_conflictos
from .estado import EstadoClasificacion, clasificar_estado
from .etiquetas import CuentaContable, EtiquetaClasificacion, TipoCuenta
from .familias import Familia, MiembroFamilia, agrupar_familias
from .parametros import PARAMETROS_POR_DEFECTO, ParametrosMotor
from .recomendador import (
    ENFOQUE_DETALLE,
    ENFOQUE_RESUMEN,
    FUENTE_PATRON_HERMANOS,
    FUENTE_SIN_CLASIFICAR,
    Recomendacion,
    contexto_familia,
    recomendar_por_hermanos,
)
from .reporte import EnfoqueRecomendado, ResultadoFamilia, resumir, validar_familia, validar_familias

__all__ = [
    "CuentaContable",
    "DetectadoPor",
    "ENFOQUE_DETALLE",
    "ENFOQUE_RESUMEN",
    "EnfoqueRecomendado",
    "EstadoClasificacion",
    "EtiquetaClasificacion",
    "FUENTE_PATRON_HERMANOS",
    "FUENTE_SIN_CLASIFICAR",
    "Familia",
    "IndiceJerarquia",
    "Issue",
    "MiembroFamilia",
    "NodoJerarquia",
    "PARAMETROS_POR_DEFECTO",
    "ParametrosMotor",
    "Recomendacion",
    "ResultadoFamilia",
    "Severidad",
    "TipoCuenta",
    "TipoError",
    "agrupar_familias",
    "calcular_prioridad",
    "clasificar_estado",
    "codigo_familia",
    "conciliar_totales",
    "construir_jerarquia",
    "contexto_familia",
    "detectar_conflictos",
    "nivel_legado",
    "parse_codigo",
    "recomendar_por_hermanos",
    "resolver_nodo",
    "resumir",
    "validar_familia",
    "validar_familias",
    "validar_montos_jerarquia",
]
