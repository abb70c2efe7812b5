"""
Application-wide constants for the financial dashboard backend.

Defines domain enumerations, sentinel labels, business rule thresholds,
and the reserved control-account codes used across routers, services,
and the classification engine.
"""

from typing import Final

# ---------------------------------------------------------------------------
# User roles (issued by the external identity provider)
# ---------------------------------------------------------------------------

ROLES: Final[list[str]] = [
    "ADMIN",
    "CONTABILIDAD",
    "CONSULTA",
]

ROLES_EDICION_REGLAS: Final[tuple[str, ...]] = ("ADMIN", "CONTABILIDAD")

# ---------------------------------------------------------------------------
# Classification tag: account types and "unset" sentinel labels
# ---------------------------------------------------------------------------

TIPO_INGRESOS: Final[str] = "Ingresos"
TIPO_EGRESOS: Final[str] = "Egresos"

SIN_TIPO: Final[str] = "Indefinido"
SIN_CATEGORIA: Final[str] = "Sin Categoría"
SIN_SUBCATEGORIA: Final[str] = "Sin Subcategoría"
SIN_CLASIFICACION: Final[str] = "Sin Clasificación"

# ---------------------------------------------------------------------------
# Reserved level-1 control accounts (ledger grand totals)
# ---------------------------------------------------------------------------

CODIGO_CONTROL_INGRESOS: Final[str] = "4100-0000-000-000"
CODIGO_CONTROL_EGRESOS: Final[str] = "5000-0000-000-000"

CODIGOS_CONTROL: Final[dict[str, str]] = {
    TIPO_INGRESOS: CODIGO_CONTROL_INGRESOS,
    TIPO_EGRESOS: CODIGO_CONTROL_EGRESOS,
}

# ---------------------------------------------------------------------------
# Engine thresholds (defaults; overridable through Settings)
# ---------------------------------------------------------------------------

UMBRAL_PATRON_HERMANOS: Final[float] = 0.60
CONFIANZA_PATRON_HERMANOS: Final[float] = 0.85
UMBRAL_RESUMEN_NIVEL4: Final[int] = 15       # > 15 level-4 members → summary
TOLERANCIA_CONCILIACION: Final[float] = 0.01  # currency units

# ---------------------------------------------------------------------------
# Issue priority thresholds (absolute amount, currency units)
# ---------------------------------------------------------------------------

PRIORIDAD_UMBRALES: Final[list[tuple[float, int]]] = [
    (5_000_000.0, 1),
    (1_000_000.0, 2),
    (500_000.0, 3),
    (100_000.0, 4),
]
PRIORIDAD_MINIMA: Final[int] = 5

# ---------------------------------------------------------------------------
# Hierarchy amount validation (parent vs children sum)
# ---------------------------------------------------------------------------

VARIANZA_PERFECTA_MAX: Final[float] = 1.0     # absolute, currency units
VARIANZA_MENOR_PCT: Final[float] = 1.0        # percent of parent amount
VARIANZA_MAYOR_PCT: Final[float] = 5.0
