"""SQLAlchemy models package for the financial dashboard.

Importing all models here ensures that SQLAlchemy's mapper registry is
populated before ``Base.metadata.create_all()`` or Alembic migrations run.
The import order follows the foreign-key dependency graph so that parent
tables are always registered before their children.

Usage from other modules:
    from app.models import RegistroFinanciero, ReglaClasificacion
"""

# Reporting periods and their account rows
from app.models.reporte_financiero import ReporteFinanciero  # noqa: F401
from app.models.registro_financiero import RegistroFinanciero  # noqa: F401

# Classification rules and the retroactive change audit trail
from app.models.regla_clasificacion import ReglaClasificacion  # noqa: F401
from app.models.cambio_clasificacion import CambioClasificacion  # noqa: F401

__all__ = [
    "ReporteFinanciero",
    "RegistroFinanciero",
    "ReglaClasificacion",
    "CambioClasificacion",
]
