"""Seed data script for the Dashboard Financiero database.

Populates the database with a small demo ledger: three monthly reports
whose families show every kind of classification finding (double
counting, mixed siblings, unclassified families) next to clean ones,
plus the classification rules of the classified codes.
The script is idempotent: it checks for existing records before inserting.

Usage (from the repository root):
    python seed_data.py
"""

from __future__ import annotations

import sys
import os
from decimal import Decimal

# Ensure the app package is importable when running from the repository root
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from app.clasificacion import EtiquetaClasificacion, resolver_nodo  # noqa: E402
from app.database import SessionLocal  # noqa: E402
from app.models import (  # noqa: E402
    RegistroFinanciero,
    ReglaClasificacion,
    ReporteFinanciero,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ANIO = 2025
MESES = (1, 2, 3)


def _dec(value: float) -> Decimal:
    """Convert float to Decimal for Numeric columns."""
    return Decimal(str(round(value, 2)))


def _tag(tipo: str | None, categoria: str | None, clasificacion: str | None) -> dict[str, str]:
    return EtiquetaClasificacion.desde_valores(tipo, categoria, None, clasificacion).a_valores()


# (codigo, concepto, monto base, tipo, categoria_1, clasificacion)
CUENTAS_DEMO: list[tuple[str, str, float, str | None, str | None, str | None]] = [
    # Control totals
    ("4100-0000-000-000", "INGRESOS", 1_250_000.00, None, None, None),
    ("5000-0000-000-000", "EGRESOS", 1_027_088.31, None, None, None),
    # Ingresos: classified at level 3 (summary), details covered
    ("4100-0300-000-000", "Ventas", 1_250_000.00, None, None, None),
    ("4100-0300-001-000", "Ventas Nacionales", 1_250_000.00, "Ingresos", "Ventas", "Ventas Nacionales"),
    ("4100-0300-001-001", "Ventas Planta 1", 800_000.00, None, None, None),
    ("4100-0300-001-002", "Ventas Planta 2", 450_000.00, None, None, None),
    # Egresos: header classified alongside its detail (double count)
    ("5000-2000-000-000", "Gastos Generales", 511_203.51, "Egresos", "Gastos de Operación", "Gastos Generales"),
    ("5000-2001-000-000", "Gastos de Personal", 304_411.69, "Egresos", "Gastos de Administración", "Nómina"),
    ("5000-2001-000-001", "Sueldos Administrativos", 165_672.00, "Egresos", "Gastos de Administración", "Sueldos y Salarios"),
    # Egresos: mixed level-4 siblings
    ("5000-2002-000-000", "Servicios", 45_801.11, None, None, None),
    ("5000-2002-017-000", "Servicios Básicos", 45_801.11, None, None, None),
    ("5000-2002-017-001", "Energía Eléctrica", 30_120.40, "Egresos", "Gastos de Operación", "Servicios Básicos"),
    ("5000-2002-017-002", "Agua Potable", 8_410.21, "Egresos", "Gastos de Operación", "Servicios Básicos"),
    ("5000-2002-017-003", "Telefonía", 7_270.50, None, None, None),
    # Egresos: nothing classified
    ("5000-2003-000-000", "Mantenimiento", 165_672.00, None, None, None),
    ("5000-2003-001-001", "Mantenimiento de Maquinaria", 165_672.00, None, None, None),
]


# ---------------------------------------------------------------------------
# Seed functions
# ---------------------------------------------------------------------------


def seed_reportes(session) -> list[ReporteFinanciero]:
    """Create one report per demo month with every demo account."""
    reportes = []
    for mes in MESES:
        nombre = f"Balanza {mes:02d}/{ANIO}"
        reporte = session.query(ReporteFinanciero).filter_by(nombre=nombre).first()
        if reporte is not None:
            print(f"  [SKIP] {nombre} ya existe")
            reportes.append(reporte)
            continue

        reporte = ReporteFinanciero(
            nombre=nombre, mes=mes, anio=ANIO, archivo_nombre=f"balanza_{ANIO}{mes:02d}.xlsx"
        )
        session.add(reporte)
        session.flush()
        # Small monthly drift so the history shows distinct amounts.
        factor = 1 + (mes - 1) * 0.01
        for codigo, concepto, monto, tipo, categoria, clasificacion in CUENTAS_DEMO:
            session.add(
                RegistroFinanciero(
                    reporte_id=reporte.id,
                    codigo=codigo,
                    concepto=concepto,
                    planta="P1",
                    monto=_dec(monto * factor),
                    **_tag(tipo, categoria, clasificacion),
                )
            )
        print(f"  [OK] {nombre}: {len(CUENTAS_DEMO)} cuentas")
        reportes.append(reporte)
    session.flush()
    return reportes


def seed_reglas(session) -> list[ReglaClasificacion]:
    """Create the active rule of every classified demo code."""
    reglas = []
    for codigo, _, _, tipo, categoria, clasificacion in CUENTAS_DEMO:
        if clasificacion is None:
            continue
        regla = (
            session.query(ReglaClasificacion)
            .filter_by(codigo_cuenta=codigo, activa=True)
            .first()
        )
        if regla is None:
            nodo = resolver_nodo(codigo)
            regla = ReglaClasificacion(
                codigo_cuenta=codigo,
                nivel_jerarquia=nodo.nivel,
                codigo_familia=nodo.codigo_familia,
                motivo="Carga inicial",
                **_tag(tipo, categoria, clasificacion),
            )
            session.add(regla)
        reglas.append(regla)
    session.flush()
    print(f"  [OK] {len(reglas)} reglas activas")
    return reglas


def seed(session) -> None:
    print("\n[1/2] Reportes financieros...")
    seed_reportes(session)

    print("\n[2/2] Reglas de clasificación...")
    seed_reglas(session)


def main() -> None:
    """Run the complete seed process within a single database transaction."""
    print("=" * 60)
    print("  Dashboard Financiero — Seed Data Script")
    print(f"  Año: {ANIO}")
    print("=" * 60)

    session = SessionLocal()
    try:
        seed(session)
        session.commit()
        print("\n" + "=" * 60)
        print("  Seed completado exitosamente.")
        print("=" * 60)

    except Exception as exc:
        session.rollback()
        print("\n[ERROR] Seed fallido — se hizo rollback.")
        print(f"  Detalle: {exc}")
        raise
    finally:
        session.close()


if __name__ == "__main__":
    main()
