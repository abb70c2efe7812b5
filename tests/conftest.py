"""Shared fixtures: in-memory SQLite database, seeded reports and JWTs."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("DEBUG", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.clasificacion import CuentaContable, EtiquetaClasificacion
from app.database import Base, get_db
from app.main import app
from app.models import RegistroFinanciero, ReglaClasificacion, ReporteFinanciero
from app.utils.security import create_access_token


def etiqueta(clasificacion, tipo="Egresos", categoria="Gastos de Operación"):
    """Complete tag helper; ``clasificacion=None`` yields an unclassified tag."""
    if clasificacion is None:
        return EtiquetaClasificacion()
    return EtiquetaClasificacion.desde_valores(tipo, categoria, None, clasificacion)


def cuenta(codigo, monto=0.0, clasificacion=None, concepto=None, tipo="Egresos"):
    return CuentaContable(
        codigo=codigo,
        concepto=concepto or f"Cuenta {codigo}",
        monto=monto,
        etiqueta=etiqueta(clasificacion, tipo=tipo),
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    SessionTesting = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = SessionTesting()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(engine):
    SessionTesting = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def _get_db():
        session = SessionTesting()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    token = create_access_token({"sub": "7", "username": "contador", "rol": "ADMIN"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def consulta_headers():
    token = create_access_token({"sub": "9", "username": "lector", "rol": "CONSULTA"})
    return {"Authorization": f"Bearer {token}"}


def crear_reporte(db, mes, anio=2025, registros=()):
    """Insert a report with ``(codigo, monto, clasificacion)`` rows."""
    reporte = ReporteFinanciero(nombre=f"Balanza {mes}/{anio}", mes=mes, anio=anio)
    db.add(reporte)
    db.flush()
    for codigo, monto, clasificacion in registros:
        valores = etiqueta(clasificacion).a_valores()
        db.add(
            RegistroFinanciero(
                reporte_id=reporte.id,
                codigo=codigo,
                concepto=f"Cuenta {codigo}",
                monto=monto,
                **valores,
            )
        )
    db.commit()
    return reporte


@pytest.fixture
def reporte_doble_conteo(db):
    """The over-classification scenario: a level-2 header and its child both classified."""
    return crear_reporte(
        db,
        mes=3,
        registros=[
            ("5000-2000-000-000", -511203.51, "Gastos Generales"),
            ("5000-2001-000-000", 304411.69, "Nómina"),
            ("5000-2001-000-001", -165672.00, "Sueldos"),
        ],
    )


@pytest.fixture
def reportes_historicos(db):
    """Three periods, each containing ``5000-2001-000-000`` once, plus its rule."""
    reportes = [
        crear_reporte(
            db,
            mes=mes,
            registros=[
                ("5000-2001-000-000", 1000.0 * mes, "Nómina"),
                ("5000-2002-000-000", 50.0, "Servicios"),
            ],
        )
        for mes in (1, 2, 3)
    ]
    regla = ReglaClasificacion(
        codigo_cuenta="5000-2001-000-000",
        nivel_jerarquia=2,
        codigo_familia="5000-2001",
        **etiqueta("Nómina").a_valores(),
    )
    db.add(regla)
    db.commit()
    return reportes, regla
