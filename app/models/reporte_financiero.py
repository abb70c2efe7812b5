"""ReporteFinanciero model — one imported ledger export (reporting period)."""

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.database import Base


class ReporteFinanciero(Base):
    """Reporting period created by the import pipeline.

    Attributes:
        id: Primary key.
        nombre: Display name, e.g. ``"Balanza Marzo 2025"``.
        mes: Month of the period (1-12).
        anio: Year of the period.
        archivo_nombre: Original filename of the ledger export.
        created_at: Import timestamp.
    """

    __tablename__ = "reporte_financiero"

    id = Column(Integer, primary_key=True, autoincrement=True)
    nombre = Column(String(200), nullable=False)
    mes = Column(Integer, nullable=False)
    anio = Column(Integer, nullable=False)
    archivo_nombre = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)

    # Relationships
    registros = relationship(
        "RegistroFinanciero", back_populates="reporte", lazy="select"
    )
