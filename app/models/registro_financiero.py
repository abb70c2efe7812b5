"""RegistroFinanciero model — one account row of a reporting period."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.database import Base


class RegistroFinanciero(Base):
    """Ledger account row with its classification tag.

    The four tag columns keep the ledger spelling, so an unset field is
    stored as its sentinel label ("Indefinido", "Sin Categoría", ...).

    Attributes:
        id: Primary key.
        reporte_id: FK to ReporteFinanciero.
        codigo: Account code ``NNNN-NNNN-NNN-NNN``.
        concepto: Account description.
        planta: Plant identifier, e.g. ``"P1"``.
        cargos: Debits of the period.
        abonos: Credits of the period.
        monto: Signed net amount.
        tipo: "Ingresos", "Egresos" or "Indefinido".
        categoria_1: Management category.
        sub_categoria: Sub-category.
        clasificacion: Final classification label.
    """

    __tablename__ = "registro_financiero"
    __table_args__ = (
        UniqueConstraint("reporte_id", "codigo", name="uq_registro_reporte_codigo"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    reporte_id = Column(Integer, ForeignKey("reporte_financiero.id"), nullable=False, index=True)
    codigo = Column(String(17), nullable=False, index=True)
    concepto = Column(String(300), nullable=True)
    planta = Column(String(20), nullable=True)
    cargos = Column(Numeric(15, 2), default=0, nullable=True)
    abonos = Column(Numeric(15, 2), default=0, nullable=True)
    monto = Column(Numeric(15, 2), default=0, nullable=False)
    tipo = Column(String(20), default="Indefinido", nullable=False)
    categoria_1 = Column(String(200), default="Sin Categoría", nullable=False)
    sub_categoria = Column(String(200), default="Sin Subcategoría", nullable=False)
    clasificacion = Column(String(200), default="Sin Clasificación", nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    reporte = relationship(
        "ReporteFinanciero", back_populates="registros", lazy="select"
    )
