"""ReglaClasificacion model — persisted classification rule per account code."""

from datetime import date

from sqlalchemy import Boolean, Column, Date, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from app.database import Base


class ReglaClasificacion(Base):
    """Source of truth for how an account code is classified on import.

    Lifecycle: created on first classification, edited (optionally with
    retroactive propagation to historical records), superseded when
    ``vigente_hasta`` is set and ``activa`` becomes False.

    Attributes:
        id: Primary key.
        codigo_cuenta: Account code the rule applies to.
        tipo / categoria_1 / sub_categoria / clasificacion: The tag, in
            ledger spelling.
        nivel_jerarquia: Derived level of the code (1-4).
        codigo_familia: Derived family code (first two segments).
        vigente_desde: First date the rule applies.
        vigente_hasta: Last date the rule applies, ``None`` while current.
        activa: False once superseded.
        aplica_a_reportes: Reports updated by the last retroactive edit.
        motivo: Reason recorded with the last edit.
        actualizado_por: User id (token subject) of the last editor.
    """

    __tablename__ = "regla_clasificacion"

    id = Column(Integer, primary_key=True, autoincrement=True)
    codigo_cuenta = Column(String(17), nullable=False, index=True)
    tipo = Column(String(20), default="Indefinido", nullable=False)
    categoria_1 = Column(String(200), default="Sin Categoría", nullable=False)
    sub_categoria = Column(String(200), default="Sin Subcategoría", nullable=False)
    clasificacion = Column(String(200), default="Sin Clasificación", nullable=False)
    nivel_jerarquia = Column(Integer, nullable=False)
    codigo_familia = Column(String(9), nullable=False, index=True)
    vigente_desde = Column(Date, default=date.today, nullable=False)
    vigente_hasta = Column(Date, nullable=True)
    activa = Column(Boolean, default=True, nullable=False)
    aplica_a_reportes = Column(Integer, default=0, nullable=False)
    motivo = Column(Text, nullable=True)
    actualizado_por = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)
