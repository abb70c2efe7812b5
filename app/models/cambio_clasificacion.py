"""CambioClasificacion model — audit trail of retroactive tag changes."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func

from app.database import Base


class CambioClasificacion(Base):
    """One row per record touched by a retroactive rule propagation.

    Written in the same transaction as the record update, so the trail
    never shows a change that was rolled back.
    """

    __tablename__ = "cambio_clasificacion"

    id = Column(Integer, primary_key=True, autoincrement=True)
    registro_id = Column(Integer, ForeignKey("registro_financiero.id"), nullable=False, index=True)
    regla_id = Column(Integer, ForeignKey("regla_clasificacion.id"), nullable=True)
    reporte_id = Column(Integer, nullable=False)
    codigo = Column(String(17), nullable=False, index=True)
    etiqueta_anterior = Column(Text, nullable=False)  # JSON
    etiqueta_nueva = Column(Text, nullable=False)  # JSON
    motivo = Column(Text, nullable=True)
    usuario_id = Column(String(100), nullable=True)
    fecha = Column(DateTime, default=func.now(), nullable=False)
