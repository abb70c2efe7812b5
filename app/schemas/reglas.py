"""Pydantic v2 schemas for the classification rules module."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.common import EtiquetaSchema


class ReglaResponse(BaseModel):
    """Active classification rule with its live report count."""

    id: int
    codigo_cuenta: str
    clasificacion: EtiquetaSchema
    nivel_jerarquia: int
    codigo_familia: str
    vigente_desde: date | None = None
    vigente_hasta: date | None = None
    activa: bool
    aplica_a_reportes: int = Field(
        ..., ge=0, description="Reportes que contienen actualmente el código."
    )
    motivo: str | None = None


class ActualizarReglaRequest(BaseModel):
    cambios: EtiquetaSchema = Field(
        ..., description="Campos de la etiqueta a modificar; los omitidos se conservan."
    )
    aplicar_retroactivamente: bool = Field(
        default=False,
        description="True = actualizar todos los registros históricos con este código.",
    )
    motivo: str = Field(..., min_length=1, max_length=500, description="Motivo del cambio.")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "cambios": {"clasificacion": "Sueldos y Salarios"},
                "aplicar_retroactivamente": True,
                "motivo": "Unificar la nómina administrativa",
            }
        }
    )


class ActualizarReglaResponse(BaseModel):
    regla_id: int
    codigo_cuenta: str
    registros_afectados: int = Field(..., ge=0)
    reportes_afectados: int = Field(..., ge=0)
    impacto_financiero_total: float
    cambios: EtiquetaSchema


class CambioFuturo(BaseModel):
    codigo_cuenta: str = Field(..., min_length=1, max_length=30)
    clasificacion: EtiquetaSchema
    aplicar_retroactivamente: bool = False
    motivo: str | None = Field(default=None, max_length=500)


class ActualizarParaFuturoRequest(BaseModel):
    cambios: list[CambioFuturo] = Field(..., min_length=1)


class ActualizarParaFuturoResponse(BaseModel):
    registros_afectados: int = Field(..., ge=0)
    reportes_afectados: int = Field(..., ge=0)
    reglas: list[ActualizarReglaResponse]
