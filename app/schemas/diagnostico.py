"""Pydantic v2 schemas for the hierarchy diagnostic endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field


class CuentaEntrada(BaseModel):
    codigo: str = Field(..., min_length=1, max_length=30)
    concepto: str = Field(default="", max_length=300)
    monto: float = 0.0


class JerarquiaRequest(BaseModel):
    cuentas: list[CuentaEntrada] = Field(..., min_length=1)


class NodoJerarquiaResponse(BaseModel):
    codigo: str
    concepto: str
    monto: float
    nivel: int = Field(..., ge=1, le=4)
    codigo_padre: str | None = None
    padre_existe: bool
    codigo_familia: str
    prefijo_hijos: str | None = None
    hijos: list[str] = Field(default_factory=list)
    valido: bool
    advertencias: list[str] = Field(default_factory=list)


class ComparacionNivelItem(BaseModel):
    codigo: str
    nivel_original: int = Field(..., description="Nivel según la heurística anterior.")
    nivel_mejorado: int = Field(..., description="Nivel según el patrón de ceros.")
    diferencia: int
    detectado_por: str = Field(
        ..., description="ZERO_PATTERN, FAMILY_ANALYSIS o NUMERIC_SEQUENCE."
    )
    codigo_padre: str | None = None


class ResumenDiagnostico(BaseModel):
    total_cuentas: int
    cuentas_con_diferencia: int
    codigos_invalidos: int


class JerarquiaResponse(BaseModel):
    nodos: list[NodoJerarquiaResponse]
    comparacion: list[ComparacionNivelItem]
    resumen: ResumenDiagnostico
