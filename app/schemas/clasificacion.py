"""
Pydantic v2 schemas for the classification module.

These models define the JSON shapes of every endpoint in
``app/routers/clasificacion.py``: pre-submission validation, sibling
recommendations, family validation, control-total reconciliation and the
per-code history.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.common import EtiquetaSchema


# ---------------------------------------------------------------------------
# Pre-submission validation
# ---------------------------------------------------------------------------


class ValidarClasificacionRequest(BaseModel):
    codigo_cuenta: str = Field(
        ..., min_length=1, max_length=30, description="Código de cuenta, ej. '5000-2001-017-000'."
    )
    clasificacion_propuesta: EtiquetaSchema = Field(
        ..., description="Etiqueta que el usuario quiere aplicar."
    )
    reporte_id: int = Field(..., ge=1, description="ID del reporte financiero.")


class ValidarClasificacionResponse(BaseModel):
    """Result of checking a proposed tag against the report hierarchy.

    Attributes:
        valido: False when the tag would create a double count.
        error: ``PARENT_ALREADY_CLASSIFIED``, ``CHILDREN_ALREADY_CLASSIFIED``
            or ``CUENTA_DE_CONTROL``.
        severidad: ``CRITICAL`` for rejected proposals.
        impacto_financiero: Amount that would be double counted.
        mensaje: Explanation for the reviewer.
        accion_sugerida: Remediation code.
        codigos_en_conflicto: Already classified codes causing the conflict.
    """

    valido: bool = Field(..., description="True si la clasificación puede aplicarse.")
    error: str | None = Field(default=None, description="Código del conflicto detectado.")
    severidad: str | None = Field(default=None, description="Severidad del conflicto.")
    impacto_financiero: float | None = Field(
        default=None, description="Monto que se contaría dos veces."
    )
    mensaje: str = Field(..., description="Explicación legible del resultado.")
    accion_sugerida: str | None = Field(default=None, description="Acción recomendada.")
    codigos_en_conflicto: list[str] = Field(
        default_factory=list, description="Cuentas ya clasificadas que generan el conflicto."
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "valido": False,
                "error": "PARENT_ALREADY_CLASSIFIED",
                "severidad": "CRITICAL",
                "impacto_financiero": 165672.0,
                "mensaje": "La cuenta padre 5000-2001-000-000 ya está clasificada.",
                "accion_sugerida": "UNCLASSIFY_PARENT_OR_USE_PARENT_ONLY",
                "codigos_en_conflicto": ["5000-2001-000-000"],
            }
        }
    )


# ---------------------------------------------------------------------------
# Family context and sibling recommendation
# ---------------------------------------------------------------------------


class ContextoFamiliaRequest(BaseModel):
    codigo: str = Field(..., min_length=1, max_length=30, description="Código de cuenta.")
    reporte_id: int = Field(..., ge=1, description="ID del reporte financiero.")


class ClasificarConContextoRequest(ContextoFamiliaRequest):
    concepto: str = Field(..., min_length=1, max_length=300, description="Concepto de la cuenta.")


class HermanoItem(BaseModel):
    codigo: str
    concepto: str | None = None
    monto: float
    estado: str = Field(..., description="CLASSIFIED, PARTIAL, UNCLASSIFIED o HIERARCHY.")
    clasificacion: str | None = None


class ContextoFamiliaResponse(BaseModel):
    """Sibling group of an account, as shown to the reviewer."""

    codigo_familia: str
    nombre_familia: str
    nivel: int = Field(..., ge=1, le=4)
    hermanos: list[HermanoItem]
    hermanos_clasificados: int = Field(..., ge=0)
    total_hermanos: int = Field(..., ge=0)
    porcentaje_completitud: float = Field(..., ge=0.0, le=100.0)
    enfoque_recomendado: str
    tiene_hermanos_mixtos: bool
    monto_faltante: float


class ClasificarConContextoResponse(BaseModel):
    clasificacion: EtiquetaSchema = Field(
        ..., description="Etiqueta sugerida (sin definir si no hay patrón)."
    )
    fuente: str = Field(..., description="PATRON_HERMANOS o SIN_CLASIFICAR.")
    confianza: float = Field(..., ge=0.0, le=1.0)
    razonamiento: str
    regla_familia: str
    contexto_familia: ContextoFamiliaResponse


# ---------------------------------------------------------------------------
# Family validation
# ---------------------------------------------------------------------------


class IssueResponse(BaseModel):
    tipo_error: str
    severidad: str
    impacto_financiero: float
    codigos_afectados: list[str]
    codigo_familia: str
    codigo_padre: str | None = None
    codigos_clasificados: list[str] = Field(default_factory=list)
    porcentaje_completitud: float | None = None
    mensaje: str
    acciones_sugeridas: list[str] = Field(default_factory=list)
    prioridad: int = Field(..., ge=1, le=5)


class EnfoqueResponse(BaseModel):
    enfoque: str = Field(..., description="DETAIL_CLASSIFICATION o SUMMARY_CLASSIFICATION.")
    razonamiento: str
    acciones: list[str] = Field(default_factory=list)


class ResultadoFamiliaResponse(BaseModel):
    codigo_familia: str
    nombre_familia: str
    monto_total: float
    tiene_problemas: bool
    issues: list[IssueResponse]
    impacto_financiero: float
    porcentaje_completitud: float
    enfoque_recomendado: EnfoqueResponse
    avisos: list[str] = Field(default_factory=list)


class ResumenFamiliasResponse(BaseModel):
    total_familias: int
    familias_con_problemas: int
    familias_perfectas: int
    conteo_por_tipo: dict[str, int]
    impacto_financiero_total: float


class ValidacionFamiliasResponse(BaseModel):
    reporte_id: int
    resumen: ResumenFamiliasResponse
    familias: list[ResultadoFamiliaResponse]


# ---------------------------------------------------------------------------
# Amounts and reconciliation
# ---------------------------------------------------------------------------


class MontoJerarquiaItem(BaseModel):
    codigo_padre: str
    concepto_padre: str | None = None
    nivel: int
    monto_padre: float
    suma_hijos: float
    cantidad_hijos: int
    varianza: float
    porcentaje_varianza: float
    estado_validacion: str = Field(
        ..., description="MINOR_VARIANCE, MAJOR_VARIANCE o CRITICAL_MISMATCH."
    )


class TotalControlItem(BaseModel):
    tipo: str
    codigo_control: str
    total_control: float | None = Field(
        default=None, description="Monto de la cuenta de control; None si no existe."
    )
    total_clasificado: float
    varianza: float
    valido: bool
    mensaje: str


class HojaSinClasificarItem(BaseModel):
    codigo: str
    concepto: str | None = None
    monto: float
    estado: str


class ConciliacionResponse(BaseModel):
    reporte_id: int
    aprobable: bool = Field(..., description="True si todos los totales de control cuadran.")
    totales: list[TotalControlItem]
    hojas_sin_clasificar: list[HojaSinClasificarItem]


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


class HistorialRegistroItem(BaseModel):
    registro_id: int
    reporte_id: int
    reporte_nombre: str
    mes: int
    anio: int
    concepto: str | None = None
    monto: float
    clasificacion: EtiquetaSchema


class HistorialCambioItem(BaseModel):
    registro_id: int
    reporte_id: int
    etiqueta_anterior: EtiquetaSchema
    etiqueta_nueva: EtiquetaSchema
    motivo: str | None = None
    usuario_id: str | None = None
    fecha: datetime | None = None


class HistorialResponse(BaseModel):
    codigo: str
    registros: list[HistorialRegistroItem]
    cambios: list[HistorialCambioItem]
