"""
Shared Pydantic v2 schemas reused across multiple modules.

Provides the classification tag model so that each domain module can
compose it without duplicating field definitions.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class EtiquetaSchema(BaseModel):
    """Four-field classification tag in ledger spelling.

    On input any field may be omitted or sent as its "unset" label
    ("Indefinido", "Sin Categoría", ...); both mean the same.  On output
    unset fields are always spelled with their label.

    Attributes:
        tipo: "Ingresos", "Egresos" or "Indefinido".
        categoria_1: Management category.
        sub_categoria: Sub-category.
        clasificacion: Final classification label.
    """

    tipo: str | None = Field(
        default=None,
        max_length=20,
        description="Tipo de cuenta: 'Ingresos', 'Egresos' o 'Indefinido'.",
    )
    categoria_1: str | None = Field(
        default=None,
        max_length=200,
        description="Categoría principal. None o 'Sin Categoría' = sin definir.",
    )
    sub_categoria: str | None = Field(
        default=None,
        max_length=200,
        description="Subcategoría. None o 'Sin Subcategoría' = sin definir.",
    )
    clasificacion: str | None = Field(
        default=None,
        max_length=200,
        description="Clasificación final. None o 'Sin Clasificación' = sin definir.",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "tipo": "Egresos",
                "categoria_1": "Gastos de Administración",
                "sub_categoria": "Nómina",
                "clasificacion": "Sueldos y Salarios",
            }
        }
    )
