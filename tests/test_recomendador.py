"""Tests for the sibling pattern recommender and family context."""

import pytest

from app.clasificacion import (
    ENFOQUE_DETALLE,
    ENFOQUE_RESUMEN,
    FUENTE_PATRON_HERMANOS,
    FUENTE_SIN_CLASIFICAR,
    ParametrosMotor,
    agrupar_familias,
    contexto_familia,
    recomendar_por_hermanos,
)
from conftest import cuenta

OBJETIVO = "5000-2001-017-005"


def _familias(clasificaciones):
    """Level-4 siblings under 5000-2001-017-000 plus the unclassified target."""
    cuentas = [
        cuenta(f"5000-2001-017-00{i}", 100.0 * i, c)
        for i, c in enumerate(clasificaciones, start=1)
    ]
    cuentas.append(cuenta(OBJETIVO, 75.0, None, concepto="Bonificación extraordinaria"))
    return agrupar_familias(cuentas)


class TestRecomendarPorHermanos:

    def test_majority_above_threshold_recommends_full_tag(self):
        recomendacion = recomendar_por_hermanos(
            OBJETIVO, "Bonificación extraordinaria", _familias(["A", "A", "A", "B"])
        )
        assert recomendacion.fuente == FUENTE_PATRON_HERMANOS
        assert recomendacion.confianza == pytest.approx(0.85)
        assert recomendacion.etiqueta.clasificacion == "A"
        assert recomendacion.etiqueta.completa
        assert "3 de 4" in recomendacion.razonamiento

    def test_tie_below_threshold_gives_no_recommendation(self):
        recomendacion = recomendar_por_hermanos(
            OBJETIVO, "Bonificación extraordinaria", _familias(["A", "A", "B", "B"])
        )
        assert recomendacion.etiqueta is None
        assert recomendacion.fuente == FUENTE_SIN_CLASIFICAR
        assert recomendacion.confianza == 0.0
        assert "80.0% completa" in recomendacion.razonamiento

    def test_no_classified_siblings(self):
        recomendacion = recomendar_por_hermanos(
            OBJETIVO, "Bonificación", _familias([None, None])
        )
        assert recomendacion.etiqueta is None
        assert "0.0% completa" in recomendacion.razonamiento

    def test_threshold_comes_from_parameters(self):
        parametros = ParametrosMotor(umbral_patron_hermanos=0.5, confianza_patron_hermanos=0.7)
        recomendacion = recomendar_por_hermanos(
            OBJETIVO, "Bonificación", _familias(["A", "A", "B", "B"]), parametros
        )
        assert recomendacion.etiqueta is not None
        assert recomendacion.confianza == pytest.approx(0.7)

    def test_siblings_under_another_parent_do_not_vote(self):
        familias = agrupar_familias(
            [
                cuenta("5000-2001-018-001", 10.0, "Otro"),
                cuenta("5000-2001-018-002", 10.0, "Otro"),
                cuenta(OBJETIVO, 10.0),
            ]
        )
        assert recomendar_por_hermanos(OBJETIVO, "x", familias).etiqueta is None


class TestContextoFamilia:

    def test_context_lists_every_sibling(self):
        contexto = contexto_familia(OBJETIVO, _familias(["A", "A", "A", "B"]))
        assert contexto["codigo_familia"] == "5000-2001"
        assert contexto["nivel"] == 4
        assert contexto["total_hermanos"] == 5
        assert contexto["hermanos_clasificados"] == 4
        assert contexto["porcentaje_completitud"] == pytest.approx(80.0)
        assert contexto["tiene_hermanos_mixtos"] is True
        assert contexto["monto_faltante"] == pytest.approx(75.0)
        assert contexto["enfoque_recomendado"] == ENFOQUE_DETALLE
        estados = {h["codigo"]: h["estado"] for h in contexto["hermanos"]}
        assert estados[OBJETIVO] == "UNCLASSIFIED"

    def test_large_sibling_group_recommends_summary(self):
        contexto = contexto_familia(OBJETIVO, _familias(["A"] * 3), ParametrosMotor(umbral_resumen_nivel4=3))
        assert contexto["enfoque_recomendado"] == ENFOQUE_RESUMEN

    def test_unknown_family(self):
        contexto = contexto_familia("5000-9999-001-001", _familias(["A"]))
        assert contexto["total_hermanos"] == 0
        assert contexto["porcentaje_completitud"] == 0.0
