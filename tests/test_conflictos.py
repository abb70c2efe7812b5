"""
Tests for the family grouper and the conflict detector.

Run with: pytest tests/test_conflictos.py -v
"""

import pytest

from app.clasificacion import (
    ParametrosMotor,
    Severidad,
    TipoError,
    agrupar_familias,
    calcular_prioridad,
    detectar_conflictos,
)
from conftest import cuenta


def _issues(cuentas, parametros=None):
    familias = agrupar_familias(cuentas)
    parametros = parametros or ParametrosMotor()
    return {
        codigo: detectar_conflictos(familia, parametros)
        for codigo, familia in familias.items()
    }


class TestAgruparFamilias:

    def test_groups_by_first_two_segments(self):
        familias = agrupar_familias(
            [
                cuenta("5000-2001-000-000", concepto="Personal"),
                cuenta("5000-2001-017-001"),
                cuenta("5000-2002-000-000"),
                cuenta("5000-0000-000-000"),
            ]
        )
        assert list(familias) == ["5000-0000", "5000-2001", "5000-2002"]
        assert familias["5000-2001"].nombre == "Personal"
        assert [m.codigo for m in familias["5000-2001"].miembros] == [
            "5000-2001-000-000",
            "5000-2001-017-001",
        ]

    def test_absent_intermediate_parent_is_skipped(self):
        familia = agrupar_familias(
            [cuenta("5000-2001-000-000"), cuenta("5000-2001-017-001")]
        )["5000-2001"]
        hoja = familia.por_codigo("5000-2001-017-001")
        assert [a.codigo for a in familia.ancestros(hoja)] == ["5000-2001-000-000"]
        assert familia.hijos_directos(familia.por_codigo("5000-2001-000-000")) == [hoja]

    def test_duplicate_codes_sum_amounts(self):
        familia = agrupar_familias(
            [cuenta("5000-2001-017-001", 10.0), cuenta("5000-2001-017-001", 15.0)]
        )["5000-2001"]
        assert len(familia.miembros) == 1
        assert familia.miembros[0].cuenta.monto == 25.0


class TestSobreClasificacion:
    """A classified node with a classified ancestor or descendant."""

    def test_end_to_end_double_count_scenario(self):
        issues = _issues(
            [
                cuenta("5000-2000-000-000", -511203.51, "Gastos Generales"),
                cuenta("5000-2001-000-000", 304411.69, "Nómina"),
                cuenta("5000-2001-000-001", -165672.00, "Sueldos"),
            ]
        )
        assert issues["5000-2000"] == []
        [issue] = issues["5000-2001"]
        assert issue.tipo_error is TipoError.OVER_CLASSIFICATION
        assert issue.severidad is Severidad.CRITICAL
        assert issue.codigo_padre == "5000-2001-000-000"
        assert issue.codigos_afectados == ("5000-2001-000-001",)
        assert issue.impacto_financiero == pytest.approx(165672.00)
        assert issue.prioridad == 1

    def test_three_level_chain_yields_single_issue(self):
        issues = _issues(
            [
                cuenta("5000-2001-000-000", 900.0, "Nómina"),
                cuenta("5000-2001-017-000", 400.0, "Sueldos"),
                cuenta("5000-2001-017-001", 250.0, "Sueldos"),
            ]
        )["5000-2001"]
        sobre = [i for i in issues if i.tipo_error is TipoError.OVER_CLASSIFICATION]
        assert len(sobre) == 1
        assert sobre[0].codigo_padre == "5000-2001-000-000"
        assert sobre[0].impacto_financiero == pytest.approx(650.0)

    def test_summary_classification_alone_is_accepted(self):
        """Classifying only the level-3 header over unclassified details is valid."""
        issues = _issues(
            [
                cuenta("5000-2001-017-000", 400.0, "Sueldos"),
                cuenta("5000-2001-017-001", 250.0),
                cuenta("5000-2001-017-002", 150.0),
            ]
        )["5000-2001"]
        assert issues == []


class TestHermanosMixtos:

    def test_mixed_level4_siblings(self):
        issues = _issues(
            [
                cuenta("5000-2001-017-001", 100.0, "Sueldos"),
                cuenta("5000-2001-017-002", -200.0),
                cuenta("5000-2001-017-003", 300.0),
            ]
        )["5000-2001"]
        [issue] = issues
        assert issue.tipo_error is TipoError.MIXED_LEVEL4_SIBLINGS
        assert issue.impacto_financiero == pytest.approx(500.0)
        assert issue.severidad is Severidad.HIGH
        assert issue.porcentaje_completitud == pytest.approx(33.33)
        assert issue.codigos_afectados == ("5000-2001-017-002", "5000-2001-017-003")

    def test_half_pending_is_medium(self):
        issues = _issues(
            [
                cuenta("5000-2001-017-001", 100.0, "Sueldos"),
                cuenta("5000-2001-017-002", 200.0),
            ]
        )["5000-2001"]
        assert issues[0].severidad is Severidad.MEDIUM

    def test_mixed_level3_siblings(self):
        issues = _issues(
            [
                cuenta("5000-2001-017-000", 100.0, "Sueldos"),
                cuenta("5000-2001-018-000", 40.0),
            ]
        )["5000-2001"]
        assert [i.tipo_error for i in issues] == [TipoError.MIXED_LEVEL3_SIBLINGS]

    def test_branch_classified_in_detail_counts_as_classified(self):
        issues = _issues(
            [
                cuenta("5000-2001-017-000", 300.0),
                cuenta("5000-2001-017-001", 200.0, "Sueldos"),
                cuenta("5000-2001-017-002", 100.0, "Sueldos"),
                cuenta("5000-2001-018-000", 40.0, "Gratificaciones"),
            ]
        )["5000-2001"]
        assert issues == []

    def test_pending_branch_next_to_detailed_branch(self):
        [issue] = _issues(
            [
                cuenta("5000-2001-017-000", 300.0),
                cuenta("5000-2001-017-001", 200.0, "Sueldos"),
                cuenta("5000-2001-017-002", 100.0, "Sueldos"),
                cuenta("5000-2001-018-000", 40.0),
            ]
        )["5000-2001"]
        assert issue.tipo_error is TipoError.MIXED_LEVEL3_SIBLINGS
        assert issue.codigos_afectados == ("5000-2001-018-000",)
        assert issue.impacto_financiero == pytest.approx(40.0)

    def test_summary_family_only_checks_its_level(self):
        parametros = ParametrosMotor(familias_resumen={"5000-2001": 3})
        issues = _issues(
            [
                cuenta("5000-2001-017-000", 100.0),
                cuenta("5000-2001-017-001", 60.0, "Sueldos"),
                cuenta("5000-2001-017-002", 40.0),
            ],
            parametros,
        )["5000-2001"]
        assert all(i.tipo_error is not TipoError.MIXED_LEVEL4_SIBLINGS for i in issues)


class TestSubClasificacion:

    def test_family_with_money_and_nothing_classified(self):
        [issue] = _issues(
            [cuenta("5000-2001-000-000", 800.0), cuenta("5000-2001-017-001", 800.0)]
        )["5000-2001"]
        assert issue.tipo_error is TipoError.UNDER_CLASSIFICATION
        assert issue.severidad is Severidad.MEDIUM
        assert issue.impacto_financiero == pytest.approx(800.0)

    def test_zero_amount_family_is_perfect(self):
        assert _issues([cuenta("5000-2001-017-001", 0.0)])["5000-2001"] == []

    def test_control_accounts_never_raise_issues(self):
        assert _issues([cuenta("5000-0000-000-000", 1000.0, "Total")])["5000-0000"] == []


class TestPrioridad:

    @pytest.mark.parametrize(
        "impacto, prioridad",
        [(6_000_000, 1), (1_500_000, 2), (600_000, 3), (150_000, 4), (99_999.99, 5), (-2_000_000, 2)],
    )
    def test_priority_thresholds(self, impacto, prioridad):
        assert calcular_prioridad(impacto) == prioridad
