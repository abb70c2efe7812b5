"""Tests for tag normalisation and the classification status classifier."""

from app.clasificacion import (
    EstadoClasificacion,
    EtiquetaClasificacion,
    TipoCuenta,
    clasificar_estado,
)


class TestEtiqueta:

    def test_sentinels_become_unset(self):
        etiqueta = EtiquetaClasificacion.desde_valores(
            "Indefinido", "Sin Categoría", "Sin Subcategoría", "Sin Clasificación"
        )
        assert etiqueta == EtiquetaClasificacion()

    def test_round_trip_uses_ledger_spelling(self):
        etiqueta = EtiquetaClasificacion.desde_valores("egresos", "Personal", None, "Nómina")
        assert etiqueta.tipo is TipoCuenta.EGRESOS
        assert etiqueta.a_valores() == {
            "tipo": "Egresos",
            "categoria_1": "Personal",
            "sub_categoria": "Sin Subcategoría",
            "clasificacion": "Nómina",
        }

    def test_unknown_tipo_is_unset(self):
        assert EtiquetaClasificacion.desde_valores("Patrimonio").tipo is None

    def test_combinar_only_overrides_set_fields(self):
        base = EtiquetaClasificacion.desde_valores("Egresos", "Personal", None, "Nómina")
        nueva = base.combinar(EtiquetaClasificacion(clasificacion="Sueldos"))
        assert nueva.tipo is TipoCuenta.EGRESOS
        assert nueva.categoria_1 == "Personal"
        assert nueva.clasificacion == "Sueldos"


class TestClasificarEstado:

    def test_complete_tag_is_classified(self):
        etiqueta = EtiquetaClasificacion.desde_valores("Egresos", "Personal", None, "Nómina")
        assert clasificar_estado(etiqueta) is EstadoClasificacion.CLASSIFIED

    def test_sub_categoria_is_not_required(self):
        etiqueta = EtiquetaClasificacion.desde_valores("Ingresos", "Ventas", None, "Nacional")
        assert etiqueta.subcategoria_completa is False
        assert clasificar_estado(etiqueta) is EstadoClasificacion.CLASSIFIED

    def test_tipo_without_categoria_is_partial(self):
        etiqueta = EtiquetaClasificacion.desde_valores("Egresos")
        assert clasificar_estado(etiqueta) is EstadoClasificacion.PARTIAL

    def test_categoria_without_clasificacion_is_unclassified(self):
        etiqueta = EtiquetaClasificacion.desde_valores("Egresos", "Personal")
        assert clasificar_estado(etiqueta) is EstadoClasificacion.UNCLASSIFIED

    def test_no_tipo_is_unclassified(self):
        etiqueta = EtiquetaClasificacion.desde_valores(None, "Personal", None, "Nómina")
        assert clasificar_estado(etiqueta) is EstadoClasificacion.UNCLASSIFIED

    def test_control_accounts_are_hierarchy_even_when_tagged(self):
        etiqueta = EtiquetaClasificacion.desde_valores("Egresos", "Personal", None, "Nómina")
        assert (
            clasificar_estado(etiqueta, "5000-0000-000-000")
            is EstadoClasificacion.HIERARCHY
        )
        assert (
            clasificar_estado(EtiquetaClasificacion(), "4100-0000-000-000")
            is EstadoClasificacion.HIERARCHY
        )
