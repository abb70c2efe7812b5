"""
Tests for classification rule edits and retroactive propagation.

Run with: pytest tests/test_propagacion.py -v
"""

import threading

import pytest
from sqlalchemy.exc import OperationalError

from app.clasificacion import EtiquetaClasificacion
from app.models import CambioClasificacion, RegistroFinanciero, ReglaClasificacion
from app.schemas.common import EtiquetaSchema
from app.schemas.reglas import CambioFuturo
from app.services import reglas_service

CODIGO = "5000-2001-000-000"


def _clasificaciones(db):
    db.expire_all()
    return [
        r.clasificacion
        for r in db.query(RegistroFinanciero)
        .filter(RegistroFinanciero.codigo == CODIGO)
        .order_by(RegistroFinanciero.reporte_id)
    ]


class TestActualizarRegla:

    def test_retroactive_edit_updates_every_report(self, db, reportes_historicos):
        _, regla = reportes_historicos
        respuesta = reglas_service.actualizar_regla(
            db,
            regla.id,
            EtiquetaClasificacion(clasificacion="Sueldos y Salarios"),
            aplicar_retroactivamente=True,
            motivo="Unificar nómina",
            usuario_id="7",
        )
        assert respuesta.registros_afectados == 3
        assert respuesta.reportes_afectados == 3
        assert respuesta.impacto_financiero_total == pytest.approx(6000.0)
        assert _clasificaciones(db) == ["Sueldos y Salarios"] * 3

        cambios = db.query(CambioClasificacion).all()
        assert len(cambios) == 3
        assert {c.usuario_id for c in cambios} == {"7"}
        assert db.get(ReglaClasificacion, regla.id).aplica_a_reportes == 3

    def test_unset_fields_keep_rule_values(self, db, reportes_historicos):
        _, regla = reportes_historicos
        respuesta = reglas_service.actualizar_regla(
            db, regla.id, EtiquetaClasificacion(clasificacion="Sueldos"), True, "m"
        )
        assert respuesta.cambios.tipo == "Egresos"
        assert respuesta.cambios.categoria_1 == "Gastos de Operación"

    def test_forward_only_edit_keeps_historical_tags(self, db, reportes_historicos):
        _, regla = reportes_historicos
        respuesta = reglas_service.actualizar_regla(
            db,
            regla.id,
            EtiquetaClasificacion(clasificacion="Sueldos y Salarios"),
            aplicar_retroactivamente=False,
            motivo="Solo futuras importaciones",
        )
        assert respuesta.registros_afectados == 0
        assert _clasificaciones(db) == ["Nómina"] * 3
        assert db.get(ReglaClasificacion, regla.id).clasificacion == "Sueldos y Salarios"
        assert db.query(CambioClasificacion).count() == 0

    def test_storage_failure_rolls_back_everything(self, db, reportes_historicos, monkeypatch):
        _, regla = reportes_historicos
        ids = sorted(
            r.id for r in db.query(RegistroFinanciero).filter(RegistroFinanciero.codigo == CODIGO)
        )

        def _falla():
            raise OperationalError("UPDATE registro_financiero", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db, "commit", _falla)
        with pytest.raises(reglas_service.PropagacionError) as excinfo:
            reglas_service.actualizar_regla(
                db, regla.id, EtiquetaClasificacion(clasificacion="Otra"), True, "m"
            )
        monkeypatch.undo()

        assert excinfo.value.codigo == CODIGO
        assert sorted(excinfo.value.registros_no_actualizados) == ids
        assert _clasificaciones(db) == ["Nómina"] * 3
        assert db.query(CambioClasificacion).count() == 0

    def test_unknown_rule(self, db):
        with pytest.raises(LookupError):
            reglas_service.actualizar_regla(db, 999, EtiquetaClasificacion(), True, "m")


class TestReemplazarRegla:

    def test_supersede_deactivates_rule(self, db, reportes_historicos):
        _, regla = reportes_historicos
        respuesta = reglas_service.reemplazar_regla(db, regla.id, usuario_id="7")
        assert respuesta.activa is False
        assert respuesta.vigente_hasta is not None
        assert reglas_service.listar_reglas(db) == []

    def test_supersede_twice_is_rejected(self, db, reportes_historicos):
        _, regla = reportes_historicos
        reglas_service.reemplazar_regla(db, regla.id)
        with pytest.raises(ValueError):
            reglas_service.reemplazar_regla(db, regla.id)

    def test_superseded_rule_cannot_be_edited(self, db, reportes_historicos):
        _, regla = reportes_historicos
        reglas_service.reemplazar_regla(db, regla.id)
        with pytest.raises(ValueError):
            reglas_service.actualizar_regla(
                db, regla.id, EtiquetaClasificacion(clasificacion="Otra"), True, "m"
            )
        assert _clasificaciones(db) == ["Nómina"] * 3
        assert db.query(CambioClasificacion).count() == 0

    def test_storage_failure_keeps_rule_active(self, db, reportes_historicos, monkeypatch):
        _, regla = reportes_historicos

        def _falla():
            raise OperationalError("UPDATE regla_clasificacion", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db, "commit", _falla)
        with pytest.raises(OperationalError):
            reglas_service.reemplazar_regla(db, regla.id)
        monkeypatch.undo()

        db.expire_all()
        actual = db.get(ReglaClasificacion, regla.id)
        assert actual.activa is True
        assert actual.vigente_hasta is None


class TestActualizarParaFuturo:

    def test_creates_missing_rule_and_propagates(self, db, reportes_historicos):
        cambios = [
            CambioFuturo(
                codigo_cuenta="5000-2002-000-000",
                clasificacion=EtiquetaSchema(
                    tipo="Egresos", categoria_1="Servicios", clasificacion="Servicios Básicos"
                ),
                aplicar_retroactivamente=True,
                motivo="Nueva regla",
            ),
            CambioFuturo(
                codigo_cuenta=CODIGO,
                clasificacion=EtiquetaSchema(clasificacion="Sueldos"),
            ),
        ]
        respuesta = reglas_service.actualizar_reglas_para_futuro(db, cambios, "7")
        assert respuesta.registros_afectados == 3
        assert respuesta.reportes_afectados == 3

        nueva = (
            db.query(ReglaClasificacion)
            .filter(ReglaClasificacion.codigo_cuenta == "5000-2002-000-000")
            .one()
        )
        assert nueva.nivel_jerarquia == 2
        assert nueva.codigo_familia == "5000-2002"
        assert _clasificaciones(db) == ["Nómina"] * 3

    def test_malformed_code_is_rejected(self, db):
        cambio = CambioFuturo(
            codigo_cuenta="5000-2002",
            clasificacion=EtiquetaSchema(clasificacion="X"),
        )
        with pytest.raises(ValueError):
            reglas_service.actualizar_reglas_para_futuro(db, [cambio])

    def test_listing_counts_reports_live(self, db, reportes_historicos):
        [regla] = reglas_service.listar_reglas(db, codigo_familia="5000-2001")
        assert regla.codigo_cuenta == CODIGO
        assert regla.aplica_a_reportes == 3


class TestBloqueoCodigo:

    def _retener(self, codigo):
        """Hold the lock of *codigo* in a worker thread until released."""
        retenido = threading.Event()
        liberar = threading.Event()

        def _trabajo():
            with reglas_service.bloqueo_codigo(codigo):
                retenido.set()
                liberar.wait(5)

        hilo = threading.Thread(target=_trabajo)
        hilo.start()
        assert retenido.wait(5)
        return hilo, liberar

    def _adquirir_en_hilo(self, codigo):
        adquirido = threading.Event()

        def _trabajo():
            with reglas_service.bloqueo_codigo(codigo):
                adquirido.set()

        hilo = threading.Thread(target=_trabajo)
        hilo.start()
        return hilo, adquirido

    def test_same_code_waits_for_release(self):
        primero, liberar = self._retener(CODIGO)
        try:
            segundo, adquirido = self._adquirir_en_hilo(CODIGO)
            assert not adquirido.wait(0.2)
        finally:
            liberar.set()
        assert adquirido.wait(5)
        primero.join(5)
        segundo.join(5)

    def test_other_code_is_not_blocked(self):
        primero, liberar = self._retener(CODIGO)
        try:
            segundo, adquirido = self._adquirir_en_hilo("5000-2002-000-000")
            assert adquirido.wait(5)
        finally:
            liberar.set()
        primero.join(5)
        segundo.join(5)
