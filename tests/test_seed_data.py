"""The demo ledger loads cleanly and shows every kind of finding."""

from app.models import RegistroFinanciero, ReglaClasificacion, ReporteFinanciero
from app.services import clasificacion_service

import seed_data


class TestSeedData:

    def test_seed_is_idempotent(self, db):
        seed_data.seed(db)
        db.commit()
        seed_data.seed(db)
        db.commit()
        assert db.query(ReporteFinanciero).count() == 3
        assert db.query(RegistroFinanciero).count() == 3 * len(seed_data.CUENTAS_DEMO)
        assert db.query(ReglaClasificacion).count() == 6

    def test_demo_report_findings(self, db):
        seed_data.seed(db)
        db.commit()
        reporte = db.query(ReporteFinanciero).filter_by(mes=1).one()

        validacion = clasificacion_service.validar_familias_reporte(db, reporte.id)
        conteo = validacion.resumen.conteo_por_tipo
        assert conteo["OVER_CLASSIFICATION"] == 1
        assert conteo["MIXED_LEVEL4_SIBLINGS"] == 1
        assert conteo["UNDER_CLASSIFICATION"] == 1

        conciliacion = clasificacion_service.conciliacion(db, reporte.id)
        ingresos = next(t for t in conciliacion.totales if t.tipo == "Ingresos")
        assert ingresos.valido is True
        assert conciliacion.aprobable is False
