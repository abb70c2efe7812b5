"""HTTP-level tests: routing, auth guards and error mapping."""

import pytest

from app.models import CambioClasificacion, RegistroFinanciero
from app.services import reglas_service
from conftest import crear_reporte

_ETIQUETA_COMPLETA = {
    "tipo": "Egresos",
    "categoria_1": "Gastos de Operación",
    "clasificacion": "Otros Gastos",
}


class TestAuth:

    def test_health_needs_no_token(self, client):
        assert client.get("/api/health").json()["status"] == "ok"

    def test_missing_token_is_401(self, client, reporte_doble_conteo):
        response = client.get(f"/api/clasificacion/reportes/{reporte_doble_conteo.id}/familias")
        assert response.status_code == 401

    def test_invalid_token_is_401(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer xyz"})
        assert response.status_code == 401

    def test_me_returns_token_claims(self, client, admin_headers):
        body = client.get("/api/auth/me", headers=admin_headers).json()
        assert body == {"sub": "7", "username": "contador", "rol": "ADMIN"}


class TestClasificacionEndpoints:

    def test_family_validation(self, client, admin_headers, reporte_doble_conteo):
        response = client.get(
            f"/api/clasificacion/reportes/{reporte_doble_conteo.id}/familias",
            headers=admin_headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["resumen"]["total_familias"] == 2
        [familia] = body["familias"]
        [issue] = familia["issues"]
        assert issue["tipo_error"] == "OVER_CLASSIFICATION"
        assert issue["impacto_financiero"] == pytest.approx(165672.00)

    def test_include_perfect_families(self, client, admin_headers, reporte_doble_conteo):
        response = client.get(
            f"/api/clasificacion/reportes/{reporte_doble_conteo.id}/familias",
            params={"incluir_perfectas": True},
            headers=admin_headers,
        )
        assert len(response.json()["familias"]) == 2

    def test_unknown_report_is_404(self, client, admin_headers):
        response = client.get("/api/clasificacion/reportes/999/familias", headers=admin_headers)
        assert response.status_code == 404

    def test_validate_rejects_child_under_classified_parent(
        self, client, admin_headers, reporte_doble_conteo
    ):
        response = client.post(
            "/api/clasificacion/validar-antes-de-aplicar",
            json={
                "codigo_cuenta": "5000-2001-000-001",
                "clasificacion_propuesta": {
                    "tipo": "Egresos",
                    "categoria_1": "Personal",
                    "clasificacion": "Sueldos",
                },
                "reporte_id": reporte_doble_conteo.id,
            },
            headers=admin_headers,
        )
        body = response.json()
        assert body["valido"] is False
        assert body["error"] == "PARENT_ALREADY_CLASSIFIED"
        assert body["impacto_financiero"] == pytest.approx(165672.00)
        assert body["codigos_en_conflicto"] == ["5000-2001-000-000"]

    def test_validate_rejects_parent_over_classified_children(
        self, client, admin_headers, reporte_doble_conteo
    ):
        response = client.post(
            "/api/clasificacion/validar-antes-de-aplicar",
            json={
                "codigo_cuenta": "5000-2001-000-000",
                "clasificacion_propuesta": {
                    "tipo": "Egresos",
                    "categoria_1": "Personal",
                    "clasificacion": "Nómina",
                },
                "reporte_id": reporte_doble_conteo.id,
            },
            headers=admin_headers,
        )
        body = response.json()
        assert body["valido"] is False
        assert body["error"] == "CHILDREN_ALREADY_CLASSIFIED"

    def test_validate_rejects_level2_under_classified_root(self, client, admin_headers, db):
        reporte = crear_reporte(
            db,
            mes=4,
            registros=[
                ("6000-0000-000-000", 900.0, "Otros Gastos"),
                ("6000-2001-000-000", 900.0, None),
            ],
        )
        body = client.post(
            "/api/clasificacion/validar-antes-de-aplicar",
            json={
                "codigo_cuenta": "6000-2001-000-000",
                "clasificacion_propuesta": _ETIQUETA_COMPLETA,
                "reporte_id": reporte.id,
            },
            headers=admin_headers,
        ).json()
        assert body["valido"] is False
        assert body["error"] == "PARENT_ALREADY_CLASSIFIED"
        assert body["codigos_en_conflicto"] == ["6000-0000-000-000"]
        assert body["impacto_financiero"] == pytest.approx(900.0)

    def test_validate_rejects_root_over_classified_level2(self, client, admin_headers, db):
        reporte = crear_reporte(
            db,
            mes=4,
            registros=[
                ("6000-0000-000-000", 900.0, None),
                ("6000-2001-000-000", 600.0, "Otros Gastos"),
                ("6000-2002-017-001", -300.0, "Otros Gastos"),
            ],
        )
        body = client.post(
            "/api/clasificacion/validar-antes-de-aplicar",
            json={
                "codigo_cuenta": "6000-0000-000-000",
                "clasificacion_propuesta": _ETIQUETA_COMPLETA,
                "reporte_id": reporte.id,
            },
            headers=admin_headers,
        ).json()
        assert body["valido"] is False
        assert body["error"] == "CHILDREN_ALREADY_CLASSIFIED"
        assert body["codigos_en_conflicto"] == ["6000-2001-000-000", "6000-2002-017-001"]
        assert body["impacto_financiero"] == pytest.approx(900.0)

    def test_validate_accepts_unrelated_family(self, client, admin_headers, reporte_doble_conteo):
        body = client.post(
            "/api/clasificacion/validar-antes-de-aplicar",
            json={
                "codigo_cuenta": "6000-2001-000-000",
                "clasificacion_propuesta": _ETIQUETA_COMPLETA,
                "reporte_id": reporte_doble_conteo.id,
            },
            headers=admin_headers,
        ).json()
        assert body["valido"] is True

    def test_validate_missing_fields_is_422(self, client, admin_headers):
        response = client.post(
            "/api/clasificacion/validar-antes-de-aplicar",
            json={"codigo_cuenta": "5000-2001-000-001"},
            headers=admin_headers,
        )
        assert response.status_code == 422

    def test_classify_with_context(self, client, admin_headers, reporte_doble_conteo):
        response = client.post(
            "/api/clasificacion/clasificar-con-contexto",
            json={
                "codigo": "5000-2001-000-002",
                "concepto": "Gratificaciones",
                "reporte_id": reporte_doble_conteo.id,
            },
            headers=admin_headers,
        )
        body = response.json()
        assert response.status_code == 200
        assert body["fuente"] == "PATRON_HERMANOS"
        assert body["clasificacion"]["clasificacion"] == "Sueldos"
        assert body["contexto_familia"]["total_hermanos"] == 1

    def test_reconciliation(self, client, admin_headers, reporte_doble_conteo):
        body = client.get(
            f"/api/clasificacion/reportes/{reporte_doble_conteo.id}/conciliacion",
            headers=admin_headers,
        ).json()
        assert body["aprobable"] is False
        egresos = next(t for t in body["totales"] if t["tipo"] == "Egresos")
        assert egresos["total_control"] is None

    def test_history(self, client, admin_headers, reportes_historicos):
        body = client.get(
            "/api/clasificacion/historial/5000-2001-000-000", headers=admin_headers
        ).json()
        assert [r["mes"] for r in body["registros"]] == [3, 2, 1]
        assert body["cambios"] == []


class TestReglasEndpoints:

    def test_read_only_role_cannot_edit(self, client, consulta_headers, reportes_historicos):
        _, regla = reportes_historicos
        response = client.put(
            f"/api/reglas/{regla.id}",
            json={"cambios": {"clasificacion": "X"}, "motivo": "m"},
            headers=consulta_headers,
        )
        assert response.status_code == 403

    def test_read_only_role_can_list(self, client, consulta_headers, reportes_historicos):
        response = client.get("/api/reglas", headers=consulta_headers)
        assert response.status_code == 200
        assert response.json()[0]["aplica_a_reportes"] == 3

    def test_retroactive_edit(self, client, admin_headers, db, reportes_historicos):
        _, regla = reportes_historicos
        response = client.put(
            f"/api/reglas/{regla.id}",
            json={
                "cambios": {"clasificacion": "Sueldos y Salarios"},
                "aplicar_retroactivamente": True,
                "motivo": "Unificar nómina",
            },
            headers=admin_headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["registros_afectados"] == 3
        assert body["reportes_afectados"] == 3

        db.expire_all()
        assert {
            r.clasificacion
            for r in db.query(RegistroFinanciero).filter(
                RegistroFinanciero.codigo == "5000-2001-000-000"
            )
        } == {"Sueldos y Salarios"}
        assert db.query(CambioClasificacion).count() == 3

        history = client.get(
            "/api/clasificacion/historial/5000-2001-000-000", headers=admin_headers
        ).json()
        assert len(history["cambios"]) == 3
        assert history["cambios"][0]["etiqueta_anterior"]["clasificacion"] == "Nómina"

    def test_missing_reason_is_422(self, client, admin_headers, reportes_historicos):
        _, regla = reportes_historicos
        response = client.put(
            f"/api/reglas/{regla.id}",
            json={"cambios": {"clasificacion": "X"}},
            headers=admin_headers,
        )
        assert response.status_code == 422

    def test_unknown_rule_is_404(self, client, admin_headers):
        response = client.put(
            "/api/reglas/999",
            json={"cambios": {"clasificacion": "X"}, "motivo": "m"},
            headers=admin_headers,
        )
        assert response.status_code == 404

    def test_propagation_failure_is_409(self, client, admin_headers, reportes_historicos, monkeypatch):
        _, regla = reportes_historicos

        def _falla(*args, **kwargs):
            raise reglas_service.PropagacionError("5000-2001-000-000", [1, 2, 3])

        monkeypatch.setattr(reglas_service, "actualizar_regla", _falla)
        response = client.put(
            f"/api/reglas/{regla.id}",
            json={"cambios": {"clasificacion": "X"}, "aplicar_retroactivamente": True, "motivo": "m"},
            headers=admin_headers,
        )
        assert response.status_code == 409
        assert response.json()["detail"]["registros_no_actualizados"] == [1, 2, 3]

    def test_supersede_twice_is_422(self, client, admin_headers, reportes_historicos):
        _, regla = reportes_historicos
        assert client.delete(f"/api/reglas/{regla.id}", headers=admin_headers).status_code == 200
        assert client.delete(f"/api/reglas/{regla.id}", headers=admin_headers).status_code == 422

    def test_editing_superseded_rule_is_422(self, client, admin_headers, reportes_historicos):
        _, regla = reportes_historicos
        assert client.delete(f"/api/reglas/{regla.id}", headers=admin_headers).status_code == 200
        response = client.put(
            f"/api/reglas/{regla.id}",
            json={"cambios": {"clasificacion": "X"}, "aplicar_retroactivamente": True, "motivo": "m"},
            headers=admin_headers,
        )
        assert response.status_code == 422

    def test_update_for_future_rejects_bad_code(self, client, admin_headers):
        response = client.post(
            "/api/reglas/actualizar-para-futuro",
            json={"cambios": [{"codigo_cuenta": "5000", "clasificacion": {"clasificacion": "X"}}]},
            headers=admin_headers,
        )
        assert response.status_code == 422


class TestDiagnosticoYExportacion:

    def test_diagnostic_for_ad_hoc_accounts(self, client, admin_headers):
        response = client.post(
            "/api/diagnostico/jerarquia",
            json={
                "cuentas": [
                    {"codigo": "5000-2000-000-000", "concepto": "Gastos", "monto": 10},
                    {"codigo": "5000-2001-000-000", "concepto": "Personal", "monto": 5},
                    {"codigo": "bad", "concepto": "Error", "monto": 1},
                ]
            },
            headers=admin_headers,
        )
        body = response.json()
        assert body["resumen"]["total_cuentas"] == 3
        assert body["resumen"]["cuentas_con_diferencia"] == 1
        assert body["resumen"]["codigos_invalidos"] == 1

    def test_diagnostic_for_report(self, client, admin_headers, reporte_doble_conteo):
        response = client.get(
            f"/api/diagnostico/jerarquia/{reporte_doble_conteo.id}", headers=admin_headers
        )
        assert response.status_code == 200
        assert len(response.json()["nodos"]) == 3

    def test_excel_export(self, client, admin_headers, reporte_doble_conteo):
        response = client.get(
            "/api/exportar/familias/excel",
            params={"reporte_id": reporte_doble_conteo.id},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.headers["content-type"].startswith(
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )
        assert response.content[:2] == b"PK"

    def test_excel_export_unknown_report(self, client, admin_headers):
        response = client.get(
            "/api/exportar/familias/excel", params={"reporte_id": 999}, headers=admin_headers
        )
        assert response.status_code == 404
