"""Control-total reconciliation and parent/children amount checks."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from app.clasificacion.codigos import IndiceJerarquia
from app.clasificacion.estado import EstadoClasificacion
from app.clasificacion.etiquetas import CuentaContable
from app.clasificacion.familias import agrupar_familias
from app.clasificacion.parametros import PARAMETROS_POR_DEFECTO, ParametrosMotor
from app.utils.constants import (
    VARIANZA_MAYOR_PCT,
    VARIANZA_MENOR_PCT,
    VARIANZA_PERFECTA_MAX,
)

logger = logging.getLogger(__name__)

_EPSILON = 1e-9


def conciliar_totales(
    cuentas: Iterable[CuentaContable],
    parametros: ParametrosMotor = PARAMETROS_POR_DEFECTO,
) -> dict[str, Any]:
    """Compare each control total with the classified total of its tipo.

    The classified total is the signed sum of every CLASSIFIED account of
    that tipo, control accounts excluded.  A tipo whose control account is
    missing from the batch reconciles only when nothing of that tipo is
    classified.

    Returns:
        ``{"totales": [...], "aprobable": bool, "hojas_sin_clasificar": [...]}``.
    """
    familias = agrupar_familias(cuentas, parametros, IndiceJerarquia())
    miembros = [m for f in familias.values() for m in f.miembros]
    por_codigo = {m.codigo: m for m in miembros}

    totales = []
    for tipo, codigo_control in parametros.codigos_control.items():
        control = por_codigo.get(codigo_control)
        total_control = round(control.cuenta.monto, 2) if control else None
        total_clasificado = round(
            sum(
                m.cuenta.monto for m in miembros
                if m.clasificado
                and m.cuenta.etiqueta.tipo is not None
                and m.cuenta.etiqueta.tipo.value == tipo
            ),
            2,
        )
        referencia = total_control if total_control is not None else 0.0
        varianza = round(referencia - total_clasificado, 2)
        valido = abs(varianza) <= parametros.tolerancia_conciliacion + _EPSILON

        if total_control is None:
            mensaje = (
                f"No se encontró la cuenta de control {codigo_control} ({tipo})"
                + ("" if valido else f"; hay {total_clasificado:,.2f} clasificados sin total")
            )
        elif valido:
            mensaje = f"{tipo}: el total clasificado coincide con la cuenta de control."
        else:
            mensaje = (
                f"{tipo}: el total clasificado ({total_clasificado:,.2f}) difiere del "
                f"control {codigo_control} ({total_control:,.2f}) en {varianza:,.2f}."
            )
        if not valido:
            logger.warning(
                "Control total mismatch for %s: control=%s classified=%s",
                tipo, total_control, total_clasificado,
            )
        totales.append(
            {
                "tipo": tipo,
                "codigo_control": codigo_control,
                "total_control": total_control,
                "total_clasificado": total_clasificado,
                "varianza": varianza,
                "valido": valido,
                "mensaje": mensaje,
            }
        )

    hojas_sin_clasificar = [
        {
            "codigo": h.codigo,
            "concepto": h.cuenta.concepto,
            "monto": h.cuenta.monto,
            "estado": h.estado.value,
        }
        for f in familias.values()
        for h in f.hojas
        if h.estado in (EstadoClasificacion.UNCLASSIFIED, EstadoClasificacion.PARTIAL)
        and not f.tiene_ancestro_clasificado(h)
    ]

    return {
        "totales": totales,
        "aprobable": all(t["valido"] for t in totales),
        "hojas_sin_clasificar": hojas_sin_clasificar,
    }


def _estado_varianza(monto_padre: float, varianza: float) -> tuple[str, float]:
    if varianza <= VARIANZA_PERFECTA_MAX:
        pct = (varianza / abs(monto_padre) * 100) if monto_padre else 0.0
        return "PERFECT", pct
    if not monto_padre:
        return "CRITICAL_MISMATCH", 100.0
    pct = varianza / abs(monto_padre) * 100
    if pct <= VARIANZA_MENOR_PCT:
        return "MINOR_VARIANCE", pct
    if pct <= VARIANZA_MAYOR_PCT:
        return "MAJOR_VARIANCE", pct
    return "CRITICAL_MISMATCH", pct


def validar_montos_jerarquia(
    cuentas: Iterable[CuentaContable],
    parametros: ParametrosMotor = PARAMETROS_POR_DEFECTO,
) -> list[dict[str, Any]]:
    """Compare each parent amount with the sum of its present direct children.

    Only rows that are not ``PERFECT`` are returned, largest variance first.
    """
    familias = agrupar_familias(cuentas, parametros, IndiceJerarquia())
    filas = []
    for familia in familias.values():
        for miembro in familia.miembros:
            hijos = familia.hijos_directos(miembro)
            if not hijos:
                continue
            suma_hijos = round(sum(h.cuenta.monto for h in hijos), 2)
            varianza = round(abs(miembro.cuenta.monto - suma_hijos), 2)
            estado, pct = _estado_varianza(miembro.cuenta.monto, varianza)
            if estado == "PERFECT":
                continue
            filas.append(
                {
                    "codigo_padre": miembro.codigo,
                    "concepto_padre": miembro.cuenta.concepto,
                    "nivel": miembro.nodo.nivel,
                    "monto_padre": round(miembro.cuenta.monto, 2),
                    "suma_hijos": suma_hijos,
                    "cantidad_hijos": len(hijos),
                    "varianza": varianza,
                    "porcentaje_varianza": round(pct, 2),
                    "estado_validacion": estado,
                }
            )
    filas.sort(key=lambda f: (-f["varianza"], f["codigo_padre"]))
    return filas
