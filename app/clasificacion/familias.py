"""Family grouper.

Builds, in a single pass over a batch of accounts, the map from family
code (first two segments) to its members.  Every later analysis (conflict
detection, sibling recommendation, reporting) works on these groups
instead of rescanning the full batch.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field, replace

from app.clasificacion.codigos import IndiceJerarquia, NodoJerarquia
from app.clasificacion.estado import EstadoClasificacion, clasificar_estado
from app.clasificacion.etiquetas import CuentaContable
from app.clasificacion.parametros import PARAMETROS_POR_DEFECTO, ParametrosMotor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MiembroFamilia:
    cuenta: CuentaContable
    nodo: NodoJerarquia
    estado: EstadoClasificacion

    @property
    def codigo(self) -> str:
        return self.cuenta.codigo

    @property
    def clasificado(self) -> bool:
        return self.estado is EstadoClasificacion.CLASSIFIED


@dataclass
class Familia:
    """All members sharing a family code, ordered by code.

    Ancestor and descendant lookups only ever return codes present in
    the family; absent intermediate parents are skipped, not invented.
    """

    codigo_familia: str
    nombre: str
    miembros: list[MiembroFamilia] = field(default_factory=list)
    indice: IndiceJerarquia = field(default_factory=IndiceJerarquia, repr=False)
    _por_codigo: dict[str, MiembroFamilia] = field(default_factory=dict, init=False, repr=False)
    _ancestros: dict[str, list[MiembroFamilia]] = field(default_factory=dict, init=False, repr=False)
    _descendientes: dict[str, list[MiembroFamilia]] | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self.miembros.sort(key=lambda m: m.codigo)
        self._por_codigo = {m.codigo: m for m in self.miembros}

    def por_codigo(self, codigo: str) -> MiembroFamilia | None:
        return self._por_codigo.get(codigo)

    def ancestros(self, miembro: MiembroFamilia) -> list[MiembroFamilia]:
        """Present ancestors of *miembro*, nearest first."""
        cache = self._ancestros.get(miembro.codigo)
        if cache is None:
            cache = [
                self._por_codigo[c]
                for c in self.indice.cadena_ancestros(miembro.codigo)
                if c in self._por_codigo
            ]
            self._ancestros[miembro.codigo] = cache
        return cache

    def padre_presente(self, miembro: MiembroFamilia) -> MiembroFamilia | None:
        ancestros = self.ancestros(miembro)
        return ancestros[0] if ancestros else None

    def descendientes(self, miembro: MiembroFamilia) -> list[MiembroFamilia]:
        """Present descendants of *miembro*, ordered by code."""
        if self._descendientes is None:
            inverso: dict[str, list[MiembroFamilia]] = {}
            for m in self.miembros:
                for ancestro in self.ancestros(m):
                    inverso.setdefault(ancestro.codigo, []).append(m)
            self._descendientes = inverso
        return self._descendientes.get(miembro.codigo, [])

    def hijos_directos(self, miembro: MiembroFamilia) -> list[MiembroFamilia]:
        """Descendants whose nearest present ancestor is *miembro*."""
        return [
            d for d in self.descendientes(miembro)
            if self.padre_presente(d) is miembro
        ]

    @property
    def raices(self) -> list[MiembroFamilia]:
        return [m for m in self.miembros if not self.ancestros(m)]

    @property
    def hojas(self) -> list[MiembroFamilia]:
        return [m for m in self.miembros if not self.descendientes(m)]

    def nivel(self, nivel: int) -> list[MiembroFamilia]:
        return [m for m in self.miembros if m.nodo.nivel == nivel]

    def tiene_ancestro_clasificado(self, miembro: MiembroFamilia) -> bool:
        return any(a.clasificado for a in self.ancestros(miembro))

    @property
    def monto_total(self) -> float:
        return sum(m.cuenta.monto for m in self.raices)


def _nombre_familia(miembros: list[MiembroFamilia]) -> str:
    for nivel in (2, 1):
        for m in miembros:
            if m.nodo.nivel == nivel and m.cuenta.concepto:
                return m.cuenta.concepto
    return miembros[0].cuenta.concepto if miembros else ""


def consolidar_duplicados(cuentas: Iterable[CuentaContable]) -> list[CuentaContable]:
    """Merge repeated codes: amounts are summed and the first tag is kept."""
    consolidadas: dict[str, CuentaContable] = {}
    for cuenta in cuentas:
        previa = consolidadas.get(cuenta.codigo)
        if previa is None:
            consolidadas[cuenta.codigo] = cuenta
            continue
        logger.warning(
            "Duplicate account code %s in batch; amounts consolidated", cuenta.codigo
        )
        consolidadas[cuenta.codigo] = replace(previa, monto=previa.monto + cuenta.monto)
    return list(consolidadas.values())


def agrupar_familias(
    cuentas: Iterable[CuentaContable],
    parametros: ParametrosMotor = PARAMETROS_POR_DEFECTO,
    indice: IndiceJerarquia | None = None,
) -> dict[str, Familia]:
    """Group a batch of accounts into families.

    Args:
        cuentas: Accounts of a single validation pass.
        parametros: Engine parameters (control codes).
        indice: Hierarchy memo to share with the caller; a fresh one is
            created when omitted.

    Returns:
        Mapping family code -> ``Familia``, in family-code order.
    """
    indice = indice if indice is not None else IndiceJerarquia()
    codigos_control = list(parametros.codigos_control.values())

    grupos: dict[str, list[MiembroFamilia]] = {}
    for cuenta in consolidar_duplicados(cuentas):
        nodo = indice.nodo(cuenta.codigo)
        estado = clasificar_estado(cuenta.etiqueta, cuenta.codigo, codigos_control)
        grupos.setdefault(nodo.codigo_familia, []).append(
            MiembroFamilia(cuenta=cuenta, nodo=nodo, estado=estado)
        )

    familias = {
        codigo: Familia(
            codigo_familia=codigo,
            nombre=_nombre_familia(miembros),
            miembros=miembros,
            indice=indice,
        )
        for codigo, miembros in sorted(grupos.items())
    }
    logger.debug("Grouped %d families from %d codes", len(familias), len(indice))
    return familias
