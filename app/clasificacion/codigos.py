"""
Account code parser and hierarchy resolver.

An account code is four dash-separated numeric groups of fixed width
(``4-4-3-3``, e.g. ``5000-2001-017-000``).  The hierarchy level is a pure
function of which trailing segments are zero-filled:

    ``5000-0000-000-000``  level 1 (total)
    ``5000-2001-000-000``  level 2
    ``5000-2001-017-000``  level 3
    ``5000-2001-017-001``  level 4 (detail)

Nodes are never stored.  ``IndiceJerarquia`` memoizes them for the
duration of a single validation pass only.

Malformed codes never raise: they resolve to a level-4 node without a
parent and carry an ``advertencia`` that callers surface as a
data-quality notice.
"""

from __future__ import annotations

import enum
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

_CODIGO_RE = re.compile(r"^(\d{4})-(\d{4})-(\d{3})-(\d{3})$")

NIVEL_DETALLE = 4


def parse_codigo(codigo: str) -> tuple[str, str, str, str] | None:
    """Split a code into its four segments, or ``None`` if malformed."""
    if not isinstance(codigo, str):
        return None
    match = _CODIGO_RE.match(codigo.strip())
    if match is None:
        return None
    return match.group(1), match.group(2), match.group(3), match.group(4)


def _es_cero(segmento: str) -> bool:
    return set(segmento) == {"0"}


def codigo_familia(codigo: str) -> str:
    """Return the family prefix (first two segments, 9 characters)."""
    return codigo.strip()[:9]


# ---------------------------------------------------------------------------
# Hierarchy node
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NodoJerarquia:
    """Derived position of one code in the account tree.

    Attributes:
        codigo: The account code as supplied.
        nivel: Hierarchy level, 1 (total) to 4 (detail).
        codigo_padre: Derived parent code, ``None`` for level 1 and for
            malformed codes.
        codigo_familia: First two segments of the code.
        prefijo_hijos: Prefix shared by every descendant code, ``None``
            for detail accounts.
        valido: False when the code did not match the 4-4-3-3 format.
        advertencia: Data-quality message for malformed codes.
    """

    codigo: str
    nivel: int
    codigo_padre: str | None
    codigo_familia: str
    prefijo_hijos: str | None = None
    valido: bool = True
    advertencia: str | None = None

    def es_descendiente(self, otro: str) -> bool:
        """True when *otro* lies below this node according to its prefix."""
        if self.prefijo_hijos is None or otro == self.codigo:
            return False
        return otro.startswith(self.prefijo_hijos + "-")


def resolver_nodo(codigo: str) -> NodoJerarquia:
    """Compute level, parent and children prefix for a single code.

    Args:
        codigo: Account code, expected in ``NNNN-NNNN-NNN-NNN`` form.

    Returns:
        A ``NodoJerarquia``.  Malformed codes yield a level-4 node with
        no parent and ``valido=False``.
    """
    segmentos = parse_codigo(codigo)
    if segmentos is None:
        texto = str(codigo).strip() if codigo is not None else ""
        advertencia = f"Código con formato inválido: '{texto}' (se esperaba NNNN-NNNN-NNN-NNN)"
        logger.warning("Malformed account code %r treated as level-4 detail", texto)
        return NodoJerarquia(
            codigo=texto,
            nivel=NIVEL_DETALLE,
            codigo_padre=None,
            codigo_familia=texto[:9],
            valido=False,
            advertencia=advertencia,
        )

    s1, s2, s3, s4 = segmentos
    codigo = "-".join(segmentos)

    if _es_cero(s2) and _es_cero(s3) and _es_cero(s4):
        return NodoJerarquia(
            codigo=codigo,
            nivel=1,
            codigo_padre=None,
            codigo_familia=f"{s1}-{s2}",
            prefijo_hijos=s1,
        )
    if _es_cero(s3) and _es_cero(s4):
        return NodoJerarquia(
            codigo=codigo,
            nivel=2,
            codigo_padre=f"{s1}-0000-000-000",
            codigo_familia=f"{s1}-{s2}",
            prefijo_hijos=f"{s1}-{s2}",
        )
    if _es_cero(s4):
        return NodoJerarquia(
            codigo=codigo,
            nivel=3,
            codigo_padre=f"{s1}-{s2}-000-000",
            codigo_familia=f"{s1}-{s2}",
            prefijo_hijos=f"{s1}-{s2}-{s3}",
        )
    return NodoJerarquia(
        codigo=codigo,
        nivel=4,
        codigo_padre=f"{s1}-{s2}-{s3}-000",
        codigo_familia=f"{s1}-{s2}",
    )


class IndiceJerarquia:
    """Per-pass memo of resolved nodes keyed by code.

    Create one per validation pass and discard it afterwards; it holds no
    state beyond the resolved nodes of the codes it has been asked about.
    """

    def __init__(self) -> None:
        self._nodos: dict[str, NodoJerarquia] = {}

    def nodo(self, codigo: str) -> NodoJerarquia:
        nodo = self._nodos.get(codigo)
        if nodo is None:
            nodo = resolver_nodo(codigo)
            self._nodos[codigo] = nodo
        return nodo

    def cadena_ancestros(self, codigo: str) -> list[str]:
        """Return every derived ancestor code, nearest first (present or not)."""
        cadena: list[str] = []
        padre = self.nodo(codigo).codigo_padre
        while padre is not None:
            cadena.append(padre)
            padre = self.nodo(padre).codigo_padre
        return cadena

    def __len__(self) -> int:
        return len(self._nodos)


# ---------------------------------------------------------------------------
# Legacy heuristic (diagnostic comparison only)
# ---------------------------------------------------------------------------


class DetectadoPor(str, enum.Enum):
    ZERO_PATTERN = "ZERO_PATTERN"
    FAMILY_ANALYSIS = "FAMILY_ANALYSIS"
    NUMERIC_SEQUENCE = "NUMERIC_SEQUENCE"


def _es_secuencia_consecutiva(numeros: list[int]) -> bool:
    if len(numeros) < 2:
        return False
    ordenados = sorted(numeros)
    return all(b - a <= 1 for a, b in zip(ordenados, ordenados[1:]))


def nivel_legado(codigo: str, codigos: Iterable[str]) -> tuple[int, DetectadoPor]:
    """Level assigned by the older family/numeric-sequence heuristic.

    Kept only so the diagnostic endpoint can show where that heuristic
    disagrees with ``resolver_nodo``.  It demotes a level-2 shaped code to
    level 3 when a round ``NNNN-X000`` sibling family exists, or when the
    level-2 shaped codes sharing the first segment form a consecutive
    numeric run and this code is not the lowest of the run.
    """
    nodo = resolver_nodo(codigo)
    segmentos = parse_codigo(codigo)
    if segmentos is None or nodo.nivel != 2:
        return nodo.nivel, DetectadoPor.ZERO_PATTERN

    s1, s2, _, _ = segmentos
    presentes = set(codigos)

    redondo = f"{s2[0]}000"
    if s2 != redondo and f"{s1}-{redondo}-000-000" in presentes:
        return 3, DetectadoPor.FAMILY_ANALYSIS

    relacionados = []
    for otro in presentes:
        partes = parse_codigo(otro)
        if partes is None or partes[0] != s1:
            continue
        if _es_cero(partes[2]) and _es_cero(partes[3]) and not _es_cero(partes[1]):
            relacionados.append(int(partes[1]))
    if len(relacionados) >= 2 and _es_secuencia_consecutiva(relacionados):
        if int(s2) > min(relacionados):
            return 3, DetectadoPor.NUMERIC_SEQUENCE

    return nodo.nivel, DetectadoPor.ZERO_PATTERN


# ---------------------------------------------------------------------------
# buildHierarchy
# ---------------------------------------------------------------------------


@dataclass
class NodoConstruido:
    nodo: NodoJerarquia
    concepto: str
    monto: float
    padre_existe: bool
    hijos: list[str] = field(default_factory=list)
    advertencias: list[str] = field(default_factory=list)


def construir_jerarquia(cuentas: Iterable) -> tuple[list[NodoConstruido], list[dict]]:
    """Resolve every supplied account and compare with the legacy heuristic.

    Args:
        cuentas: Objects exposing ``codigo``, ``concepto`` and ``monto``
            (``CuentaContable`` or equivalent).

    Returns:
        ``(nodos, comparacion)`` where ``nodos`` keeps input order and
        ``comparacion`` holds one dict per code with ``nivel_original``
        (legacy), ``nivel_mejorado`` (canonical), ``diferencia`` and
        ``detectado_por``.
    """
    cuentas = list(cuentas)
    indice = IndiceJerarquia()
    presentes = {c.codigo for c in cuentas}

    construidos: dict[str, NodoConstruido] = {}
    orden: list[str] = []
    for cuenta in cuentas:
        if cuenta.codigo in construidos:
            construidos[cuenta.codigo].monto += float(cuenta.monto)
            continue
        nodo = indice.nodo(cuenta.codigo)
        advertencias = [nodo.advertencia] if nodo.advertencia else []
        padre_existe = nodo.codigo_padre is not None and nodo.codigo_padre in presentes
        if nodo.codigo_padre is not None and not padre_existe and nodo.nivel > 2:
            advertencias.append(
                f"Padre {nodo.codigo_padre} no presente en el reporte"
            )
        construidos[cuenta.codigo] = NodoConstruido(
            nodo=nodo,
            concepto=cuenta.concepto,
            monto=float(cuenta.monto),
            padre_existe=padre_existe,
            advertencias=advertencias,
        )
        orden.append(cuenta.codigo)

    for codigo in orden:
        padre = construidos[codigo].nodo.codigo_padre
        if padre in construidos:
            construidos[padre].hijos.append(codigo)

    comparacion = []
    for codigo in orden:
        mejorado = construidos[codigo].nodo.nivel
        original, detectado_por = nivel_legado(codigo, presentes)
        comparacion.append(
            {
                "codigo": codigo,
                "nivel_original": original,
                "nivel_mejorado": mejorado,
                "diferencia": mejorado - original,
                "detectado_por": detectado_por.value,
                "codigo_padre": construidos[codigo].nodo.codigo_padre,
            }
        )

    return [construidos[c] for c in orden], comparacion
