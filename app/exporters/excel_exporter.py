"""
Excel export helper wrapping xlsxwriter.

Provides ``ExcelExporter`` — a stateful builder that constructs a styled
workbook in memory and returns its bytes for streaming via FastAPI's
``StreamingResponse``.

Usage example::

    exporter = ExcelExporter(title="Validación de familias", filters={"Reporte": "Marzo 2025"})
    exporter.add_header()
    exporter.add_kpi_row(kpis)
    exporter.add_data_table(headers, rows, numeric_cols={4}, severity_col=2)
    file_bytes = exporter.finalize()

Design notes
------------
- Uses ``xlsxwriter`` in in-memory mode (``BytesIO``).
- Column widths are auto-sized from the longest value in each column
  (capped at 60 characters).
- Monetary values use the ``#,##0.00`` format.
- When a severity column is given, its cells are coloured by severity
  (CRITICAL red, HIGH amber, MEDIUM blue, LOW green).
"""

from __future__ import annotations

import io
from datetime import datetime, timezone
from typing import Any, Sequence

import xlsxwriter


_COLOR_PRIMARY = "#3b82f6"
_COLOR_SUCCESS = "#10b981"
_COLOR_WARNING = "#f59e0b"
_COLOR_DANGER = "#ef4444"
_COLOR_WHITE = "#FFFFFF"
_COLOR_LIGHT_GREY = "#F3F4F6"
_COLOR_SUBHEADER_BG = "#1E3A5F"

_SEVERITY_COLORS = {
    "CRITICAL": _COLOR_DANGER,
    "HIGH": _COLOR_WARNING,
    "MEDIUM": _COLOR_PRIMARY,
    "LOW": _COLOR_SUCCESS,
}

_MAX_COL_WIDTH = 60
_MIN_COL_WIDTH = 8


class ExcelExporter:
    """Stateful Excel workbook builder for dashboard exports.

    Args:
        title: Workbook title shown in the header row.
        filters: Applied filter labels to display under the title,
                 e.g. ``{"Reporte": "Marzo 2025"}``.
        sheet_name: Name of the worksheet tab (default: ``"Datos"``).
    """

    def __init__(
        self,
        title: str,
        filters: dict[str, str] | None = None,
        sheet_name: str = "Datos",
    ) -> None:
        self._title = title
        self._filters = filters or {}

        self._buffer = io.BytesIO()
        self._workbook = xlsxwriter.Workbook(self._buffer, {"in_memory": True})
        self._worksheet = self._workbook.add_worksheet(sheet_name)

        self._current_row: int = 0
        self._num_cols: int = 1
        self._formats: dict[str, Any] = self._build_formats()

    # -----------------------------------------------------------------------
    # Format factory
    # -----------------------------------------------------------------------

    def _build_formats(self) -> dict[str, Any]:
        wb = self._workbook
        cell = {"font_size": 9, "valign": "vcenter", "border": 1, "border_color": "#E5E7EB"}
        boxed = {"top": 1, "bottom": 1, "left": 1, "right": 1, "border_color": "#BFDBFE"}

        formats: dict[str, Any] = {
            "header_main": wb.add_format({
                "bold": True, "font_size": 16, "font_color": _COLOR_WHITE,
                "bg_color": _COLOR_PRIMARY, "align": "center", "valign": "vcenter",
            }),
            "header_sub": wb.add_format({
                "font_size": 10, "font_color": _COLOR_WHITE,
                "bg_color": _COLOR_SUBHEADER_BG, "align": "center", "valign": "vcenter",
            }),
            "filter_key": wb.add_format({
                "bold": True, "font_size": 9, "font_color": "#374151",
                "bg_color": "#E5E7EB", "align": "right", "valign": "vcenter",
            }),
            "filter_value": wb.add_format({
                "font_size": 9, "font_color": "#111827",
                "bg_color": "#F9FAFB", "align": "left", "valign": "vcenter",
            }),
            "kpi_label": wb.add_format({
                "bold": True, "font_size": 10, "font_color": "#374151",
                "bg_color": "#EFF6FF", "align": "center", "valign": "vcenter", **boxed,
            }),
            "kpi_value": wb.add_format({
                "bold": True, "font_size": 12, "font_color": _COLOR_PRIMARY,
                "bg_color": "#EFF6FF", "align": "center", "valign": "vcenter",
                "num_format": "#,##0.00", **boxed,
            }),
            "col_header": wb.add_format({
                "bold": True, "font_size": 10, "font_color": _COLOR_WHITE,
                "bg_color": _COLOR_SUBHEADER_BG, "align": "center", "valign": "vcenter",
                "border": 1, "border_color": "#CBD5E1", "text_wrap": True,
            }),
            "data_plain": wb.add_format({**cell, "bg_color": _COLOR_WHITE, "align": "left"}),
            "data_alt": wb.add_format({**cell, "bg_color": _COLOR_LIGHT_GREY, "align": "left"}),
            "data_number": wb.add_format({
                **cell, "bg_color": _COLOR_WHITE, "align": "right", "num_format": "#,##0.00",
            }),
            "data_number_alt": wb.add_format({
                **cell, "bg_color": _COLOR_LIGHT_GREY, "align": "right", "num_format": "#,##0.00",
            }),
        }
        for severidad, color in _SEVERITY_COLORS.items():
            formats[f"severity_{severidad}"] = wb.add_format({
                **cell, "bold": True, "font_color": _COLOR_WHITE,
                "bg_color": color, "align": "center",
            })
        return formats

    # -----------------------------------------------------------------------
    # Public builder methods
    # -----------------------------------------------------------------------

    def add_header(self) -> "ExcelExporter":
        """Write the title row, the generation timestamp and one row per filter.

        Returns:
            ``self`` for method chaining.
        """
        ws = self._worksheet
        num_cols = max(self._num_cols, 6)

        ws.set_row(self._current_row, 32)
        ws.merge_range(
            self._current_row, 0, self._current_row, num_cols - 1,
            f"Dashboard Financiero — {self._title}",
            self._formats["header_main"],
        )
        self._current_row += 1

        gen_ts = datetime.now(timezone.utc).strftime("%d/%m/%Y %H:%M UTC")
        ws.merge_range(
            self._current_row, 0, self._current_row, num_cols - 1,
            f"Generado: {gen_ts}",
            self._formats["header_sub"],
        )
        self._current_row += 1

        for key, value in self._filters.items():
            ws.write(self._current_row, 0, key, self._formats["filter_key"])
            ws.merge_range(
                self._current_row, 1, self._current_row, num_cols - 1,
                value,
                self._formats["filter_value"],
            )
            self._current_row += 1

        self._current_row += 1
        return self

    def add_kpi_row(self, kpis: dict[str, Any]) -> "ExcelExporter":
        """Write one label cell above one value cell per KPI.

        Args:
            kpis: Ordered ``{label: value}`` pairs, e.g.
                  ``{"Familias con problemas": 12, "Impacto total": 1_250_000.0}``.

        Returns:
            ``self`` for method chaining.
        """
        ws = self._worksheet
        for col, (label, value) in enumerate(kpis.items()):
            ws.write(self._current_row, col, label, self._formats["kpi_label"])
            ws.write(self._current_row + 1, col, value, self._formats["kpi_value"])
        ws.set_row(self._current_row + 1, 22)

        self._current_row += 3  # label row + value row + blank separator
        return self

    def add_data_table(
        self,
        headers: Sequence[str],
        rows: Sequence[Sequence[Any]],
        numeric_cols: set[int] | None = None,
        severity_col: int | None = None,
    ) -> "ExcelExporter":
        """Write a styled data table with alternating row shading.

        Args:
            headers: Column header strings.
            rows: Data rows, each matching ``headers`` in length.
            numeric_cols: Zero-based indices of money columns.  Detected
                          from the first row when ``None``.
            severity_col: Zero-based index of a severity column to colour.

        Returns:
            ``self`` for method chaining.
        """
        ws = self._worksheet
        self._num_cols = len(headers)

        if numeric_cols is None:
            numeric_cols = {
                ci for ci, val in enumerate(rows[0]) if isinstance(val, (int, float))
            } if rows else set()

        col_widths: list[int] = [len(str(h)) for h in headers]

        ws.set_row(self._current_row, 20)
        for ci, hdr in enumerate(headers):
            ws.write(self._current_row, ci, hdr, self._formats["col_header"])
        self._current_row += 1

        for ri, data_row in enumerate(rows):
            is_alt = ri % 2 == 1
            for ci, cell_val in enumerate(data_row):
                if ci == severity_col and f"severity_{cell_val}" in self._formats:
                    fmt = self._formats[f"severity_{cell_val}"]
                elif ci in numeric_cols:
                    fmt = self._formats["data_number_alt" if is_alt else "data_number"]
                else:
                    fmt = self._formats["data_alt" if is_alt else "data_plain"]
                ws.write(self._current_row, ci, cell_val, fmt)

                cell_str = str(cell_val) if cell_val is not None else ""
                col_widths[ci] = min(_MAX_COL_WIDTH, max(col_widths[ci], len(cell_str)))
            self._current_row += 1

        for ci, width in enumerate(col_widths):
            ws.set_column(ci, ci, max(width + 2, _MIN_COL_WIDTH))

        return self

    def finalize(self) -> bytes:
        """Close the workbook and return the ``.xlsx`` bytes."""
        self._workbook.close()
        self._buffer.seek(0)
        return self._buffer.read()
