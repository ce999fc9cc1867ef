"""Export helpers for plate assay results.

Provides PseudoExcel, a small auto-growing 2-D string grid, the row
projections used by results/gel-loading tables, chart point series, and the
results-sheet layout handed to an external spreadsheet writer.
"""

from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from bioassay.constants import DEFAULT_READING_BLOCK, NOT_APPLICABLE, PlateBlock
from bioassay.gel_loading import GelLoading, GelLoadingCalculator
from bioassay.models import Sample
from bioassay.quality_control import QualityControl
from bioassay.units import parse_units


def _cell(value) -> Optional[str]:
    return None if value is None else str(value)


class PseudoExcel:
    """Sparse ``(row, col) -> str`` grid that grows on write."""

    def __init__(self, rows: int = 0, columns: int = 0, data: Optional[List[list]] = None):
        if data:
            self.data = [[_cell(v) for v in row] for row in data]
            self.rows = len(self.data)
            self.columns = max(len(row) for row in self.data)
        else:
            self.data = [[None] * columns for _ in range(rows)]
            self.rows = rows
            self.columns = columns

    def _grow(self, row: int, col: int) -> None:
        while self.rows <= row:
            self.data.append([])
            self.rows += 1
        current = self.data[row]
        if len(current) <= col:
            current.extend([None] * (col + 1 - len(current)))
        self.columns = max(self.columns, len(current))

    def at(self, row: int, col: int, value=None) -> Optional[str]:
        """Read the cell, or write ``value`` (as a string) when it is given."""
        if value is None:
            if row < self.rows and col < len(self.data[row]):
                return self.data[row][col]
            return None
        self._grow(row, col)
        self.data[row][col] = str(value)
        return self.data[row][col]

    def append_row(self, values) -> int:
        self.data.append([_cell(v) for v in values])
        self.rows += 1
        self.columns = max(self.columns, len(self.data[-1]))
        return self.rows

    def append_column(self, values, start_col: Optional[int] = None) -> int:
        if start_col is None:
            start_col = self.columns
        for i, value in enumerate(values):
            self.at(i, start_col, value)
        return self.columns

    def append_at(self, start_row: int, start_col: int, values, horizontal: bool = True) -> None:
        for i, value in enumerate(values):
            if horizontal:
                self.at(start_row, start_col + i, value)
            else:
                self.at(start_row + i, start_col, value)

    def combine(
        self,
        other: "PseudoExcel",
        start_row: int = 0,
        start_col: int = 0,
        overwrite: bool = True,
        separator: str = ":",
    ) -> "PseudoExcel":
        """Merge ``other`` into this grid with its top-left at (start_row, start_col).

        With ``overwrite=False`` an occupied cell keeps its value and the new
        value is appended after ``separator``.
        """
        for r, row in enumerate(other.data):
            for c, value in enumerate(row):
                if value is None:
                    continue
                target_row, target_col = start_row + r, start_col + c
                current = self.at(target_row, target_col)
                if not overwrite and current:
                    self.at(target_row, target_col, f"{current}{separator}{value}")
                else:
                    self.at(target_row, target_col, value)
        return self

    def to_dataframe(self) -> pd.DataFrame:
        padded = [row + [None] * (self.columns - len(row)) for row in self.data]
        return pd.DataFrame(padded)


# ==================== ROW PROJECTIONS ====================
def _fmt(value, digits: int = 2) -> str:
    if value is None:
        return NOT_APPLICABLE
    if isinstance(value, str):
        return value
    return f"{value:.{digits}f}"


def sample_row(sample: Sample) -> list:
    """Name, type, mean, stdev, interpolated, diluted and converted concentration."""
    return [
        sample.name,
        sample.role.value,
        sample.corrected_response,
        sample.stdev_response if sample.stdev_response is not None else NOT_APPLICABLE,
        sample.interpolated_concentration,
        sample.diluted_concentration,
        sample.converted_concentration,
    ]


def gel_row(sample: Sample, loading: Optional[GelLoading] = None) -> list:
    row = [sample.name, _fmt(sample.converted_concentration)]
    if loading is not None:
        row += [
            loading.target_mass,
            loading.total_volume,
            _fmt(loading.stock_volume),
            _fmt(loading.loading_buffer_volume),
            _fmt(loading.diluent_volume),
        ]
    return row


def sample_export_row(sample: Sample, loading: Optional[GelLoading] = None) -> list:
    """Formatted row for the results sheet; gel columns stay empty without a loading."""
    row = [
        sample.name,
        sample.role.value,
        ",".join(f"{v:g}" for v in sample.responses),
        f"{_fmt(sample.corrected_response)}({_fmt(sample.stdev_response)})",
        _fmt(sample.interpolated_concentration),
        _fmt(sample.diluted_concentration),
        _fmt(sample.converted_concentration),
    ]
    if loading is None:
        return row + ["", "", "", "", ""]
    return row + [
        loading.target_mass,
        loading.total_volume,
        _fmt(loading.stock_volume),
        _fmt(loading.loading_buffer_volume),
        _fmt(loading.diluent_volume),
    ]


def results_headers(result) -> List[str]:
    factor = f"{result.dilution_factor:g}X"
    return [
        "Name",
        "Sample Type",
        "Average",
        "StDev",
        f"Interpolated Concentration [{result.units}]",
        f"{factor} Concentration [{result.units}]",
        f"{factor} Concentration [{result.target_units}]",
    ]


def results_table(result) -> pd.DataFrame:
    """Interpolation results: standards first, then unknowns, with an outside-range flag."""
    headers = results_headers(result)
    rows = [
        sample_row(s) + [s.outside_range] for s in result.standards + result.unknowns
    ]
    table = pd.DataFrame(rows, columns=headers + ["Outside Range"])
    table.attrs["_skipped_warnings"] = list(result.warnings)
    return table


def gel_loading_table(result, loadings: Dict[str, GelLoading]) -> pd.DataFrame:
    headers = GelLoadingCalculator.headers(result.target_units, result.dilution_factor)
    rows = [gel_row(u, loadings.get(u.name)) for u in result.unknowns if u.name in loadings]
    return pd.DataFrame(rows, columns=headers)


# ==================== CHART DATA ====================
def chart_series(result, n_points: Optional[int] = None) -> dict:
    """Point series for a standard-curve scatter chart."""
    points = lambda samples, x_attr: [
        {"x": getattr(s, x_attr), "y": s.corrected_response} for s in samples
    ]
    model = result.model
    curve_x, curve_y = model.curve() if n_points is None else model.curve(n_points=n_points)
    r_squared = "undefined" if np.isnan(model.r_squared) else f"{model.r_squared:.2f}"
    return {
        "standards": [{"x": x, "y": y} for x, y in model.fit_points],
        "unknowns": points(result.unknowns, "interpolated_concentration"),
        "filtered_unknowns": points(
            QualityControl.filter_extrapolated(result.unknowns), "interpolated_concentration"
        ),
        "curve": [{"x": float(x), "y": float(y)} for x, y in zip(curve_x, curve_y)],
        "curve_label": f"Regression Model: R-Squared: {r_squared}",
        "parameters": dict(model.parameters),
        "x_label": f"Protein [{result.units}]",
    }


def concentration_series(result) -> List[dict]:
    """Unknowns by ascending converted concentration, for a bar chart."""
    series = [
        {"name": u.name, "concentration": u.converted_concentration} for u in result.unknowns
    ]
    return sorted(series, key=lambda d: (np.isnan(d["concentration"]), d["concentration"]))


# ==================== RESULTS SHEET ====================
def build_results_grid(
    result,
    raw_grid: List[List[str]],
    template: List[List[str]],
    loadings: Optional[Dict[str, GelLoading]] = None,
    reading_block: PlateBlock = DEFAULT_READING_BLOCK,
) -> PseudoExcel:
    """Lay out the results sheet.

    The raw export is overlaid with the template labels ("value:label") over
    the reading block, followed by a results block and the regression
    parameters.
    """
    loadings = loadings or {}
    grid = PseudoExcel(data=raw_grid)
    grid.combine(
        PseudoExcel(data=template),
        reading_block.row_start,
        reading_block.col_start,
        overwrite=False,
    )

    mass, vol = parse_units(result.target_units)
    average_header = "Average(Stdev) Blank Subtracted" if result.subtract_blank else "Average(Stdev)"
    headers = results_headers(result)
    headers = headers[:2] + ["Individual Values", average_header] + headers[4:] + [
        f"Protein [{mass}]",
        f"Desired Vol [{vol}]",
        f"Stock Protein [{vol}]",
        f"4X Laemmli [{vol}]",
        f"Buffer [{vol}]",
    ]

    start_col = grid.columns
    grid.append_at(0, start_col, headers)
    for i, standard in enumerate(result.standards):
        grid.append_at(i + 1, start_col, sample_export_row(standard))
    offset = len(result.standards) + 1
    for i, unknown in enumerate(result.unknowns):
        grid.append_at(offset + i, start_col, sample_export_row(unknown, loadings.get(unknown.name)))

    model = result.model
    grid.append_column([""])
    grid.append_column(["R-Squared", *model.parameters.keys(), "Dilution Factor"])
    grid.append_column([model.r_squared, *model.parameters.values(), result.dilution_factor])
    return grid


def workbook_sheets(result, plate, loadings: Optional[Dict[str, GelLoading]] = None) -> Dict[str, List[list]]:
    """Sheet name -> 2-D grid for the external workbook writer."""
    grid = build_results_grid(result, plate.raw_grid, plate.template, loadings)
    return {
        "results": grid.data,
        "rawdata": plate.raw_grid,
        "template": plate.raw_template,
    }
