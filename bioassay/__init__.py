"""Plate Assay and qPCR Analysis Package.

Provides:
- PlateParser: Plate reader export + layout template merging
- QPCRParser: qPCR run export parsing (header located by content)
- RegressionEngine: Linear, log-linear and 4PL standard curves
- StandardCurveAnalysis: Blank subtraction, interpolation, dilution, unit conversion
- GelLoadingCalculator: SDS-PAGE loading volumes
- AnalysisEngine / RelativeQuantification: ΔΔCt relative gene expression
- QualityControl: Outside-range flags, issue tables, replicate statistics
- PseudoExcel / workbook_sheets: Results sheet layout for export
"""

from bioassay.constants import (
    DEFAULT_READING_BLOCK,
    DEFAULT_TEMPLATE_BLOCK,
    QPCR_FILE_FORMAT,
    READING_FILE_FORMAT,
    TEMPLATE_FILE_FORMAT,
    AssayConstants,
    DelimitedFormat,
    PlateBlock,
    QPCRConstants,
)
from bioassay.errors import AssayError, InputValidationError, ParseStructureError
from bioassay.utils import natural_sort_key, read_delimited, well_position
from bioassay.models import LightWell, QPCRSample, Sample, SampleRole, Target
from bioassay.sample_names import ParsedName, parse_sample_name
from bioassay.units import convert_concentration, parse_units, validate_dilution_factor
from bioassay.regression import RegressionEngine, RegressionKind, RegressionModel
from bioassay.parser import ParsedPlate, PlateParser, QPCRParser
from bioassay.gel_loading import GelLoading, GelLoadingCalculator
from bioassay.analysis import AnalysisEngine, RelativeQuantification
from bioassay.quality_control import QualityControl
from bioassay.standard_curve import AnalysisResult, StandardCurveAnalysis
from bioassay.export import (
    PseudoExcel,
    build_results_grid,
    chart_series,
    results_table,
    workbook_sheets,
)

__all__ = [
    "DEFAULT_READING_BLOCK",
    "DEFAULT_TEMPLATE_BLOCK",
    "QPCR_FILE_FORMAT",
    "READING_FILE_FORMAT",
    "TEMPLATE_FILE_FORMAT",
    "AssayConstants",
    "DelimitedFormat",
    "PlateBlock",
    "QPCRConstants",
    "AssayError",
    "InputValidationError",
    "ParseStructureError",
    "natural_sort_key",
    "read_delimited",
    "well_position",
    "LightWell",
    "QPCRSample",
    "Sample",
    "SampleRole",
    "Target",
    "ParsedName",
    "parse_sample_name",
    "convert_concentration",
    "parse_units",
    "validate_dilution_factor",
    "RegressionEngine",
    "RegressionKind",
    "RegressionModel",
    "ParsedPlate",
    "PlateParser",
    "QPCRParser",
    "GelLoading",
    "GelLoadingCalculator",
    "AnalysisEngine",
    "RelativeQuantification",
    "QualityControl",
    "AnalysisResult",
    "StandardCurveAnalysis",
    "PseudoExcel",
    "build_results_grid",
    "chart_series",
    "results_table",
    "workbook_sheets",
]
