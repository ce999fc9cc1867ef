"""Constants and configuration for plate assay and qPCR analysis.

Contains plate block presets, delimited file formats, unit ladders,
optimizer defaults and QC thresholds.
"""

from dataclasses import dataclass
from typing import Optional


# ==================== PLATE LAYOUT ====================
@dataclass(frozen=True)
class PlateBlock:
    """0-based, half-open crop of a raw grid. ``None`` runs to the edge."""

    row_start: int
    row_end: Optional[int]
    col_start: int
    col_end: Optional[int]

    def crop(self, grid):
        """Cut the block out of ``grid``, right-padding short rows with blanks."""
        rows = [list(row[self.col_start:self.col_end]) for row in grid[self.row_start:self.row_end]]
        if self.col_end is not None:
            width = self.col_end - self.col_start
            rows = [row + [""] * (width - len(row)) for row in rows]
        return rows


# 96-well reader export: readings on rows 4-11, columns 3-14
DEFAULT_READING_BLOCK = PlateBlock(3, 11, 2, 14)
# 96-well layout template: labels on rows 3-10, columns 2-13
DEFAULT_TEMPLATE_BLOCK = PlateBlock(2, 10, 1, 13)

NONE_LABEL = "none"
NOT_APPLICABLE = "N/A"


# ==================== FILE FORMATS ====================
@dataclass(frozen=True)
class DelimitedFormat:
    encoding: Optional[str] = None
    delimiter: str = ","


READING_FILE_FORMAT = DelimitedFormat(encoding="utf-16", delimiter="\t")
TEMPLATE_FILE_FORMAT = DelimitedFormat(encoding="utf-8", delimiter=",")
QPCR_FILE_FORMAT = DelimitedFormat(encoding=None, delimiter=",")

ENCODING_FALLBACKS = ["utf-8", "utf-16", "utf-16-le", "latin-1", "cp1252"]


# ==================== UNITS ====================
# Both ladders step down by 10^3
MASS_UNITS = ["g", "mg", "ug", "ng", "fg"]
VOLUME_UNITS = ["L", "mL", "uL", "nL", "fL"]
UNIT_STEP_EXPONENT = 3
STANDARD_UNIT_LENGTH = 5


# ==================== ANALYSIS CONSTANTS ====================
class AssayConstants:
    MAX_FILE_SIZE_MB = 50
    MIN_STANDARDS_FOR_FIT = 2
    MIN_DILUTION_FACTOR = 1
    LOADING_BUFFER_FOLD = 4
    FOUR_PL_MAX_ITER = 1000
    FOUR_PL_STEP_GROWTH = 1.2
    FOUR_PL_STEP_REVERSAL = -0.5
    CURVE_POINTS = 1000


class QPCRConstants:
    REQUIRED_HEADERS = ["Sample", "Target", "Well", "Well Position", "Reporter", "Cq"]
    MIN_ROW_COLUMNS = 20
    DEFAULT_PCR_EFFICIENCY = 1.0
    DDCT_CLAMP = 50
    CQ_HIGH_WARNING = 35.0
    CQ_LOW_WARNING = 10.0
    CV_WARNING_PCT = 5.0
