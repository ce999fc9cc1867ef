"""Data model for plate assay samples and qPCR samples/targets."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

import numpy as np

from bioassay.errors import InputValidationError


class SampleRole(str, Enum):
    STANDARD = "standard"
    UNKNOWN = "sample"
    OTHER = "other"

    @classmethod
    def from_label(cls, label: str) -> "SampleRole":
        label = str(label).strip().lower()
        if label == cls.STANDARD.value:
            return cls.STANDARD
        if label == cls.UNKNOWN.value:
            return cls.UNKNOWN
        return cls.OTHER


@dataclass
class LightWell:
    """One template well, kept for plate diagrams (including skipped wells)."""

    name: str
    well_position: str
    well_number: int
    role: SampleRole


@dataclass
class Sample:
    """A plate assay sample merged from its replicate wells."""

    name: str
    role: SampleRole
    role_label: str = ""
    responses: List[float] = field(default_factory=list)
    well_positions: List[str] = field(default_factory=list)
    well_numbers: List[int] = field(default_factory=list)
    nominal_concentration: Optional[float] = None
    nominal_unit: Optional[str] = None

    # Written by StandardCurveAnalysis.run
    blank: float = 0.0
    interpolated_concentration: float = np.nan
    diluted_concentration: float = np.nan
    converted_concentration: float = np.nan
    dilution_factor: float = 1.0
    units: Optional[str] = None
    converted_units: Optional[str] = None
    outside_range: bool = False

    def __post_init__(self):
        if (self.nominal_concentration is None) != (self.nominal_unit is None):
            raise InputValidationError(
                f"Standard '{self.name}' needs both a concentration and a unit"
            )

    def add_well(self, response: float, position: str, number: int) -> None:
        self.responses.append(response)
        self.well_positions.append(position)
        self.well_numbers.append(number)

    @property
    def is_standard(self) -> bool:
        return self.role is SampleRole.STANDARD

    @property
    def has_standard_metadata(self) -> bool:
        return self.nominal_concentration is not None

    @property
    def mean_response(self) -> float:
        if not self.responses:
            return np.nan
        return float(np.mean(self.responses))

    @property
    def stdev_response(self) -> Optional[float]:
        """Sample standard deviation, or None when there is a single replicate."""
        if len(self.responses) < 2:
            return None
        return float(np.std(self.responses, ddof=1))

    @property
    def corrected_response(self) -> float:
        return self.mean_response - self.blank


@dataclass
class Target:
    """A qPCR target gene measured in one sample."""

    name: str
    reporter: str = ""
    cq_values: List[float] = field(default_factory=list)
    best_duplicates: List[float] = field(default_factory=list)
    average: float = np.nan
    stdev: Optional[float] = None
    delta_ct: float = np.nan
    delta_delta_ct: float = np.nan
    rge: float = np.nan
    reference_gene: Optional[str] = None
    pcr_efficiency: float = 1.0

    @property
    def discarded_replicates(self) -> int:
        return len(self.cq_values) - len(self.best_duplicates)


@dataclass
class QPCRSample:
    """A qPCR sample and its targets, in first-seen order."""

    name: str
    targets: Dict[str, Target] = field(default_factory=dict)
    wells: List[float] = field(default_factory=list)
    well_positions: List[str] = field(default_factory=list)

    def add_well(self, well: float, position: str) -> None:
        if position in self.well_positions or (not np.isnan(well) and well in self.wells):
            return
        self.wells.append(well)
        self.well_positions.append(position)
