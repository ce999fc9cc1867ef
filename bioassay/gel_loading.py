"""Gel-loading volumes for SDS-PAGE sample preparation.

Given an unknown's converted concentration, the protein mass to load and
the final volume, derives the stock, 4X loading buffer and diluent volumes.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

import numpy as np

from bioassay.constants import AssayConstants
from bioassay.errors import InputValidationError
from bioassay.models import Sample
from bioassay.units import parse_units


def _check_amount(label: str, value) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise InputValidationError(f"{label} must be a number (got '{value}')") from None
    if value < 0:
        raise InputValidationError(f"{label} cannot be negative (got {value})")
    return value


@dataclass
class GelLoading:
    """Loading recipe for one sample. Volumes are derived from the inputs on read."""

    name: str
    converted_concentration: float
    target_mass: float
    total_volume: float

    def __post_init__(self):
        self.target_mass = _check_amount("Protein mass", self.target_mass)
        self.total_volume = _check_amount("Total volume", self.total_volume)

    def update(self, target_mass=None, total_volume=None) -> "GelLoading":
        if target_mass is not None:
            self.target_mass = _check_amount("Protein mass", target_mass)
        if total_volume is not None:
            self.total_volume = _check_amount("Total volume", total_volume)
        return self

    @property
    def stock_volume(self) -> float:
        conc = self.converted_concentration
        if not np.isfinite(conc) or conc <= 0:
            return np.nan
        return self.target_mass / conc

    @property
    def loading_buffer_volume(self) -> float:
        return self.total_volume / AssayConstants.LOADING_BUFFER_FOLD

    @property
    def diluent_volume(self) -> float:
        return self.total_volume - self.loading_buffer_volume - self.stock_volume


class GelLoadingCalculator:
    @staticmethod
    def build(unknowns: Iterable[Sample], target_mass, total_volume) -> Dict[str, GelLoading]:
        """One GelLoading per unknown, keyed by sample name, using shared defaults."""
        return {
            sample.name: GelLoading(
                name=sample.name,
                converted_concentration=sample.converted_concentration,
                target_mass=target_mass,
                total_volume=total_volume,
            )
            for sample in unknowns
        }

    @staticmethod
    def headers(units: str, dilution_factor: Optional[float] = None) -> List[str]:
        mass, vol = parse_units(units)
        factor = f"{dilution_factor:g}X " if dilution_factor is not None else ""
        return [
            "Name",
            f"{factor}Concentration [{units}]",
            f"Protein [{mass}]",
            f"Desired Vol [{vol}]",
            f"Stock Protein [{vol}]",
            f"4X Laemmli [{vol}]",
            f"Buffer [{vol}]",
        ]
