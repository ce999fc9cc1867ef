"""Concentration unit algebra and analysis input validation.

Units are written ``"{mass}/{volume}"`` with mass in g, mg, ug, ng, fg and
volume in L, mL, uL, nL, fL. Each ladder steps down by 10^3.
"""

from typing import Tuple

import numpy as np

from bioassay.constants import (
    MASS_UNITS,
    VOLUME_UNITS,
    UNIT_STEP_EXPONENT,
    AssayConstants,
)
from bioassay.errors import InputValidationError


def parse_units(units: str) -> Tuple[str, str]:
    """Validate a ``mass/volume`` unit string and return its two tokens."""
    units = str(units).strip()
    if "/" not in units:
        raise InputValidationError(
            f"Enter the units in the correct format, i.e. mass/volume (got '{units}')"
        )
    mass, volume = units.split("/", 1)
    if mass not in MASS_UNITS:
        raise InputValidationError(
            f"'{mass}' is not a supported unit of mass, i.e. {', '.join(MASS_UNITS)}"
        )
    if volume not in VOLUME_UNITS:
        raise InputValidationError(
            f"'{volume}' is not a supported unit of volume, i.e. {', '.join(VOLUME_UNITS)}"
        )
    return mass, volume


def is_valid_units(units: str) -> bool:
    try:
        parse_units(units)
    except InputValidationError:
        return False
    return True


def conversion_factor(from_units: str, to_units: str) -> float:
    """Multiplier that converts a concentration from ``from_units`` to ``to_units``."""
    from_mass, from_vol = parse_units(from_units)
    to_mass, to_vol = parse_units(to_units)
    mass_steps = MASS_UNITS.index(to_mass) - MASS_UNITS.index(from_mass)
    vol_steps = VOLUME_UNITS.index(from_vol) - VOLUME_UNITS.index(to_vol)
    return 10.0 ** (UNIT_STEP_EXPONENT * (mass_steps + vol_steps))


def convert_concentration(conc, from_units: str, to_units: str):
    """Convert a concentration (scalar or array) between mass/volume units.

    >>> convert_concentration(1, "mg/mL", "ug/mL")
    1000.0
    """
    factor = conversion_factor(from_units, to_units)
    if np.ndim(conc):
        return np.asarray(conc, dtype=float) * factor
    return float(conc) * factor


def validate_dilution_factor(value) -> float:
    """Return the dilution factor as a float, rejecting values below 1."""
    try:
        factor = float(value)
    except (TypeError, ValueError):
        raise InputValidationError(f"Dilution factor must be a number (got '{value}')") from None
    if not np.isfinite(factor) or factor < AssayConstants.MIN_DILUTION_FACTOR:
        raise InputValidationError(
            f"The dilution factor has to be greater than or equal to "
            f"{AssayConstants.MIN_DILUTION_FACTOR} (got {value})"
        )
    return factor
