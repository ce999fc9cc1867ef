"""Sample name grammar for plate layout labels.

A layout cell reads ``"{role}-{rest}"``, e.g. ``"standard-500ug/mL"`` or
``"sample-Lane3"``. Standards carry their concentration and a fixed-width
unit suffix in ``rest``.
"""

from dataclasses import dataclass
from typing import Optional

from bioassay.constants import STANDARD_UNIT_LENGTH
from bioassay.errors import InputValidationError
from bioassay.models import SampleRole


@dataclass(frozen=True)
class ParsedName:
    role: str
    name: str
    nominal_concentration: Optional[float] = None
    nominal_unit: Optional[str] = None

    @property
    def sample_role(self) -> SampleRole:
        return SampleRole.from_label(self.role)


def parse_sample_name(label: str) -> ParsedName:
    """Split a layout label into role, display name and standard metadata.

    Args:
        label: Raw template cell text.

    Returns:
        ParsedName. ``nominal_concentration``/``nominal_unit`` are set only
        for standards that carry a suffix.

    Raises:
        InputValidationError: A standard suffix is shorter than the unit
            width or its leading part is not numeric.
    """
    label = str(label).strip()
    role, sep, rest = label.partition("-")
    role = role.strip().lower()
    rest = rest.strip()

    if not sep:
        return ParsedName(role=role, name=role)
    if not rest:
        # "sample-" names nothing; merge skips it like a blank cell
        return ParsedName(role=role, name="")

    if role != SampleRole.STANDARD.value:
        return ParsedName(role=role, name=rest)

    if len(rest) <= STANDARD_UNIT_LENGTH:
        raise InputValidationError(
            f"Standard label '{label}' must end in a concentration followed by "
            f"a {STANDARD_UNIT_LENGTH}-character unit, e.g. 'standard-500ug/mL'"
        )

    unit = rest[-STANDARD_UNIT_LENGTH:]
    number = rest[:-STANDARD_UNIT_LENGTH]
    try:
        concentration = float(number)
    except ValueError:
        raise InputValidationError(
            f"Standard label '{label}' has a non-numeric concentration '{number}'"
        ) from None

    return ParsedName(
        role=role,
        name=rest,
        nominal_concentration=concentration,
        nominal_unit=unit,
    )
