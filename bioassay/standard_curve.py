"""StandardCurveAnalysis — back-calculation of unknowns from a standard curve.

One run: validate inputs, optionally subtract the blank, fit the chosen
model to the standards, then interpolate, dilute and convert every sample.
Each run works on its own copy of the parsed samples.
"""

import copy
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

import numpy as np

from bioassay.errors import InputValidationError
from bioassay.gel_loading import GelLoading, GelLoadingCalculator
from bioassay.models import Sample, SampleRole
from bioassay.quality_control import QualityControl
from bioassay.regression import RegressionEngine, RegressionKind, RegressionModel
from bioassay.units import convert_concentration, parse_units, validate_dilution_factor


def _by_response(sample: Sample, descending: bool = False):
    value = sample.corrected_response
    if np.isnan(value):
        return (1, 0.0)
    return (0, -value if descending else value)


@dataclass
class AnalysisResult:
    samples: List[Sample]
    standards: List[Sample]
    unknowns: List[Sample]
    others: List[Sample]
    model: RegressionModel
    units: Optional[str]
    target_units: str
    dilution_factor: float
    blank: float = 0.0
    subtract_blank: bool = False
    warnings: List[str] = field(default_factory=list)

    @property
    def kind(self) -> RegressionKind:
        return self.model.kind

    @property
    def response_range(self) -> Tuple[float, float]:
        return QualityControl.standard_response_range(self.standards)

    @property
    def outside_range(self) -> List[Sample]:
        return [s for s in self.unknowns if s.outside_range]

    def gel_loadings(self, target_mass, total_volume) -> Dict[str, GelLoading]:
        return GelLoadingCalculator.build(self.unknowns, target_mass, total_volume)


class StandardCurveAnalysis:
    @staticmethod
    def validate_inputs(dilution_factor, target_units: str, kind="linear") -> Tuple[float, RegressionKind]:
        """Check user inputs before any computation starts.

        Raises:
            InputValidationError: Dilution factor below 1, malformed target
                units, or unknown regression type.
        """
        factor = validate_dilution_factor(dilution_factor)
        parse_units(target_units)
        return factor, RegressionKind.parse(kind)

    @staticmethod
    def standard_pairs(standards: List[Sample], units: str) -> List[Tuple[float, float]]:
        """(concentration in ``units``, corrected response) for standards with metadata."""
        return [
            (
                convert_concentration(s.nominal_concentration, s.nominal_unit, units),
                s.corrected_response,
            )
            for s in standards
            if s.has_standard_metadata
        ]

    @staticmethod
    def run(
        samples: Union[Dict[str, Sample], List[Sample]],
        kind="linear",
        dilution_factor=1,
        target_units: str = "ug/mL",
        subtract_blank: bool = False,
    ) -> AnalysisResult:
        factor, kind = StandardCurveAnalysis.validate_inputs(dilution_factor, target_units, kind)

        samples = list(samples.values()) if isinstance(samples, dict) else list(samples)
        samples = copy.deepcopy(samples)
        warnings: List[str] = []

        standards = [s for s in samples if s.role is SampleRole.STANDARD]
        unknowns = [s for s in samples if s.role is SampleRole.UNKNOWN]
        others = [s for s in samples if s.role is SampleRole.OTHER]

        with_metadata = [s for s in standards if s.has_standard_metadata]
        for s in standards:
            if not s.has_standard_metadata:
                warnings.append(f"Standard '{s.name}' has no concentration/unit and was not fitted")

        units = with_metadata[0].nominal_unit if with_metadata else None
        if units is not None:
            for s in with_metadata:
                try:
                    parse_units(s.nominal_unit)
                except InputValidationError as e:
                    raise InputValidationError(f"Standard '{s.name}': {e}") from e
        else:
            warnings.append("No standards with a concentration; concentrations cannot be converted")

        blank = 0.0
        if subtract_blank:
            means = [s.mean_response for s in standards if np.isfinite(s.mean_response)]
            if means:
                blank = min(means)
            else:
                warnings.append("Blank subtraction skipped: no numeric standard responses")
        for s in samples:
            s.blank = blank

        pairs = StandardCurveAnalysis.standard_pairs(with_metadata, units) if units else []
        model = RegressionEngine.fit(pairs, kind)
        warnings.extend(model.warnings)

        for s in samples:
            s.interpolated_concentration = model.inverse(s.corrected_response)
            s.dilution_factor = factor
            s.diluted_concentration = s.interpolated_concentration * factor
            s.units = units
            s.converted_units = target_units
            s.converted_concentration = (
                convert_concentration(s.diluted_concentration, units, target_units)
                if units
                else np.nan
            )

        flagged = QualityControl.flag_outside_range(samples, standards)
        flagged_unknowns = [s for s in flagged if s.role is SampleRole.UNKNOWN]
        if flagged_unknowns:
            warnings.append(
                f"{len(flagged_unknowns)} unknown(s) fall outside the standard curve range: "
                f"{', '.join(s.name for s in flagged_unknowns)}"
            )

        standards.sort(key=lambda s: _by_response(s, descending=True))
        unknowns.sort(key=_by_response)

        return AnalysisResult(
            samples=samples,
            standards=standards,
            unknowns=unknowns,
            others=others,
            model=model,
            units=units,
            target_units=target_units,
            dilution_factor=factor,
            blank=blank,
            subtract_blank=subtract_blank,
            warnings=warnings,
        )
