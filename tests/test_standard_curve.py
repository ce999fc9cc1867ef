"""
Tests for the standard curve pipeline: blank subtraction, fitting,
interpolation, dilution and unit conversion.
"""

import numpy as np
import pytest

from bioassay.errors import InputValidationError
from bioassay.models import Sample, SampleRole
from bioassay.regression import RegressionKind
from bioassay.standard_curve import StandardCurveAnalysis


def _standard(conc, unit, *responses):
    sample = Sample(f"{conc:g}{unit}", SampleRole.STANDARD, "standard",
                    nominal_concentration=conc, nominal_unit=unit)
    for i, value in enumerate(responses):
        sample.add_well(value, f"A{i + 1}", i + 1)
    return sample


def _unknown(name, *responses):
    sample = Sample(name, SampleRole.UNKNOWN, "sample")
    for i, value in enumerate(responses):
        sample.add_well(value, f"B{i + 1}", i + 13)
    return sample


class TestStandardCurveRun:
    def test_linear_interpolation(self, parsed_samples):
        result = StandardCurveAnalysis.run(parsed_samples, "linear", 1, "ug/mL")

        assert result.kind is RegressionKind.LINEAR
        assert result.units == "ug/mL"
        assert result.model.parameters["m"] == pytest.approx(0.001)
        lane1, lane2, _ = result.unknowns
        assert lane1.interpolated_concentration == pytest.approx(350)
        assert lane2.interpolated_concentration == pytest.approx(750)

    def test_dilution_and_conversion(self, parsed_samples):
        result = StandardCurveAnalysis.run(parsed_samples, "linear", 10, "mg/mL")
        lane1 = result.unknowns[0]

        assert lane1.diluted_concentration == pytest.approx(3500)
        assert lane1.converted_concentration == pytest.approx(3.5)
        assert lane1.converted_units == "mg/mL"
        assert lane1.dilution_factor == 10.0

    def test_sort_order(self, parsed_samples):
        result = StandardCurveAnalysis.run(parsed_samples)

        assert [s.name for s in result.standards] == ["1000ug/mL", "500ug/mL", "250ug/mL", "0ug/mL"]
        assert [s.name for s in result.unknowns] == ["Lane1", "Lane2", "Lane3"]

    def test_outside_range_flag(self, parsed_samples):
        result = StandardCurveAnalysis.run(parsed_samples)

        assert [s.name for s in result.outside_range] == ["Lane3"]
        assert not any(s.outside_range for s in result.standards)
        assert any("Lane3" in w for w in result.warnings)

    def test_blank_subtraction(self, parsed_samples):
        result = StandardCurveAnalysis.run(parsed_samples, subtract_blank=True)
        lane1 = next(s for s in result.unknowns if s.name == "Lane1")

        assert result.blank == pytest.approx(0.1)
        assert lane1.corrected_response == pytest.approx(0.35)
        assert result.model.parameters["b"] == pytest.approx(0.0, abs=1e-9)
        assert lane1.interpolated_concentration == pytest.approx(350)

    def test_log_fit(self, parsed_samples):
        result = StandardCurveAnalysis.run(parsed_samples, "log")
        assert len(result.model.fit_points) == 3

    def test_rerun_does_not_mutate_previous_result(self, parsed_samples):
        first = StandardCurveAnalysis.run(parsed_samples, "linear", 1)
        StandardCurveAnalysis.run(parsed_samples, "linear", 5, subtract_blank=True)

        assert first.unknowns[0].diluted_concentration == pytest.approx(350)
        assert first.unknowns[0].blank == 0.0
        assert np.isnan(parsed_samples["Lane1"].interpolated_concentration)

    def test_mixed_standard_units_are_normalized(self):
        samples = [
            _standard(0, "ug/mL", 0.1),
            _standard(500, "ug/mL", 0.6),
            _standard(1, "mg/mL", 1.1),
            _unknown("Lane1", 0.35),
        ]
        result = StandardCurveAnalysis.run(samples)

        assert result.units == "ug/mL"
        assert result.unknowns[0].interpolated_concentration == pytest.approx(250)

    def test_standard_without_metadata_warns(self):
        bare = Sample("standard", SampleRole.STANDARD, "standard")
        bare.add_well(0.5, "E1", 49)
        samples = [bare, _standard(0, "ug/mL", 0.1), _standard(100, "ug/mL", 0.2), _unknown("x", 0.15)]
        result = StandardCurveAnalysis.run(samples)

        assert any("'standard'" in w for w in result.warnings)
        assert result.unknowns[0].interpolated_concentration == pytest.approx(50)

    def test_no_standards_gives_nan(self):
        result = StandardCurveAnalysis.run([_unknown("x", 0.3)])

        assert result.units is None
        assert np.isnan(result.unknowns[0].converted_concentration)
        assert result.unknowns[0].outside_range
        assert result.warnings

    def test_other_roles_are_kept_apart(self):
        other = Sample("buffer", SampleRole.OTHER, "control")
        other.add_well(0.2, "H1", 85)
        samples = [_standard(0, "ug/mL", 0.1), _standard(100, "ug/mL", 0.2), other]
        result = StandardCurveAnalysis.run(samples)

        assert [s.name for s in result.others] == ["buffer"]
        assert result.unknowns == []

    def test_gel_loadings(self, parsed_samples):
        result = StandardCurveAnalysis.run(parsed_samples, target_units="ug/uL")
        loadings = result.gel_loadings(10, 20)

        assert loadings["Lane1"].converted_concentration == pytest.approx(0.35)
        assert loadings["Lane1"].stock_volume == pytest.approx(10 / 0.35)


class TestInputValidation:
    @pytest.mark.parametrize("factor", [0, 0.5, "x"])
    def test_bad_dilution_factor(self, parsed_samples, factor):
        with pytest.raises(InputValidationError):
            StandardCurveAnalysis.run(parsed_samples, dilution_factor=factor)

    @pytest.mark.parametrize("units", ["ugmL", "kg/mL", "ug/gal"])
    def test_bad_target_units(self, parsed_samples, units):
        with pytest.raises(InputValidationError):
            StandardCurveAnalysis.run(parsed_samples, target_units=units)

    def test_bad_kind(self, parsed_samples):
        with pytest.raises(InputValidationError):
            StandardCurveAnalysis.run(parsed_samples, kind="spline")

    def test_bad_standard_unit(self):
        samples = [_standard(0, "ug/xx", 0.1), _standard(1, "ug/xx", 0.2)]
        with pytest.raises(InputValidationError, match="Standard"):
            StandardCurveAnalysis.run(samples)
