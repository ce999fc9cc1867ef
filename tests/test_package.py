"""Tests for the bioassay package surface.

Verifies that all public classes and functions are importable from the
bioassay package and that the computation modules run without Streamlit.
"""

import sys


class TestPackageImports:
    """Verify all expected symbols are importable from the bioassay package."""

    def test_import_constants(self):
        from bioassay import (
            DEFAULT_READING_BLOCK, DEFAULT_TEMPLATE_BLOCK, READING_FILE_FORMAT,
            TEMPLATE_FILE_FORMAT, AssayConstants, QPCRConstants,
        )
        assert DEFAULT_READING_BLOCK.row_start == 3
        assert DEFAULT_TEMPLATE_BLOCK.col_start == 1
        assert READING_FILE_FORMAT.delimiter == "\t"
        assert TEMPLATE_FILE_FORMAT.encoding == "utf-8"
        assert AssayConstants.LOADING_BUFFER_FOLD == 4
        assert QPCRConstants.MIN_ROW_COLUMNS == 20

    def test_import_classes(self):
        from bioassay import (
            PlateParser, QPCRParser, RegressionEngine, StandardCurveAnalysis,
            GelLoadingCalculator, AnalysisEngine, RelativeQuantification,
            QualityControl, PseudoExcel,
        )
        assert hasattr(PlateParser, "merge")
        assert hasattr(QPCRParser, "create_samples")
        assert hasattr(RegressionEngine, "fit")
        assert hasattr(StandardCurveAnalysis, "run")
        assert hasattr(GelLoadingCalculator, "build")
        assert hasattr(AnalysisEngine, "get_best_duplicates")
        assert hasattr(RelativeQuantification, "recompute")
        assert hasattr(QualityControl, "detect_issues")
        assert hasattr(PseudoExcel, "combine")

    def test_errors_share_a_base(self):
        from bioassay import AssayError, InputValidationError, ParseStructureError

        assert issubclass(InputValidationError, AssayError)
        assert issubclass(InputValidationError, ValueError)
        assert issubclass(ParseStructureError, AssayError)


class TestNoStreamlitInComputation:
    def test_computation_modules_do_not_bind_streamlit(self):
        import bioassay.analysis
        import bioassay.quality_control
        import bioassay.regression
        import bioassay.standard_curve

        for module in (
            bioassay.analysis,
            bioassay.quality_control,
            bioassay.regression,
            bioassay.standard_curve,
        ):
            assert not hasattr(module, "st")
        assert "streamlit" in sys.modules
