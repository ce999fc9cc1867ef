"""QualityControl — data-quality checks for plate assays and qPCR runs.

Flags unknowns outside the standard curve, tabulates per-sample issues
and summarizes qPCR replicate statistics.
No Streamlit dependency. All methods are pure computation.
"""

import copy
from typing import Dict, Iterable, List, Tuple

import numpy as np
import pandas as pd

from bioassay.analysis import AnalysisEngine
from bioassay.constants import QPCRConstants
from bioassay.models import QPCRSample, Sample


class QualityControl:
    CQ_HIGH_THRESHOLD = QPCRConstants.CQ_HIGH_WARNING
    CQ_LOW_THRESHOLD = QPCRConstants.CQ_LOW_WARNING
    CV_THRESHOLD_PCT = QPCRConstants.CV_WARNING_PCT

    # ==================== STANDARD CURVE ====================
    @staticmethod
    def standard_response_range(standards: Iterable[Sample]) -> Tuple[float, float]:
        """Lowest and highest standard response, ignoring non-numeric means."""
        responses = [s.corrected_response for s in standards if np.isfinite(s.corrected_response)]
        if not responses:
            return np.nan, np.nan
        return min(responses), max(responses)

    @staticmethod
    def is_outside_range(response: float, lowest: float, highest: float, concentration: float = 0.0) -> bool:
        """True when a response lies beyond the standards' response range.

        The lowest and highest standard responses themselves are inside.

        Non-finite responses, ranges or interpolated concentrations also count
        as outside, since no concentration can be read off the curve.
        """
        if not (np.isfinite(response) and np.isfinite(lowest) and np.isfinite(highest)):
            return True
        if not np.isfinite(concentration):
            return True
        return response < lowest or response > highest

    @staticmethod
    def flag_outside_range(samples: Iterable[Sample], standards: Iterable[Sample]) -> List[Sample]:
        """Set ``outside_range`` on every non-standard sample; return the flagged ones."""
        lowest, highest = QualityControl.standard_response_range(standards)
        flagged = []
        for sample in samples:
            if sample.is_standard:
                sample.outside_range = False
                continue
            sample.outside_range = QualityControl.is_outside_range(
                sample.corrected_response, lowest, highest, sample.interpolated_concentration
            )
            if sample.outside_range:
                flagged.append(sample)
        return flagged

    @staticmethod
    def filter_extrapolated(unknowns: Iterable[Sample]) -> List[Sample]:
        return [u for u in unknowns if not u.outside_range]

    @staticmethod
    def detect_issues(result) -> pd.DataFrame:
        """Per-sample issue table for an AnalysisResult.

        Run-level warnings (fit problems) are attached as
        ``attrs["_skipped_warnings"]``.
        """
        rows = []
        for sample in result.samples:
            issues = []
            severity = "ok"

            bad_wells = [
                pos for pos, value in zip(sample.well_positions, sample.responses) if np.isnan(value)
            ]
            if bad_wells:
                issues.append(f"Non-numeric reading ({', '.join(bad_wells)})")
                severity = "error"
            if sample.is_standard and not sample.has_standard_metadata:
                issues.append("Standard without concentration/unit")
                severity = "error"
            if len(sample.responses) < 2:
                issues.append("Low n")
                if severity == "ok":
                    severity = "warning"
            if not sample.is_standard:
                if not np.isfinite(sample.interpolated_concentration):
                    issues.append("No interpolated concentration")
                    severity = "error"
                elif sample.outside_range:
                    issues.append("Outside standard curve range")
                    if severity == "ok":
                        severity = "warning"

            rows.append(
                {
                    "Sample": sample.name,
                    "Role": sample.role.value,
                    "Wells": ", ".join(sample.well_positions),
                    "Mean": sample.corrected_response,
                    "Issues": "; ".join(issues) or "OK",
                    "Severity": severity,
                    "Flagged": bool(issues),
                }
            )

        qc_df = pd.DataFrame(
            rows, columns=["Sample", "Role", "Wells", "Mean", "Issues", "Severity", "Flagged"]
        )
        qc_df.attrs["_skipped_warnings"] = list(result.warnings)
        return qc_df

    # ==================== qPCR ====================
    @staticmethod
    def get_target_stats(samples: Dict[str, QPCRSample]) -> pd.DataFrame:
        """Replicate statistics per (Sample, Target) over the best duplicates."""
        rows = []
        for sample in samples.values():
            for target in sample.targets.values():
                if len(target.best_duplicates) == 0 and target.cq_values:
                    target = AnalysisEngine.summarize_target(copy.deepcopy(target))
                rows.append(
                    {
                        "Sample": sample.name,
                        "Target": target.name,
                        "n": len(target.cq_values),
                        "Mean Cq": target.average,
                        "SD": target.stdev if target.stdev is not None else 0.0,
                        "Discarded": target.discarded_replicates,
                    }
                )

        columns = ["Sample", "Target", "n", "Mean Cq", "SD", "CV%", "Discarded", "Status"]
        if not rows:
            return pd.DataFrame(columns=columns)

        rep_stats = pd.DataFrame(rows)
        rep_stats["CV%"] = np.where(
            rep_stats["Mean Cq"] > 0, (rep_stats["SD"] / rep_stats["Mean Cq"]) * 100, np.nan
        )
        rep_stats["Status"] = np.select(
            [
                rep_stats["Mean Cq"].isna(),
                rep_stats["Mean Cq"] < QualityControl.CQ_LOW_THRESHOLD,
                rep_stats["Mean Cq"] > QualityControl.CQ_HIGH_THRESHOLD,
                rep_stats["CV%"] > QualityControl.CV_THRESHOLD_PCT,
            ],
            ["Undetermined", "Check Signal", "Low Expression", "High CV"],
            default="OK",
        )

        rep_stats["Mean Cq"] = rep_stats["Mean Cq"].round(2)
        rep_stats["SD"] = rep_stats["SD"].round(3)
        rep_stats["CV%"] = rep_stats["CV%"].round(1)
        return rep_stats[columns]
