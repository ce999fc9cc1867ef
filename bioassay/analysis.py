"""AnalysisEngine — qPCR relative quantification by the ΔΔCt method.

Contains best-duplicate selection, per-target summaries, ΔCt/ΔΔCt/RGE
calculations, and RelativeQuantification, the per-session state machine
driven by the reference gene and reference sample selections.
"""

import copy
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from bioassay.constants import NOT_APPLICABLE, QPCRConstants
from bioassay.errors import InputValidationError
from bioassay.models import QPCRSample, Target
from bioassay.utils import natural_sort_key


class AnalysisEngine:
    @staticmethod
    def get_best_duplicates(values: List[float]) -> List[float]:
        """Return the two most mutually consistent replicates.

        Fewer than two values are returned unchanged. Otherwise every pair
        (i < j, in encounter order) is compared and the first pair with the
        smallest absolute difference wins.

        >>> AnalysisEngine.get_best_duplicates([10.0, 10.2, 15.0])
        [10.0, 10.2]
        """
        values = list(values)
        if len(values) < 2:
            return values

        best = (values[0], values[1])
        best_diff = np.inf
        for i in range(len(values)):
            for j in range(i + 1, len(values)):
                diff = abs(values[i] - values[j])
                if diff < best_diff:
                    best_diff = diff
                    best = (values[i], values[j])
        return list(best)

    @staticmethod
    def summarize_target(target: Target) -> Target:
        """Fill best duplicates, average and stdev (over the best pair only)."""
        target.best_duplicates = AnalysisEngine.get_best_duplicates(target.cq_values)
        if target.best_duplicates:
            target.average = float(np.mean(target.best_duplicates))
        else:
            target.average = np.nan
        target.stdev = (
            float(np.std(target.best_duplicates, ddof=1))
            if len(target.best_duplicates) >= 2
            else None
        )
        return target

    @staticmethod
    def relative_expression(ddct: float, efficiency: float = QPCRConstants.DEFAULT_PCR_EFFICIENCY) -> float:
        """(1 + E)^(-ΔΔCt); E = 1 gives 2^(-ΔΔCt).

        ΔΔCt is clamped to ±50 first, so the result saturates at
        (1 + E)^±50 (2^±50 for E = 1) instead of overflowing to inf or 0.
        """
        if np.isnan(ddct):
            return np.nan
        ddct_clamped = np.clip(ddct, -QPCRConstants.DDCT_CLAMP, QPCRConstants.DDCT_CLAMP)
        return float((1 + efficiency) ** (-ddct_clamped))

    @staticmethod
    def calculate_delta_ct(samples: Dict[str, QPCRSample], reference_gene: str) -> List[str]:
        """ΔCt = target average - reference gene average, within each sample.

        Returns warnings for samples lacking the reference gene.
        """
        skipped = []
        for sample in samples.values():
            reference = sample.targets.get(reference_gene)
            ref_average = reference.average if reference is not None else np.nan
            if reference is None:
                skipped.append(
                    f"Sample '{sample.name}': no reference gene ('{reference_gene}') data"
                )
            for target in sample.targets.values():
                target.reference_gene = reference_gene
                target.delta_ct = target.average - ref_average
        return skipped

    @staticmethod
    def calculate_ddct(samples: Dict[str, QPCRSample], reference_sample: str) -> List[str]:
        """ΔΔCt = ΔCt - ΔCt of the same gene in the reference sample; RGE from ΔΔCt.

        Returns warnings for genes missing from the reference sample.
        """
        skipped = []
        reference = samples[reference_sample]
        for sample in samples.values():
            for gene, target in sample.targets.items():
                ref_target = reference.targets.get(gene)
                if ref_target is None:
                    skipped.append(
                        f"Gene '{gene}', sample '{sample.name}': gene not measured in "
                        f"reference sample '{reference_sample}'"
                    )
                    target.delta_delta_ct = np.nan
                elif sample is reference:
                    target.delta_delta_ct = 0.0 if not np.isnan(target.delta_ct) else np.nan
                else:
                    target.delta_delta_ct = target.delta_ct - ref_target.delta_ct
                target.rge = AnalysisEngine.relative_expression(
                    target.delta_delta_ct, target.pcr_efficiency
                )
        return skipped


class RelativeQuantification:
    """ΔΔCt session for one qPCR run.

    States: no reference gene (ΔCt undefined) -> reference gene chosen
    (ΔCt known) -> reference sample chosen (ΔΔCt and RGE known). Either
    selection can change at any time; each change recomputes every sample
    from scratch and overwrites the previous values.
    """

    def __init__(self, samples: Dict[str, QPCRSample]):
        self.samples: Dict[str, QPCRSample] = copy.deepcopy(samples)
        self.reference_gene: Optional[str] = None
        self.reference_sample: Optional[str] = None
        self.warnings: List[str] = []
        for sample in self.samples.values():
            for target in sample.targets.values():
                AnalysisEngine.summarize_target(target)

    @property
    def genes(self) -> List[str]:
        seen = {}
        for sample in self.samples.values():
            for gene in sample.targets:
                seen.setdefault(gene, None)
        return list(seen)

    @property
    def sample_names(self) -> List[str]:
        return list(self.samples)

    @property
    def state(self) -> str:
        if self.reference_gene is None:
            return "no_reference_gene"
        if self.reference_sample is None:
            return "no_reference_sample"
        return "resolved"

    def set_reference_gene(self, gene: str) -> Dict[str, QPCRSample]:
        if gene not in self.genes:
            raise InputValidationError(
                f"Unknown reference gene '{gene}'. Options: {', '.join(self.genes)}"
            )
        self.reference_gene = gene
        return self.recompute()

    def set_reference_sample(self, name: str) -> Dict[str, QPCRSample]:
        if name not in self.samples:
            raise InputValidationError(
                f"Unknown reference sample '{name}'. Options: {', '.join(self.sample_names)}"
            )
        self.reference_sample = name
        return self.recompute()

    def recompute(self) -> Dict[str, QPCRSample]:
        self.warnings = []
        for sample in self.samples.values():
            for target in sample.targets.values():
                target.delta_ct = np.nan
                target.delta_delta_ct = np.nan
                target.rge = np.nan
                target.reference_gene = None

        if self.reference_gene is None:
            return self.samples
        self.warnings += AnalysisEngine.calculate_delta_ct(self.samples, self.reference_gene)

        if self.reference_sample is None:
            return self.samples
        self.warnings += AnalysisEngine.calculate_ddct(self.samples, self.reference_sample)
        return self.samples

    def to_dataframe(self, natural_sort: bool = False) -> pd.DataFrame:
        """One row per (Sample, Target) for table rendering and export."""
        names = sorted(self.samples, key=natural_sort_key) if natural_sort else list(self.samples)
        rows = []
        for name in names:
            sample = self.samples[name]
            for target in sample.targets.values():
                rows.append(
                    {
                        "Sample": sample.name,
                        "Target": target.name,
                        "Reporter": target.reporter,
                        "Wells": ", ".join(sample.well_positions),
                        "Cq Values": list(target.cq_values),
                        "Best Duplicates": list(target.best_duplicates),
                        "Average": target.average,
                        "SD": target.stdev if target.stdev is not None else NOT_APPLICABLE,
                        "Delta_Ct": target.delta_ct,
                        "Delta_Delta_Ct": target.delta_delta_ct,
                        "RGE": target.rge,
                    }
                )
        result = pd.DataFrame(rows)
        result.attrs["_skipped_warnings"] = list(self.warnings)
        return result
