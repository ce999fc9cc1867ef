"""PlateParser and QPCRParser — delimited file parsing into sample records.

PlateParser merges a plate reader export with a layout template into
Sample records keyed by display name. QPCRParser turns a qPCR run export
into QPCRSample -> Target records, locating its header row by content.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
import streamlit as st

from bioassay.constants import (
    DEFAULT_READING_BLOCK,
    DEFAULT_TEMPLATE_BLOCK,
    NONE_LABEL,
    QPCR_FILE_FORMAT,
    READING_FILE_FORMAT,
    TEMPLATE_FILE_FORMAT,
    AssayConstants,
    DelimitedFormat,
    PlateBlock,
    QPCRConstants,
)
from bioassay.errors import AssayError, InputValidationError, ParseStructureError
from bioassay.models import LightWell, QPCRSample, Sample, Target
from bioassay.sample_names import parse_sample_name
from bioassay.utils import file_stem, read_delimited, well_position


def _file_size_mb(source) -> float:
    if isinstance(source, (str, os.PathLike)):
        return os.path.getsize(source) / (1024 * 1024)
    if isinstance(source, (bytes, bytearray)):
        return len(source) / (1024 * 1024)
    source.seek(0, 2)
    size = source.tell()
    source.seek(0)
    return size / (1024 * 1024)


def _check_file_size(source, limit_mb: float = AssayConstants.MAX_FILE_SIZE_MB) -> None:
    size_mb = _file_size_mb(source)
    if size_mb > limit_mb:
        raise ParseStructureError(
            f"File too large ({size_mb:.1f} MB). Maximum size is {limit_mb} MB."
        )


@dataclass
class ParsedPlate:
    samples: Dict[str, Sample]
    light_wells: List[LightWell]
    raw_grid: List[List[str]] = field(default_factory=list)
    raw_template: List[List[str]] = field(default_factory=list)
    template: List[List[str]] = field(default_factory=list)
    filename: Optional[str] = None
    template_filename: Optional[str] = None

    @property
    def non_numeric_wells(self) -> List[str]:
        return [
            position
            for sample in self.samples.values()
            for position, value in zip(sample.well_positions, sample.responses)
            if np.isnan(value)
        ]


class PlateParser:
    MAX_FILE_SIZE_MB = AssayConstants.MAX_FILE_SIZE_MB

    @staticmethod
    def merge(
        raw_grid: List[List[str]],
        raw_template: List[List[str]],
        reading_block: PlateBlock = DEFAULT_READING_BLOCK,
        template_block: PlateBlock = DEFAULT_TEMPLATE_BLOCK,
    ) -> ParsedPlate:
        """Merge reader values with template labels into Samples.

        Wells are scanned row by row (A, B, ...) then column by column
        (1, 2, ...). Wells labelled "None" (any case) or left blank appear
        only in ``light_wells``. Non-numeric readings become NaN.

        Raises:
            ParseStructureError: Empty blocks, mismatched shapes, or no samples.
            InputValidationError: A template label is malformed.
        """
        readings = pd.DataFrame(reading_block.crop(raw_grid))
        labels = pd.DataFrame(template_block.crop(raw_template))

        if readings.empty:
            raise ParseStructureError("Plate reading block is empty; check the row/column crop")
        if readings.shape != labels.shape:
            raise ParseStructureError(
                f"Template shape {labels.shape} does not match plate reading shape {readings.shape}"
            )

        readings = readings.apply(
            lambda col: pd.to_numeric(col.astype(str).str.strip(), errors="coerce")
        )
        labels = labels.fillna("")

        samples: Dict[str, Sample] = {}
        light_wells: List[LightWell] = []
        well_number = 0
        n_rows, n_cols = readings.shape

        for i in range(n_rows):
            for j in range(n_cols):
                well_number += 1
                position = well_position(i, j)
                try:
                    parsed = parse_sample_name(labels.iat[i, j])
                except InputValidationError as e:
                    raise InputValidationError(f"Well {position}: {e}") from e

                name = parsed.name
                light_wells.append(LightWell(name, position, well_number, parsed.sample_role))

                if not name or name.lower() == NONE_LABEL:
                    continue

                sample = samples.get(name)
                if sample is None:
                    sample = Sample(
                        name=name,
                        role=parsed.sample_role,
                        role_label=parsed.role,
                        nominal_concentration=parsed.nominal_concentration,
                        nominal_unit=parsed.nominal_unit,
                    )
                    samples[name] = sample
                sample.add_well(float(readings.iat[i, j]), position, well_number)

        if not samples:
            raise ParseStructureError("No samples found in the plate template")

        return ParsedPlate(
            samples=samples,
            light_wells=light_wells,
            raw_grid=raw_grid,
            raw_template=raw_template,
            template=labels.astype(str).values.tolist(),
        )

    @staticmethod
    def parse(
        reading_file,
        template_file,
        reading_format: DelimitedFormat = READING_FILE_FORMAT,
        template_format: DelimitedFormat = TEMPLATE_FILE_FORMAT,
        reading_block: PlateBlock = DEFAULT_READING_BLOCK,
        template_block: PlateBlock = DEFAULT_TEMPLATE_BLOCK,
    ) -> Optional[ParsedPlate]:
        try:
            _check_file_size(reading_file, PlateParser.MAX_FILE_SIZE_MB)
            _check_file_size(template_file, PlateParser.MAX_FILE_SIZE_MB)
            raw_grid = read_delimited(reading_file, reading_format.encoding, reading_format.delimiter)
            raw_template = read_delimited(
                template_file, template_format.encoding, template_format.delimiter
            )
            plate = PlateParser.merge(raw_grid, raw_template, reading_block, template_block)
        except (AssayError, OSError) as e:
            st.error(f"Plate parse error: {e}")
            return None

        plate.filename = file_stem(reading_file)
        plate.template_filename = file_stem(template_file)

        bad_wells = plate.non_numeric_wells
        if bad_wells:
            st.info(
                f"Note: {len(bad_wells)} wells have non-numeric readings "
                f"({', '.join(bad_wells)}); their samples will have no mean."
            )
        return plate


class QPCRParser:
    MAX_FILE_SIZE_MB = AssayConstants.MAX_FILE_SIZE_MB

    @staticmethod
    def find_header(
        rows: List[List[str]],
        min_columns: int = QPCRConstants.MIN_ROW_COLUMNS,
        required: List[str] = QPCRConstants.REQUIRED_HEADERS,
    ) -> Tuple[int, Dict[str, int]]:
        """Locate the header row by content and return its index and column map."""
        for idx, row in enumerate(rows):
            if len(row) <= min_columns:
                continue
            cells = [str(c).strip() for c in row]
            if all(header in cells for header in required):
                return idx, {header: cells.index(header) for header in required}
        raise ParseStructureError(
            f"Header row with columns {', '.join(required)} not found"
        )

    @staticmethod
    def create_samples(
        rows: List[List[str]],
        min_columns: int = QPCRConstants.MIN_ROW_COLUMNS,
        warnings: Optional[List[str]] = None,
    ) -> Dict[str, QPCRSample]:
        """Build Sample -> Target records from run-export rows.

        Every row after the header that is wider than ``min_columns`` is a
        data row. Rows without a sample or target name are skipped.

        Raises:
            ParseStructureError: No header row, or no usable data rows.
        """
        headers = QPCRConstants.REQUIRED_HEADERS
        header_idx, columns = QPCRParser.find_header(rows, min_columns, headers)

        data_rows = [
            [row[columns[h]] if columns[h] < len(row) else "" for h in headers]
            for row in rows[header_idx + 1:]
            if len(row) > min_columns
        ]
        df = pd.DataFrame(data_rows, columns=headers)
        df["Sample"] = df["Sample"].astype(str).str.strip()
        df["Target"] = df["Target"].astype(str).str.strip()
        df["Well"] = pd.to_numeric(df["Well"], errors="coerce")
        df["Cq"] = pd.to_numeric(df["Cq"], errors="coerce")

        named = (df["Sample"] != "") & (df["Target"] != "")
        if warnings is not None and (~named).sum() > 0:
            warnings.append(
                f"Note: {(~named).sum()} rows with missing Sample or Target names were filtered out."
            )
        df = df[named]

        samples: Dict[str, QPCRSample] = {}
        for name, gene, well, position, reporter, cq in df[headers].itertuples(index=False, name=None):
            sample = samples.get(name)
            if sample is None:
                sample = QPCRSample(name=name)
                samples[name] = sample
            target = sample.targets.get(gene)
            if target is None:
                sample.targets[gene] = Target(name=gene, reporter=reporter, cq_values=[float(cq)])
            else:
                target.cq_values.append(float(cq))
            sample.add_well(float(well), position)

        if not samples:
            raise ParseStructureError("No qPCR data rows found after the header row")

        if warnings is not None:
            undetermined = int(df["Cq"].isna().sum())
            if undetermined:
                warnings.append(
                    f"Note: {undetermined} wells have undetermined/non-numeric Cq values."
                )
        return samples

    @staticmethod
    def parse(
        file,
        file_format: DelimitedFormat = QPCR_FILE_FORMAT,
        min_columns: int = QPCRConstants.MIN_ROW_COLUMNS,
    ) -> Optional[Dict[str, QPCRSample]]:
        notes: List[str] = []
        try:
            _check_file_size(file, QPCRParser.MAX_FILE_SIZE_MB)
            rows = read_delimited(file, file_format.encoding, file_format.delimiter)
            samples = QPCRParser.create_samples(rows, min_columns, warnings=notes)
        except (AssayError, OSError) as e:
            st.error(f"qPCR parse error: {e}")
            return None

        for note in notes:
            st.info(note)
        return samples
