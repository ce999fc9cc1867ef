"""Utility functions for assay analysis.

Contains sorting helpers, well position helpers and delimited file reading.
"""

import io
import os
import re
from pathlib import Path
from typing import List, Optional

import pandas as pd

from bioassay.constants import ENCODING_FALLBACKS
from bioassay.errors import ParseStructureError


def natural_sort_key(sample_name):
    """Extract numbers from sample name for natural sorting (e.g., Sample2 < Sample10)"""
    parts = re.split(r"(\d+)", str(sample_name))
    return [int(part) if part.isdigit() else part.lower() for part in parts]


def well_position(row_index: int, col_index: int) -> str:
    """Build a well identifier from 0-based grid indices (0, 0 -> "A1")."""
    return f"{chr(ord('A') + row_index)}{col_index + 1}"


def file_stem(source) -> Optional[str]:
    """Filename without extension for paths and uploaded files, else None."""
    name = source if isinstance(source, (str, os.PathLike)) else getattr(source, "name", None)
    if not name:
        return None
    return Path(str(name)).name.split(".")[0]


def _max_fields(data, delimiter: str) -> int:
    """Upper bound on the fields in any line, used to size the frame."""
    sep = delimiter if isinstance(data, str) else delimiter.encode("ascii")
    return max((line.count(sep) for line in data.splitlines()), default=0) + 1


def read_delimited(source, encoding: Optional[str] = None, delimiter: str = ",") -> List[List[str]]:
    """Read a delimited text file into a ragged grid of strings.

    Args:
        source: A filesystem path, raw bytes, or a file-like object
            (binary or text, e.g. a Streamlit upload or io.StringIO).
        encoding: Encoding of binary input. None tries the fallback chain
            utf-8, utf-16, utf-16-le, latin-1, cp1252.
        delimiter: Field separator (e.g. "," or "\\t").

    Returns:
        List of rows, each a list of cell strings. A row ends at its last
        non-empty cell; blank lines are kept as empty rows.

    Raises:
        ParseStructureError: The file cannot be decoded or tokenized.
    """
    if isinstance(source, (str, os.PathLike)):
        with open(source, "rb") as fh:
            data = fh.read()
    elif isinstance(source, (bytes, bytearray)):
        data = bytes(source)
    else:
        data = source.read()
        if hasattr(source, "seek"):
            source.seek(0)

    if not data:
        return []

    width = _max_fields(data, delimiter)
    encodings = [encoding] if encoding else ENCODING_FALLBACKS
    df = None
    for enc in encodings:
        buffer = io.StringIO(data) if isinstance(data, str) else io.BytesIO(data)
        try:
            df = pd.read_csv(
                buffer,
                sep=delimiter,
                header=None,
                names=range(width),
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=False,
                encoding=enc,
                low_memory=False,
            )
            break
        except (UnicodeDecodeError, UnicodeError, LookupError):
            continue
        except pd.errors.EmptyDataError:
            return []
        except pd.errors.ParserError as e:
            raise ParseStructureError(f"Could not read delimited file: {e}") from e

    if df is None:
        raise ParseStructureError(
            f"Could not decode file with encoding(s): {', '.join(encodings)}"
        )

    df = df.fillna("")
    if len(df) and str(df.iat[0, 0]).startswith("\ufeff"):
        df.iat[0, 0] = str(df.iat[0, 0]).lstrip("\ufeff")

    rows = []
    for values in df.itertuples(index=False, name=None):
        filled = [i for i, value in enumerate(values) if value != ""]
        rows.append(list(values[: filled[-1] + 1]) if filled else [])
    return rows
