"""
Pytest configuration and fixtures for the plate assay / qPCR analysis tests.

This module provides shared fixtures and mocks for testing the analysis
package without requiring the Streamlit runtime.
"""

import sys
from unittest.mock import MagicMock

import pytest


# ==================== STREAMLIT MOCK ====================
# Mock streamlit before the parser module imports it
class MockSessionState(dict):
    """Mock Streamlit session_state that behaves like a dict with attribute access."""

    def __getattr__(self, key):
        try:
            return self[key]
        except KeyError:
            raise AttributeError(f"'MockSessionState' object has no attribute '{key}'")

    def __setattr__(self, key, value):
        self[key] = value

    def __delattr__(self, key):
        try:
            del self[key]
        except KeyError:
            raise AttributeError(f"'MockSessionState' object has no attribute '{key}'")


class MockContextManager:
    def __enter__(self):
        return self

    def __exit__(self, *args):
        pass


def _create_mock_streamlit():
    mock_st = MagicMock()
    mock_st.session_state = MockSessionState()
    mock_st.error = MagicMock()
    mock_st.warning = MagicMock()
    mock_st.success = MagicMock()
    mock_st.info = MagicMock()
    mock_st.spinner = MagicMock(return_value=MockContextManager())
    mock_st.cache_data = lambda f: f
    return mock_st


sys.modules["streamlit"] = _create_mock_streamlit()


@pytest.fixture(autouse=True)
def mock_streamlit(monkeypatch):
    """Auto-use fixture giving every test a fresh Streamlit mock.

    ``bioassay.parser`` binds ``st`` at import time, so the module attribute
    is patched as well.
    """
    mock_st = _create_mock_streamlit()
    sys.modules["streamlit"] = mock_st
    import bioassay.parser

    monkeypatch.setattr(bioassay.parser, "st", mock_st)
    yield mock_st


# ==================== PLATE FIXTURES ====================
ROW_LETTERS = "ABCDEFGH"

# (row letter, column number) -> (template label, reading)
PLATE_LAYOUT = {
    ("A", 1): ("Standard-0ug/mL", "0.09"),
    ("A", 2): ("Standard-0ug/mL", "0.11"),
    ("B", 1): ("Standard-250ug/mL", "0.34"),
    ("B", 2): ("Standard-250ug/mL", "0.36"),
    ("C", 1): ("Standard-500ug/mL", "0.59"),
    ("C", 2): ("Standard-500ug/mL", "0.61"),
    ("D", 1): ("Standard-1000ug/mL", "1.09"),
    ("D", 2): ("Standard-1000ug/mL", "1.11"),
    ("A", 3): ("sample-Lane1", "0.44"),
    ("A", 4): ("sample-Lane1", "0.46"),
    ("B", 3): ("sample-Lane2", "0.84"),
    ("B", 4): ("sample-Lane2", "0.86"),
    ("C", 3): ("sample-Lane3", "1.5"),
    ("C", 4): ("sample-Lane3", "1.5"),
}


@pytest.fixture
def plate_raw_grid():
    """Plate reader export: 3 header rows, readings at rows 4-11 / columns 3-14.

    Standards follow response = 0.1 + 0.001 * conc (ug/mL). Lane1 and Lane2
    interpolate to 350 and 750 ug/mL; Lane3 lies above the top standard.
    """
    grid = [
        ["Plate:", "Plate1", "1.3", "PlateFormat", "Endpoint", "Absorbance"],
        ["Wavelength", "450"],
        ["", "Temperature(C)"] + [str(c) for c in range(1, 13)],
    ]
    for letter in ROW_LETTERS:
        grid.append(["", letter] + ["0.05"] * 12 + ["25.1"])
    for (letter, col), (_, reading) in PLATE_LAYOUT.items():
        grid[3 + ROW_LETTERS.index(letter)][1 + col] = reading
    return grid


@pytest.fixture
def plate_template_grid():
    """Layout template: labels at rows 3-10 / columns 2-13, unused wells "None"."""
    grid = [
        ["Template", "Assay 1"],
        [""] + [str(c) for c in range(1, 13)],
    ]
    for letter in ROW_LETTERS:
        grid.append([letter] + ["None"] * 12)
    for (letter, col), (label, _) in PLATE_LAYOUT.items():
        grid[2 + ROW_LETTERS.index(letter)][col] = label
    return grid


@pytest.fixture
def plate_reading_bytes(plate_raw_grid):
    """The reader export as utf-16, tab-delimited bytes."""
    text = "\n".join("\t".join(row) for row in plate_raw_grid) + "\n"
    return text.encode("utf-16")


@pytest.fixture
def plate_template_bytes(plate_template_grid):
    text = "\n".join(",".join(row) for row in plate_template_grid) + "\n"
    return text.encode("utf-8")


@pytest.fixture
def parsed_samples(plate_raw_grid, plate_template_grid):
    from bioassay.parser import PlateParser

    return PlateParser.merge(plate_raw_grid, plate_template_grid).samples


# ==================== qPCR FIXTURES ====================
QPCR_HEADER = [
    "Well", "Well Position", "Omit", "Sample", "Target", "Task", "Reporter",
    "Quencher", "Cq", "Cq Mean", "Cq SD", "Quantity", "Quantity Mean",
    "Quantity SD", "Y-Intercept", "R2", "Slope", "Efficiency",
    "Automatic Cq Threshold", "Cq Threshold", "Automatic Baseline",
    "Baseline Start", "Baseline End",
]

# (sample, target, cq) in plate order
QPCR_WELLS = [
    ("Ctrl", "GAPDH", "18.0"),
    ("Ctrl", "GAPDH", "18.1"),
    ("Ctrl", "GAPDH", "19.0"),
    ("Ctrl", "COL1A1", "25.0"),
    ("Ctrl", "COL1A1", "25.2"),
    ("Ctrl", "COL1A1", "24.0"),
    ("S1", "GAPDH", "18.2"),
    ("S1", "GAPDH", "18.2"),
    ("S1", "GAPDH", "18.6"),
    ("S1", "COL1A1", "23.1"),
    ("S1", "COL1A1", "23.3"),
    ("S1", "COL1A1", "23.0"),
]


def _qpcr_row(number, sample, target, cq):
    row = [""] * len(QPCR_HEADER)
    row[QPCR_HEADER.index("Well")] = str(number)
    row[QPCR_HEADER.index("Well Position")] = f"A{number}"
    row[QPCR_HEADER.index("Omit")] = "false"
    row[QPCR_HEADER.index("Sample")] = sample
    row[QPCR_HEADER.index("Target")] = target
    row[QPCR_HEADER.index("Task")] = "UNKNOWN"
    row[QPCR_HEADER.index("Reporter")] = "SYBR"
    row[QPCR_HEADER.index("Quencher")] = "None"
    row[QPCR_HEADER.index("Cq")] = cq
    row[QPCR_HEADER.index("Automatic Cq Threshold")] = "TRUE"
    row[QPCR_HEADER.index("Cq Threshold")] = "0.2"
    row[QPCR_HEADER.index("Automatic Baseline")] = "TRUE"
    row[QPCR_HEADER.index("Baseline Start")] = "3"
    row[QPCR_HEADER.index("Baseline End")] = "39"
    return row


@pytest.fixture
def qpcr_rows():
    """qPCR run export rows: a short preamble, the header row, then one row per well.

    Best duplicates: Ctrl GAPDH 18.05, Ctrl COL1A1 25.1, S1 GAPDH 18.2,
    S1 COL1A1 23.05.
    """
    rows = [
        ["File Name", "run_2024-01-15.eds"],
        ["Instrument Type", "QuantStudio 5"],
        [],
        list(QPCR_HEADER),
    ]
    for number, (sample, target, cq) in enumerate(QPCR_WELLS, start=1):
        rows.append(_qpcr_row(number, sample, target, cq))
    return rows


@pytest.fixture
def qpcr_csv_content(qpcr_rows):
    return "\n".join(",".join(row) for row in qpcr_rows) + "\n"


@pytest.fixture
def malformed_csv_content():
    """CSV without a recognizable qPCR header row."""
    return """Col1,Col2,Col3
A1,Sample1,Value1
A2,Sample2,Value2
"""
