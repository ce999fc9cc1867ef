"""Error types raised by the assay analysis core."""


class AssayError(Exception):
    """Base class for all analysis errors."""


class InputValidationError(AssayError, ValueError):
    """User-supplied input is malformed; analysis must not start."""


class ParseStructureError(AssayError):
    """An input file does not have the expected structure."""
