class MappingError(Exception):
    """Raised when a column mapping is missing required fields."""


class RowValueError(Exception):
    """Raised when a row value is missing or not an integral code."""
