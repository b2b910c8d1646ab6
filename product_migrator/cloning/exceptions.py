class CloneError(Exception):
    """Base exception for a failed product clone attempt."""


class InvalidClassificationError(CloneError):
    """Raised when the target classification triple is not in SUB_CLAS."""


class IdentityAllocationError(CloneError):
    """Raised when the product sequence returns no value."""


class PredecessorNotFoundError(CloneError):
    """Raised when the predecessor product row does not exist."""


class NoCloneableColumnsError(CloneError):
    """Raised when excluding fields leaves no column to copy."""


class TableNotFoundError(CloneError):
    """Raised when a table has no visible column metadata."""


class AccessDeniedError(CloneError):
    """Raised when the session lacks privileges to read table metadata."""
