class JobAlreadyActiveError(Exception):
    """Raised when a job is admitted while another one is PROCESSING."""


class DuplicateHistoricalError(Exception):
    """Raised for a row whose predecessor was already cloned by an earlier job."""
