from dataclasses import dataclass
from datetime import datetime


class JobStatus:
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class RowStatus:
    SUCCESS = "SUCCESS"
    ERROR_VALIDATION = "ERROR_VALIDACAO"
    ERROR_STORE = "ERROR_ORACLE"
    ERROR_CONNECTION = "ERROR_ORACLE_CONNECTION"
    DUPLICATE_HISTORICAL = "DUPLICADO_HISTORICO"


@dataclass
class JobRecord:
    """Represents a row from the migration_jobs table."""

    id: int
    filename: str
    submitter: str
    total_rows: int
    status: str
    created_at: datetime | None = None
    finished_at: datetime | None = None


@dataclass
class AuditRowRecord:
    """Represents a row from the migration_audit_rows table."""

    id: int
    job_id: int
    row_number: int
    predecessor_id: int | None
    new_id: int | None
    status: str
    error_message: str | None = None
    species_code: int | None = None
    class_code: int | None = None
    subclass_code: int | None = None
    success_predecessor: int | None = None
    submitted_by: str | None = None
    created_at: datetime | None = None
    executed_at: datetime | None = None


@dataclass(frozen=True)
class JobSummary:
    """Progress counters for one job. ``errors`` counts every non-SUCCESS row."""

    total: int
    processed: int
    success: int
    errors: int
    remaining: int
