from product_migrator.cloning.clone_engine import CloneEngine
from product_migrator.config.settings import Settings
from product_migrator.database.connection import close_pool, init_pool
from product_migrator.database.repositories.audit_repository import AuditRepository
from product_migrator.database.repositories.job_repository import JobRepository
from product_migrator.logging.logger import Log
from product_migrator.session.context_guard import SessionContextGuard
from product_migrator.worker.orchestrator import JobOrchestrator


def build_orchestrator(settings: Settings) -> JobOrchestrator:
    """Wire a JobOrchestrator. Pools must be initialized by the caller."""
    guard = SessionContextGuard(skip=settings.skip_tenant_context)
    clone_engine = CloneEngine(
        guard,
        tenant_id=settings.tenant_id,
        owner=settings.oracle_schema_owner,
        only_operating_tenant=settings.only_operating_tenant,
    )
    return JobOrchestrator(
        job_repo=JobRepository(),
        audit_repo=AuditRepository(),
        guard=guard,
        clone_engine=clone_engine,
        settings=settings,
    )


def cancel_stuck_jobs(orchestrator: JobOrchestrator, job_repo: JobRepository) -> int:
    """Cancel every PROCESSING job so a new one can be admitted."""
    jobs = job_repo.list_processing_jobs()
    if not jobs:
        Log.info("No stuck jobs found")
        return 0

    Log.info(f"Found {len(jobs)} stuck job(s)")
    cancelled = 0
    for job in jobs:
        Log.info(
            f"Job {job.id}: file={job.filename} submitter={job.submitter} "
            f"rows={job.total_rows} created_at={job.created_at}"
        )
        if orchestrator.cancel(job.id):
            cancelled += 1
    Log.info(f"Cancelled {cancelled} job(s); a new job can now be started")
    return cancelled


def main() -> None:
    """Entry point: cancel jobs left PROCESSING by a crashed or killed run."""
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)

    try:
        orchestrator = build_orchestrator(settings)
        cancel_stuck_jobs(orchestrator, JobRepository())
    finally:
        close_pool()


if __name__ == "__main__":
    main()
