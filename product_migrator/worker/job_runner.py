from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor

from product_migrator.logging.logger import Log
from product_migrator.processor.mapping import ColumnMapping
from product_migrator.worker.orchestrator import JobOrchestrator, Row


class BackgroundJobRunner:
    """Runs admitted jobs off the caller's thread and hands back a Future.

    A single worker thread is enough: admission guarantees one active job.
    """

    def __init__(self, orchestrator: JobOrchestrator) -> None:
        self._orchestrator = orchestrator
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="migration-job"
        )

    def start(
        self,
        filename: str,
        submitter: str | None,
        rows: Sequence[Row],
        mapping: ColumnMapping,
    ) -> tuple[int, Future[str]]:
        """Admit a job and start it in the background.

        Raises:
            JobAlreadyActiveError: if another job is PROCESSING.
        """
        job_id = self._orchestrator.admit_job(filename, submitter, len(rows))
        return job_id, self.submit(job_id, rows, mapping, submitter)

    def submit(
        self,
        job_id: int,
        rows: Sequence[Row],
        mapping: ColumnMapping,
        submitter: str | None,
    ) -> Future[str]:
        """Schedule ``JobOrchestrator.run`` for an already admitted job."""
        future = self._executor.submit(
            self._orchestrator.run, job_id, list(rows), mapping, submitter
        )
        future.add_done_callback(lambda f: self._log_crash(job_id, f))
        return future

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    @staticmethod
    def _log_crash(job_id: int, future: Future[str]) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            Log.error(f"Background run of job {job_id} crashed: {exc}")
