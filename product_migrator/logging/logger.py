import logging
import sys


class Log:
    """Centralized logging for the migration worker.

    Job-scoped messages carry a ``[job N]`` prefix and per-row messages a
    ``[job N][i/total]`` prefix so one job's progress can be grepped out of
    the shared stream.
    """

    _logger: logging.Logger = logging.getLogger("product_migrator")

    @classmethod
    def configure(cls, log_level: str) -> None:
        """Configure the logger with the specified level and stdout handler."""
        cls._logger.setLevel(log_level.upper())
        if not cls._logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(
                logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
            )
            cls._logger.addHandler(handler)

    @classmethod
    def info(cls, message: str, **kwargs: object) -> None:
        cls._logger.info(message, extra=kwargs)

    @classmethod
    def error(cls, message: str, **kwargs: object) -> None:
        cls._logger.error(message, extra=kwargs)

    @classmethod
    def warning(cls, message: str, **kwargs: object) -> None:
        cls._logger.warning(message, extra=kwargs)

    @classmethod
    def debug(cls, message: str, **kwargs: object) -> None:
        cls._logger.debug(message, extra=kwargs)

    @classmethod
    def job(cls, job_id: int, message: str, level: int = logging.INFO) -> None:
        """Log a message about a whole job."""
        cls._logger.log(level, f"[job {job_id}] {message}", extra={"job_id": job_id})

    @classmethod
    def row(
        cls,
        job_id: int,
        row_number: int,
        total: int,
        message: str,
        level: int = logging.INFO,
    ) -> None:
        """Log a per-row progress message."""
        cls._logger.log(
            level,
            f"[job {job_id}][{row_number}/{total}] {message}",
            extra={"job_id": job_id, "row_number": row_number},
        )
