"""Small logging helpers shared by the executor and the replication driver.

Functions are kept separate so they can be imported and reused elsewhere without pulling in the driver module.
"""

from __future__ import annotations

from typing import Any

import logging


def _default_logger() -> logging.Logger:
    return logging.getLogger("fdrbench.replication")


def log_run_start(
    label: str, n_replicates: int, n_methods: int, backend: str, n_jobs: int, logger: logging.Logger | None = None
) -> None:
    """Log the start of a replicated benchmark run."""
    logger = logger or _default_logger()
    logger.info(
        "Running %s: %d replicates x %d methods (backend=%s, n_jobs=%d).",
        label or "benchmark", n_replicates, n_methods, backend, n_jobs,
    )


def log_method_failure(
    method_id: str, replicate_id: Any, kind: str, cause: str, message: str, logger: logging.Logger | None = None
) -> None:
    """Log one isolated method failure."""
    logger = logger or logging.getLogger("fdrbench.executor")
    logger.warning("Method %r failed on replicate %s (%s, %s): %s", method_id, replicate_id, kind, cause, message)


def log_replicate_failure(replicate_id: Any, message: str, logger: logging.Logger | None = None) -> None:
    """Log a replicate whose whole task failed."""
    logger = logger or _default_logger()
    logger.error("Replicate %s failed entirely; keeping it with every method missing: %s", replicate_id, message)


def log_run_completion(
    label: str, n_replicates: int, n_failed_replicates: int, n_method_failures: int,
    logger: logging.Logger | None = None
) -> None:
    """Log the completion of a replicated benchmark run."""
    logger = logger or _default_logger()
    logger.info(
        "Completed %s: %d replicates (%d failed entirely, %d isolated method failures).",
        label or "benchmark", n_replicates, n_failed_replicates, n_method_failures,
    )
