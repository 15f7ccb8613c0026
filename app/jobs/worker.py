"""
Generic background worker runner.

Reads the desired job name (and optional start date) from CLI args or the
WORKER_JOB / WORKER_START_DATE environment variables and runs that job with
the database pool open.
"""

import asyncio
import os
import sys
from collections.abc import Awaitable, Callable

from app.config import settings
from app.db.pool import db_pool
from app.infrastructure.observability.logging import get_logger, setup_logging
from app.jobs.volunteer_inactive_email_job import (
    backfill_email_volunteers_inactive,
    email_volunteers_inactive,
    start_volunteer_inactive_email_scheduler,
)

logger = get_logger(__name__)

JobCoroutine = Callable[[dict], Awaitable[None]]

JOB_REGISTRY: dict[str, JobCoroutine] = {
    "email_volunteer_inactive": email_volunteers_inactive,
    "backfill_email_volunteer_inactive": backfill_email_volunteers_inactive,
    "volunteer_inactive_email_scheduler": start_volunteer_inactive_email_scheduler,
}


def _resolve_job_name() -> str:
    """Pick the target job from CLI args or WORKER_JOB env variable."""
    if len(sys.argv) > 1:
        return sys.argv[1].strip().lower()
    return os.getenv("WORKER_JOB", "email_volunteer_inactive").strip().lower()


def _resolve_payload() -> dict:
    """Build the job payload; the start date comes from argv[2] or WORKER_START_DATE."""
    start_date = sys.argv[2] if len(sys.argv) > 2 else os.getenv("WORKER_START_DATE")
    if start_date and start_date.strip():
        return {"startDate": start_date.strip()}
    return {}


async def run_worker(job_name: str | None = None, payload: dict | None = None) -> None:
    """Run the requested background job."""
    name = (job_name or _resolve_job_name()).strip().lower()
    if name not in JOB_REGISTRY:
        raise ValueError(
            f"Unknown worker job '{name}'. "
            f"Available jobs: {', '.join(sorted(JOB_REGISTRY.keys()))}"
        )

    logger.info("Starting background worker", job=name, payload=payload or {})
    await JOB_REGISTRY[name](payload or {})


async def _run_with_database(job_name: str, payload: dict) -> None:
    await db_pool.open()
    try:
        await run_worker(job_name, payload)
    finally:
        await db_pool.close()


def main() -> None:
    """CLI entrypoint."""
    setup_logging(log_level=settings.LOG_LEVEL)
    asyncio.run(_run_with_database(_resolve_job_name(), _resolve_payload()))


if __name__ == "__main__":
    main()
