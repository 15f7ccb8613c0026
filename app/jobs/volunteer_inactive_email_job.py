"""
Volunteer Inactivity Email Job.

Emails volunteers whose last activity was exactly 30, 60 or 90 days before
the reference date and records that the notice went out. At 90 days the
volunteer's availability is also archived and then cleared.

Flow:
1. Skip entirely when the reference date falls in the blackout period
2. Compute the three UTC day windows and fetch all due volunteers at once
3. Process tiers in order (30, 60, 90), volunteers one at a time
4. Collect per-volunteer failures; raise one aggregate error at the end

Steps after a successful send are not rolled back if a later one fails.

Usage:
    from app.jobs.volunteer_inactive_email_job import backfill_email_volunteers_inactive

    await backfill_email_volunteers_inactive({"startDate": "2024-03-15"})
"""

import asyncio
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import structlog

from app.config import settings
from app.constants import (
    INACTIVE_NINETY_DAYS,
    INACTIVE_SIXTY_DAYS,
    INACTIVE_THIRTY_DAYS,
    JOB_EMAIL_VOLUNTEER_INACTIVE,
    JOB_EMAIL_VOLUNTEER_INACTIVE_NINETY_DAYS,
    JOB_EMAIL_VOLUNTEER_INACTIVE_SIXTY_DAYS,
    JOB_EMAIL_VOLUNTEER_INACTIVE_THIRTY_DAYS,
)
from app.infrastructure.observability.logging import get_logger, log_job_run
from app.models.api.job_payload import InactivityEmailBackfillPayload, InactivityEmailJobPayload
from app.models.domain.volunteer_domain import InactivityWindow, VolunteerContactInfo
from app.repositories.availability_repository import AvailabilityRepository
from app.repositories.volunteer_repository import VolunteerRepository
from app.services.mail_service import mail_service

logger = get_logger(__name__)

SendEmail = Callable[[dict[str, str]], Awaitable[Any]]
VolunteerStep = Callable[[str], Awaitable[Any]]


# ==========================================================================
# ERRORS
# ==========================================================================


@dataclass(frozen=True, slots=True)
class InactivityEmailFailure:
    """One volunteer that could not be fully processed."""

    job_name: str
    volunteer_id: str
    message: str

    def __str__(self) -> str:
        return f"{self.job_name} to volunteer {self.volunteer_id}: {self.message}"


class InactivityTierError(Exception):
    """Raised after a tier's loop when at least one volunteer failed."""

    def __init__(self, tier: "InactivityTier", failures: Sequence[InactivityEmailFailure]):
        super().__init__(f"{tier.job_name} failed for {len(failures)} volunteer(s)")
        self.tier = tier
        self.failures = list(failures)


class InactivityEmailJobError(Exception):
    """Raised at the end of a run when any tier failed."""

    def __init__(self, failures: Sequence[InactivityEmailFailure]):
        details = "; ".join(str(failure) for failure in failures)
        super().__init__(f"Failed to send inactivity emails: {details}")
        self.failures = list(failures)


# ==========================================================================
# DATE HELPERS
# ==========================================================================


def parse_reference_date(value: str | datetime) -> datetime:
    """
    Parse the job's reference date as an aware UTC datetime.

    Naive values are taken to be UTC, so "2024-03-15" means midnight UTC.

    Raises:
        ValueError: If the string is not ISO-8601
    """
    parsed = value if isinstance(value, datetime) else datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def get_start_of_day_from_days_ago(start: datetime, days_ago: int) -> datetime:
    day = start.astimezone(UTC) - timedelta(days=days_ago)
    return day.replace(hour=0, minute=0, second=0, microsecond=0)


def get_end_of_day_from_days_ago(start: datetime, days_ago: int) -> datetime:
    return (
        get_start_of_day_from_days_ago(start, days_ago)
        + timedelta(days=1)
        - timedelta(milliseconds=1)
    )


def compute_inactivity_windows(start: datetime) -> list[InactivityWindow]:
    """Day windows for the 30, 60 and 90 day tiers, in that order."""
    return [
        InactivityWindow(
            days=days,
            start=get_start_of_day_from_days_ago(start, days),
            end=get_end_of_day_from_days_ago(start, days),
        )
        for days in (INACTIVE_THIRTY_DAYS, INACTIVE_SIXTY_DAYS, INACTIVE_NINETY_DAYS)
    ]


def is_within_blackout_period(moment: datetime, blackout_start: datetime, blackout_end: datetime) -> bool:
    return blackout_start <= moment <= blackout_end


# ==========================================================================
# NOTIFIER
# ==========================================================================


@dataclass(frozen=True, slots=True)
class InactivityTier:
    """What happens to a volunteer in one inactivity tier."""

    days: int
    job_name: str
    send_email: SendEmail
    mark_sent: VolunteerStep
    follow_up_steps: tuple[VolunteerStep, ...] = ()


class InactivityNotifier:
    """
    Sends 30/60/90 day inactivity emails for one reference date.

    Collaborators are injected so tests can swap persistence and mail;
    the defaults are the Postgres repositories and the SendGrid client.
    """

    def __init__(
        self,
        volunteer_repository: Any = VolunteerRepository,
        availability_repository: Any = AvailabilityRepository,
        mailer: Any = None,
        blackout_start: datetime | None = None,
        blackout_end: datetime | None = None,
    ):
        self.volunteer_repository = volunteer_repository
        self.availability_repository = availability_repository
        self.mailer = mailer or mail_service
        self.blackout_start = parse_reference_date(blackout_start or settings.BLACKOUT_PERIOD_START)
        self.blackout_end = parse_reference_date(blackout_end or settings.BLACKOUT_PERIOD_END)
        self.tiers = self._build_tiers()

    def _build_tiers(self) -> tuple[InactivityTier, ...]:
        return (
            InactivityTier(
                days=INACTIVE_THIRTY_DAYS,
                job_name=JOB_EMAIL_VOLUNTEER_INACTIVE_THIRTY_DAYS,
                send_email=self.mailer.send_volunteer_inactive_thirty_days,
                mark_sent=self.volunteer_repository.update_sent_inactive_thirty_day_email,
            ),
            InactivityTier(
                days=INACTIVE_SIXTY_DAYS,
                job_name=JOB_EMAIL_VOLUNTEER_INACTIVE_SIXTY_DAYS,
                send_email=self.mailer.send_volunteer_inactive_sixty_days,
                mark_sent=self.volunteer_repository.update_sent_inactive_sixty_day_email,
            ),
            InactivityTier(
                days=INACTIVE_NINETY_DAYS,
                job_name=JOB_EMAIL_VOLUNTEER_INACTIVE_NINETY_DAYS,
                send_email=self.mailer.send_volunteer_inactive_ninety_days,
                mark_sent=self.volunteer_repository.update_sent_inactive_ninety_day_email,
                follow_up_steps=(
                    self.availability_repository.save_current_availability_as_history,
                    self.availability_repository.clear_availability_for_volunteer,
                ),
            ),
        )

    async def run(self, reference_date: str | datetime) -> None:
        """
        Process every tier for the given reference date.

        Raises:
            ValueError: If the reference date cannot be parsed
            DatabaseError: If fetching inactive volunteers fails
            InactivityEmailJobError: If any volunteer could not be processed
        """
        start = parse_reference_date(reference_date)

        if is_within_blackout_period(start, self.blackout_start, self.blackout_end):
            logger.info(
                "Skipping inactivity emails during blackout period",
                job=JOB_EMAIL_VOLUNTEER_INACTIVE,
                reference_date=start.isoformat(),
                blackout_start=self.blackout_start.isoformat(),
                blackout_end=self.blackout_end.isoformat(),
            )
            return

        windows = compute_inactivity_windows(start)
        bounds = [bound for window in windows for bound in (window.start, window.end)]

        volunteers = await self.volunteer_repository.get_inactive_volunteers(*bounds)
        if not volunteers or volunteers.total == 0:
            logger.info("No volunteers due an inactivity email", reference_date=start.isoformat())
            return

        failures: list[InactivityEmailFailure] = []
        for tier in self.tiers:
            try:
                await self.send_email_to_inactive_volunteers(tier, volunteers.for_tier(tier.days))
            except InactivityTierError as e:
                failures.extend(e.failures)

        if failures:
            logger.error(
                "Inactivity emails failed for some volunteers",
                reference_date=start.isoformat(),
                failed_count=len(failures),
            )
            raise InactivityEmailJobError(failures)

    async def send_email_to_inactive_volunteers(
        self, tier: InactivityTier, volunteers: Sequence[VolunteerContactInfo]
    ) -> int:
        """
        Email every volunteer of a tier in order and apply its side effects.

        A failure for one volunteer does not stop the others.

        Returns:
            int: Number of volunteers fully processed

        Raises:
            InactivityTierError: If any volunteer failed
        """
        failures: list[InactivityEmailFailure] = []
        processed = 0

        for volunteer in volunteers:
            try:
                await tier.send_email(volunteer.to_contact())
                await tier.mark_sent(volunteer.id)
                for step in tier.follow_up_steps:
                    await step(volunteer.id)

                processed += 1
                logger.info("Sent inactivity email", job=tier.job_name, volunteer_id=volunteer.id)

            except Exception as e:
                message = str(e) or type(e).__name__
                failures.append(InactivityEmailFailure(tier.job_name, volunteer.id, message))
                logger.warning(
                    "Inactivity email failed",
                    job=tier.job_name,
                    volunteer_id=volunteer.id,
                    error=message,
                    error_type=type(e).__name__,
                )

        if failures:
            raise InactivityTierError(tier, failures)

        return processed


# ==========================================================================
# JOB ENTRY POINTS
# ==========================================================================


async def _run_notifier(job: str, reference_date: str | datetime) -> None:
    started = time.monotonic()
    notifier = InactivityNotifier()

    with structlog.contextvars.bound_contextvars(job=job):
        try:
            await notifier.run(reference_date)
        except InactivityEmailJobError as e:
            log_job_run(job, False, time.monotonic() - started, failed_count=len(e.failures))
            raise

        log_job_run(job, True, time.monotonic() - started)


async def email_volunteers_inactive(payload: dict | None = None) -> None:
    """Daily job: reference date from the payload, else now."""
    data = InactivityEmailJobPayload.model_validate(payload or {})
    reference_date = data.start_date or datetime.now(UTC)
    await _run_notifier(JOB_EMAIL_VOLUNTEER_INACTIVE, reference_date)


async def backfill_email_volunteers_inactive(payload: dict) -> None:
    """Backfill job: re-run the inactivity emails for a past date."""
    data = InactivityEmailBackfillPayload.model_validate(payload)
    await _run_notifier(f"backfill-{JOB_EMAIL_VOLUNTEER_INACTIVE}", data.start_date)


# ==========================================================================
# SCHEDULER
# ==========================================================================


def _next_run_at(now: datetime, schedule_hour: int) -> datetime:
    next_run = now.replace(hour=schedule_hour, minute=0, second=0, microsecond=0)
    if now >= next_run:
        next_run += timedelta(days=1)
    return next_run


async def start_volunteer_inactive_email_scheduler(payload: dict | None = None) -> None:
    """
    Run the daily inactivity email job at INACTIVITY_EMAIL_SCHEDULE_HOUR (UTC).

    A failed run is logged and the loop waits for the next day.
    """
    if not settings.INACTIVITY_EMAIL_ENABLED:
        logger.info(
            "Inactivity email scheduler DISABLED",
            flag="INACTIVITY_EMAIL_ENABLED",
            environment=settings.environment,
        )
        return

    schedule_hour = settings.INACTIVITY_EMAIL_SCHEDULE_HOUR
    logger.info("Inactivity email scheduler STARTED", schedule_hour=schedule_hour)

    while True:
        try:
            now = datetime.now(UTC)
            next_run = _next_run_at(now, schedule_hour)
            sleep_seconds = (next_run - now).total_seconds()
            logger.info(
                "Inactivity email job scheduled",
                next_run=next_run.isoformat(),
                sleep_seconds=round(sleep_seconds),
            )
            await asyncio.sleep(sleep_seconds)

            # the run is dated by its slot, not by when the sleep returned
            await email_volunteers_inactive({"startDate": next_run.isoformat()})

        except asyncio.CancelledError:
            logger.info("Inactivity email scheduler cancelled")
            break
        except Exception as e:
            logger.error(
                "Scheduled inactivity email run failed",
                error=str(e),
                error_type=type(e).__name__,
            )
