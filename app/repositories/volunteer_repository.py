"""
Persistence helpers for volunteer inactivity tracking.

Finds volunteers whose last activity fell on one of the 30/60/90 day
boundaries and flips the per-tier "sent" flags once an email went out.
"""

from datetime import UTC, datetime

from app.db.helpers import execute_query, fetch_all
from app.infrastructure.observability.logging import get_logger
from app.models.domain.volunteer_domain import (
    InactiveVolunteers,
    InactivityWindow,
    VolunteerContactInfo,
)

logger = get_logger(__name__)


class VolunteerRepository:
    """Queries and flag updates backing the inactivity email job."""

    INACTIVE_VOLUNTEERS_QUERY = """
        SELECT u.id, u.email, u.first_name, u.last_activity_at
        FROM users u
        JOIN volunteer_profiles vp ON vp.user_id = u.id
        WHERE u.deactivated IS FALSE
          AND u.banned IS FALSE
          AND u.test_user IS FALSE
          AND (
              (u.last_activity_at BETWEEN %s AND %s
                  AND vp.sent_inactive_thirty_day_email IS FALSE)
              OR (u.last_activity_at BETWEEN %s AND %s
                  AND vp.sent_inactive_sixty_day_email IS FALSE)
              OR (u.last_activity_at BETWEEN %s AND %s
                  AND vp.sent_inactive_ninety_day_email IS FALSE)
          )
        ORDER BY u.last_activity_at ASC, u.id ASC
    """

    SENT_FLAG_COLUMNS = {
        30: "sent_inactive_thirty_day_email",
        60: "sent_inactive_sixty_day_email",
        90: "sent_inactive_ninety_day_email",
    }

    @staticmethod
    def _row_to_contact(row: dict) -> VolunteerContactInfo:
        last_activity_at = row.get("last_activity_at")
        # timestamp without time zone columns come back naive; sessions run in UTC
        if last_activity_at is not None and last_activity_at.tzinfo is None:
            last_activity_at = last_activity_at.replace(tzinfo=UTC)

        return VolunteerContactInfo(
            id=str(row["id"]),
            email=row["email"],
            first_name=row["first_name"],
            last_activity_at=last_activity_at,
        )

    @classmethod
    async def get_inactive_volunteers(
        cls,
        thirty_days_ago_start: datetime,
        thirty_days_ago_end: datetime,
        sixty_days_ago_start: datetime,
        sixty_days_ago_end: datetime,
        ninety_days_ago_start: datetime,
        ninety_days_ago_end: datetime,
    ) -> InactiveVolunteers | None:
        """
        Fetch volunteers due a 30, 60 or 90 day inactivity email.

        Returns None when nobody matched any window.
        """
        windows = [
            InactivityWindow(30, thirty_days_ago_start, thirty_days_ago_end),
            InactivityWindow(60, sixty_days_ago_start, sixty_days_ago_end),
            InactivityWindow(90, ninety_days_ago_start, ninety_days_ago_end),
        ]
        params = tuple(bound for window in windows for bound in (window.start, window.end))

        rows = await fetch_all(cls.INACTIVE_VOLUNTEERS_QUERY, params)
        if not rows:
            logger.info("No inactive volunteers found")
            return None

        result = InactiveVolunteers()
        for row in rows:
            volunteer = cls._row_to_contact(row)
            window = next(
                (w for w in windows if w.contains(volunteer.last_activity_at)),
                None,
            )
            if window is None:
                # Query and windows disagree, e.g. a NULL last_activity_at
                logger.warning(
                    "Inactive volunteer outside every window",
                    volunteer_id=volunteer.id,
                    last_activity_at=str(volunteer.last_activity_at),
                )
                continue
            result.for_tier(window.days).append(volunteer)

        logger.info(
            "Inactive volunteers fetched",
            thirty_days=len(result.inactive_thirty_days),
            sixty_days=len(result.inactive_sixty_days),
            ninety_days=len(result.inactive_ninety_days),
        )
        return result

    @classmethod
    async def _mark_sent(cls, volunteer_id: str, days: int) -> None:
        column = cls.SENT_FLAG_COLUMNS[days]
        query = f"""
            UPDATE volunteer_profiles
            SET {column} = TRUE,
                updated_at = NOW()
            WHERE user_id = %s
        """

        updated = await execute_query(query, (volunteer_id,))
        if updated == 0:
            logger.warning("No volunteer profile to flag", volunteer_id=volunteer_id, column=column)

    @classmethod
    async def update_sent_inactive_thirty_day_email(cls, volunteer_id: str) -> None:
        await cls._mark_sent(volunteer_id, 30)

    @classmethod
    async def update_sent_inactive_sixty_day_email(cls, volunteer_id: str) -> None:
        await cls._mark_sent(volunteer_id, 60)

    @classmethod
    async def update_sent_inactive_ninety_day_email(cls, volunteer_id: str) -> None:
        await cls._mark_sent(volunteer_id, 90)
