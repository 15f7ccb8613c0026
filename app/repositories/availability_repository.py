"""
Persistence helpers for volunteer weekly availability.
"""

from app.db.helpers import execute_query
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class AvailabilityRepository:
    """Snapshot and reset of a volunteer's availability schedule."""

    @classmethod
    async def save_current_availability_as_history(cls, volunteer_id: str) -> int:
        """Copy the current availability slots into availability_histories."""

        query = """
            INSERT INTO availability_histories (
                user_id, day_of_week, available_start, available_end,
                timezone, recorded_at, created_at, updated_at
            )
            SELECT user_id, day_of_week, available_start, available_end,
                   timezone, NOW(), NOW(), NOW()
            FROM availabilities
            WHERE user_id = %s
        """

        archived = await execute_query(query, (volunteer_id,))
        logger.debug("Availability archived", volunteer_id=volunteer_id, slots=archived)
        return archived

    @classmethod
    async def clear_availability_for_volunteer(cls, volunteer_id: str) -> int:
        """Mark every availability slot of the volunteer as unavailable."""

        query = """
            UPDATE availabilities
            SET available_start = 0,
                available_end = 0,
                updated_at = NOW()
            WHERE user_id = %s
        """

        cleared = await execute_query(query, (volunteer_id,))
        logger.debug("Availability cleared", volunteer_id=volunteer_id, slots=cleared)
        return cleared
