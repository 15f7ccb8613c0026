"""
Domain models for the volunteer inactivity jobs.

Plain dataclasses shared by the repositories and the job; the job only
reads them, persistence owns the underlying rows.
"""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(slots=True)
class VolunteerContactInfo:
    """Contact projection of a volunteer, enough to address an email."""

    id: str
    email: str
    first_name: str
    last_activity_at: datetime | None = None

    def to_contact(self) -> dict[str, str]:
        """Minimal payload handed to the mail service."""
        return {"email": self.email, "first_name": self.first_name}


@dataclass(frozen=True, slots=True)
class InactivityWindow:
    """One full UTC calendar day, `days` days before the reference date."""

    days: int
    start: datetime
    end: datetime

    def contains(self, moment: datetime | None) -> bool:
        return moment is not None and self.start <= moment <= self.end


@dataclass(slots=True)
class InactiveVolunteers:
    """Volunteers due an inactivity email, bucketed by tier."""

    inactive_thirty_days: list[VolunteerContactInfo] = field(default_factory=list)
    inactive_sixty_days: list[VolunteerContactInfo] = field(default_factory=list)
    inactive_ninety_days: list[VolunteerContactInfo] = field(default_factory=list)

    def for_tier(self, days: int) -> list[VolunteerContactInfo]:
        tiers = {
            30: self.inactive_thirty_days,
            60: self.inactive_sixty_days,
            90: self.inactive_ninety_days,
        }
        if days not in tiers:
            raise ValueError(f"Unknown inactivity tier: {days} days")
        return tiers[days]

    @property
    def total(self) -> int:
        return (
            len(self.inactive_thirty_days)
            + len(self.inactive_sixty_days)
            + len(self.inactive_ninety_days)
        )
