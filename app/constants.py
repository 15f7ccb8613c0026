"""
Fixed values shared by the volunteer inactivity jobs.
"""

from datetime import UTC, datetime

# No inactivity emails go out over the winter break
BLACKOUT_PERIOD_START = datetime(2021, 12, 20, tzinfo=UTC)
BLACKOUT_PERIOD_END = datetime(2022, 1, 3, 23, 59, 59, 999000, tzinfo=UTC)

INACTIVE_THIRTY_DAYS = 30
INACTIVE_SIXTY_DAYS = 60
INACTIVE_NINETY_DAYS = 90

# Job names used in logs and failure reports
JOB_EMAIL_VOLUNTEER_INACTIVE = "email-volunteer-inactive"
JOB_EMAIL_VOLUNTEER_INACTIVE_THIRTY_DAYS = "email-volunteer-inactive-thirty-days"
JOB_EMAIL_VOLUNTEER_INACTIVE_SIXTY_DAYS = "email-volunteer-inactive-sixty-days"
JOB_EMAIL_VOLUNTEER_INACTIVE_NINETY_DAYS = "email-volunteer-inactive-ninety-days"
