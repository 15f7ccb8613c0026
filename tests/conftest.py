import os

# Settings() is built at import time and needs a database URL
os.environ.setdefault("DATABASE_URL", "postgresql://localhost:5432/volunteers_test")
os.environ.setdefault("SENDGRID_API_KEY", "SG.test-key")

import pytest  # noqa: E402

from app.models.domain.volunteer_domain import (  # noqa: E402
    InactiveVolunteers,
    VolunteerContactInfo,
)


class CallLog:
    """Ordered record of every collaborator call made during a run."""

    def __init__(self):
        self.calls: list[tuple[str, object]] = []

    def record(self, name: str, arg: object) -> None:
        self.calls.append((name, arg))

    def count(self, name: str) -> int:
        return sum(1 for call_name, _ in self.calls if call_name == name)


class FakeVolunteerRepository:
    def __init__(self, log: CallLog, inactive: InactiveVolunteers | None = None):
        self.log = log
        self.inactive = inactive
        self.fetch_args: list[tuple] = []
        self.failing: dict[str, Exception] = {}

    async def get_inactive_volunteers(self, *bounds):
        self.fetch_args.append(bounds)
        self.log.record("fetch", bounds)
        return self.inactive

    async def _mark(self, name: str, volunteer_id: str) -> None:
        self.log.record(name, volunteer_id)
        if name in self.failing:
            raise self.failing[name]

    async def update_sent_inactive_thirty_day_email(self, volunteer_id: str) -> None:
        await self._mark("mark_sent_30", volunteer_id)

    async def update_sent_inactive_sixty_day_email(self, volunteer_id: str) -> None:
        await self._mark("mark_sent_60", volunteer_id)

    async def update_sent_inactive_ninety_day_email(self, volunteer_id: str) -> None:
        await self._mark("mark_sent_90", volunteer_id)


class FakeAvailabilityRepository:
    def __init__(self, log: CallLog):
        self.log = log
        self.fail_archive_for: set[str] = set()

    async def save_current_availability_as_history(self, volunteer_id: str) -> int:
        self.log.record("archive_availability", volunteer_id)
        if volunteer_id in self.fail_archive_for:
            raise RuntimeError("archive failed")
        return 7

    async def clear_availability_for_volunteer(self, volunteer_id: str) -> int:
        self.log.record("clear_availability", volunteer_id)
        return 7


class FakeMailer:
    def __init__(self, log: CallLog):
        self.log = log
        self.sent: list[tuple[int, dict]] = []
        self.fail_for: set[str] = set()

    async def _send(self, days: int, contact: dict) -> None:
        self.log.record(f"send_{days}", contact["email"])
        if contact["email"] in self.fail_for:
            raise RuntimeError(f"delivery refused for {contact['email']}")
        self.sent.append((days, contact))

    async def send_volunteer_inactive_thirty_days(self, contact: dict) -> None:
        await self._send(30, contact)

    async def send_volunteer_inactive_sixty_days(self, contact: dict) -> None:
        await self._send(60, contact)

    async def send_volunteer_inactive_ninety_days(self, contact: dict) -> None:
        await self._send(90, contact)


def make_volunteer(volunteer_id: str, email: str | None = None, first_name: str = "Vol"):
    return VolunteerContactInfo(
        id=volunteer_id,
        email=email or f"volunteer{volunteer_id}@example.org",
        first_name=first_name,
    )


@pytest.fixture
def volunteer_factory():
    return make_volunteer


@pytest.fixture
def call_log():
    return CallLog()


@pytest.fixture
def volunteer_repository(call_log):
    return FakeVolunteerRepository(call_log)


@pytest.fixture
def availability_repository(call_log):
    return FakeAvailabilityRepository(call_log)


@pytest.fixture
def mailer(call_log):
    return FakeMailer(call_log)
