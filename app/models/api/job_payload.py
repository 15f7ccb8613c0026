# app/models/api/job_payload.py
from pydantic import BaseModel, ConfigDict, Field


class InactivityEmailJobPayload(BaseModel):
    """Payload of the daily inactivity email job."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    start_date: str | None = Field(
        default=None,
        alias="startDate",
        description="Reference date (ISO-8601); defaults to now",
    )


class InactivityEmailBackfillPayload(InactivityEmailJobPayload):
    """Payload of the backfill job, which must name its reference date."""

    start_date: str = Field(..., alias="startDate", min_length=1)
