# app/schemas/meeting.py
from datetime import datetime

from pydantic import Field

from app.schemas.availability import CamelModel


class MeetingDetails(CamelModel):
    """
    Normalized view of a meeting created through the meeting provider.

    Graph returns different shapes depending on which endpoint produced the
    meeting (onlineMeeting vs calendar event); providers map all of them
    onto this model.
    """

    id: str = Field(..., description="Provider identifier of the meeting.")
    join_url: str | None = Field(None, description="Link participants use to join.")
    start_date_time: datetime
    end_date_time: datetime
    subject: str
    provider: str = Field(..., description="Strategy that created the meeting.", example="online_meeting_by_user_id")
    raw: dict | None = Field(None, exclude=True)


class MeetingSummary(CamelModel):
    id: str
    join_url: str | None = None
    start_date_time: datetime
    end_date_time: datetime

    @classmethod
    def from_details(cls, details: MeetingDetails) -> "MeetingSummary":
        return cls(
            id=details.id,
            join_url=details.join_url,
            start_date_time=details.start_date_time,
            end_date_time=details.end_date_time,
        )
