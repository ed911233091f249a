# agenda/schemas/attendee.py
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

from agenda.services.statuses import AttendeeStatus


class AttendeeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    appointment_id: str
    user_id: str
    status: AttendeeStatus
    full_name: Optional[str] = None
    avatar: Optional[str] = None
    phone: Optional[str] = None
    sector_id: Optional[str] = None


class AttendeeStatusUpdate(BaseModel):
    """Invitee or organizer answering an invitation or a join request."""
    status: Literal["accepted", "declined"] = Field(..., description="Terminal attendee status")


class InvitationOut(BaseModel):
    attendee: AttendeeOut
    appointment_title: str
    appointment_date: str
    organizer_id: str


class Counters(BaseModel):
    unread_messages: int = 0
    pending_invitations: int = 0
    pending_requests: int = 0


class NotificationsOut(BaseModel):
    invitations: list[InvitationOut] = Field(default_factory=list)
    requests: list[InvitationOut] = Field(default_factory=list)
    counters: Counters = Field(default_factory=Counters)
