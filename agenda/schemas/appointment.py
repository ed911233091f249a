# agenda/schemas/appointment.py
from typing import Literal, Optional
from pydantic import BaseModel, Field

from agenda.schemas.attendee import AttendeeOut


class AppointmentCreate(BaseModel):
    title: str = Field(..., description="Shown on every calendar cell")
    date: str = Field(..., description="Calendar day, YYYY-MM-DD")
    start_time: Optional[str] = Field(None, description="HH:MM")
    end_time: Optional[str] = Field(None, description="HH:MM; empty means open-ended")
    type: str = "sync"
    description: Optional[str] = None
    location_id: Optional[str] = None
    location_text: Optional[str] = None
    organizer_only: bool = False
    attendee_ids: list[str] = Field(default_factory=list)


class AppointmentUpdate(BaseModel):
    """Partial edit. `attendee_ids=None` leaves the attendee set alone."""
    title: Optional[str] = None
    date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    type: Optional[str] = None
    description: Optional[str] = None
    location_id: Optional[str] = None
    location_text: Optional[str] = None
    organizer_only: Optional[bool] = None
    attendee_ids: Optional[list[str]] = None


class LocationDisplay(BaseModel):
    id: Optional[str] = None
    name: str
    color: str
    external: bool = False
    has_conflict_control: bool = False


class AppointmentView(BaseModel):
    """Appointment joined with attendees, location and type metadata."""
    id: str
    title: str
    date: str
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    type: str
    type_label: str
    type_color: str
    type_icon: Optional[str] = None
    description: Optional[str] = None
    created_by: str
    organizer_name: Optional[str] = None
    location_id: Optional[str] = None
    location_text: Optional[str] = None
    location: Optional[LocationDisplay] = None
    organizer_only: bool = False
    attendees: list[AttendeeOut] = Field(default_factory=list)
    participant_sector_ids: list[str] = Field(default_factory=list)


class ConflictOut(BaseModel):
    appointment_id: str
    title: str
    start: Optional[str] = None
    end: Optional[str] = None


class BookingOutcome(BaseModel):
    """Tagged result of a booking attempt: ok | conflict | error."""
    status: Literal["ok", "conflict", "error"]
    appointment: Optional[AppointmentView] = None
    conflict: Optional[ConflictOut] = None
    error: Optional[str] = None
    message: Optional[str] = None
    # set when the caller booked over a reported conflict
    overrode_conflict: bool = False

    @property
    def ok(self) -> bool:
        return self.status == "ok"


class CalendarCell(BaseModel):
    date: str
    # prev | current | next (month grid); always current for day/week
    month: str = "current"
    appointments: list[AppointmentView] = Field(default_factory=list)


class CalendarOut(BaseModel):
    view: Literal["day", "week", "month"]
    start: str
    end: str
    cells: list[CalendarCell] = Field(default_factory=list)
