# agenda/services/statuses.py
"""
Canonical status vocabulary. Every place that renders or compares an
attendee status or a presence status goes through these mappings.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class AttendeeStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    REQUESTED = "requested"

    @property
    def is_terminal(self) -> bool:
        return self in (AttendeeStatus.ACCEPTED, AttendeeStatus.DECLINED)

    @property
    def display(self) -> "StatusDisplay":
        return ATTENDEE_STATUS_DISPLAY[self]


class UserRole(str, Enum):
    ALL = "all"
    ORGANIZER = "organizer"
    PARTICIPANT = "participant"


@dataclass(frozen=True)
class StatusDisplay:
    label: str
    color: str
    icon: str


ATTENDEE_STATUS_DISPLAY: dict[AttendeeStatus, StatusDisplay] = {
    AttendeeStatus.PENDING: StatusDisplay("Aguardando", "amber", "schedule"),
    AttendeeStatus.ACCEPTED: StatusDisplay("Aceito", "emerald", "check_circle"),
    AttendeeStatus.DECLINED: StatusDisplay("Recusado", "rose", "cancel"),
    AttendeeStatus.REQUESTED: StatusDisplay("Solicitado", "indigo", "person_add"),
}


class PresenceStatus(str, Enum):
    ONLINE = "online"
    BUSY = "busy"
    AWAY = "away"
    MEETING = "meeting"
    LUNCH = "lunch"
    VACATION = "vacation"
    OUT_OF_OFFICE = "out_of_office"

    @property
    def display(self) -> StatusDisplay:
        return PRESENCE_STATUS_DISPLAY[self]


PRESENCE_STATUS_DISPLAY: dict[PresenceStatus, StatusDisplay] = {
    PresenceStatus.ONLINE: StatusDisplay("Disponível", "emerald", "fiber_manual_record"),
    PresenceStatus.BUSY: StatusDisplay("Ocupado", "rose", "do_not_disturb_on"),
    PresenceStatus.AWAY: StatusDisplay("Ausente", "amber", "schedule"),
    PresenceStatus.MEETING: StatusDisplay("Em Reunião", "purple", "groups"),
    PresenceStatus.LUNCH: StatusDisplay("Almoço", "blue", "restaurant"),
    PresenceStatus.VACATION: StatusDisplay("Férias", "indigo", "beach_access"),
    PresenceStatus.OUT_OF_OFFICE: StatusDisplay("Em atividade externa", "slate", "home_work"),
}


def presence_display(value: str | None) -> StatusDisplay:
    """Unknown or empty presence renders as online."""
    try:
        return PresenceStatus(value or PresenceStatus.ONLINE.value).display
    except ValueError:
        return PresenceStatus.ONLINE.display


def attendee_display(value: str) -> StatusDisplay:
    return AttendeeStatus(value).display
