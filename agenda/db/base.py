# agenda/db/base.py

"""
Imports every ORM model so Alembic and create_all can discover them.
"""
from agenda.db.models.sector import Sector
from agenda.db.models.profile import Profile
from agenda.db.models.location import Location
from agenda.db.models.appointment_type import AppointmentType
from agenda.db.models.appointment import Appointment
from agenda.db.models.attendee import Attendee
from agenda.db.models.message import Message
from agenda.db.session import engine, Base

__all__ = [
    "Sector", "Profile", "Location", "AppointmentType",
    "Appointment", "Attendee", "Message", "Base", "init_db",
]

async def init_db(bind=None):
    """Initialize database by creating all tables"""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
