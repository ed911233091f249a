# agenda/crud/lookups.py
"""Read access to the records maintained by the settings/profile editors."""
from __future__ import annotations
from typing import Optional, Sequence

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.db.models.appointment_type import AppointmentType
from agenda.db.models.location import Location
from agenda.db.models.profile import Profile
from agenda.db.models.sector import Sector


async def get_location(db: AsyncSession, location_id: str) -> Optional[Location]:
    return await db.get(Location, location_id)


async def list_locations(db: AsyncSession) -> Sequence[Location]:
    res = await db.execute(sa.select(Location).order_by(Location.name))
    return res.scalars().all()


async def list_appointment_types(db: AsyncSession) -> Sequence[AppointmentType]:
    res = await db.execute(sa.select(AppointmentType).order_by(AppointmentType.label))
    return res.scalars().all()


async def list_sectors(db: AsyncSession) -> Sequence[Sector]:
    res = await db.execute(sa.select(Sector).order_by(Sector.name))
    return res.scalars().all()


async def list_profiles(db: AsyncSession) -> Sequence[Profile]:
    res = await db.execute(sa.select(Profile).order_by(Profile.full_name))
    return res.scalars().all()


async def get_profile(db: AsyncSession, profile_id: str) -> Optional[Profile]:
    return await db.get(Profile, profile_id)


async def update_profile_status(db: AsyncSession, profile: Profile, status: str) -> Profile:
    profile.status = status
    await db.flush()
    return profile
