#!/usr/bin/env python3
"""
Create the schema directly (no Alembic) and seed a small team for local runs.

    DATABASE_URL=sqlite+aiosqlite:///./data/agenda.db python init_db.py
"""

import asyncio
import os
import sys
from pathlib import Path

import sqlalchemy as sa

DEFAULT_TYPES = [
    ("sync", "Sincronização", "#6366f1", "sync"),
    ("planning", "Planejamento", "#243f6b", "event"),
    ("meeting", "Reunião", "#3b82f6", "groups"),
    ("workshop", "Oficina/Workshop", "#f97316", "construction"),
    ("client", "Cliente", "#10b981", "handshake"),
]


async def init_database() -> bool:
    from agenda.db.base import init_db

    Path("data").mkdir(exist_ok=True)
    await init_db()
    print("Database tables created")
    return True


async def create_sample_data() -> None:
    from agenda.db.models.appointment_type import AppointmentType
    from agenda.db.models.location import Location
    from agenda.db.models.profile import Profile
    from agenda.db.models.sector import Sector
    from agenda.db.session import AsyncSessionLocal

    async with AsyncSessionLocal() as session:
        existing = (await session.execute(sa.select(sa.func.count(Profile.id)))).scalar_one()
        if existing:
            print("Sample data already present, skipping")
            return

        sector = Sector(name="Geral")
        session.add(sector)
        await session.flush()

        session.add_all([
            Profile(full_name="Administrador", username="admin", role="Administrador", sector_id=sector.id),
            Profile(full_name="Usuário Exemplo", username="exemplo", sector_id=sector.id),
            Location(name="Sala de Reuniões", color="#ef4444", has_conflict_control=True),
            Location(name="Auditório", color="#22c55e"),
        ])
        session.add_all(
            AppointmentType(value=value, label=label, color=color, icon=icon)
            for value, label, color, icon in DEFAULT_TYPES
        )
        await session.commit()
        print("Sample data created")


if __name__ == "__main__":
    os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./data/agenda.db")

    if not asyncio.run(init_database()):
        sys.exit(1)
    asyncio.run(create_sample_data())
