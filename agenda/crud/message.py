# agenda/crud/message.py
from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.db.models.message import Message


async def count_unread(db: AsyncSession, receiver_id: str) -> int:
    res = await db.execute(
        sa.select(sa.func.count(Message.id)).where(
            Message.receiver_id == receiver_id,
            Message.read.is_(False),
        )
    )
    return int(res.scalar_one())
