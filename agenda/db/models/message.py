# agenda/db/models/message.py

from __future__ import annotations
from datetime import datetime, timezone
import uuid

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from agenda.db.session import Base


class Message(Base):
    """Direct message; the core only reads it for unread counters."""
    __tablename__ = "messages"
    __table_args__ = (
        sa.Index("ix_messages_receiver_id_read", "receiver_id", "read"),
    )

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    sender_id: Mapped[str] = mapped_column(sa.String(36), sa.ForeignKey("profiles.id"), nullable=False)
    receiver_id: Mapped[str] = mapped_column(sa.String(36), sa.ForeignKey("profiles.id"), nullable=False)
    content: Mapped[str] = mapped_column(sa.Text, nullable=False)
    read: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
