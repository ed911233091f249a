# agenda/db/models/attendee.py

from __future__ import annotations
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from agenda.db.session import Base


class Attendee(Base):
    __tablename__ = "appointment_attendees"
    __table_args__ = (
        sa.UniqueConstraint("appointment_id", "user_id", name="uq_appointment_attendees_appointment_user"),
        sa.CheckConstraint(
            "status IN ('pending', 'accepted', 'declined', 'requested')",
            name="ck_appointment_attendees_status",
        ),
        sa.Index("ix_appointment_attendees_user_id_status", "user_id", "status"),
    )

    # Monotonic id doubles as insertion order for display
    id: Mapped[int] = mapped_column(
        sa.BigInteger().with_variant(sa.Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    appointment_id: Mapped[str] = mapped_column(
        sa.String(36), sa.ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        sa.String(36), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(sa.String(16), nullable=False, server_default="pending")

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
