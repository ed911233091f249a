# agenda/db/models/appointment.py

from __future__ import annotations
from datetime import datetime, timezone
import uuid

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from agenda.db.session import Base


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        # managed location and free-text location are mutually exclusive
        sa.CheckConstraint(
            "NOT (location_id IS NOT NULL AND location_text IS NOT NULL)",
            name="ck_appointments_single_location",
        ),
        sa.Index("ix_appointments_location_id_date", "location_id", "date"),
        sa.Index("ix_appointments_date", "date"),
        sa.Index("ix_appointments_created_by", "created_by"),
    )

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title: Mapped[str] = mapped_column(sa.String(200), nullable=False)

    # Calendar day and local wall-clock times kept as text: YYYY-MM-DD / HH:MM.
    # They are compared as strings and never pass through a timezone.
    date: Mapped[str] = mapped_column(sa.String(10), nullable=False)
    start_time: Mapped[str | None] = mapped_column(sa.String(5))
    end_time: Mapped[str | None] = mapped_column(sa.String(5))

    type: Mapped[str] = mapped_column(sa.String(64), nullable=False, server_default="sync")
    description: Mapped[str | None] = mapped_column(sa.Text)
    created_by: Mapped[str] = mapped_column(
        sa.String(36), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    location_id: Mapped[str | None] = mapped_column(
        sa.String(36), sa.ForeignKey("locations.id", ondelete="SET NULL")
    )
    location_text: Mapped[str | None] = mapped_column(sa.Text)
    organizer_only: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
