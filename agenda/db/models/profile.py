# agenda/db/models/profile.py

from __future__ import annotations
from datetime import datetime, timezone
import uuid

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from agenda.db.session import Base


class Profile(Base):
    """A team member. Mirrors the store's `profiles` table."""
    __tablename__ = "profiles"
    __table_args__ = (
        sa.Index("ix_profiles_sector_id", "sector_id"),
    )

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    full_name: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    username: Mapped[str | None] = mapped_column(sa.String(60))
    role: Mapped[str] = mapped_column(sa.String(32), nullable=False, server_default="Normal")
    sector_id: Mapped[str | None] = mapped_column(
        sa.String(36), sa.ForeignKey("sectors.id", ondelete="SET NULL")
    )
    avatar: Mapped[str | None] = mapped_column(sa.Text)
    # presence: online, busy, away, meeting, lunch, vacation, out_of_office
    status: Mapped[str] = mapped_column(sa.String(32), nullable=False, server_default="online")
    observations: Mapped[str | None] = mapped_column(sa.Text)
    phone: Mapped[str | None] = mapped_column(sa.String(20))

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
