# agenda/db/models/location.py

from __future__ import annotations
from datetime import datetime, timezone
import uuid

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from agenda.db.session import Base


class Location(Base):
    __tablename__ = "locations"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    color: Mapped[str] = mapped_column(sa.String(16), nullable=False, default="#64748b")
    # When set, bookings here need both start and end time and are checked for overlap
    has_conflict_control: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
