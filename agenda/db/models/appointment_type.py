# agenda/db/models/appointment_type.py

from __future__ import annotations
from datetime import datetime, timezone
import uuid

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from agenda.db.session import Base


class AppointmentType(Base):
    """Lookup row; appointments store only `value`."""
    __tablename__ = "appointment_types"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    value: Mapped[str] = mapped_column(sa.String(64), nullable=False, unique=True)
    label: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    color: Mapped[str] = mapped_column(sa.String(16), nullable=False, default="#cbd5e1")
    icon: Mapped[str | None] = mapped_column(sa.String(64))

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
