# agenda/schemas/filters.py
from typing import Literal
from pydantic import BaseModel, Field

from agenda.services.statuses import UserRole

ALL = "all"


class FilterCriteria(BaseModel):
    """Per-view filter state. 'all' disables a predicate; no sectors means unrestricted."""
    sector_ids: list[str] = Field(default_factory=list)
    event_type: str = ALL
    location_id: str = ALL
    user_id: str = ALL
    user_role: UserRole = UserRole.ALL
    sort: Literal["asc", "desc"] = "asc"
