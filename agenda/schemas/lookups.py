# agenda/schemas/lookups.py
from typing import Optional
from pydantic import BaseModel, ConfigDict


class SectorOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str


class LocationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    color: str = "#64748b"
    has_conflict_control: bool = False


class AppointmentTypeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    value: str
    label: str
    color: str
    icon: Optional[str] = None


class ProfileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    full_name: str
    username: Optional[str] = None
    role: str = "Normal"
    sector_id: Optional[str] = None
    avatar: Optional[str] = None
    status: Optional[str] = "online"
    observations: Optional[str] = None
    phone: Optional[str] = None
