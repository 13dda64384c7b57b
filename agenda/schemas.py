import datetime as dt
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, computed_field


class Role(str, Enum):
    ADMIN = "admin"
    PROVIDER = "provider"
    REQUESTER = "requester"


class CodeStatus(str, Enum):
    ACTIVE = "active"
    DEACTIVATED = "deactivated"


class BookingStatus(str, Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class AccessCode(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    role: Role
    location: Optional[str] = None
    status: CodeStatus = CodeStatus.ACTIVE
    created_at: datetime

    @computed_field
    @property
    def active(self) -> bool:
        return self.status is CodeStatus.ACTIVE


class Availability(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    date: dt.date
    start_time: str  # HH:MM
    end_time: str  # HH:MM
    capacity: int
    remaining_slots: int
    created_by: str  # access code of the provider
    created_at: datetime


class Booking(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    availability_id: int
    client_name: str
    client_document: Optional[str] = None
    client_phone: Optional[str] = None
    service_number: str
    time_slot: str  # HH:MM
    comments: Optional[str] = None
    created_by: str  # access code of the requester
    created_at: datetime
    status: BookingStatus = BookingStatus.CONFIRMED


class Identity(BaseModel):
    """Principal bound to a session token."""

    id: int
    code: str
    role: Role


class AdminStats(BaseModel):
    admin_count: int
    provider_count: int
    requester_count: int
    active_bookings: int
