"""Booking and availability data models."""

import datetime as dt
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class Booking(BaseModel):
    """A persisted appointment.

    ``scheduled_at`` is the single source of truth for when the appointment
    starts; the date and time views are derived from it.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: str
    conversation_ref: Optional[str] = None
    service_id: str
    staff_id: Optional[str] = None
    customer_name: str
    phone_number: str
    amount: int
    currency: str = "INR"
    status: BookingStatus = BookingStatus.PENDING
    scheduled_at: dt.datetime
    duration_minutes: int = 60
    notes: str = ""
    created_at: Optional[dt.datetime] = None

    @property
    def scheduled_date(self) -> dt.date:
        return self.scheduled_at.date()

    @property
    def scheduled_time(self) -> dt.time:
        return self.scheduled_at.time()


class TimeSlot(BaseModel):
    """A candidate start time and the staff qualified and free to take it."""

    model_config = ConfigDict(frozen=True)

    time: dt.time
    qualified_staff_ids: tuple[str, ...] = Field(default_factory=tuple)
