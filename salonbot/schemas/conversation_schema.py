"""Conversation session and inbound/outbound message schemas."""

import uuid
from datetime import date, datetime, time
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class BookingStep(str, Enum):
    """Steps of the WhatsApp booking dialogue."""
    WELCOME = "welcome"
    AWAITING_SERVICE = "awaiting_service"
    AWAITING_DATE = "awaiting_date"
    AWAITING_TIME = "awaiting_time"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    COMPLETED = "completed"


class MessageDirection(str, Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"


class ConversationSession(BaseModel):
    """
    Per-phone-number booking state, scoped to a tenant.

    The flow controller reads and writes these fields instead of
    reconstructing selections from earlier message text.
    """

    model_config = ConfigDict(validate_assignment=True)

    tenant_id: str
    phone_number: str
    session_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    current_step: BookingStep = BookingStep.WELCOME
    selected_service_id: Optional[str] = None
    selected_date: Optional[date] = None
    selected_time: Optional[time] = None
    assigned_staff_id: Optional[str] = None
    offered_times: list[time] = Field(default_factory=list)
    customer_name: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)
    last_updated_at: datetime = Field(default_factory=datetime.now)

    def clear_from(self, step: BookingStep) -> None:
        """Drop selections made at ``step`` and every step after it."""
        if step in (BookingStep.WELCOME, BookingStep.AWAITING_SERVICE):
            self.selected_service_id = None
        if step in (BookingStep.WELCOME, BookingStep.AWAITING_SERVICE, BookingStep.AWAITING_DATE):
            self.selected_date = None
        self.selected_time = None
        self.assigned_staff_id = None
        self.offered_times = []

    def selections(self) -> dict[str, object]:
        """Snapshot of the step and selections, for logging and comparisons."""
        return {
            "current_step": self.current_step.value,
            "selected_service_id": self.selected_service_id,
            "selected_date": self.selected_date,
            "selected_time": self.selected_time,
            "assigned_staff_id": self.assigned_staff_id,
        }


class InboundMessage(BaseModel):
    """Normalized inbound chat event, independent of the transport."""

    tenant_id: str
    phone_number: str
    message: str
    customer_name: Optional[str] = None


class BotReply(BaseModel):
    """Result of one booking-flow cycle."""

    reply_text: str
    current_step: BookingStep
    booking_id: Optional[str] = None


class TranscriptMessage(BaseModel):
    """One logged chat line."""

    model_config = ConfigDict(from_attributes=True)

    direction: MessageDirection
    content: str
    created_at: datetime
