"""
Relational tables for the booking engine.

IDs are stored as String(36) UUIDs. Appointment start is a single
``scheduled_at`` timestamp. The one-confirmed-booking-per-slot index is
partial (confirmed rows only), which SQLite and PostgreSQL support; other
backends would build it as a full unique index and block cancelled slots.
"""

import uuid
from datetime import datetime, time

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
    text,
)

from salonbot.schemas.booking_schema import Booking, BookingStatus
from salonbot.schemas.catalog_schema import ServiceOffering, StaffMember, WorkingHours
from salonbot.schemas.conversation_schema import BookingStep, ConversationSession
from salonbot.storage.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class OfferingRow(Base):
    __tablename__ = "offerings"

    id = Column(String(36), primary_key=True, default=_uuid)
    tenant_id = Column(String(64), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    base_price = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, default="INR")
    category = Column(String(100), nullable=False, default="")
    duration_minutes = Column(Integer, nullable=False, default=60)
    is_active = Column(Boolean, nullable=False, default=True)
    display_order = Column(Integer, nullable=False, default=0)

    def to_schema(self) -> ServiceOffering:
        return ServiceOffering.model_validate(self)


class StaffRow(Base):
    __tablename__ = "staff"

    id = Column(String(36), primary_key=True, default=_uuid)
    tenant_id = Column(String(64), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    role = Column(String(100), nullable=False, default="stylist")
    specializations = Column(JSON, nullable=False, default=list)
    working_days = Column(JSON, nullable=False, default=list)
    work_start = Column(Time, nullable=False, default=time(9, 0))
    work_end = Column(Time, nullable=False, default=time(19, 0))
    is_active = Column(Boolean, nullable=False, default=True)

    def to_schema(self) -> StaffMember:
        return StaffMember(
            id=self.id,
            tenant_id=self.tenant_id,
            name=self.name,
            role=self.role,
            specializations=list(self.specializations or []),
            working_days=list(self.working_days or []),
            working_hours=WorkingHours(start=self.work_start, end=self.work_end),
            is_active=self.is_active,
        )


class BookingRow(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=_uuid)
    tenant_id = Column(String(64), nullable=False)
    conversation_ref = Column(String(36), nullable=True)
    service_id = Column(String(36), ForeignKey("offerings.id"), nullable=False)
    staff_id = Column(String(36), ForeignKey("staff.id"), nullable=True)
    customer_name = Column(String(200), nullable=False)
    phone_number = Column(String(32), nullable=False)
    amount = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, default="INR")
    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)
    scheduled_at = Column(DateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=60)
    notes = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    __table_args__ = (
        # One confirmed booking per staff member per start time.
        Index(
            "uq_bookings_staff_slot_confirmed",
            "staff_id",
            "scheduled_at",
            unique=True,
            sqlite_where=text("status = 'confirmed'"),
            postgresql_where=text("status = 'confirmed'"),
        ),
        Index("idx_bookings_tenant_scheduled", "tenant_id", "scheduled_at"),
        Index("idx_bookings_tenant_phone", "tenant_id", "phone_number"),
    )

    def to_schema(self) -> Booking:
        return Booking.model_validate(self)


class ConversationRow(Base):
    __tablename__ = "conversations"

    id = Column(String(36), primary_key=True, default=_uuid)
    tenant_id = Column(String(64), nullable=False)
    phone_number = Column(String(32), nullable=False)
    current_step = Column(String(32), nullable=False, default=BookingStep.WELCOME.value)
    selected_service_id = Column(String(36), nullable=True)
    selected_date = Column(Date, nullable=True)
    selected_time = Column(Time, nullable=True)
    assigned_staff_id = Column(String(36), nullable=True)
    offered_times = Column(JSON, nullable=False, default=list)
    customer_name = Column(String(200), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now)

    __table_args__ = (
        UniqueConstraint("tenant_id", "phone_number", name="uq_conversations_tenant_phone"),
    )

    def to_schema(self) -> ConversationSession:
        return ConversationSession(
            tenant_id=self.tenant_id,
            phone_number=self.phone_number,
            session_id=self.id,
            current_step=BookingStep(self.current_step),
            selected_service_id=self.selected_service_id,
            selected_date=self.selected_date,
            selected_time=self.selected_time,
            assigned_staff_id=self.assigned_staff_id,
            offered_times=[time.fromisoformat(t) for t in (self.offered_times or [])],
            customer_name=self.customer_name,
            created_at=self.created_at,
            last_updated_at=self.updated_at,
        )

    def apply(self, session: ConversationSession) -> None:
        """Copy step and selections from ``session`` onto this row."""
        self.current_step = session.current_step.value
        self.selected_service_id = session.selected_service_id
        self.selected_date = session.selected_date
        self.selected_time = session.selected_time
        self.assigned_staff_id = session.assigned_staff_id
        self.offered_times = [t.strftime("%H:%M") for t in session.offered_times]
        self.customer_name = session.customer_name
        self.created_at = session.created_at
        self.updated_at = session.last_updated_at


class MessageRow(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(String(64), nullable=False)
    phone_number = Column(String(32), nullable=False)
    conversation_ref = Column(String(36), nullable=True)
    direction = Column(String(10), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    __table_args__ = (
        Index("idx_messages_tenant_phone_created", "tenant_id", "phone_number", "created_at"),
    )
