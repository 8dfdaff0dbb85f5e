"""
Booking persistence.

Confirmed bookings are written in a single transaction that first checks
for an overlapping confirmed booking of the same staff member. The partial
unique index on (staff_id, scheduled_at) catches the race where two
confirmations pass that check at the same moment.
"""

from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from salonbot.config import settings
from salonbot.errors import PersistenceConflict, PersistenceFailure
from salonbot.logging_context import get_session_logger
from salonbot.schemas.booking_schema import Booking, BookingStatus
from salonbot.schemas.catalog_schema import ServiceOffering
from salonbot.schemas.conversation_schema import ConversationSession
from salonbot.storage.models import BookingRow

logger = get_session_logger(__name__)


def _day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def overlaps(start: datetime, minutes: int, other_start: datetime, other_minutes: int) -> bool:
    """True when [start, start+minutes) intersects [other_start, other_start+other_minutes)."""
    return start < other_start + timedelta(minutes=other_minutes) and \
        other_start < start + timedelta(minutes=minutes)


class BookingStore:
    """Reads and writes bookings for all tenants."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def create_booking(
        self,
        session: ConversationSession,
        service: ServiceOffering,
        customer_name: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Booking:
        """Persist a confirmed booking from a fully-selected session.

        Raises:
            ValueError: If the session is missing a selection.
            PersistenceConflict: If the staff member is already booked then.
            PersistenceFailure: On any other storage error; nothing is written.
        """
        missing = [
            name
            for name, value in [
                ("service", session.selected_service_id),
                ("date", session.selected_date),
                ("time", session.selected_time),
                ("staff", session.assigned_staff_id),
            ]
            if value is None
        ]
        if missing:
            raise ValueError(f"Cannot create booking - missing selections: {', '.join(missing)}")

        scheduled_at = datetime.combine(session.selected_date, session.selected_time)
        staff_id = session.assigned_staff_id
        try:
            with self._session_factory.begin() as db:
                self._ensure_staff_free(
                    db, session.tenant_id, staff_id, scheduled_at, service.duration_minutes
                )
                row = BookingRow(
                    tenant_id=session.tenant_id,
                    conversation_ref=session.session_id,
                    service_id=service.id,
                    staff_id=staff_id,
                    customer_name=customer_name
                    or session.customer_name
                    or settings.business.default_customer_name,
                    phone_number=session.phone_number,
                    amount=service.base_price,
                    currency=service.currency,
                    status=BookingStatus.CONFIRMED.value,
                    scheduled_at=scheduled_at,
                    duration_minutes=service.duration_minutes,
                    notes=notes if notes is not None else settings.business.booking_note,
                )
                db.add(row)
                db.flush()
                booking = row.to_schema()
        except IntegrityError as exc:
            logger.warning("Slot race lost for staff %s at %s", staff_id, scheduled_at)
            raise PersistenceConflict(staff_id, scheduled_at) from exc
        except SQLAlchemyError as exc:
            raise PersistenceFailure("Could not write booking") from exc

        logger.info(
            "Booking created: %s for %s on %s with staff %s",
            booking.id, booking.phone_number, booking.scheduled_at.isoformat(), staff_id,
        )
        return booking

    def _ensure_staff_free(
        self, db: Session, tenant_id: str, staff_id: str, start: datetime, minutes: int
    ) -> None:
        day_start, day_end = _day_bounds(start.date())
        stmt = select(BookingRow).where(
            BookingRow.tenant_id == tenant_id,
            BookingRow.staff_id == staff_id,
            BookingRow.status == BookingStatus.CONFIRMED.value,
            BookingRow.scheduled_at >= day_start,
            BookingRow.scheduled_at < day_end,
        )
        for existing in db.scalars(stmt):
            if overlaps(start, minutes, existing.scheduled_at, existing.duration_minutes):
                raise PersistenceConflict(staff_id, start)

    def find_confirmed_for_conversation(
        self, tenant_id: str, conversation_ref: str, scheduled_at: datetime
    ) -> Optional[Booking]:
        """The confirmed booking this conversation already made at ``scheduled_at``."""
        stmt = select(BookingRow).where(
            BookingRow.tenant_id == tenant_id,
            BookingRow.conversation_ref == conversation_ref,
            BookingRow.scheduled_at == scheduled_at,
            BookingRow.status == BookingStatus.CONFIRMED.value,
        )
        try:
            with self._session_factory() as db:
                row = db.scalars(stmt).first()
                return row.to_schema() if row else None
        except SQLAlchemyError as exc:
            raise PersistenceFailure("Could not look up conversation booking") from exc

    def confirmed_bookings_on(self, tenant_id: str, day: date) -> list[Booking]:
        """All confirmed bookings starting on ``day``, ordered by start."""
        day_start, day_end = _day_bounds(day)
        stmt = (
            select(BookingRow)
            .where(
                BookingRow.tenant_id == tenant_id,
                BookingRow.status == BookingStatus.CONFIRMED.value,
                BookingRow.scheduled_at >= day_start,
                BookingRow.scheduled_at < day_end,
            )
            .order_by(BookingRow.scheduled_at)
        )
        try:
            with self._session_factory() as db:
                return [row.to_schema() for row in db.scalars(stmt)]
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"Could not load bookings for {day}") from exc

    def last_booked_at(self, tenant_id: str, staff_ids: list[str]) -> dict[str, datetime]:
        """Creation time of each staff member's most recent confirmed booking."""
        if not staff_ids:
            return {}
        stmt = (
            select(BookingRow.staff_id, func.max(BookingRow.created_at))
            .where(
                BookingRow.tenant_id == tenant_id,
                BookingRow.status == BookingStatus.CONFIRMED.value,
                BookingRow.staff_id.in_(staff_ids),
            )
            .group_by(BookingRow.staff_id)
        )
        try:
            with self._session_factory() as db:
                return {staff_id: latest for staff_id, latest in db.execute(stmt)}
        except SQLAlchemyError as exc:
            raise PersistenceFailure("Could not load staff booking history") from exc

    def get_booking(self, tenant_id: str, booking_id: str) -> Optional[Booking]:
        stmt = select(BookingRow).where(
            BookingRow.tenant_id == tenant_id, BookingRow.id == booking_id
        )
        try:
            with self._session_factory() as db:
                row = db.scalars(stmt).first()
                return row.to_schema() if row else None
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"Could not load booking {booking_id}") from exc

    def cancel_booking(self, tenant_id: str, booking_id: str) -> Optional[Booking]:
        """Mark a booking cancelled, freeing its slot. Returns None if not found."""
        stmt = select(BookingRow).where(
            BookingRow.tenant_id == tenant_id, BookingRow.id == booking_id
        )
        try:
            with self._session_factory.begin() as db:
                row = db.scalars(stmt).first()
                if row is None:
                    return None
                row.status = BookingStatus.CANCELLED.value
                db.flush()
                booking = row.to_schema()
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"Could not cancel booking {booking_id}") from exc
        logger.info("Booking cancelled: %s", booking_id)
        return booking

    def list_bookings_for_phone(
        self, tenant_id: str, phone_number: str, upcoming_from: Optional[datetime] = None
    ) -> list[Booking]:
        """A customer's bookings, optionally only those starting after ``upcoming_from``."""
        stmt = select(BookingRow).where(
            BookingRow.tenant_id == tenant_id, BookingRow.phone_number == phone_number
        )
        if upcoming_from is not None:
            stmt = stmt.where(BookingRow.scheduled_at >= upcoming_from)
        stmt = stmt.order_by(BookingRow.scheduled_at)
        try:
            with self._session_factory() as db:
                return [row.to_schema() for row in db.scalars(stmt)]
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"Could not list bookings for {phone_number}") from exc
