"""
Staff directory and skills-based staff assignment.

Customers never pick a stylist by hand. Once a time is chosen, the matcher
takes the staff qualified and free for that slot and assigns one with a
fixed tie-break:

    1. fewest confirmed bookings on that day
    2. least recently booked (never-booked staff first)
    3. name, then id
"""

import logging
from collections import Counter
from datetime import date, datetime, time, timedelta
from typing import TYPE_CHECKING, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from salonbot.errors import PersistenceFailure
from salonbot.schemas.catalog_schema import ServiceOffering, StaffMember
from salonbot.storage.models import StaffRow
from salonbot.tools.booking import BookingStore

if TYPE_CHECKING:
    from salonbot.tools.availability import AvailabilityResolver

logger = logging.getLogger(__name__)


class StaffDirectory:
    """Read-only access to a tenant's staff."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def list_active_staff(self, tenant_id: str) -> list[StaffMember]:
        stmt = (
            select(StaffRow)
            .where(StaffRow.tenant_id == tenant_id, StaffRow.is_active.is_(True))
            .order_by(StaffRow.name)
        )
        try:
            with self._session_factory() as db:
                return [row.to_schema() for row in db.scalars(stmt)]
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"Could not load staff for {tenant_id}") from exc

    def get_staff(self, tenant_id: str, staff_id: str) -> Optional[StaffMember]:
        stmt = select(StaffRow).where(StaffRow.tenant_id == tenant_id, StaffRow.id == staff_id)
        try:
            with self._session_factory() as db:
                row = db.scalars(stmt).first()
                return row.to_schema() if row else None
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"Could not load staff member {staff_id}") from exc

    @staticmethod
    def is_qualified(staff: StaffMember, service: ServiceOffering) -> bool:
        return staff.is_active and staff.can_perform(service)

    @staticmethod
    def works_during(staff: StaffMember, start: datetime, minutes: int) -> bool:
        """True when the whole interval falls on a working day inside working hours."""
        end = start + timedelta(minutes=minutes)
        if end.date() != start.date():
            return False
        return staff.works_on(start.weekday()) and staff.working_hours.covers(
            start.time(), end.time()
        )


class StaffMatcher:
    """Assigns one qualified, available staff member to a chosen slot."""

    def __init__(
        self,
        directory: StaffDirectory,
        availability: "AvailabilityResolver",
        bookings: BookingStore,
    ) -> None:
        self._directory = directory
        self._availability = availability
        self._bookings = bookings

    def assign_staff(
        self,
        tenant_id: str,
        service_id: str,
        day: date,
        at: time,
        now: Optional[datetime] = None,
    ) -> Optional[StaffMember]:
        """Pick a staff member for the slot, or None if nobody can take it any more."""
        qualified = self._availability.qualified_staff(tenant_id, service_id, day, at, now=now)
        if not qualified:
            logger.info("No qualified staff left for %s on %s at %s", service_id, day, at)
            return None
        chosen = self.pick(tenant_id, day, qualified)
        logger.debug("Assigned %s (%s) from %d candidates", chosen.name, chosen.id, len(qualified))
        return chosen

    def pick(self, tenant_id: str, day: date, staff_ids: tuple[str, ...]) -> StaffMember:
        """Apply the tie-break to a non-empty set of candidate staff ids."""
        wanted = set(staff_ids)
        members = [s for s in self._directory.list_active_staff(tenant_id) if s.id in wanted]
        if not members:
            raise ValueError(f"None of the staff ids {sorted(wanted)} are active")

        day_load = Counter(
            b.staff_id for b in self._bookings.confirmed_bookings_on(tenant_id, day)
        )
        last_booked = self._bookings.last_booked_at(tenant_id, [s.id for s in members])

        return min(
            members,
            key=lambda s: (
                day_load[s.id],
                last_booked.get(s.id, datetime.min),
                s.name.lower(),
                s.id,
            ),
        )
