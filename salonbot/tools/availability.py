"""
Slot availability for a service on a given day.

Candidate start times come from a fixed grid over opening hours. A time is
offered only when at least one staff member is qualified for the service,
working for the whole appointment, and free of overlapping confirmed
bookings. Nothing is cached: every call reads the latest bookings.
"""

import logging
from collections import defaultdict
from datetime import date, datetime, time, timedelta
from typing import Iterator, Optional

from salonbot.config import BusinessConfig, settings
from salonbot.schemas.booking_schema import Booking, TimeSlot
from salonbot.tools.booking import BookingStore, overlaps
from salonbot.tools.services import CatalogService
from salonbot.tools.staff import StaffDirectory

logger = logging.getLogger(__name__)


def _clock(value: str) -> time:
    return datetime.strptime(value, "%H:%M").time()


class AvailabilityResolver:
    """Computes bookable slots from the staff directory and current bookings."""

    def __init__(
        self,
        catalog: CatalogService,
        directory: StaffDirectory,
        bookings: BookingStore,
        business: Optional[BusinessConfig] = None,
    ) -> None:
        self._catalog = catalog
        self._directory = directory
        self._bookings = bookings
        self._business = business or settings.business

    def candidate_times(self, duration_minutes: int) -> list[time]:
        """Grid of start times where the service still ends by closing time."""
        day = date.min
        opening = datetime.combine(day, _clock(self._business.opening_time))
        closing = datetime.combine(day, _clock(self._business.closing_time))
        step = timedelta(minutes=self._business.slot_interval_minutes)
        length = timedelta(minutes=duration_minutes)

        times = []
        current = opening
        while current + length <= closing:
            times.append(current.time())
            current += step
        return times

    def available_dates(self, today: date) -> list[date]:
        """Dates customers may book, starting today."""
        return [today + timedelta(days=i) for i in range(self._business.booking_window_days)]

    def compute_slots(
        self,
        tenant_id: str,
        service_id: str,
        day: date,
        now: Optional[datetime] = None,
    ) -> Iterator[TimeSlot]:
        """Yield bookable slots for the service on ``day`` in time order.

        Start times at or before ``now`` are skipped. Call again for a fresh
        view; the generator reads bookings when iteration starts.
        """
        service = self._catalog.get_service(tenant_id, service_id)
        if service is None or not service.is_active:
            logger.warning("Slots requested for unknown or inactive service %s", service_id)
            return

        staff = [
            s for s in self._directory.list_active_staff(tenant_id)
            if self._directory.is_qualified(s, service) and s.works_on(day.weekday())
        ]
        if not staff:
            logger.debug("Nobody performs %s on %s", service.name, day.strftime("%A"))
            return

        busy: dict[str, list[Booking]] = defaultdict(list)
        for booking in self._bookings.confirmed_bookings_on(tenant_id, day):
            if booking.staff_id:
                busy[booking.staff_id].append(booking)

        minutes = service.duration_minutes
        for start_time in self.candidate_times(minutes):
            start = datetime.combine(day, start_time)
            if now is not None and start <= now:
                continue
            qualified = tuple(
                s.id for s in staff
                if self._directory.works_during(s, start, minutes)
                and not any(
                    overlaps(start, minutes, b.scheduled_at, b.duration_minutes)
                    for b in busy[s.id]
                )
            )
            if qualified:
                yield TimeSlot(time=start_time, qualified_staff_ids=qualified)

    def qualified_staff(
        self,
        tenant_id: str,
        service_id: str,
        day: date,
        at: time,
        now: Optional[datetime] = None,
    ) -> tuple[str, ...]:
        """Staff ids qualified and free at exactly ``at``; empty if the slot is gone."""
        for slot in self.compute_slots(tenant_id, service_id, day, now=now):
            if slot.time == at:
                return slot.qualified_staff_ids
            if slot.time > at:
                break
        return ()
