"""Tests for slot computation."""

import inspect
from datetime import time

from salonbot.config import BusinessConfig
from salonbot.schemas.booking_schema import BookingStatus
from salonbot.storage.seed import add_staff
from salonbot.tools.availability import AvailabilityResolver
from tests.conftest import MONDAY, TENANT, TODAY, TOMORROW, at, insert_booking


def _times(slots) -> list[time]:
    return [slot.time for slot in slots]


class TestCandidateTimes:
    def test_grid_ends_when_service_would_overrun_closing(self, catalog, directory, bookings):
        business = BusinessConfig(opening_time="09:00", closing_time="12:00", slot_interval_minutes=30)
        resolver = AvailabilityResolver(catalog, directory, bookings, business=business)
        assert resolver.candidate_times(60) == [
            time(9, 0), time(9, 30), time(10, 0), time(10, 30), time(11, 0),
        ]

    def test_available_dates_start_today(self, availability):
        dates = availability.available_dates(TODAY)
        assert dates[0] == TODAY
        assert len(dates) == 7


class TestComputeSlots:
    def test_is_lazy(self, availability, service_ids):
        slots = availability.compute_slots(TENANT, service_ids["Manicure"], TOMORROW)
        assert inspect.isgenerator(slots)

    def test_only_qualified_staff_in_working_hours(self, availability, service_ids, staff_ids):
        slots = list(availability.compute_slots(TENANT, service_ids["Facial Cleanup"], TOMORROW))
        assert slots[0].time == time(10, 0)
        assert slots[-1].time == time(18, 0)
        assert all(s.qualified_staff_ids == (staff_ids["Anjali Verma"],) for s in slots)

    def test_several_staff_share_a_slot(self, availability, service_ids, staff_ids):
        slots = list(availability.compute_slots(TENANT, service_ids["Hair Cut & Style"], TOMORROW))
        first = slots[0]
        assert first.time == time(9, 0)
        assert set(first.qualified_staff_ids) == {
            staff_ids["Priya Sharma"], staff_ids["Ravi Kumar"],
        }
        # Ravi finishes at 17:00, Priya at 18:00.
        assert slots[-1].time == time(17, 0)
        assert slots[-1].qualified_staff_ids == (staff_ids["Priya Sharma"],)

    def test_day_off_means_no_slots(self, availability, service_ids):
        assert list(availability.compute_slots(TENANT, service_ids["Facial Cleanup"], MONDAY)) == []

    def test_unknown_service(self, availability):
        assert list(availability.compute_slots(TENANT, "no-such-service", TOMORROW)) == []

    def test_overlapping_booking_blocks_staff(
        self, availability, session_factory, service_ids, staff_ids
    ):
        insert_booking(
            session_factory, service_ids["Facial Cleanup"], staff_ids["Anjali Verma"],
            at(TOMORROW, 10), duration_minutes=60,
        )
        times = _times(availability.compute_slots(TENANT, service_ids["Facial Cleanup"], TOMORROW))
        assert time(10, 0) not in times
        assert time(10, 30) not in times
        assert times[0] == time(11, 0)

    def test_cancelled_booking_does_not_block(
        self, availability, session_factory, service_ids, staff_ids
    ):
        insert_booking(
            session_factory, service_ids["Facial Cleanup"], staff_ids["Anjali Verma"],
            at(TOMORROW, 10), status=BookingStatus.CANCELLED,
        )
        times = _times(availability.compute_slots(TENANT, service_ids["Facial Cleanup"], TOMORROW))
        assert times[0] == time(10, 0)

    def test_times_before_now_are_skipped(self, availability, service_ids):
        times = _times(availability.compute_slots(
            TENANT, service_ids["Manicure"], TOMORROW, now=at(TOMORROW, 12, 10)
        ))
        assert times[0] == time(12, 30)

    def test_staff_without_specializations_never_qualify(
        self, availability, session_factory, service_ids, staff_ids
    ):
        add_staff(
            session_factory, TENANT, "New Joiner", specializations=[],
            working_days=["monday", "tuesday", "wednesday", "thursday", "friday",
                          "saturday", "sunday"],
        )
        slots = list(availability.compute_slots(TENANT, service_ids["Facial Cleanup"], TOMORROW))
        assert all(s.qualified_staff_ids == (staff_ids["Anjali Verma"],) for s in slots)


class TestQualifiedStaff:
    def test_exact_time(self, availability, service_ids, staff_ids):
        assert availability.qualified_staff(
            TENANT, service_ids["Facial Cleanup"], TOMORROW, time(10, 0)
        ) == (staff_ids["Anjali Verma"],)

    def test_time_outside_hours(self, availability, service_ids):
        assert availability.qualified_staff(
            TENANT, service_ids["Facial Cleanup"], TOMORROW, time(9, 0)
        ) == ()

    def test_off_grid_time(self, availability, service_ids):
        assert availability.qualified_staff(
            TENANT, service_ids["Facial Cleanup"], TOMORROW, time(10, 15)
        ) == ()
