"""Shared test fixtures and helpers."""

from datetime import date, datetime, time, timedelta
from typing import Optional

import pytest

from salonbot.conversation.booking_flow import BookingFlowController, FlowResult
from salonbot.conversation.session_store import SessionStore
from salonbot.engine import BookingEngine, build_controller
from salonbot.schemas.booking_schema import BookingStatus
from salonbot.schemas.conversation_schema import ConversationSession
from salonbot.storage.database import create_db_engine, init_db, make_session_factory
from salonbot.storage.models import BookingRow
from salonbot.storage.seed import seed_demo_tenant
from salonbot.tools.availability import AvailabilityResolver
from salonbot.tools.booking import BookingStore
from salonbot.tools.services import CatalogService
from salonbot.tools.staff import StaffDirectory, StaffMatcher

TENANT = "bella-salon"
OTHER_TENANT = "glow-studio"
PHONE = "+919876543210"

# Thursday morning, before opening.
NOW = datetime(2026, 10, 15, 8, 0)
TODAY = NOW.date()
TOMORROW = date(2026, 10, 16)  # Friday
MONDAY = date(2026, 10, 19)


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def session_factory(tmp_path):
    # File-backed so engine worker threads each get their own connection.
    engine = create_db_engine(f"sqlite:///{tmp_path / 'salonbot.db'}", echo=False)
    init_db(engine)
    factory = make_session_factory(engine)
    seed_demo_tenant(factory, TENANT)
    yield factory
    engine.dispose()


@pytest.fixture
def catalog(session_factory):
    return CatalogService(session_factory)


@pytest.fixture
def directory(session_factory):
    return StaffDirectory(session_factory)


@pytest.fixture
def bookings(session_factory):
    return BookingStore(session_factory)


@pytest.fixture
def availability(catalog, directory, bookings):
    return AvailabilityResolver(catalog, directory, bookings)


@pytest.fixture
def matcher(directory, availability, bookings):
    return StaffMatcher(directory, availability, bookings)


@pytest.fixture
def controller(session_factory) -> BookingFlowController:
    return build_controller(session_factory)


@pytest.fixture
def store(session_factory):
    return SessionStore(session_factory, inactivity_timeout=timedelta(hours=24))


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def engine(store, controller, clock):
    return BookingEngine(store, controller, clock=clock)


@pytest.fixture
def service_ids(catalog) -> dict[str, str]:
    return {s.name: s.id for s in catalog.list_active_services(TENANT)}


@pytest.fixture
def staff_ids(directory) -> dict[str, str]:
    return {s.name: s.id for s in directory.list_active_staff(TENANT)}


@pytest.fixture
def new_session() -> ConversationSession:
    return ConversationSession(tenant_id=TENANT, phone_number=PHONE, created_at=NOW,
                               last_updated_at=NOW)


def converse(
    controller: BookingFlowController,
    session: ConversationSession,
    messages: list[str],
    now: datetime = NOW,
) -> FlowResult:
    """Feed messages in order and return the last result."""
    result = None
    for message in messages:
        result = controller.handle(session, message, now)
    return result


def insert_booking(
    session_factory,
    service_id: str,
    staff_id: str,
    scheduled_at: datetime,
    duration_minutes: int = 60,
    status: BookingStatus = BookingStatus.CONFIRMED,
    created_at: Optional[datetime] = None,
    tenant_id: str = TENANT,
    phone_number: str = "+910000000000",
) -> str:
    """Write a booking row directly, bypassing the overlap check."""
    with session_factory.begin() as db:
        row = BookingRow(
            tenant_id=tenant_id,
            service_id=service_id,
            staff_id=staff_id,
            customer_name="Existing Customer",
            phone_number=phone_number,
            amount=500,
            status=status.value,
            scheduled_at=scheduled_at,
            duration_minutes=duration_minutes,
            notes="seeded",
            created_at=created_at or NOW,
        )
        db.add(row)
        db.flush()
        return row.id


def at(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime.combine(day, time(hour, minute))
