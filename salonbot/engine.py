"""
Message-level entry point for the booking bot.

BookingEngine turns one InboundMessage into one BotReply. The flow and its
database calls are blocking, so each message runs in a worker thread.
Messages from the same customer are handled one at a time under a
per-(tenant, phone) asyncio.Lock; different customers proceed
concurrently. The locks live in a WeakValueDictionary so a customer's lock
disappears once no message for them is in flight.
"""

import asyncio
import weakref
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import sessionmaker

from salonbot.config import settings
from salonbot.conversation.booking_flow import BookingFlowController, FlowResult
from salonbot.conversation.session_store import SessionStore
from salonbot.errors import PersistenceFailure
from salonbot.logging_context import get_session_logger, set_session_key
from salonbot.prompts import reply_templates as replies
from salonbot.schemas.conversation_schema import (
    BookingStep,
    BotReply,
    ConversationSession,
    InboundMessage,
    MessageDirection,
)
from salonbot.storage.database import create_db_engine, init_db, make_session_factory
from salonbot.storage.seed import seed_demo_tenant
from salonbot.tools.availability import AvailabilityResolver
from salonbot.tools.booking import BookingStore
from salonbot.tools.services import CatalogService
from salonbot.tools.staff import StaffDirectory, StaffMatcher
from salonbot.utils import normalize_phone, session_key

logger = get_session_logger(__name__)


class BookingEngine:
    """Runs the booking flow for inbound chat messages."""

    def __init__(
        self,
        store: SessionStore,
        controller: BookingFlowController,
        clock: Callable[[], datetime] = datetime.now,
        max_input_length: Optional[int] = None,
    ) -> None:
        self._store = store
        self._controller = controller
        self._clock = clock
        self._max_input_length = max_input_length or settings.session.max_input_length
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    @property
    def store(self) -> SessionStore:
        return self._store

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def handle_message(self, inbound: InboundMessage) -> BotReply:
        """Process one customer message and return the reply to send back."""
        phone = normalize_phone(inbound.phone_number)
        key = session_key(inbound.tenant_id, phone)
        set_session_key(key)

        lock = self._lock_for(key)
        async with lock:
            return await asyncio.to_thread(self._process, inbound, phone)

    def _process(self, inbound: InboundMessage, phone: str) -> BotReply:
        now = self._clock()
        session: Optional[ConversationSession] = None
        try:
            session = self._store.load(inbound.tenant_id, phone, now=now)
            stored_step = session.current_step
            if inbound.customer_name and inbound.customer_name.strip():
                session.customer_name = inbound.customer_name.strip()
            self._store.log_message(session, MessageDirection.INBOUND, inbound.message, now=now)

            if len(inbound.message) > self._max_input_length:
                logger.info("Rejected message of %d characters", len(inbound.message))
                result = FlowResult(replies.build_input_too_long(), session.current_step)
            else:
                result = self._controller.handle(session, inbound.message, now)
        except PersistenceFailure:
            logger.exception(
                "Storage failure for message %r, selections %s",
                inbound.message, session.selections() if session else None,
            )
            step = session.current_step if session else BookingStep.WELCOME
            return BotReply(reply_text=replies.build_technical_failure(), current_step=step)

        try:
            self._finish(session, result, now)
        except PersistenceFailure:
            if result.booking is None:
                logger.exception(
                    "Could not store session after %r, selections %s",
                    inbound.message, session.selections(),
                )
                return BotReply(
                    reply_text=replies.build_technical_failure(), current_step=stored_step
                )
            # The booking is committed; the customer still gets the confirmation.
            logger.exception("Booking %s saved but session cleanup failed", result.booking.id)

        logger.info("Replied at step %s", result.step.value)
        return BotReply(
            reply_text=result.reply_text,
            current_step=result.step,
            booking_id=result.booking.id if result.booking else None,
        )

    def _finish(self, session: ConversationSession, result: FlowResult, now: datetime) -> None:
        """Persist the session outcome and log the outbound reply."""
        if result.clear_session:
            self._store.clear(session.tenant_id, session.phone_number)
        else:
            session.last_updated_at = now
            self._store.save(session)
        self._store.log_message(session, MessageDirection.OUTBOUND, result.reply_text, now=now)


def build_controller(session_factory: sessionmaker) -> BookingFlowController:
    """Wire the catalog, staff and booking services into a flow controller."""
    catalog = CatalogService(session_factory)
    directory = StaffDirectory(session_factory)
    bookings = BookingStore(session_factory)
    availability = AvailabilityResolver(catalog, directory, bookings)
    matcher = StaffMatcher(directory, availability, bookings)
    return BookingFlowController(catalog, availability, matcher, directory, bookings)


def build_engine(
    database_url: Optional[str] = None,
    clock: Callable[[], datetime] = datetime.now,
    seed_tenant_id: Optional[str] = None,
) -> BookingEngine:
    """Create the database (if needed) and a ready-to-use engine.

    With ``seed_tenant_id`` the demo salon catalog is loaded for that tenant
    unless it already has services.
    """
    db_engine = create_db_engine(database_url)
    init_db(db_engine)
    session_factory = make_session_factory(db_engine)
    if seed_tenant_id:
        seed_demo_tenant(session_factory, seed_tenant_id)
    return BookingEngine(
        SessionStore(session_factory),
        build_controller(session_factory),
        clock=clock,
    )
