"""End-to-end tests through BookingEngine: sessions, locking and concurrency."""

import asyncio
import threading
import time

import pytest

from salonbot.conversation.booking_flow import BookingFlowController
from salonbot.conversation.session_store import SessionStore
from salonbot.errors import PersistenceFailure
from salonbot.logging_context import get_session_key
from salonbot.schemas.conversation_schema import BookingStep, InboundMessage
from tests.conftest import NOW, PHONE, TENANT, TOMORROW

OTHER_PHONE = "+919812345678"


async def send(engine, text, phone=PHONE, name=None):
    return await engine.handle_message(InboundMessage(
        tenant_id=TENANT, phone_number=phone, message=text, customer_name=name,
    ))


async def send_all(engine, messages, phone=PHONE):
    reply = None
    for text in messages:
        reply = await send(engine, text, phone=phone)
    return reply


class TestEngineFlow:
    @pytest.mark.asyncio
    async def test_full_booking(self, engine, store, bookings):
        reply = await send_all(engine, ["hi", "Facial Cleanup", "tomorrow", "1"])
        assert reply.current_step == BookingStep.AWAITING_CONFIRMATION

        reply = await send(engine, "yes", name="Kavya")
        assert reply.current_step == BookingStep.COMPLETED
        assert reply.booking_id is not None

        booking = bookings.get_booking(TENANT, reply.booking_id)
        assert booking.customer_name == "Kavya"
        assert booking.phone_number == PHONE
        assert store.load(TENANT, PHONE, now=NOW).current_step == BookingStep.WELCOME

    @pytest.mark.asyncio
    async def test_session_persists_between_messages(self, engine, store):
        await send_all(engine, ["book", "Manicure"])
        assert store.load(TENANT, PHONE, now=NOW).current_step == BookingStep.AWAITING_DATE

    @pytest.mark.asyncio
    async def test_transcript_logs_both_directions(self, engine, store):
        await send_all(engine, ["hi", "Manicure"])
        transcript = store.get_transcript(TENANT, PHONE)
        assert [m.direction.value for m in transcript] == [
            "inbound", "outbound", "inbound", "outbound",
        ]
        assert transcript[0].content == "hi"

    @pytest.mark.asyncio
    async def test_phone_formats_share_a_session(self, engine):
        await send(engine, "book", phone="+91 98765 43210")
        reply = await send(engine, "Manicure", phone="+91-98765-43210")
        assert reply.current_step == BookingStep.AWAITING_DATE

    @pytest.mark.asyncio
    async def test_overlong_message_rejected(self, engine):
        await send(engine, "book")
        reply = await send(engine, "x" * 600)
        assert reply.current_step == BookingStep.AWAITING_SERVICE
        assert "a bit long" in reply.reply_text

    @pytest.mark.asyncio
    async def test_storage_failure_never_escapes(self, engine, monkeypatch):
        def boom(self, tenant_id, phone_number, now=None):
            raise PersistenceFailure("database is down")

        monkeypatch.setattr(SessionStore, "load", boom)
        reply = await send(engine, "book")
        assert reply.current_step == BookingStep.WELCOME
        assert "something went wrong" in reply.reply_text


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_concurrent_confirmations_for_same_slot(self, engine, bookings, staff_ids):
        for phone in (PHONE, OTHER_PHONE):
            reply = await send_all(engine, ["book", "Facial Cleanup", "tomorrow", "1"], phone=phone)
            assert reply.current_step == BookingStep.AWAITING_CONFIRMATION

        first, second = await asyncio.gather(
            send(engine, "yes", phone=PHONE),
            send(engine, "yes", phone=OTHER_PHONE),
        )
        steps = sorted([first.current_step.value, second.current_step.value])
        assert steps == [BookingStep.AWAITING_TIME.value, BookingStep.COMPLETED.value]

        loser = first if first.current_step == BookingStep.AWAITING_TIME else second
        assert loser.booking_id is None
        assert "just taken" in loser.reply_text

        confirmed = bookings.confirmed_bookings_on(TENANT, TOMORROW)
        assert len(confirmed) == 1
        assert confirmed[0].staff_id == staff_ids["Anjali Verma"]

    @pytest.mark.asyncio
    async def test_same_phone_messages_are_serialized(self, engine, store):
        replies = await asyncio.gather(send(engine, "book"), send(engine, "Manicure"))
        assert [r.current_step for r in replies] == [
            BookingStep.AWAITING_SERVICE, BookingStep.AWAITING_DATE,
        ]
        assert store.load(TENANT, PHONE, now=NOW).current_step == BookingStep.AWAITING_DATE

    @pytest.mark.asyncio
    async def test_different_phones_are_independent(self, engine):
        await send(engine, "book", phone=PHONE)
        reply = await send(engine, "Manicure", phone=OTHER_PHONE)
        assert reply.current_step == BookingStep.WELCOME


class TestSessionExpiry:
    @pytest.mark.asyncio
    async def test_stale_session_restarts_at_welcome(self, engine, clock):
        reply = await send_all(engine, ["book", "Hair Cut & Style"])
        assert reply.current_step == BookingStep.AWAITING_DATE

        clock.advance(hours=25)
        reply = await send(engine, "hi")
        assert reply.current_step == BookingStep.AWAITING_SERVICE
        assert "Here are our services" in reply.reply_text

    @pytest.mark.asyncio
    async def test_recent_session_resumes(self, engine, clock):
        await send_all(engine, ["book", "Hair Cut & Style"])
        clock.advance(hours=1)
        reply = await send(engine, "tomorrow")
        assert reply.current_step == BookingStep.AWAITING_TIME


class TestCleanupAfterBooking:
    @pytest.mark.asyncio
    async def test_confirmation_survives_session_cleanup_failure(
        self, engine, store, bookings, monkeypatch
    ):
        await send_all(engine, ["book", "Facial Cleanup", "tomorrow", "1"])

        def boom(self, tenant_id, phone_number):
            raise PersistenceFailure("database is down")

        monkeypatch.setattr(SessionStore, "clear", boom)
        reply = await send(engine, "yes")

        assert reply.current_step == BookingStep.COMPLETED
        assert reply.booking_id is not None
        assert "Appointment Booked Successfully" in reply.reply_text
        assert store.load(TENANT, PHONE, now=NOW).current_step == BookingStep.AWAITING_CONFIRMATION

        monkeypatch.undo()
        again = await send(engine, "yes")

        assert again.current_step == BookingStep.COMPLETED
        assert again.booking_id == reply.booking_id
        assert "just taken" not in again.reply_text
        assert len(bookings.confirmed_bookings_on(TENANT, TOMORROW)) == 1
        assert store.load(TENANT, PHONE, now=NOW).current_step == BookingStep.WELCOME

    @pytest.mark.asyncio
    async def test_save_failure_without_booking_apologizes(self, engine, monkeypatch):
        def boom(self, session):
            raise PersistenceFailure("database is down")

        monkeypatch.setattr(SessionStore, "save", boom)
        reply = await send(engine, "book")
        assert reply.booking_id is None
        assert reply.current_step == BookingStep.WELCOME
        assert "something went wrong" in reply.reply_text


class TestParallelism:
    @pytest.mark.asyncio
    async def test_different_phones_run_at_the_same_time(self, engine, monkeypatch):
        both_inside = threading.Barrier(2, timeout=5)
        handle = BookingFlowController.handle

        def rendezvous(self, session, text, now):
            both_inside.wait()
            return handle(self, session, text, now)

        monkeypatch.setattr(BookingFlowController, "handle", rendezvous)
        replies = await asyncio.gather(
            send(engine, "book", phone=PHONE), send(engine, "book", phone=OTHER_PHONE)
        )
        assert [r.current_step for r in replies] == [BookingStep.AWAITING_SERVICE] * 2

    @pytest.mark.asyncio
    async def test_same_phone_never_overlaps(self, engine, monkeypatch):
        guard = threading.Lock()
        active = {"now": 0, "max": 0}
        handle = BookingFlowController.handle

        def tracked(self, session, text, now):
            with guard:
                active["now"] += 1
                active["max"] = max(active["max"], active["now"])
            time.sleep(0.05)
            try:
                return handle(self, session, text, now)
            finally:
                with guard:
                    active["now"] -= 1

        monkeypatch.setattr(BookingFlowController, "handle", tracked)
        replies = await asyncio.gather(
            send(engine, "book"), send(engine, "Manicure"), send(engine, "tomorrow")
        )
        assert active["max"] == 1
        assert replies[-1].current_step == BookingStep.AWAITING_TIME

    @pytest.mark.asyncio
    async def test_event_loop_stays_free_while_handling(self, engine, monkeypatch):
        handle = BookingFlowController.handle

        def slow(self, session, text, now):
            time.sleep(0.2)
            return handle(self, session, text, now)

        monkeypatch.setattr(BookingFlowController, "handle", slow)
        finished = []

        async def message():
            await send(engine, "book")
            finished.append("message")

        async def ticker():
            for _ in range(5):
                await asyncio.sleep(0.01)
            finished.append("ticker")

        await asyncio.gather(message(), ticker())
        assert finished == ["ticker", "message"]

    @pytest.mark.asyncio
    async def test_session_key_follows_into_worker(self, engine, monkeypatch):
        seen = []
        handle = BookingFlowController.handle

        def capture(self, session, text, now):
            seen.append(get_session_key())
            return handle(self, session, text, now)

        monkeypatch.setattr(BookingFlowController, "handle", capture)
        await send(engine, "book", phone="+91 98765 43210")
        assert seen == [f"{TENANT}:{PHONE}"]
