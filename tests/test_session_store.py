"""Tests for session persistence, expiry and the message log."""

from datetime import time, timedelta

from salonbot.schemas.conversation_schema import (
    BookingStep,
    ConversationSession,
    MessageDirection,
)
from tests.conftest import NOW, PHONE, TENANT, TOMORROW


def _mid_flow_session(service_id: str) -> ConversationSession:
    return ConversationSession(
        tenant_id=TENANT,
        phone_number=PHONE,
        current_step=BookingStep.AWAITING_TIME,
        selected_service_id=service_id,
        selected_date=TOMORROW,
        offered_times=[time(10, 0), time(10, 30)],
        customer_name="Kavya",
        created_at=NOW,
        last_updated_at=NOW,
    )


class TestLoadAndSave:
    def test_missing_session_starts_at_welcome(self, store):
        session = store.load(TENANT, PHONE, now=NOW)
        assert session.current_step == BookingStep.WELCOME
        assert session.selected_service_id is None

    def test_round_trip(self, store, service_ids):
        original = _mid_flow_session(service_ids["Facial Cleanup"])
        store.save(original)
        loaded = store.load(TENANT, PHONE, now=NOW + timedelta(minutes=5))

        assert loaded.session_id == original.session_id
        assert loaded.selections() == original.selections()
        assert loaded.offered_times == original.offered_times
        assert loaded.customer_name == "Kavya"

    def test_save_updates_existing_row(self, store, service_ids):
        session = _mid_flow_session(service_ids["Facial Cleanup"])
        store.save(session)
        session.selected_time = time(10, 30)
        session.current_step = BookingStep.AWAITING_CONFIRMATION
        store.save(session)

        loaded = store.load(TENANT, PHONE, now=NOW)
        assert loaded.current_step == BookingStep.AWAITING_CONFIRMATION
        assert loaded.selected_time == time(10, 30)

    def test_sessions_scoped_by_tenant(self, store, service_ids):
        store.save(_mid_flow_session(service_ids["Facial Cleanup"]))
        other = store.load("glow-studio", PHONE, now=NOW)
        assert other.current_step == BookingStep.WELCOME

    def test_clear(self, store, service_ids):
        store.save(_mid_flow_session(service_ids["Facial Cleanup"]))
        store.clear(TENANT, PHONE)
        assert store.load(TENANT, PHONE, now=NOW).current_step == BookingStep.WELCOME

    def test_clear_missing_session_is_noop(self, store):
        store.clear(TENANT, PHONE)


class TestExpiry:
    def test_stale_session_is_reset(self, store, service_ids):
        stale = _mid_flow_session(service_ids["Facial Cleanup"])
        store.save(stale)
        loaded = store.load(TENANT, PHONE, now=NOW + timedelta(hours=25))

        assert loaded.current_step == BookingStep.WELCOME
        assert loaded.selected_service_id is None
        assert loaded.session_id != stale.session_id

    def test_session_inside_window_resumes(self, store, service_ids):
        store.save(_mid_flow_session(service_ids["Facial Cleanup"]))
        loaded = store.load(TENANT, PHONE, now=NOW + timedelta(hours=23))
        assert loaded.current_step == BookingStep.AWAITING_TIME


class TestTranscript:
    def test_messages_returned_oldest_first(self, store):
        session = store.load(TENANT, PHONE, now=NOW)
        store.log_message(session, MessageDirection.INBOUND, "hi", now=NOW)
        store.log_message(session, MessageDirection.OUTBOUND, "Welcome!", now=NOW)
        store.log_message(session, MessageDirection.INBOUND, "book", now=NOW)

        transcript = store.get_transcript(TENANT, PHONE)
        assert [m.content for m in transcript] == ["hi", "Welcome!", "book"]
        assert transcript[1].direction == MessageDirection.OUTBOUND

    def test_limit_keeps_latest(self, store):
        session = store.load(TENANT, PHONE, now=NOW)
        for i in range(5):
            store.log_message(session, MessageDirection.INBOUND, f"msg {i}", now=NOW)
        transcript = store.get_transcript(TENANT, PHONE, limit=2)
        assert [m.content for m in transcript] == ["msg 3", "msg 4"]
