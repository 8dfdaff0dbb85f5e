"""Tests for the booking step state machine."""

import pytest

from salonbot.conversation.state_machine import (
    BookingStateMachine,
    InvalidTransitionError,
    TransitionTrigger,
)
from salonbot.schemas.conversation_schema import BookingStep


@pytest.fixture
def state_machine():
    return BookingStateMachine()


class TestInitialState:
    def test_starts_in_welcome(self, state_machine):
        assert state_machine.current_state == BookingStep.WELCOME

    def test_can_start_mid_flow(self):
        sm = BookingStateMachine(initial_state=BookingStep.AWAITING_TIME)
        assert sm.current_state == BookingStep.AWAITING_TIME


class TestForwardFlow:
    def test_full_happy_path(self, state_machine):
        state_machine.transition(TransitionTrigger.BOOKING_REQUESTED)
        state_machine.transition(TransitionTrigger.SERVICE_SELECTED)
        state_machine.transition(TransitionTrigger.DATE_SELECTED)
        state_machine.transition(TransitionTrigger.TIME_SELECTED)
        final = state_machine.transition(TransitionTrigger.BOOKING_CONFIRMED)

        assert final == BookingStep.COMPLETED
        assert state_machine.current_state == BookingStep.COMPLETED

    def test_each_forward_trigger_advances_one_step(self):
        chain = [
            (BookingStep.WELCOME, TransitionTrigger.BOOKING_REQUESTED, BookingStep.AWAITING_SERVICE),
            (BookingStep.AWAITING_SERVICE, TransitionTrigger.SERVICE_SELECTED, BookingStep.AWAITING_DATE),
            (BookingStep.AWAITING_DATE, TransitionTrigger.DATE_SELECTED, BookingStep.AWAITING_TIME),
            (BookingStep.AWAITING_TIME, TransitionTrigger.TIME_SELECTED,
             BookingStep.AWAITING_CONFIRMATION),
        ]
        for start, trigger, expected in chain:
            sm = BookingStateMachine(initial_state=start)
            assert sm.transition(trigger) == expected

    def test_only_one_forward_trigger_per_step(self):
        sm = BookingStateMachine(initial_state=BookingStep.AWAITING_SERVICE)
        assert TransitionTrigger.DATE_SELECTED not in sm.get_valid_triggers()


class TestChangeTransitions:
    def test_change_service_from_confirmation(self):
        sm = BookingStateMachine(initial_state=BookingStep.AWAITING_CONFIRMATION)
        assert sm.transition(TransitionTrigger.CHANGE_SERVICE) == BookingStep.AWAITING_SERVICE

    def test_change_date_from_time(self):
        sm = BookingStateMachine(initial_state=BookingStep.AWAITING_TIME)
        assert sm.transition(TransitionTrigger.CHANGE_DATE) == BookingStep.AWAITING_DATE

    def test_slot_lost_returns_to_time(self):
        sm = BookingStateMachine(initial_state=BookingStep.AWAITING_CONFIRMATION)
        assert sm.transition(TransitionTrigger.SLOT_LOST) == BookingStep.AWAITING_TIME

    def test_valid_triggers_at_confirmation(self):
        sm = BookingStateMachine(initial_state=BookingStep.AWAITING_CONFIRMATION)
        assert set(sm.get_valid_triggers()) == {
            TransitionTrigger.BOOKING_CONFIRMED,
            TransitionTrigger.CHANGE_SERVICE,
            TransitionTrigger.CHANGE_DATE,
            TransitionTrigger.CHANGE_TIME,
            TransitionTrigger.SLOT_LOST,
            TransitionTrigger.RESET,
        }


class TestReset:
    @pytest.mark.parametrize("step", list(BookingStep))
    def test_reset_from_every_step(self, step):
        sm = BookingStateMachine(initial_state=step)
        assert sm.transition(TransitionTrigger.RESET) == BookingStep.WELCOME

    def test_reset_is_repeatable(self, state_machine):
        state_machine.transition(TransitionTrigger.RESET)
        assert state_machine.transition(TransitionTrigger.RESET) == BookingStep.WELCOME


class TestInvalidTransitions:
    def test_cannot_skip_to_confirmation(self, state_machine):
        with pytest.raises(InvalidTransitionError):
            state_machine.transition(TransitionTrigger.TIME_SELECTED)

    def test_cannot_change_time_before_choosing_one(self):
        sm = BookingStateMachine(initial_state=BookingStep.AWAITING_DATE)
        with pytest.raises(InvalidTransitionError):
            sm.transition(TransitionTrigger.CHANGE_TIME)

    def test_completed_only_resets(self):
        sm = BookingStateMachine(initial_state=BookingStep.COMPLETED)
        assert sm.get_valid_triggers() == [TransitionTrigger.RESET]

    def test_failed_transition_keeps_state(self, state_machine):
        with pytest.raises(InvalidTransitionError, match="welcome"):
            state_machine.transition(TransitionTrigger.BOOKING_CONFIRMED)
        assert state_machine.current_state == BookingStep.WELCOME
