"""
Finite state machine for the WhatsApp booking dialogue.

Defines the booking steps and the explicit transitions between them.
A session's step only ever changes through ``transition``; anything not
listed in TRANSITIONS is rejected, so a reply can never move the dialogue
somewhere the table does not allow.

Usage:
    sm = BookingStateMachine()
    sm.transition(TransitionTrigger.BOOKING_REQUESTED)
    assert sm.current_state == BookingStep.AWAITING_SERVICE
"""

import logging
from dataclasses import dataclass
from enum import Enum

from salonbot.schemas.conversation_schema import BookingStep

logger = logging.getLogger(__name__)


class TransitionTrigger(str, Enum):
    """Events that cause step transitions."""
    BOOKING_REQUESTED = "booking_requested"
    SERVICE_SELECTED = "service_selected"
    DATE_SELECTED = "date_selected"
    TIME_SELECTED = "time_selected"
    BOOKING_CONFIRMED = "booking_confirmed"
    CHANGE_SERVICE = "change_service"
    CHANGE_DATE = "change_date"
    CHANGE_TIME = "change_time"
    SLOT_LOST = "slot_lost"
    RESET = "reset"


@dataclass
class Transition:
    """A single valid step transition."""
    from_state: BookingStep
    to_state: BookingStep
    trigger: TransitionTrigger


class InvalidTransitionError(Exception):
    """Raised when a transition is not valid from the current step."""


class BookingStateMachine:
    """
    Deterministic state machine controlling the booking dialogue.

    Forward transitions advance exactly one step. Customers can step back
    to an earlier choice with the CHANGE_* triggers, and RESET returns to
    WELCOME from anywhere.
    """

    TRANSITIONS: list[Transition] = [
        # --- Forward flow ---
        Transition(BookingStep.WELCOME, BookingStep.AWAITING_SERVICE,
                   TransitionTrigger.BOOKING_REQUESTED),
        Transition(BookingStep.AWAITING_SERVICE, BookingStep.AWAITING_DATE,
                   TransitionTrigger.SERVICE_SELECTED),
        Transition(BookingStep.AWAITING_DATE, BookingStep.AWAITING_TIME,
                   TransitionTrigger.DATE_SELECTED),
        Transition(BookingStep.AWAITING_TIME, BookingStep.AWAITING_CONFIRMATION,
                   TransitionTrigger.TIME_SELECTED),
        Transition(BookingStep.AWAITING_CONFIRMATION, BookingStep.COMPLETED,
                   TransitionTrigger.BOOKING_CONFIRMED),

        # --- Going back to change a choice ---
        Transition(BookingStep.AWAITING_DATE, BookingStep.AWAITING_SERVICE,
                   TransitionTrigger.CHANGE_SERVICE),
        Transition(BookingStep.AWAITING_TIME, BookingStep.AWAITING_SERVICE,
                   TransitionTrigger.CHANGE_SERVICE),
        Transition(BookingStep.AWAITING_TIME, BookingStep.AWAITING_DATE,
                   TransitionTrigger.CHANGE_DATE),
        Transition(BookingStep.AWAITING_CONFIRMATION, BookingStep.AWAITING_SERVICE,
                   TransitionTrigger.CHANGE_SERVICE),
        Transition(BookingStep.AWAITING_CONFIRMATION, BookingStep.AWAITING_DATE,
                   TransitionTrigger.CHANGE_DATE),
        Transition(BookingStep.AWAITING_CONFIRMATION, BookingStep.AWAITING_TIME,
                   TransitionTrigger.CHANGE_TIME),

        # --- Slot taken or staff gone between display and confirmation ---
        Transition(BookingStep.AWAITING_CONFIRMATION, BookingStep.AWAITING_TIME,
                   TransitionTrigger.SLOT_LOST),
    ] + [
        Transition(step, BookingStep.WELCOME, TransitionTrigger.RESET)
        for step in BookingStep
    ]

    def __init__(self, initial_state: BookingStep = BookingStep.WELCOME) -> None:
        self._current_state = initial_state

    @property
    def current_state(self) -> BookingStep:
        return self._current_state

    def transition(self, trigger: TransitionTrigger) -> BookingStep:
        """
        Execute a step transition.

        Args:
            trigger: The event triggering the transition.

        Returns:
            The new booking step.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        for t in self.TRANSITIONS:
            if t.from_state == self._current_state and t.trigger == trigger:
                old_state = self._current_state
                self._current_state = t.to_state

                logger.debug(
                    "Step transition: %s -> %s (trigger: %s)",
                    old_state.value, self._current_state.value, trigger.value,
                )
                return self._current_state

        valid = [t.value for t in self.get_valid_triggers()]
        raise InvalidTransitionError(
            f"No valid transition from '{self._current_state.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def get_valid_triggers(self) -> list[TransitionTrigger]:
        """Return all triggers valid from the current step."""
        return [t.trigger for t in self.TRANSITIONS if t.from_state == self._current_state]

