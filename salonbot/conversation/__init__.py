from salonbot.conversation.booking_flow import BookingFlowController, FlowResult
from salonbot.conversation.session_store import SessionStore
from salonbot.conversation.state_machine import (
    BookingStateMachine,
    InvalidTransitionError,
    TransitionTrigger,
)

__all__ = [
    "BookingFlowController",
    "FlowResult",
    "SessionStore",
    "BookingStateMachine",
    "InvalidTransitionError",
    "TransitionTrigger",
]
