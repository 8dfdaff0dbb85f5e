"""
Booking flow controller: one customer message in, one reply out.

Each step has its own handler. A handler either moves the session forward
through BookingStateMachine or leaves the step unchanged and re-prompts.
Recoverable errors (a reply that does not fit, no availability, a slot
lost between display and confirmation) never leave this module; only
the step and selections on the session change.
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Callable, Optional

from salonbot.conversation.intents import (
    change_target,
    is_affirmative,
    is_booking_request,
    is_greeting,
    is_negative,
    is_reset,
)
from salonbot.conversation.parsing import parse_date, parse_time
from salonbot.conversation.state_machine import BookingStateMachine, TransitionTrigger
from salonbot.errors import (
    InputNotUnderstood,
    NoAvailability,
    PersistenceConflict,
    PersistenceFailure,
    StaffUnassignable,
)
from salonbot.logging_context import get_session_logger
from salonbot.prompts import reply_templates as replies
from salonbot.schemas.booking_schema import Booking, TimeSlot
from salonbot.schemas.catalog_schema import ServiceOffering, StaffMember
from salonbot.schemas.conversation_schema import BookingStep, ConversationSession
from salonbot.tools.availability import AvailabilityResolver
from salonbot.tools.booking import BookingStore
from salonbot.tools.services import CatalogService, match_service
from salonbot.tools.staff import StaffDirectory, StaffMatcher

logger = get_session_logger(__name__)

CHANGE_TRIGGERS: dict[BookingStep, TransitionTrigger] = {
    BookingStep.AWAITING_SERVICE: TransitionTrigger.CHANGE_SERVICE,
    BookingStep.AWAITING_DATE: TransitionTrigger.CHANGE_DATE,
    BookingStep.AWAITING_TIME: TransitionTrigger.CHANGE_TIME,
}


@dataclass
class FlowResult:
    """Outcome of handling one message."""
    reply_text: str
    step: BookingStep
    booking: Optional[Booking] = None
    clear_session: bool = False


class BookingFlowController:
    """Drives a ConversationSession through the booking steps."""

    def __init__(
        self,
        catalog: CatalogService,
        availability: AvailabilityResolver,
        matcher: StaffMatcher,
        directory: StaffDirectory,
        bookings: BookingStore,
    ) -> None:
        self._catalog = catalog
        self._availability = availability
        self._matcher = matcher
        self._directory = directory
        self._bookings = bookings
        self._handlers: dict[
            BookingStep, Callable[[ConversationSession, str, datetime], FlowResult]
        ] = {
            BookingStep.WELCOME: self._on_welcome,
            BookingStep.AWAITING_SERVICE: self._on_service,
            BookingStep.AWAITING_DATE: self._on_date,
            BookingStep.AWAITING_TIME: self._on_time,
            BookingStep.AWAITING_CONFIRMATION: self._on_confirmation,
            BookingStep.COMPLETED: self._on_completed,
        }

    def handle(self, session: ConversationSession, text: str, now: datetime) -> FlowResult:
        """Apply one inbound message to ``session`` in place and build the reply.

        Raises nothing for customer input. PersistenceFailure is logged and
        answered with an apology; the session keeps its step.
        """
        if is_reset(text):
            return self._reset(session)

        handler = self._handlers[session.current_step]
        try:
            return handler(session, text, now)
        except InputNotUnderstood as exc:
            logger.debug("Unrecognized reply at %s: %s", session.current_step.value, exc)
            return FlowResult(
                replies.build_guidance(session.current_step, exc.hint), session.current_step
            )
        except PersistenceFailure:
            logger.exception(
                "Storage failure handling %r with selections %s",
                text, session.selections(),
            )
            return FlowResult(replies.build_technical_failure(), session.current_step)

    # ------------------------------------------------------------------
    # Step handlers
    # ------------------------------------------------------------------

    def _on_welcome(self, session: ConversationSession, text: str, now: datetime) -> FlowResult:
        if not (is_greeting(text) or is_booking_request(text)):
            return FlowResult(replies.build_welcome_prompt(), BookingStep.WELCOME)

        services = self._catalog.list_active_services(session.tenant_id)
        if not services:
            logger.warning("Tenant %s has no active services", session.tenant_id)
            return FlowResult(replies.build_no_services_message(), BookingStep.WELCOME)

        self._move(session, TransitionTrigger.BOOKING_REQUESTED)
        return FlowResult(replies.build_service_menu(services), session.current_step)

    def _on_service(self, session: ConversationSession, text: str, now: datetime) -> FlowResult:
        services = self._catalog.list_active_services(session.tenant_id)
        if not services:
            return FlowResult(replies.build_no_services_message(), session.current_step)

        service = match_service(text, services)
        if service is None:
            if is_greeting(text) or is_booking_request(text):
                return FlowResult(
                    replies.build_service_menu(services, greeting=False), session.current_step
                )
            return FlowResult(
                replies.build_service_not_found(text.strip(), services), session.current_step
            )

        session.selected_service_id = service.id
        self._move(session, TransitionTrigger.SERVICE_SELECTED)
        logger.info("Service selected: %s", service.name)
        today = now.date()
        return FlowResult(
            replies.build_date_prompt(service, self._availability.available_dates(today), today),
            session.current_step,
        )

    def _on_date(self, session: ConversationSession, text: str, now: datetime) -> FlowResult:
        changed = self._maybe_change(session, text, now)
        if changed is not None:
            return changed

        service = self._selected_service(session)
        if service is None:
            return self._service_gone(session)

        today = now.date()
        dates = self._availability.available_dates(today)
        day = parse_date(text, today, dates)
        if day is None:
            raise InputNotUnderstood(
                replies.EXPECTED_INPUT[BookingStep.AWAITING_DATE],
                hint=self._wrong_step_hint(session, text, today),
            )
        if day not in dates:
            return FlowResult(
                replies.build_date_out_of_range(day, today, dates[-1]), session.current_step
            )

        try:
            slots = self._slots_or_raise(session, service, day, now)
        except NoAvailability as exc:
            logger.info("%s", exc)
            return FlowResult(
                replies.build_no_availability(service, day)
                + "\n\n"
                + replies.build_date_list(dates, today),
                session.current_step,
            )

        session.selected_date = day
        session.offered_times = [slot.time for slot in slots]
        self._move(session, TransitionTrigger.DATE_SELECTED)
        return FlowResult(
            replies.build_slot_list(service, day, slots, today), session.current_step
        )

    def _on_time(self, session: ConversationSession, text: str, now: datetime) -> FlowResult:
        changed = self._maybe_change(session, text, now)
        if changed is not None:
            return changed

        service = self._selected_service(session)
        if service is None:
            return self._service_gone(session)

        at = parse_time(text, session.offered_times)
        if at is None:
            raise InputNotUnderstood(
                replies.EXPECTED_INPUT[BookingStep.AWAITING_TIME],
                hint=self._wrong_step_hint(session, text, now.date()),
            )

        day = session.selected_date
        try:
            staff = self._assign(session, service, day, at, now)
        except StaffUnassignable:
            slots = list(self._availability.compute_slots(session.tenant_id, service.id, day, now=now))
            if not slots:
                return self._day_full(
                    session, now, replies.build_no_availability(service, day)
                )
            session.offered_times = [slot.time for slot in slots]
            return FlowResult(
                replies.build_time_unavailable(at, slots, service, day), session.current_step
            )

        session.selected_time = at
        session.assigned_staff_id = staff.id
        self._move(session, TransitionTrigger.TIME_SELECTED)
        logger.info("Slot %s %s held for staff %s", day, at.strftime("%H:%M"), staff.id)
        return FlowResult(
            replies.build_confirmation_summary(service, day, at, staff), session.current_step
        )

    def _on_confirmation(
        self, session: ConversationSession, text: str, now: datetime
    ) -> FlowResult:
        changed = self._maybe_change(session, text, now)
        if changed is not None:
            return changed

        if is_negative(text):
            return FlowResult(replies.build_ask_what_to_change(), session.current_step)
        if not is_affirmative(text):
            raise InputNotUnderstood(replies.EXPECTED_INPUT[BookingStep.AWAITING_CONFIRMATION])

        service = self._selected_service(session)
        if service is None:
            return self._service_gone(session)

        try:
            staff = self._confirmable_staff(session, service, now)
            booking = self._bookings.create_booking(session, service)
        except PersistenceConflict as exc:
            booking = self._already_booked(session)
            if booking is None:
                logger.info("Slot lost before confirmation: %s", exc)
                return self._slot_lost(session, service, now)
            logger.info("Repeated confirmation for booking %s", booking.id)
            staff = self._directory.get_staff(session.tenant_id, booking.staff_id) or staff
        except StaffUnassignable as exc:
            logger.info("Slot lost before confirmation: %s", exc)
            return self._slot_lost(session, service, now)

        self._move(session, TransitionTrigger.BOOKING_CONFIRMED)
        return FlowResult(
            replies.build_booking_confirmed(booking, service, staff),
            session.current_step,
            booking=booking,
            clear_session=True,
        )

    def _on_completed(self, session: ConversationSession, text: str, now: datetime) -> FlowResult:
        session.clear_from(BookingStep.WELCOME)
        self._move(session, TransitionTrigger.RESET)
        return self._on_welcome(session, text, now)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _move(self, session: ConversationSession, trigger: TransitionTrigger) -> BookingStep:
        machine = BookingStateMachine(initial_state=session.current_step)
        session.current_step = machine.transition(trigger)
        return session.current_step

    def _reset(self, session: ConversationSession) -> FlowResult:
        session.clear_from(BookingStep.WELCOME)
        self._move(session, TransitionTrigger.RESET)
        return FlowResult(replies.build_reset_message(), BookingStep.WELCOME, clear_session=True)

    def _selected_service(self, session: ConversationSession) -> Optional[ServiceOffering]:
        if session.selected_service_id is None:
            return None
        service = self._catalog.get_service(session.tenant_id, session.selected_service_id)
        if service is None or not service.is_active:
            return None
        return service

    def _service_gone(self, session: ConversationSession) -> FlowResult:
        """The selected service was removed or deactivated mid-booking."""
        logger.warning("Selected service %s is no longer bookable", session.selected_service_id)
        session.clear_from(BookingStep.AWAITING_SERVICE)
        self._move(session, TransitionTrigger.CHANGE_SERVICE)
        services = self._catalog.list_active_services(session.tenant_id)
        if not services:
            return FlowResult(replies.build_no_services_message(), session.current_step)
        return FlowResult(
            replies.build_service_menu(services, greeting=False), session.current_step
        )

    def _maybe_change(
        self, session: ConversationSession, text: str, now: datetime
    ) -> Optional[FlowResult]:
        """Handle 'change service/date/time'; None when the text is not such a request."""
        target = change_target(text)
        if target is None:
            return None
        trigger = CHANGE_TRIGGERS[target]
        machine = BookingStateMachine(initial_state=session.current_step)
        if trigger not in machine.get_valid_triggers():
            return None

        session.clear_from(target)
        self._move(session, trigger)
        logger.info("Customer went back to %s", target.value)
        return self._prompt_for_step(session, now)

    def _prompt_for_step(self, session: ConversationSession, now: datetime) -> FlowResult:
        today = now.date()
        if session.current_step == BookingStep.AWAITING_SERVICE:
            services = self._catalog.list_active_services(session.tenant_id)
            return FlowResult(
                replies.build_service_menu(services, greeting=False), session.current_step
            )

        service = self._selected_service(session)
        if service is None:
            return self._service_gone(session)

        if session.current_step == BookingStep.AWAITING_DATE:
            return FlowResult(
                replies.build_date_prompt(service, self._availability.available_dates(today), today),
                session.current_step,
            )

        day = session.selected_date
        slots = list(self._availability.compute_slots(session.tenant_id, service.id, day, now=now))
        if not slots:
            return self._day_full(session, now, replies.build_no_availability(service, day))
        session.offered_times = [slot.time for slot in slots]
        return FlowResult(
            replies.build_slot_list(service, day, slots, today), session.current_step
        )

    def _slots_or_raise(
        self, session: ConversationSession, service: ServiceOffering, day: date, now: datetime
    ) -> list[TimeSlot]:
        slots = list(self._availability.compute_slots(session.tenant_id, service.id, day, now=now))
        if not slots:
            raise NoAvailability(service.name, day.isoformat())
        return slots

    def _assign(
        self,
        session: ConversationSession,
        service: ServiceOffering,
        day: date,
        at: time,
        now: datetime,
    ) -> StaffMember:
        staff = self._matcher.assign_staff(session.tenant_id, service.id, day, at, now=now)
        if staff is None:
            raise StaffUnassignable(f"Nobody can take {service.name} on {day} at {at}")
        return staff

    def _confirmable_staff(
        self, session: ConversationSession, service: ServiceOffering, now: datetime
    ) -> StaffMember:
        """The held staff member if still eligible, otherwise a fresh assignment.

        Only eligibility is re-checked here; whether the slot is still free
        is settled by create_booking inside its transaction.
        """
        start = datetime.combine(session.selected_date, session.selected_time)
        if start <= now:
            raise StaffUnassignable(f"Slot {start} is in the past")

        staff = None
        if session.assigned_staff_id:
            staff = self._directory.get_staff(session.tenant_id, session.assigned_staff_id)
        if (
            staff is not None
            and self._directory.is_qualified(staff, service)
            and self._directory.works_during(staff, start, service.duration_minutes)
        ):
            return staff

        logger.info("Held staff %s no longer eligible, reassigning", session.assigned_staff_id)
        staff = self._assign(session, service, session.selected_date, session.selected_time, now)
        session.assigned_staff_id = staff.id
        return staff

    def _already_booked(self, session: ConversationSession) -> Optional[Booking]:
        """This conversation's own booking for the selected slot, if a previous 'yes' made it."""
        start = datetime.combine(session.selected_date, session.selected_time)
        return self._bookings.find_confirmed_for_conversation(
            session.tenant_id, session.session_id, start
        )

    def _slot_lost(
        self, session: ConversationSession, service: ServiceOffering, now: datetime
    ) -> FlowResult:
        day = session.selected_date
        self._move(session, TransitionTrigger.SLOT_LOST)
        session.clear_from(BookingStep.AWAITING_TIME)
        slots = list(self._availability.compute_slots(session.tenant_id, service.id, day, now=now))
        if not slots:
            return self._day_full(session, now, replies.build_slot_taken(service, day, []))
        session.offered_times = [slot.time for slot in slots]
        return FlowResult(replies.build_slot_taken(service, day, slots), session.current_step)

    def _day_full(self, session: ConversationSession, now: datetime, lead: str) -> FlowResult:
        """No slots left on the selected day; send the customer back to pick a date."""
        session.clear_from(BookingStep.AWAITING_DATE)
        self._move(session, TransitionTrigger.CHANGE_DATE)
        today = now.date()
        return FlowResult(
            lead + "\n\n" + replies.build_date_list(self._availability.available_dates(today), today),
            session.current_step,
        )

    def _wrong_step_hint(
        self, session: ConversationSession, text: str, today: date
    ) -> Optional[str]:
        """Point out when a reply belongs to another step."""
        if session.current_step == BookingStep.AWAITING_TIME and parse_date(text, today):
            return "To pick a different day, reply 'change date'."
        if is_greeting(text) or is_booking_request(text):
            return "You're already booking. Reply 'cancel' to start over."
        if text.strip().rstrip(".)").isdigit():
            return None
        services = self._catalog.list_active_services(session.tenant_id)
        matched = match_service(text, services)
        if matched is not None and matched.id != session.selected_service_id:
            return f"To book {matched.name} instead, reply 'change service'."
        return None
