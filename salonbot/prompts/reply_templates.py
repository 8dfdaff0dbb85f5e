"""Reply text for each step of the WhatsApp booking dialogue.

WhatsApp renders *single asterisks* as bold and keeps line breaks, so the
replies use both. Business-specific values come from configuration.
"""

from datetime import date, time
from typing import Optional

from salonbot.config import settings
from salonbot.schemas.booking_schema import Booking, TimeSlot
from salonbot.schemas.catalog_schema import ServiceOffering, StaffMember
from salonbot.schemas.conversation_schema import BookingStep
from salonbot.tools.services import get_service_emoji

_biz = settings.business

# What each step is waiting for, used when a reply does not fit.
EXPECTED_INPUT: dict[BookingStep, str] = {
    BookingStep.WELCOME: "'book' to start a new booking",
    BookingStep.AWAITING_SERVICE: "the number or name of a service from the list",
    BookingStep.AWAITING_DATE: (
        "a date, e.g. 'tomorrow', 'Friday', '20 Oct' or the number from the list"
    ),
    BookingStep.AWAITING_TIME: (
        "a time, e.g. '14:30', '3 pm', '10:30 am' or the slot number from the list"
    ),
    BookingStep.AWAITING_CONFIRMATION: (
        "'yes' to confirm, or 'change service', 'change date' or 'change time'"
    ),
    BookingStep.COMPLETED: "'book' to make another booking",
}


CURRENCY_SYMBOLS: dict[str, str] = {
    "INR": "₹",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
}


def format_price(amount: int, currency: str) -> str:
    """Amount with the symbol of the offering's currency, e.g. '₹1,200'."""
    if currency == _biz.currency:
        symbol = _biz.currency_symbol
    else:
        symbol = CURRENCY_SYMBOLS.get(currency, f"{currency} ")
    return f"{symbol}{amount:,}"


def format_date(day: date, today: Optional[date] = None) -> str:
    """'Friday, 16 October', prefixed with Today/Tomorrow when relevant."""
    label = f"{day:%A}, {day.day} {day:%B}"
    if today is not None:
        if day == today:
            return f"Today ({label})"
        if (day - today).days == 1:
            return f"Tomorrow ({label})"
    return label


def format_time(at: time) -> str:
    """'10:30 AM' style, as the salon dashboard shows it."""
    hour = at.hour % 12 or 12
    period = "AM" if at.hour < 12 else "PM"
    return f"{hour}:{at.minute:02d} {period}"


def build_welcome_prompt() -> str:
    return (
        f"Hi! 👋 Welcome to {_biz.name}! "
        "To book an appointment, just type *book*."
    )


def build_service_menu(services: list[ServiceOffering], greeting: bool = True) -> str:
    """Numbered list of active services with price and duration."""
    lines = []
    if greeting:
        lines.append(f"Hi! 👋 Welcome to {_biz.name}! I'm here to help you book an appointment.")
        lines.append("")
    lines.append("Here are our services:")
    for index, service in enumerate(services, start=1):
        emoji = get_service_emoji(service.name, service.category)
        price = format_price(service.base_price, service.currency)
        lines.append(
            f"{index}. {emoji} {service.name} – {price} ({service.duration_minutes} min)"
        )
    lines.append("")
    lines.append("Reply with the number or name of the service to book.")
    return "\n".join(lines)


def build_no_services_message() -> str:
    return (
        "I'm sorry, no services are available for booking right now. "
        "Please contact the salon directly."
    )


def build_service_not_found(raw_text: str, services: list[ServiceOffering]) -> str:
    return (
        f"I couldn't find a service matching \"{raw_text}\".\n\n"
        + build_service_menu(services, greeting=False)
    )


def build_date_prompt(service: ServiceOffering, dates: list[date], today: date) -> str:
    """Service summary followed by the bookable dates."""
    return "\n".join([
        f"Great choice! You selected: *{service.name}*",
        f"💰 Price: {format_price(service.base_price, service.currency)}",
        f"⏰ Duration: {service.duration_minutes} minutes",
        "",
        build_date_list(dates, today),
    ])


def build_date_list(dates: list[date], today: date) -> str:
    lines = ["When would you like to come in?", ""]
    lines.extend(f"{i}. {format_date(d, today)}" for i, d in enumerate(dates, start=1))
    lines.append("")
    lines.append("Reply with the date number or a date like 'tomorrow' or '20 Oct'.")
    return "\n".join(lines)


def build_date_out_of_range(day: date, today: date, last_day: date) -> str:
    if day < today:
        reason = f"{format_date(day)} has already passed."
    else:
        reason = f"We take bookings up to {format_date(last_day)}."
    return f"{reason} Please choose a date between today and {format_date(last_day)}."


def build_slot_list(service: ServiceOffering, day: date, slots: list[TimeSlot],
                    today: Optional[date] = None) -> str:
    lines = [
        f"Perfect! Available times for *{service.name}* on {format_date(day, today)}:",
        "",
    ]
    lines.extend(
        f"{i}. {format_time(slot.time)}" for i, slot in enumerate(slots, start=1)
    )
    lines.append("")
    lines.append("Reply with the slot number or a time like '3 pm'.")
    return "\n".join(lines)


def build_no_availability(service: ServiceOffering, day: date) -> str:
    return (
        f"Sorry, we have no availability for *{service.name}* on {format_date(day)}. "
        "Please pick another date (e.g. 'tomorrow' or a date from the list)."
    )


def build_time_unavailable(at: time, slots: list[TimeSlot], service: ServiceOffering,
                           day: date) -> str:
    return (
        f"Sorry, {format_time(at)} isn't available.\n\n"
        + build_slot_list(service, day, slots)
    )


def build_confirmation_summary(service: ServiceOffering, day: date, at: time,
                               staff: StaffMember) -> str:
    return "\n".join([
        "Here's your appointment summary:",
        "",
        f"• Service: {service.name}",
        f"• Date: {format_date(day)}",
        f"• Time: {format_time(at)}",
        f"• Stylist: {staff.name}",
        f"• Price: {format_price(service.base_price, service.currency)}",
        f"• Duration: {service.duration_minutes} minutes",
        "",
        "Reply *yes* to confirm, or 'change service', 'change date' or 'change time'.",
    ])


def build_booking_confirmed(booking: Booking, service: ServiceOffering,
                            staff: StaffMember) -> str:
    return "\n".join([
        "🎉 *Appointment Booked Successfully!*",
        "",
        f"📅 Date: {format_date(booking.scheduled_date)}",
        f"⏰ Time: {format_time(booking.scheduled_time)}",
        f"{get_service_emoji(service.name, service.category)} Service: {service.name}",
        f"👩‍💼 Stylist: {staff.name}",
        f"💰 Price: {format_price(booking.amount, booking.currency)}",
        f"🔖 Booking ID: {booking.id[:8].upper()}",
        "",
        f"Thank you for choosing {_biz.name}! We look forward to seeing you! ✨",
    ])


def build_slot_taken(service: ServiceOffering, day: date, slots: list[TimeSlot]) -> str:
    if not slots:
        return (
            f"Sorry, that time was just taken and {format_date(day)} is now fully booked "
            f"for {service.name}. Please pick another date."
        )
    return (
        "Sorry, that time was just taken by another booking. "
        "Here are the times still open:\n\n"
        + build_slot_list(service, day, slots)
    )


def build_ask_what_to_change() -> str:
    return "No problem. What would you like to change? Reply 'change service', 'change date' or 'change time'."


def build_reset_message() -> str:
    return "Okay, I've cleared your booking. Type *book* whenever you'd like to start again."


def build_input_too_long() -> str:
    return "That message is a bit long for me. Could you keep it short?"


def build_technical_failure() -> str:
    return (
        "I'm sorry, something went wrong on our side and I couldn't complete that. "
        "Please try again in a moment."
    )


def build_guidance(step: BookingStep, hint: Optional[str] = None) -> str:
    """Re-prompt naming what the current step expects."""
    text = f"Sorry, I didn't get that. Please reply with {EXPECTED_INPUT[step]}."
    if hint:
        text = f"{text}\n{hint}"
    return text
