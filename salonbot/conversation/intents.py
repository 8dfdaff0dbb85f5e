"""
Keyword classification of customer replies.

Each check looks for one kind of reply (reset, greeting, booking request,
yes/no, "change the date") using fixed phrase lists. The flow controller
asks only the questions that make sense for the current step.
"""

import re
from typing import Optional

from salonbot.schemas.conversation_schema import BookingStep
from salonbot.utils import normalize_text

RESET_PHRASES = {
    "reset", "restart", "start over", "start again", "cancel", "cancel booking",
    "cancel it", "menu", "main menu", "stop",
}

GREETINGS = [
    "hi", "hii", "hello", "hey", "hola", "namaste", "good morning",
    "good afternoon", "good evening", "start",
]

BOOKING_KEYWORDS = ["book", "booking", "appointment", "schedule", "reserve"]

AFFIRMATIVES = {
    "yes", "y", "yeah", "yep", "yup", "sure", "ok", "okay", "confirm", "confirmed",
    "proceed", "go ahead", "book it", "done", "correct", "👍",
}

NEGATIVES = {"no", "n", "nope", "nah", "not really", "wrong", "incorrect"}

CHANGE_TARGETS: list[tuple[tuple[str, ...], BookingStep]] = [
    (("service", "treatment"), BookingStep.AWAITING_SERVICE),
    (("date", "day"), BookingStep.AWAITING_DATE),
    (("time", "slot"), BookingStep.AWAITING_TIME),
]

_CHANGE_VERB = re.compile(r"\b(change|edit|modify|different|another|other|wrong|update)\b")


def _clean(text: str) -> str:
    """Normalize and drop trailing punctuation such as 'yes!' or 'ok.'."""
    return normalize_text(text).strip(" .!?,")


def _words(text: str) -> list[str]:
    return re.findall(r"[a-z0-9']+", text)


def is_reset(text: str) -> bool:
    return _clean(text) in RESET_PHRASES


def is_greeting(text: str) -> bool:
    cleaned = _clean(text)
    words = _words(cleaned)
    return any(
        cleaned == g or cleaned.startswith(g + " ") or (" " not in g and g in words[:2])
        for g in GREETINGS
    )


def is_booking_request(text: str) -> bool:
    words = _words(_clean(text))
    return any(k in words for k in BOOKING_KEYWORDS)


def is_affirmative(text: str) -> bool:
    cleaned = _clean(text)
    if cleaned in AFFIRMATIVES:
        return True
    words = _words(cleaned)
    return bool(words) and words[0] in AFFIRMATIVES and change_target(cleaned) is None


def is_negative(text: str) -> bool:
    cleaned = _clean(text)
    if cleaned in NEGATIVES:
        return True
    words = _words(cleaned)
    return bool(words) and words[0] in NEGATIVES


def change_target(text: str) -> Optional[BookingStep]:
    """The step a 'change the time' style request points at, if any."""
    cleaned = _clean(text)
    if not _CHANGE_VERB.search(cleaned):
        return None
    words = set(_words(cleaned))
    for keywords, step in CHANGE_TARGETS:
        if words.intersection(keywords):
            return step
    return None
