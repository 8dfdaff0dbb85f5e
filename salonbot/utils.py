"""Shared utilities used across the booking engine."""

import re
from typing import Optional


def normalize_phone(value: str) -> str:
    """Normalize a phone number by stripping everything except digits and a leading +.

    WhatsApp delivers numbers without the plus sign, so ``919876543210`` and
    ``+91 98765 43210`` are kept distinct here; callers pick one convention.

    Examples:
        >>> normalize_phone("98765 43210")
        '9876543210'
        >>> normalize_phone("+91 (98765) 43-210")
        '+919876543210'
    """
    value = value.strip()
    if value.startswith("+"):
        return "+" + re.sub(r"[^\d]", "", value[1:])
    return re.sub(r"[^\d]", "", value)


def normalize_text(value: str) -> str:
    """Lowercase, trim and collapse internal whitespace."""
    return re.sub(r"\s+", " ", value.strip().lower())


def session_key(tenant_id: str, phone_number: str) -> str:
    """Key identifying one customer's conversation within a tenant."""
    return f"{tenant_id}:{phone_number}"


def parse_ordinal(value: str, size: int) -> Optional[int]:
    """Return the zero-based index for a 1-based ordinal reply, or None.

    Only a bare number (optionally followed by a period or closing
    parenthesis, as in "2." or "2)") inside ``1..size`` counts.
    """
    match = re.fullmatch(r"\s*(\d{1,3})\s*[.)]?\s*", value)
    if not match:
        return None
    number = int(match.group(1))
    if 1 <= number <= size:
        return number - 1
    return None
