"""Demo tenant data: the Bella Salon catalog and team."""

import logging
from datetime import time
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from salonbot.storage.models import OfferingRow, StaffRow

logger = logging.getLogger(__name__)

DEMO_OFFERINGS: list[dict] = [
    {"name": "Hair Cut & Style", "base_price": 500, "category": "hair", "duration_minutes": 45},
    {"name": "Hair Color", "base_price": 1500, "category": "hair", "duration_minutes": 90},
    {"name": "Facial Cleanup", "base_price": 800, "category": "skin", "duration_minutes": 60},
    {"name": "Manicure", "base_price": 400, "category": "nails", "duration_minutes": 30},
    {"name": "Pedicure", "base_price": 600, "category": "nails", "duration_minutes": 45},
    {"name": "Eyebrow Threading", "base_price": 100, "category": "waxing", "duration_minutes": 15},
    {"name": "Head Massage", "base_price": 700, "category": "massage", "duration_minutes": 30},
    {"name": "Bridal Makeup", "base_price": 8000, "category": "makeup", "duration_minutes": 120},
    # Shown on the dashboard but not bookable over chat.
    {"name": "Keratin Treatment", "base_price": 4000, "category": "hair",
     "duration_minutes": 150, "is_active": False},
]

DEMO_STAFF: list[dict] = [
    {
        "name": "Priya Sharma", "role": "Senior Stylist",
        "specializations": ["hair", "Head Massage"],
        "working_days": ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday"],
        "work_start": time(9, 0), "work_end": time(18, 0),
    },
    {
        "name": "Anjali Verma", "role": "Beautician",
        "specializations": ["skin", "makeup", "waxing"],
        "working_days": ["tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"],
        "work_start": time(10, 0), "work_end": time(19, 0),
    },
    {
        "name": "Meera Iyer", "role": "Nail Technician",
        "specializations": ["nails"],
        "working_days": ["monday", "wednesday", "friday", "saturday"],
        "work_start": time(11, 0), "work_end": time(19, 0),
    },
    {
        "name": "Ravi Kumar", "role": "Stylist",
        "specializations": ["Hair Cut & Style", "massage"],
        "working_days": ["monday", "tuesday", "thursday", "friday", "saturday", "sunday"],
        "work_start": time(9, 0), "work_end": time(17, 0),
    },
]


def add_offering(session_factory: sessionmaker, tenant_id: str, name: str, base_price: int,
                 category: str = "", duration_minutes: int = 60, is_active: bool = True,
                 display_order: int = 0, currency: str = "INR") -> str:
    """Insert one offering and return its id."""
    with session_factory.begin() as db:
        row = OfferingRow(
            tenant_id=tenant_id, name=name, base_price=base_price, category=category,
            duration_minutes=duration_minutes, is_active=is_active,
            display_order=display_order, currency=currency,
        )
        db.add(row)
        db.flush()
        return row.id


def add_staff(session_factory: sessionmaker, tenant_id: str, name: str,
              specializations: list[str], working_days: list[str],
              work_start: time = time(9, 0), work_end: time = time(19, 0),
              role: str = "stylist", is_active: bool = True) -> str:
    """Insert one staff member and return their id."""
    with session_factory.begin() as db:
        row = StaffRow(
            tenant_id=tenant_id, name=name, role=role, specializations=specializations,
            working_days=working_days, work_start=work_start, work_end=work_end,
            is_active=is_active,
        )
        db.add(row)
        db.flush()
        return row.id


def seed_demo_tenant(session_factory: sessionmaker, tenant_id: str) -> Optional[int]:
    """Load the demo catalog and staff unless the tenant already has offerings.

    Returns the number of offerings created, or None when skipped.
    """
    with session_factory() as db:
        existing = db.scalars(
            select(OfferingRow.id).where(OfferingRow.tenant_id == tenant_id).limit(1)
        ).first()
    if existing is not None:
        logger.info("Tenant '%s' already seeded, skipping", tenant_id)
        return None

    for order, offering in enumerate(DEMO_OFFERINGS, start=1):
        add_offering(session_factory, tenant_id, display_order=order, **offering)
    for member in DEMO_STAFF:
        add_staff(session_factory, tenant_id, **member)

    logger.info(
        "Seeded tenant '%s' with %d offerings and %d staff",
        tenant_id, len(DEMO_OFFERINGS), len(DEMO_STAFF),
    )
    return len(DEMO_OFFERINGS)
