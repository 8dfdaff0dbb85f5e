"""Service catalog lookup: listing active offerings and resolving free text to one."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from salonbot.errors import PersistenceFailure
from salonbot.schemas.catalog_schema import ServiceOffering
from salonbot.storage.models import OfferingRow
from salonbot.utils import normalize_text, parse_ordinal

logger = logging.getLogger(__name__)

# Checked in order; first keyword found in the service name or category wins.
SERVICE_EMOJIS: list[tuple[tuple[str, ...], str]] = [
    (("hair", "cut", "color", "colour", "style"), "💇‍♀️"),
    (("nail", "manicure", "pedicure", "polish"), "💅"),
    (("facial", "skin", "treatment"), "✨"),
    (("massage", "spa"), "🧘‍♀️"),
    (("makeup", "bridal", "party"), "💄"),
    (("wax", "threading"), "🪒"),
]
DEFAULT_EMOJI = "✨"


def get_service_emoji(name: str, category: str = "") -> str:
    """Pick a display emoji from the service name, falling back to its category."""
    for text in (name.lower(), category.lower()):
        for keywords, emoji in SERVICE_EMOJIS:
            if any(k in text for k in keywords):
                return emoji
    return DEFAULT_EMOJI


def match_service(query: str, services: list[ServiceOffering]) -> Optional[ServiceOffering]:
    """Match a reply against an already-ordered service list.

    Order: ordinal position, exact name, then substring either way. When
    several names contain the query the first in catalog order is taken.
    """
    normalized = normalize_text(query)
    if not normalized or not services:
        return None

    index = parse_ordinal(normalized, len(services))
    if index is not None:
        return services[index]

    for service in services:
        if normalize_text(service.name) == normalized:
            return service

    for service in services:
        name = normalize_text(service.name)
        if normalized in name or name in normalized:
            return service
    return None


class CatalogService:
    """Read-only access to a tenant's offerings."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def list_active_services(self, tenant_id: str) -> list[ServiceOffering]:
        """Active offerings in display order, as shown to customers."""
        stmt = (
            select(OfferingRow)
            .where(OfferingRow.tenant_id == tenant_id, OfferingRow.is_active.is_(True))
            .order_by(OfferingRow.display_order, OfferingRow.name)
        )
        try:
            with self._session_factory() as db:
                return [row.to_schema() for row in db.scalars(stmt)]
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"Could not load services for {tenant_id}") from exc

    def get_service(self, tenant_id: str, service_id: str) -> Optional[ServiceOffering]:
        """Fetch an offering by id regardless of its active flag."""
        stmt = select(OfferingRow).where(
            OfferingRow.tenant_id == tenant_id, OfferingRow.id == service_id
        )
        try:
            with self._session_factory() as db:
                row = db.scalars(stmt).first()
                return row.to_schema() if row else None
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"Could not load service {service_id}") from exc

    def resolve_service(self, tenant_id: str, raw_text: str) -> Optional[ServiceOffering]:
        """Resolve a customer's reply to an active offering, or None if nothing fits."""
        services = self.list_active_services(tenant_id)
        matched = match_service(raw_text, services)
        if matched is None:
            logger.debug("No service match for '%s' in tenant %s", raw_text, tenant_id)
        return matched
