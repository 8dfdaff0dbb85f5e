"""Service catalog and staff directory models."""

from datetime import time

from pydantic import BaseModel, ConfigDict, Field, field_validator

WEEKDAY_NAMES = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def weekday_key(value: str) -> str:
    """Reduce a weekday name or abbreviation to its three-letter key."""
    return value.strip().lower()[:3]


class ServiceOffering(BaseModel):
    """An active, bookable service with a price, duration, and category."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    tenant_id: str
    name: str
    base_price: int
    currency: str = "INR"
    category: str = ""
    duration_minutes: int = 60
    is_active: bool = True
    display_order: int = 0


class WorkingHours(BaseModel):
    """Daily working window in business-local time."""

    model_config = ConfigDict(frozen=True)

    start: time
    end: time

    def covers(self, start: time, end: time) -> bool:
        return self.start <= start and end <= self.end


class StaffMember(BaseModel):
    """A staff member with specializations and a weekly schedule."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    tenant_id: str
    name: str
    role: str = "stylist"
    specializations: list[str] = Field(default_factory=list)
    working_days: list[str] = Field(default_factory=lambda: WEEKDAY_NAMES[:6])
    working_hours: WorkingHours = WorkingHours(start=time(9, 0), end=time(19, 0))
    is_active: bool = True

    @field_validator("working_days")
    @classmethod
    def _known_weekdays(cls, value: list[str]) -> list[str]:
        known = {weekday_key(d) for d in WEEKDAY_NAMES}
        unknown = [d for d in value if weekday_key(d) not in known]
        if unknown:
            raise ValueError(f"Unknown working days: {unknown}")
        return value

    def can_perform(self, service: ServiceOffering) -> bool:
        """True when the service name or its category is a specialization."""
        tags = {s.strip().lower() for s in self.specializations}
        return service.name.lower() in tags or (
            bool(service.category) and service.category.lower() in tags
        )

    def works_on(self, weekday: int) -> bool:
        """True when ``weekday`` (Monday=0) is a working day."""
        return weekday_key(WEEKDAY_NAMES[weekday]) in {weekday_key(d) for d in self.working_days}
