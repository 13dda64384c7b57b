"""
Availability ledger: provider time slots and their remaining capacity.
"""

import logging
from datetime import date, datetime
from typing import Optional

from agenda.config import MAX_SLOT_MINUTES
from agenda.errors import (
    AvailabilityInUse,
    AvailabilityNotFound,
    Forbidden,
    InvalidCapacity,
    InvalidTimeRange,
    ValidationError,
)
from agenda.schemas import Availability, Identity, Role
from agenda.services.access_control import authorize
from agenda.store import Range, RecordStore

logger = logging.getLogger(__name__)

ANY_ROLE = {Role.ADMIN, Role.PROVIDER, Role.REQUESTER}
CALENDAR_ORDER = ("date", "start_time", "id")


def parse_hhmm(value: str) -> int:
    """Minutes since midnight for an ``HH:MM`` string."""
    parsed = datetime.strptime(value.strip(), "%H:%M")
    return parsed.hour * 60 + parsed.minute


def format_hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def month_range(year: int, month: int) -> Range:
    if not 1 <= month <= 12:
        raise ValidationError("Month must be between 1 and 12")
    start = date(year, month, 1)
    stop = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return Range(start, stop)


class AvailabilityLedger:
    def __init__(self, store: RecordStore, max_slot_minutes: int = MAX_SLOT_MINUTES):
        self.store = store
        self.max_slot_minutes = max_slot_minutes

    def create_availability(self, day: date, start_time: str, end_time: str, capacity: int,
                            identity: Optional[Identity]) -> Availability:
        authorize(identity, {Role.PROVIDER})
        try:
            start, end = parse_hhmm(start_time), parse_hhmm(end_time)
        except (AttributeError, ValueError):
            raise InvalidTimeRange("Times must use the HH:MM format")
        if start >= end:
            raise InvalidTimeRange("End time must be after start time")
        if end - start > self.max_slot_minutes:
            raise InvalidTimeRange(f"Time span cannot exceed {self.max_slot_minutes} minutes")
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            raise InvalidCapacity()

        created = self.store.insert(
            Availability,
            date=day,
            start_time=format_hhmm(start),
            end_time=format_hhmm(end),
            capacity=capacity,
            remaining_slots=capacity,
            created_by=identity.code,
        )
        logger.info(
            "Provider %s opened availability %s on %s %s-%s (capacity %s)",
            identity.code, created.id, created.date, created.start_time, created.end_time, capacity,
        )
        return created

    def list_by_month(self, year: int, month: int, identity: Optional[Identity]) -> list[Availability]:
        authorize(identity, ANY_ROLE)
        return self.store.list(Availability, where={"date": month_range(year, month)}, order_by=CALENDAR_ORDER)

    def list_availabilities(self, identity: Optional[Identity]) -> list[Availability]:
        authorize(identity, ANY_ROLE)
        return self.store.list(Availability, order_by=CALENDAR_ORDER)

    def get_availability(self, availability_id: int, identity: Optional[Identity]) -> Availability:
        authorize(identity, ANY_ROLE)
        availability = self.store.get(Availability, availability_id)
        if availability is None:
            raise AvailabilityNotFound()
        return availability

    def delete_availability(self, availability_id: int, identity: Optional[Identity]) -> None:
        authorize(identity, {Role.PROVIDER})
        with self.store.transaction():
            availability = self.store.get(Availability, availability_id)
            if availability is None:
                raise AvailabilityNotFound()
            if availability.created_by != identity.code:
                raise Forbidden("You can only delete availabilities you created")
            if not self.store.delete_unbooked_availability(availability_id):
                if self.store.get(Availability, availability_id) is None:
                    raise AvailabilityNotFound()
                raise AvailabilityInUse()
        logger.info("Provider %s deleted availability %s", identity.code, availability_id)

    def correct_remaining_slots(self, availability_id: int, remaining_slots: int,
                                identity: Optional[Identity]) -> Availability:
        """Administrative override of the remaining slot count."""
        authorize(identity, {Role.ADMIN})
        with self.store.transaction():
            availability = self.store.get(Availability, availability_id)
            if availability is None:
                raise AvailabilityNotFound()
            if not 0 <= remaining_slots <= availability.capacity:
                raise ValidationError(f"Remaining slots must be between 0 and {availability.capacity}")
            updated = self.store.update(Availability, availability_id, remaining_slots=remaining_slots)
        logger.warning(
            "Admin %s corrected remaining slots of availability %s: %s -> %s",
            identity.code, availability_id, availability.remaining_slots, remaining_slots,
        )
        return updated
