"""
Booking workflow: turns an open availability slot into a confirmed booking.

The booking insert and the capacity decrement commit together inside one
store transaction. The decrement is a conditional update, so when two
requesters race for the last slot exactly one of them wins and the other's
booking row is rolled back.
"""

import logging
from typing import Optional

from agenda.errors import (
    AvailabilityNotFound,
    Conflict,
    Forbidden,
    NotFound,
    PersistenceFailure,
    SlotsExhausted,
    ValidationError,
)
from agenda.schemas import Availability, Booking, BookingStatus, Identity, Role
from agenda.services.access_control import authorize
from agenda.services.availability_ledger import ANY_ROLE, format_hhmm, parse_hhmm
from agenda.store import RecordStore

logger = logging.getLogger(__name__)

NEWEST_FIRST = ("-created_at", "-id")


def _required(value: Optional[str], label: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{label} is required")
    return value


class BookingWorkflow:
    def __init__(self, store: RecordStore):
        self.store = store

    def create_booking(self, availability_id: int, client_name: str, service_number: str, time_slot: str,
                       identity: Optional[Identity], client_document: Optional[str] = None,
                       client_phone: Optional[str] = None, comments: Optional[str] = None) -> Booking:
        authorize(identity, {Role.REQUESTER})
        client_name = _required(client_name, "Client name")
        service_number = _required(service_number, "Service number")
        try:
            slot = parse_hhmm(time_slot)
        except (AttributeError, ValueError):
            raise ValidationError("Time slot must use the HH:MM format")

        availability = self.store.get(Availability, availability_id)
        if availability is None:
            raise AvailabilityNotFound()
        if not parse_hhmm(availability.start_time) <= slot < parse_hhmm(availability.end_time):
            raise ValidationError(
                f"Time slot must be between {availability.start_time} and {availability.end_time}"
            )
        if availability.remaining_slots <= 0:
            raise SlotsExhausted()

        booking = None
        try:
            with self.store.transaction():
                booking = self.store.insert(
                    Booking,
                    availability_id=availability_id,
                    client_name=client_name,
                    client_document=client_document,
                    client_phone=client_phone,
                    service_number=service_number,
                    time_slot=format_hhmm(slot),
                    comments=comments,
                    created_by=identity.code,
                    status=BookingStatus.CONFIRMED,
                )
                if not self.store.decrement_remaining(availability_id):
                    if self.store.get(Availability, availability_id) is None:
                        raise AvailabilityNotFound()
                    logger.warning(
                        "Requester %s lost the race for availability %s", identity.code, availability_id
                    )
                    raise SlotsExhausted()
        except PersistenceFailure:
            if booking is not None:
                logger.critical(
                    "Integrity failure: booking %s for availability %s was written but the slot "
                    "decrement could not be committed; the unit of work was rolled back",
                    booking.id, availability_id,
                )
            else:
                logger.error("Could not store booking for availability %s", availability_id)
            raise

        logger.info(
            "Requester %s booked availability %s at %s (booking %s)",
            identity.code, availability_id, booking.time_slot, booking.id,
        )
        return booking

    def list_bookings_by_user(self, code: str, identity: Optional[Identity]) -> list[Booking]:
        authorize(identity, ANY_ROLE)
        if identity.role is not Role.ADMIN and code != identity.code:
            raise Forbidden("You can only list your own bookings")
        return self.store.list(Booking, where={"created_by": code}, order_by=NEWEST_FIRST)

    def list_bookings_by_availability(self, availability_id: int, identity: Optional[Identity]) -> list[Booking]:
        authorize(identity, ANY_ROLE)
        return self.store.list(Booking, where={"availability_id": availability_id}, order_by=NEWEST_FIRST)

    def cancel_booking(self, booking_id: int, identity: Optional[Identity]) -> Booking:
        """Mark a booking cancelled. The slot it consumed stays consumed."""
        authorize(identity, {Role.REQUESTER, Role.ADMIN})
        with self.store.transaction():
            booking = self.store.get(Booking, booking_id)
            if booking is None:
                raise NotFound("Booking not found")
            if identity.role is not Role.ADMIN and booking.created_by != identity.code:
                raise Forbidden("You can only cancel bookings you created")
            if booking.status is BookingStatus.CANCELLED:
                raise Conflict("Booking is already cancelled")
            cancelled = self.store.update(Booking, booking_id, status=BookingStatus.CANCELLED)
        logger.info("%s cancelled booking %s", identity.code, booking_id)
        return cancelled
