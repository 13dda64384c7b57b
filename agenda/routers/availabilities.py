import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from agenda.deps import get_identity, get_ledger, get_workflow
from agenda.schemas import Availability, Booking, Identity
from agenda.services.availability_ledger import AvailabilityLedger
from agenda.services.booking_workflow import BookingWorkflow

router = APIRouter()


class CreateAvailabilityBody(BaseModel):
    date: datetime.date
    start_time: str
    end_time: str
    capacity: int = 1


class CorrectRemainingBody(BaseModel):
    remaining_slots: int


@router.get("", response_model=list[Availability])
def list_availabilities(
    year: Optional[int] = Query(default=None),
    month: Optional[int] = Query(default=None),
    identity: Optional[Identity] = Depends(get_identity),
    ledger: AvailabilityLedger = Depends(get_ledger),
):
    """
    List availabilities ordered by date then start time.
    With both year and month only that calendar month is returned.
    """
    if year is not None and month is not None:
        return ledger.list_by_month(year, month, identity)
    return ledger.list_availabilities(identity)


@router.post("", response_model=Availability, status_code=201)
def create_availability(
    body: CreateAvailabilityBody,
    identity: Optional[Identity] = Depends(get_identity),
    ledger: AvailabilityLedger = Depends(get_ledger),
):
    return ledger.create_availability(body.date, body.start_time, body.end_time, body.capacity, identity)


@router.get("/{availability_id}", response_model=Availability)
def get_availability(
    availability_id: int,
    identity: Optional[Identity] = Depends(get_identity),
    ledger: AvailabilityLedger = Depends(get_ledger),
):
    return ledger.get_availability(availability_id, identity)


@router.delete("/{availability_id}")
def delete_availability(
    availability_id: int,
    identity: Optional[Identity] = Depends(get_identity),
    ledger: AvailabilityLedger = Depends(get_ledger),
):
    ledger.delete_availability(availability_id, identity)
    return {"message": "Availability deleted successfully"}


@router.patch("/{availability_id}/remaining", response_model=Availability)
def correct_remaining_slots(
    availability_id: int,
    body: CorrectRemainingBody,
    identity: Optional[Identity] = Depends(get_identity),
    ledger: AvailabilityLedger = Depends(get_ledger),
):
    return ledger.correct_remaining_slots(availability_id, body.remaining_slots, identity)


@router.get("/{availability_id}/bookings", response_model=list[Booking])
def list_availability_bookings(
    availability_id: int,
    identity: Optional[Identity] = Depends(get_identity),
    workflow: BookingWorkflow = Depends(get_workflow),
):
    return workflow.list_bookings_by_availability(availability_id, identity)
