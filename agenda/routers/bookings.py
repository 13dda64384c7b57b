from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from agenda.deps import get_identity, get_workflow
from agenda.errors import Unauthenticated
from agenda.schemas import Booking, Identity
from agenda.services.booking_workflow import BookingWorkflow

router = APIRouter()


class CreateBookingBody(BaseModel):
    availability_id: int
    client_name: str
    service_number: str
    time_slot: str
    client_document: Optional[str] = None
    client_phone: Optional[str] = None
    comments: Optional[str] = None


@router.get("", response_model=list[Booking])
def list_bookings(
    created_by: Optional[str] = Query(default=None),
    identity: Optional[Identity] = Depends(get_identity),
    workflow: BookingWorkflow = Depends(get_workflow),
):
    # defaults to the caller's own bookings; admins may ask for any code
    if identity is None:
        raise Unauthenticated()
    return workflow.list_bookings_by_user(created_by or identity.code, identity)


@router.post("", response_model=Booking, status_code=201)
def create_booking(
    body: CreateBookingBody,
    identity: Optional[Identity] = Depends(get_identity),
    workflow: BookingWorkflow = Depends(get_workflow),
):
    """
    Book one slot of an availability.
    409 when the availability has no remaining slots, including when another
    requester took the last one a moment earlier.
    """
    return workflow.create_booking(
        body.availability_id,
        body.client_name,
        body.service_number,
        body.time_slot,
        identity,
        client_document=body.client_document,
        client_phone=body.client_phone,
        comments=body.comments,
    )


@router.post("/{booking_id}/cancel", response_model=Booking)
def cancel_booking(
    booking_id: int,
    identity: Optional[Identity] = Depends(get_identity),
    workflow: BookingWorkflow = Depends(get_workflow),
):
    return workflow.cancel_booking(booking_id, identity)
