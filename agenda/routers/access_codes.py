from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from agenda.deps import get_access_control, get_identity
from agenda.schemas import AccessCode, Identity, Role
from agenda.services.access_control import AccessControl

router = APIRouter()


class CreateAccessCodeBody(BaseModel):
    code: str
    role: Role
    location: Optional[str] = None


class UpdateAccessCodeBody(BaseModel):
    location: Optional[str] = None
    role: Optional[Role] = None
    active: Optional[bool] = None


@router.get("", response_model=list[AccessCode])
def list_access_codes(
    identity: Optional[Identity] = Depends(get_identity),
    access: AccessControl = Depends(get_access_control),
):
    return access.list_access_codes(identity)


@router.post("", response_model=AccessCode, status_code=201)
def create_access_code(
    body: CreateAccessCodeBody,
    identity: Optional[Identity] = Depends(get_identity),
    access: AccessControl = Depends(get_access_control),
):
    return access.create_access_code(body.code, body.role, identity, location=body.location)


@router.patch("/{code_id}", response_model=AccessCode)
def update_access_code(
    code_id: int,
    body: UpdateAccessCodeBody,
    identity: Optional[Identity] = Depends(get_identity),
    access: AccessControl = Depends(get_access_control),
):
    return access.update_access_code(
        code_id, identity, location=body.location, role=body.role, active=body.active
    )


@router.delete("/{code_id}", response_model=AccessCode)
def deactivate_access_code(
    code_id: int,
    identity: Optional[Identity] = Depends(get_identity),
    access: AccessControl = Depends(get_access_control),
):
    """Soft delete: the code is deactivated, never removed."""
    return access.deactivate_access_code(code_id, identity)
