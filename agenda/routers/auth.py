from typing import Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from agenda.config import SESSION_COOKIE_NAME, SESSION_TTL_HOURS
from agenda.deps import get_access_control, get_identity, get_session_token
from agenda.schemas import Identity
from agenda.services.access_control import AccessControl

router = APIRouter()


class LoginBody(BaseModel):
    access_code: str


@router.post("/login")
def login(body: LoginBody, response: Response, access: AccessControl = Depends(get_access_control)):
    """
    Exchange an active access code for a session.
    The token is set as an http-only cookie and also returned for bearer use.
    """
    identity, token = access.authenticate(body.access_code.strip())
    response.set_cookie(
        SESSION_COOKIE_NAME, token, max_age=SESSION_TTL_HOURS * 3600, httponly=True, samesite="lax"
    )
    return {"user": identity, "token": token}


@router.post("/logout")
def logout(
    response: Response,
    token: Optional[str] = Depends(get_session_token),
    access: AccessControl = Depends(get_access_control),
):
    response.delete_cookie(SESSION_COOKIE_NAME)
    if not access.revoke(token):
        return {"message": "No active session to end"}
    return {"message": "Logged out successfully"}


@router.get("/me")
def me(identity: Optional[Identity] = Depends(get_identity), access: AccessControl = Depends(get_access_control)):
    return {"user": access.who_am_i(identity)}
