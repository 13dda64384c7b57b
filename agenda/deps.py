"""
FastAPI dependencies: per-request record store, services and caller identity.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from agenda.config import SESSION_COOKIE_NAME
from agenda.db import get_db
from agenda.schemas import Identity
from agenda.services.access_control import AccessControl
from agenda.services.availability_ledger import AvailabilityLedger
from agenda.services.booking_workflow import BookingWorkflow
from agenda.sessions import SessionManager
from agenda.store import RecordStore, SqlRecordStore

security = HTTPBearer(auto_error=False)


def get_store(db: Session = Depends(get_db)) -> RecordStore:
    return SqlRecordStore(db)


def get_sessions(request: Request) -> SessionManager:
    return request.app.state.sessions


def get_access_control(
    store: RecordStore = Depends(get_store),
    sessions: SessionManager = Depends(get_sessions),
) -> AccessControl:
    return AccessControl(store, sessions)


def get_ledger(store: RecordStore = Depends(get_store)) -> AvailabilityLedger:
    return AvailabilityLedger(store)


def get_workflow(store: RecordStore = Depends(get_store)) -> BookingWorkflow:
    return BookingWorkflow(store)


def get_session_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    """Session token from the bearer header, falling back to the session cookie."""
    if credentials:
        return credentials.credentials
    return request.cookies.get(SESSION_COOKIE_NAME)


def get_identity(
    token: Optional[str] = Depends(get_session_token),
    access: AccessControl = Depends(get_access_control),
) -> Optional[Identity]:
    # None means "not logged in"; each service decides whether that is allowed
    return access.resolve(token)
