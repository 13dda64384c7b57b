"""
Access control: access-code login, session resolution and role gates.

Every operation receives the caller's identity explicitly; nothing here reads
request state.
"""

import logging
from typing import Iterable, Optional

from agenda.config import MIN_ACCESS_CODE_LENGTH
from agenda.errors import (
    Conflict,
    DuplicateCode,
    Forbidden,
    InvalidCredential,
    NotFound,
    Unauthenticated,
    ValidationError,
)
from agenda.schemas import AccessCode, CodeStatus, Identity, Role
from agenda.sessions import SessionManager
from agenda.store import RecordStore

logger = logging.getLogger(__name__)


def authorize(identity: Optional[Identity], allowed_roles: Iterable[Role]) -> Identity:
    """Raise unless ``identity`` is present and holds one of ``allowed_roles``."""
    if identity is None:
        raise Unauthenticated()
    if identity.role not in set(allowed_roles):
        raise Forbidden()
    return identity


class AccessControl:
    def __init__(self, store: RecordStore, sessions: SessionManager):
        self.store = store
        self.sessions = sessions

    # -- sessions ---------------------------------------------------------

    def authenticate(self, code: str) -> tuple[Identity, str]:
        """Log in with an access code; returns the identity and its session token."""
        record = self.store.find_one(AccessCode, code=code, status=CodeStatus.ACTIVE) if code else None
        if record is None:
            logger.warning("Rejected login attempt with code %r", code)
            raise InvalidCredential()
        identity = Identity(id=record.id, code=record.code, role=record.role)
        token = self.sessions.issue(identity)
        logger.info("Access code %s logged in as %s", identity.code, identity.role.value)
        return identity, token

    def resolve(self, token: Optional[str]) -> Optional[Identity]:
        """Identity bound to ``token``, or None when there is no usable session.

        A session whose access code has since been deactivated is treated
        exactly like a missing one. The role comes from the stored code, so an
        admin role change applies to sessions that are already open.
        """
        identity = self.sessions.verify(token)
        if identity is None:
            return None
        record = self.store.get(AccessCode, identity.id)
        if record is None or not record.active or record.code != identity.code:
            return None
        return Identity(id=record.id, code=record.code, role=record.role)

    def revoke(self, token: Optional[str]) -> bool:
        revoked = self.sessions.revoke(token)
        if revoked:
            logger.info("Session revoked")
        return revoked

    def who_am_i(self, identity: Optional[Identity]) -> Identity:
        if identity is None:
            raise Unauthenticated("Not authenticated")
        return identity

    # -- access code management (admin) -----------------------------------

    def create_access_code(self, code: str, role: Role, identity: Optional[Identity],
                           location: Optional[str] = None) -> AccessCode:
        authorize(identity, {Role.ADMIN})
        code = (code or "").strip()
        if not code:
            raise ValidationError("Access code is required")
        if len(code) < MIN_ACCESS_CODE_LENGTH:
            raise ValidationError(f"Access code must have at least {MIN_ACCESS_CODE_LENGTH} characters")
        if self.store.find_one(AccessCode, code=code) is not None:
            raise DuplicateCode()
        try:
            created = self.store.insert(
                AccessCode, code=code, role=Role(role), location=location, status=CodeStatus.ACTIVE
            )
        except Conflict as exc:
            # lost a race with another admin issuing the same code
            raise DuplicateCode() from exc
        logger.info("Admin %s issued %s code %s", identity.code, created.role.value, created.code)
        return created

    def list_access_codes(self, identity: Optional[Identity]) -> list[AccessCode]:
        authorize(identity, {Role.ADMIN})
        return self.store.list(AccessCode, order_by=("-created_at", "-id"))

    def update_access_code(self, code_id: int, identity: Optional[Identity], location: Optional[str] = None,
                           role: Optional[Role] = None, active: Optional[bool] = None) -> AccessCode:
        authorize(identity, {Role.ADMIN})
        current = self.store.get(AccessCode, code_id)
        if current is None:
            raise NotFound("Access code not found")
        if active is True and not current.active:
            raise ValidationError("Deactivated access codes cannot be reactivated")

        fields = {}
        if location is not None:
            fields["location"] = location
        if role is not None:
            fields["role"] = Role(role)
        if active is False:
            fields["status"] = CodeStatus.DEACTIVATED
        if not fields:
            return current

        updated = self.store.update(AccessCode, code_id, **fields)
        if updated is None:
            raise NotFound("Access code not found")
        logger.info("Admin %s updated access code %s: %s", identity.code, updated.code, sorted(fields))
        return updated

    def deactivate_access_code(self, code_id: int, identity: Optional[Identity]) -> AccessCode:
        authorize(identity, {Role.ADMIN})
        current = self.store.get(AccessCode, code_id)
        if current is None:
            raise NotFound("Access code not found")
        if not current.active:
            return current
        updated = self.store.update(AccessCode, code_id, status=CodeStatus.DEACTIVATED)
        logger.info("Admin %s deactivated access code %s", identity.code, updated.code)
        return updated
