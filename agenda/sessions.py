"""
Signed session tokens.

A session token is an HS256 JWT carrying the identity (``sub``, ``code``,
``role``) plus ``iat``/``exp`` and a random ``jti``. Logging out records the
``jti`` in a revocation list until the token would have expired anyway.
"""

import logging
import secrets
import threading
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from agenda.config import SESSION_SECRET_KEY, SESSION_TTL_HOURS
from agenda.schemas import Identity

logger = logging.getLogger(__name__)


class SessionManager:
    """Issues, verifies and revokes session tokens."""

    ALGORITHM = "HS256"

    def __init__(self, secret_key: str = SESSION_SECRET_KEY, ttl: timedelta = timedelta(hours=SESSION_TTL_HOURS)):
        self.secret_key = secret_key
        self.ttl = ttl
        self._revoked: dict[str, datetime] = {}
        self._lock = threading.Lock()

    def issue(self, identity: Identity) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(identity.id),
            "code": identity.code,
            "role": identity.role.value,
            "jti": secrets.token_urlsafe(16),
            "iat": now,
            "exp": now + self.ttl,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.ALGORITHM)

    def _decode(self, token: str) -> Optional[dict]:
        try:
            return jwt.decode(token, self.secret_key, algorithms=[self.ALGORITHM])
        except jwt.ExpiredSignatureError:
            return None
        except jwt.InvalidTokenError:
            return None

    def verify(self, token: Optional[str]) -> Optional[Identity]:
        """Return the identity in a valid, unrevoked token, else None."""
        if not token:
            return None
        payload = self._decode(token)
        if payload is None:
            return None
        with self._lock:
            if payload.get("jti") in self._revoked:
                return None
        try:
            return Identity(id=int(payload["sub"]), code=payload["code"], role=payload["role"])
        except (KeyError, ValueError):
            logger.warning("Session token with malformed claims rejected")
            return None

    def revoke(self, token: Optional[str]) -> bool:
        """Invalidate a token. Returns False if it was not a live session."""
        payload = self._decode(token) if token else None
        if payload is None or "jti" not in payload:
            return False
        expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
        with self._lock:
            self._prune()
            self._revoked[payload["jti"]] = expires_at
        return True

    def _prune(self):
        now = datetime.now(timezone.utc)
        for jti in [j for j, exp in self._revoked.items() if exp <= now]:
            del self._revoked[jti]
