"""Session Authenticator.

Resolves the bearer token carried by a socket handshake to a fixed
``Identity``. The token may arrive in the Socket.IO ``auth`` payload
(``{"token": ...}``) or as an ``Authorization: Bearer`` header. The
user-store lookup is the only blocking call in the real-time layer, so
it runs in the threadpool and never stalls other connections.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Protocol

from starlette.concurrency import run_in_threadpool

from ..auth_utils import TokenError, decode_access_token, token_subject
from .errors import AuthFailure, AuthFailureReason

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    id: str
    role: str
    department: str


class UserRecord(Protocol):
    id: Any
    role: Any
    department: Any
    is_active: bool


UserLookup = Callable[[str], Optional[UserRecord]]


def _bearer(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    scheme, _, token = value.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def extract_token(environ: Optional[Mapping[str, Any]], auth: Any) -> Optional[str]:
    """Find the token in the handshake; the ``auth`` payload wins over headers."""
    if isinstance(auth, Mapping):
        token = auth.get("token")
        if isinstance(token, str) and token.strip():
            token = token.strip()
            return _bearer(token) or token
    if environ:
        return _bearer(environ.get("HTTP_AUTHORIZATION"))
    return None


def _text(value: Any) -> str:
    return str(getattr(value, "value", value) or "")


class SessionAuthenticator:
    def __init__(self, user_lookup: UserLookup):
        self.user_lookup = user_lookup

    async def authenticate(self, environ: Optional[Mapping[str, Any]], auth: Any = None) -> Identity:
        token = extract_token(environ, auth)
        if token is None:
            raise AuthFailure(AuthFailureReason.missing_token)
        return await self.authenticate_token(token)

    async def authenticate_token(self, token: str) -> Identity:
        user_id = self._subject(token)
        user = await run_in_threadpool(self.user_lookup, user_id)
        return self._identity(user_id, user)

    def authenticate_token_sync(self, token: str) -> Identity:
        """Blocking variant for sync FastAPI dependencies."""
        user_id = self._subject(token)
        return self._identity(user_id, self.user_lookup(user_id))

    def _subject(self, token: str) -> str:
        try:
            payload = decode_access_token(token)
        except TokenError as exc:
            reason = (
                AuthFailureReason.expired_token if exc.expired else AuthFailureReason.invalid_token
            )
            raise AuthFailure(reason) from exc
        user_id = token_subject(payload)
        if not user_id:
            raise AuthFailure(AuthFailureReason.invalid_token, "Authentication error: Invalid token payload")
        return user_id

    def _identity(self, user_id: str, user: Optional[UserRecord]) -> Identity:
        if user is None or not user.is_active:
            logger.info("Rejected token for missing or inactive user %s", user_id)
            raise AuthFailure(AuthFailureReason.inactive_account)
        return Identity(id=str(user.id), role=_text(user.role), department=_text(user.department))
