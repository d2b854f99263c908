"""Helper functions for JSON Web Token handling.

Tokens are issued by the account service and verified here with PyJWT.
The same helpers back both the HTTP dependencies and the socket
handshake, so they raise ``TokenError`` rather than an HTTP exception
and let each caller map the failure onto its own surface.
"""

from __future__ import annotations

import time
from typing import Any, Dict, Optional

import jwt

from .config import JWT_ALGORITHM, JWT_EXPIRY_SECONDS, JWT_SECRET


class TokenError(Exception):
    def __init__(self, detail: str, expired: bool = False):
        super().__init__(detail)
        self.detail = detail
        self.expired = expired


def create_access_token(claims: Dict[str, Any], expires_in: Optional[int] = None) -> str:
    """Mint a token the way the account service does.

    Only tests and local tooling call this; production tokens come from
    the account service. ``expires_in`` is in seconds and defaults to
    ``JWT_EXPIRY_SECONDS``. A negative value mints an expired token.
    """
    lifetime = JWT_EXPIRY_SECONDS if expires_in is None else expires_in
    payload = {**claims, "exp": int(time.time()) + int(lifetime)}
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Decode a JWT and return the payload if valid.

    Raises TokenError if the token is invalid or expired.
    """
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as exc:
        raise TokenError("Token expired", expired=True) from exc
    except jwt.InvalidTokenError as exc:
        raise TokenError("Invalid token") from exc


def token_subject(payload: Dict[str, Any]) -> Optional[str]:
    """Return the user id a token was issued for.

    ``sub`` is the standard claim; ``userId`` is accepted for tokens
    minted by the older account service.
    """
    subject = payload.get("sub") or payload.get("userId")
    if subject is None:
        return None
    subject = str(subject).strip()
    return subject or None
