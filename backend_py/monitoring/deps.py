from __future__ import annotations

from typing import Set

from fastapi import Depends, Header, HTTPException

from .realtime.errors import AuthFailure
from .realtime.session import Identity, extract_token
from .sockets import realtime


def get_current_user(authorization: str | None = Header(default=None)) -> Identity:
    token = extract_token({"HTTP_AUTHORIZATION": authorization}, None)
    if token is None:
        raise HTTPException(status_code=401, detail="Missing or invalid Authorization header")
    try:
        return realtime.authenticator.authenticate_token_sync(token)
    except AuthFailure as exc:
        raise HTTPException(status_code=401, detail=exc.message)


def require_roles(required_roles: Set[str]):
    """Dependency factory to protect routes based on user roles."""

    def _dependency(user: Identity = Depends(get_current_user)) -> Identity:
        if user.role not in required_roles:
            raise HTTPException(status_code=403, detail="You do not have permission to access this resource.")
        return user

    return _dependency
