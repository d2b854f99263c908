"""Database configuration for the user store.

The real-time layer only ever reads users: it needs to know whether the
account behind a token still exists and is active, and which role and
department it belongs to. The schema is owned by the account service.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from .config import DATABASE_URL

# The pool_pre_ping flag ensures broken connections are detected and
# recycled automatically.
engine = create_engine(DATABASE_URL, pool_pre_ping=True)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    """Base class for declarative models."""


def get_user(user_id: str) -> Optional["User"]:
    """Look a user up by id. Blocking; call it from a worker thread."""
    from .models import User

    with SessionLocal() as session:
        user = session.get(User, user_id)
        if user is not None:
            session.expunge(user)
        return user
