from __future__ import annotations

from enum import Enum as PyEnum

from sqlalchemy import Boolean, Column, DateTime, String, func
from sqlalchemy import Enum as SAEnum

from .db import Base


class UserRole(str, PyEnum):
    admin = "Admin"
    doctor = "Doctor"
    nurse = "Nurse"
    technician = "Technician"


class User(Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    first_name = Column(String(100))
    last_name = Column(String(100))
    role = Column(
        SAEnum(UserRole, name="user_role", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        server_default=UserRole.nurse.value,
    )
    department = Column(String(100), nullable=False, server_default="General")
    is_active = Column(Boolean, nullable=False, default=True, server_default="1")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
