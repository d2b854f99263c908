"""HTTP access to presence and server-originated notifications."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..deps import get_current_user, require_roles
from ..models import UserRole
from ..realtime.schemas import NotificationBody
from ..realtime.session import Identity
from ..sockets import realtime

router = APIRouter(prefix="/realtime", tags=["realtime"])

admin_only = require_roles({UserRole.admin.value})


@router.get("/presence", dependencies=[Depends(get_current_user)])
def get_presence(
    role: Optional[str] = Query(None),
    department: Optional[str] = Query(None),
):
    presence = realtime.presence
    result = {"success": True, "online": presence.count()}
    if role:
        result["role"] = {"name": role, "online": presence.count_by_role(role)}
    if department:
        result["department"] = {"name": department, "online": presence.count_by_department(department)}
    if not role and not department:
        result.update(presence.snapshot())
    return result


def _notification(body: NotificationBody, sender: Identity) -> dict:
    payload = body.model_dump(exclude_none=True)
    payload["sentBy"] = sender.id
    return payload


@router.post("/notifications/system")
async def send_system_notification(body: NotificationBody, sender: Identity = Depends(admin_only)):
    delivered = await realtime.hooks.notify_system(_notification(body, sender))
    return {"success": True, "delivered": delivered}


@router.post("/notifications/department/{department}")
async def send_department_notification(
    department: str, body: NotificationBody, sender: Identity = Depends(admin_only)
):
    delivered = await realtime.hooks.notify_department(department, _notification(body, sender))
    return {"success": True, "delivered": delivered}


@router.post("/notifications/role/{role}")
async def send_role_notification(role: str, body: NotificationBody, sender: Identity = Depends(admin_only)):
    delivered = await realtime.hooks.notify_role(role, _notification(body, sender))
    return {"success": True, "delivered": delivered}
