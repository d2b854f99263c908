"""Pydantic models for client-originated socket messages."""

from __future__ import annotations

from typing import Annotated, Any, Dict, Literal, Optional, Type, TypeVar

from pydantic import BaseModel, BeforeValidator, ValidationError

from .errors import MalformedMessage


def _as_id(value: Any) -> str:
    # Ids arrive as strings or numbers depending on the client.
    if isinstance(value, (int, str)) and not isinstance(value, bool):
        value = str(value).strip()
        if value:
            return value
    raise ValueError("must be a non-empty id")


EntityId = Annotated[str, BeforeValidator(_as_id)]


class VitalSignsUpdate(BaseModel):
    patientId: EntityId
    vitalSigns: Dict[str, Any]


class AcknowledgeAlert(BaseModel):
    alertId: EntityId
    notes: Optional[str] = None
    patientId: Optional[EntityId] = None


class ResolveAlert(BaseModel):
    alertId: EntityId
    resolutionNotes: Optional[str] = None
    patientId: Optional[EntityId] = None


class PatientStatusUpdate(BaseModel):
    patientId: EntityId
    status: str
    # Accepted for compatibility; the sender's identity is recorded instead.
    updatedBy: Optional[str] = None


class StaffAssignmentUpdate(BaseModel):
    patientId: EntityId
    staffId: EntityId
    action: Literal["assigned", "removed"]


class EmergencyAlertRequest(BaseModel):
    patientId: EntityId
    alertType: str
    message: str
    priority: Optional[str] = None


class WebRTCOffer(BaseModel):
    roomId: EntityId
    target: EntityId
    offer: Any


class WebRTCAnswer(BaseModel):
    roomId: EntityId
    target: EntityId
    answer: Any


class WebRTCIceCandidate(BaseModel):
    roomId: EntityId
    target: EntityId
    candidate: Any


class NotificationBody(BaseModel):
    """Body of the HTTP notification endpoints."""

    title: str
    message: str
    level: Literal["info", "warning", "critical"] = "info"
    data: Optional[Dict[str, Any]] = None


M = TypeVar("M", bound=BaseModel)


def parse_message(model: Type[M], name: str, data: Any) -> M:
    if not isinstance(data, dict):
        raise MalformedMessage(name, "payload must be an object")
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise MalformedMessage(
            name, [{"loc": list(e["loc"]), "msg": e["msg"]} for e in exc.errors()]
        ) from exc


def parse_id(name: str, value: Any, key: str) -> str:
    """Validate a bare id argument such as ``joinPatientRoom(patientId)``.

    ``{key: id}`` is accepted as well; any other object is malformed.
    """
    if isinstance(value, dict):
        if set(value) != {key}:
            raise MalformedMessage(name, f"expected an id or {{{key!r}: id}}")
        value = value[key]
    try:
        return _as_id(value)
    except ValueError as exc:
        raise MalformedMessage(name, str(exc)) from exc
