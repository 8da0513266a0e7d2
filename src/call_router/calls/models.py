"""Call record domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class CallDirection(str, Enum):
    """Direction of a call relative to the practice."""

    INBOUND = "inbound"
    OUTBOUND = "outbound"


class CallStatus(str, Enum):
    """Lifecycle status of a call record."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    NO_ANSWER = "no_answer"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self is not CallStatus.IN_PROGRESS


# Carrier (Twilio) CallStatus values to our status; "busy" counts as completed
CARRIER_STATUS_MAP: dict[str, CallStatus] = {
    "queued": CallStatus.IN_PROGRESS,
    "initiated": CallStatus.IN_PROGRESS,
    "ringing": CallStatus.IN_PROGRESS,
    "in-progress": CallStatus.IN_PROGRESS,
    "completed": CallStatus.COMPLETED,
    "busy": CallStatus.COMPLETED,
    "failed": CallStatus.FAILED,
    "no-answer": CallStatus.NO_ANSWER,
    "canceled": CallStatus.CANCELED,
}


def map_carrier_status(status: str | None) -> CallStatus:
    """Map a carrier call status onto CallStatus (unknown -> completed)."""
    return CARRIER_STATUS_MAP.get((status or "").strip().lower(), CallStatus.COMPLETED)


def mask_phone_number(phone: str | None) -> str:
    """Mask a phone number, keeping only the last 4 digits."""
    if not phone or len(phone) < 4:
        return "****"
    return f"***-***-{phone[-4:]}"


@dataclass
class RoutingSnapshot:
    """Routing outcome as stored on a call record (numbers masked)."""

    routing_decision: str
    routed_to_number: str | None = None
    routed_to_name: str | None = None
    was_emergency: bool = False
    was_after_hours: bool = False


@dataclass
class CallRecord:
    """Persistent record of one inbound or outbound call."""

    tenant_id: str
    agent_config_id: str
    call_sid: str
    direction: CallDirection
    phone_number: str  # masked
    start_time: datetime
    status: CallStatus = CallStatus.IN_PROGRESS
    id: str | None = None
    caller_name: str | None = None
    end_time: datetime | None = None
    duration_secs: int | None = None
    disconnect_reason: str | None = None
    routing_decision: str | None = None
    routed_to_number: str | None = None
    routed_to_name: str | None = None
    was_emergency: bool = False
    was_after_hours: bool = False
    recording_url: str | None = None
    recording_sid: str | None = None
    recording_duration_secs: int | None = None
    callback_requested: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "agent_config_id": self.agent_config_id,
            "call_sid": self.call_sid,
            "direction": self.direction.value,
            "phone_number": self.phone_number,
            "caller_name": self.caller_name,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration_secs": self.duration_secs,
            "status": self.status.value,
            "disconnect_reason": self.disconnect_reason,
            "routing_decision": self.routing_decision,
            "routed_to_number": self.routed_to_number,
            "routed_to_name": self.routed_to_name,
            "was_emergency": self.was_emergency,
            "was_after_hours": self.was_after_hours,
            "recording_url": self.recording_url,
            "recording_sid": self.recording_sid,
            "recording_duration_secs": self.recording_duration_secs,
            "callback_requested": self.callback_requested,
        }
