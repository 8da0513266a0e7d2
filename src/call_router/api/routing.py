"""Routing configuration API for the dashboard.

Endpoints:
- GET  /agents/{agent_id}/routing           Current routing configuration
- PUT  /agents/{agent_id}/routing           Partial update (validated)
- GET  /agents/{agent_id}/routing/status    Where calls go right now
- GET  /routing/default-working-hours       Schedule template
- POST /agents/{agent_id}/calls/outbound    Place an outbound call

Request and response bodies use the dashboard's camelCase names.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Header, Query
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from call_router.core.logging import get_logger
from call_router.dependencies import DialerDep, RoutingConfigServiceDep, VoiceServiceDep
from call_router.routing.models import OverflowAction, TransferTarget, WorkingHoursConfig

log = get_logger(__name__)

router = APIRouter()

TENANT_HEADER = "X-Tenant-ID"


# =============================================================================
# Request Models
# =============================================================================


class CamelModel(BaseModel):
    """Accepts camelCase (dashboard) and snake_case field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TransferTargetBody(CamelModel):
    name: str
    number: str
    role: str
    priority: int = 100
    available: bool = True
    extension: str | None = None


class DayScheduleBody(CamelModel):
    enabled: bool = False
    open: str = "00:00"
    close: str = "00:00"
    lunch_start: str | None = None
    lunch_end: str | None = None


class HolidayBody(CamelModel):
    date: str
    name: str
    emergency_only: bool = False


class WorkingHoursBody(CamelModel):
    enabled: bool = False
    timezone: str
    schedule: dict[str, DayScheduleBody] = Field(default_factory=dict)
    holidays: list[HolidayBody] = Field(default_factory=list)


class RoutingConfigUpdate(CamelModel):
    """Partial routing update; only fields present in the body change.

    Sending ``null`` clears an optional field; fields that always hold
    a value reject it.
    """

    fallback_number: str | None = None
    after_hours_number: str | None = None
    emergency_number: str | None = None
    transfer_numbers: list[TransferTargetBody] | None = None
    working_hours: WorkingHoursBody | None = None
    call_queue_enabled: bool | None = None
    max_queue_size: int | None = Field(default=None, ge=1)
    max_queue_wait_seconds: int | None = Field(default=None, ge=0)
    overflow_action: OverflowAction | None = None
    overflow_number: str | None = None
    emergency_keywords: list[str] | None = None
    emergency_bypass: bool | None = None

    @field_validator(
        "transfer_numbers",
        "call_queue_enabled",
        "max_queue_size",
        "max_queue_wait_seconds",
        "emergency_keywords",
        "emergency_bypass",
    )
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        """Only the optional fields can be cleared."""
        if v is None:
            raise ValueError("cannot be null")
        return v

    def to_patch(self) -> dict[str, Any]:
        """Domain patch containing only the fields that were sent."""
        patch: dict[str, Any] = {}
        for name in self.model_fields_set:
            value = getattr(self, name)
            if name == "transfer_numbers" and value is not None:
                value = [TransferTarget.from_dict(t.model_dump()) for t in value]
            elif name == "working_hours" and value is not None:
                value = WorkingHoursConfig.from_dict(value.model_dump(by_alias=True))
            patch[name] = value
        return patch


class OutboundCallRequest(BaseModel):
    to: str = Field(..., description="Number to call in E.164 format")
    record: bool = False


# =============================================================================
# Routing Configuration Endpoints
# =============================================================================


@router.get("/agents/{agent_id}/routing")
async def get_routing_config(
    agent_id: str,
    service: RoutingConfigServiceDep,
) -> dict[str, Any]:
    """Get an agent's routing configuration."""
    return await service.get_routing_config(agent_id)


@router.put("/agents/{agent_id}/routing")
async def update_routing_config(
    agent_id: str,
    body: RoutingConfigUpdate,
    service: RoutingConfigServiceDep,
    tenant_id: str = Header(..., alias=TENANT_HEADER),
) -> dict[str, Any]:
    """Update an agent's routing configuration.

    Numbers must be E.164 and schedules well-formed; invalid values
    are rejected with 400 and nothing is written.
    """
    updated = await service.update_routing_config(agent_id, tenant_id, body.to_patch())
    return {"success": True, "agent": updated.to_dict()}


@router.get("/agents/{agent_id}/routing/status")
async def get_routing_status(
    agent_id: str,
    service: RoutingConfigServiceDep,
) -> dict[str, Any]:
    """Get where an agent's calls would be routed right now."""
    status = await service.get_routing_status(agent_id)
    return status.to_dict()


@router.get("/routing/default-working-hours")
async def get_default_working_hours(
    service: RoutingConfigServiceDep,
    timezone: str = Query("America/New_York"),
) -> dict[str, Any]:
    """Get the default dental office schedule."""
    return service.get_default_working_hours(timezone).to_dict()


# =============================================================================
# Outbound Calls
# =============================================================================


@router.post("/agents/{agent_id}/calls/outbound", status_code=201)
async def start_outbound_call(
    agent_id: str,
    body: OutboundCallRequest,
    service: VoiceServiceDep,
    dialer: DialerDep,
) -> dict[str, Any]:
    """Place an outbound call answered by the agent."""
    call = await service.start_outbound_call(dialer, agent_id, body.to, record=body.record)
    log.info("Outbound call started", agent_id=agent_id, call_sid=call.call_sid)
    return call.to_dict()
