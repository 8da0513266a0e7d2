"""Routing configuration management.

Reads and patches per-agent routing configuration. Everything written
goes through validation first, so invalid numbers or schedules are
rejected here and never reach a live call.
"""
from __future__ import annotations

from typing import Any

from call_router.core.logging import get_logger
from call_router.routing.business_hours import default_working_hours
from call_router.routing.emergency import DEFAULT_EMERGENCY_KEYWORDS
from call_router.routing.engine import RoutingEngine
from call_router.routing.models import AgentRoutingConfig, RoutingStatus, WorkingHoursConfig
from call_router.routing.validation import (
    validate_phone_number,
    validate_transfer_targets,
    validate_working_hours,
)
from call_router.stores.base import ConfigStore

log = get_logger(__name__)

PHONE_FIELDS: dict[str, str] = {
    "fallback_number": "fallbackNumber",
    "after_hours_number": "afterHoursNumber",
    "emergency_number": "emergencyNumber",
    "overflow_number": "overflowNumber",
}


class RoutingConfigService:
    """Read, validate and update agent routing configuration."""

    def __init__(self, store: ConfigStore, engine: RoutingEngine):
        self._store = store
        self._engine = engine

    async def get_routing_config(self, agent_id: str) -> dict[str, Any]:
        """Routing configuration with built-in keywords filled in.

        Raises:
            AgentConfigNotFoundError: If the agent does not exist
        """
        config = await self._engine.load_config(agent_id)
        data = config.to_dict()
        if not data["emergencyKeywords"]:
            data["emergencyKeywords"] = list(DEFAULT_EMERGENCY_KEYWORDS)
        return data

    def validate_patch(self, patch: dict[str, Any]) -> None:
        """Validate a routing patch.

        Raises:
            InvalidPhoneNumberError: For a non-E.164 number
            InvalidWorkingHoursError: For a malformed schedule
        """
        for field, label in PHONE_FIELDS.items():
            if patch.get(field):
                validate_phone_number(patch[field], label)

        if patch.get("transfer_numbers"):
            validate_transfer_targets(patch["transfer_numbers"])

        working_hours = patch.get("working_hours")
        if isinstance(working_hours, WorkingHoursConfig):
            validate_working_hours(working_hours)

    async def update_routing_config(
        self,
        agent_id: str,
        tenant_id: str,
        patch: dict[str, Any],
    ) -> AgentRoutingConfig:
        """Validate and apply a patch for an agent owned by ``tenant_id``.

        Args:
            agent_id: Agent to update
            tenant_id: Owning tenant; other tenants' agents are not found
            patch: AgentRoutingConfig field names to new values

        Returns:
            Updated configuration
        """
        self.validate_patch(patch)
        updated = await self._store.update_routing_config(agent_id, tenant_id, patch)
        log.info(
            "Updated routing config",
            agent_id=agent_id,
            tenant_id=tenant_id,
            fields=sorted(patch),
        )
        return updated

    async def get_routing_status(self, agent_id: str) -> RoutingStatus:
        """Current routing mode for the dashboard."""
        return await self._engine.get_routing_status(agent_id)

    @staticmethod
    def get_default_working_hours(timezone: str = "America/New_York") -> WorkingHoursConfig:
        """Default dental office schedule template."""
        return default_working_hours(timezone)
