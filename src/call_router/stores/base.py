"""Store interfaces consumed by the routing core.

The engine and lifecycle manager only talk to these interfaces; the
SQLAlchemy implementations live in ``call_router.db.stores``.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from call_router.calls.models import CallRecord, CallStatus, RoutingSnapshot
from call_router.routing.models import AgentRoutingConfig, StatField


class ConfigStore(ABC):
    """Access to per-agent routing configuration."""

    @abstractmethod
    async def get_agent_routing_config(self, agent_id: str) -> AgentRoutingConfig | None:
        """Load routing configuration for an agent.

        Returns:
            The configuration, or None if the agent does not exist
        """

    @abstractmethod
    async def update_routing_config(
        self,
        agent_id: str,
        tenant_id: str,
        patch: dict[str, Any],
    ) -> AgentRoutingConfig:
        """Apply an already-validated patch to an agent owned by ``tenant_id``.

        Keys are AgentRoutingConfig field names; fields not in the patch are
        left alone and an explicit None clears the field.

        Raises:
            AgentConfigNotFoundError: If no such agent exists for the tenant
        """

    @abstractmethod
    async def increment_stat(self, agent_id: str, field: StatField) -> None:
        """Atomically add 1 to ``field``.

        Any field other than TOTAL_CALLS_ROUTED also adds 1 to the total.
        Must be a single store-side increment, never read-modify-write.
        """


class CallRecordStore(ABC):
    """Access to persisted call records, keyed by carrier call id."""

    @abstractmethod
    async def create(self, record: CallRecord) -> CallRecord:
        """Insert a record, or return the existing one for the same call id."""

    @abstractmethod
    async def get_by_call_sid(self, call_sid: str) -> CallRecord | None:
        """Find a record by carrier call id."""

    @abstractmethod
    async def update_routing_snapshot(self, call_sid: str, snapshot: RoutingSnapshot) -> bool:
        """Store the routing outcome on a non-terminal record.

        A record keeps the first outcome stored on it; later calls
        leave it unchanged.

        Returns:
            True if a record was updated
        """

    @abstractmethod
    async def update_terminal_status(
        self,
        call_sid: str,
        status: CallStatus,
        *,
        end_time: datetime,
        duration_secs: int | None = None,
        disconnect_reason: str | None = None,
    ) -> bool:
        """Move an in-progress record to a terminal status.

        Returns:
            True if the transition happened, False if the record was
            missing or already terminal
        """

    @abstractmethod
    async def attach_recording(
        self,
        call_sid: str,
        recording_url: str,
        recording_sid: str,
        duration_secs: int | None = None,
    ) -> bool:
        """Attach a recording, allowed even after the call ended."""

    @abstractmethod
    async def mark_callback_requested(self, call_sid: str) -> bool:
        """Flag that the caller asked to be called back."""
