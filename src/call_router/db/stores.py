"""SQLAlchemy implementations of the config and call-record stores."""
from __future__ import annotations

import functools
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from call_router.calls.models import CallRecord, CallStatus, RoutingSnapshot
from call_router.core.exceptions import AgentConfigNotFoundError, DatabaseError, wrap_exception
from call_router.core.logging import get_logger
from call_router.db.models import CallRecordModel
from call_router.db.repositories import AgentConfigRepository, CallRecordRepository
from call_router.routing.models import (
    AgentRoutingConfig,
    StatField,
    TransferTarget,
    WorkingHoursConfig,
)
from call_router.stores.base import CallRecordStore, ConfigStore

log = get_logger(__name__)

# Columns a routing-config patch may touch
PATCHABLE_FIELDS = frozenset({
    "fallback_number",
    "after_hours_number",
    "emergency_number",
    "transfer_numbers",
    "working_hours",
    "call_queue_enabled",
    "max_queue_size",
    "max_queue_wait_seconds",
    "overflow_action",
    "overflow_number",
    "emergency_keywords",
    "emergency_bypass",
})


def _to_column_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, WorkingHoursConfig):
        return value.to_dict()
    if isinstance(value, list):
        return [v.to_dict() if isinstance(v, TransferTarget) else v for v in value]
    return value


def database_errors(method):
    """Raise SQLAlchemy failures from a store method as DatabaseError.

    The session is rolled back first so the request can still finish
    (and commit nothing) after the failure.
    """

    @functools.wraps(method)
    async def wrapper(self, *args, **kwargs):
        try:
            return await method(self, *args, **kwargs)
        except SQLAlchemyError as e:
            log.error("Database operation failed", operation=method.__qualname__, error=str(e))
            await self._repo.session.rollback()
            raise wrap_exception(
                e,
                DatabaseError,
                f"Database operation failed: {method.__name__}",
            ) from e

    return wrapper


class SqlConfigStore(ConfigStore):
    """ConfigStore backed by the ``agent_configs`` table."""

    def __init__(self, session: AsyncSession):
        self._repo = AgentConfigRepository(session)

    @database_errors
    async def get_agent_routing_config(self, agent_id: str) -> AgentRoutingConfig | None:
        model = await self._repo.get(agent_id)
        return model.to_domain() if model else None

    @database_errors
    async def update_routing_config(
        self,
        agent_id: str,
        tenant_id: str,
        patch: dict[str, Any],
    ) -> AgentRoutingConfig:
        model = await self._repo.get_for_tenant(agent_id, tenant_id)
        if model is None:
            raise AgentConfigNotFoundError(
                f"Agent configuration not found: {agent_id}",
                details={"agent_id": agent_id},
            )

        for field, value in patch.items():
            if field in PATCHABLE_FIELDS:
                setattr(model, field, _to_column_value(value))

        await self._repo.session.flush()
        await self._repo.session.refresh(model)
        return model.to_domain()

    @database_errors
    async def increment_stat(self, agent_id: str, field: StatField) -> None:
        updated = await self._repo.increment(agent_id, field)
        if not updated:
            log.warning("Routing stat not incremented, agent missing", agent_id=agent_id, field=field.value)


class SqlCallRecordStore(CallRecordStore):
    """CallRecordStore backed by the ``call_records`` table."""

    def __init__(self, session: AsyncSession):
        self._repo = CallRecordRepository(session)

    @database_errors
    async def create(self, record: CallRecord) -> CallRecord:
        existing = await self._repo.get_by_call_sid(record.call_sid)
        if existing is not None:
            return existing.to_domain()

        # Savepoint so a duplicate from a concurrent delivery only rolls
        # back this insert
        try:
            async with self._repo.session.begin_nested():
                model = await self._repo.create(CallRecordModel.from_domain(record))
        except IntegrityError as e:
            existing = await self._repo.get_by_call_sid(record.call_sid)
            if existing is None:
                raise DatabaseError(
                    f"Failed to create call record {record.call_sid}",
                    cause=e,
                ) from e
            return existing.to_domain()

        return model.to_domain()

    @database_errors
    async def get_by_call_sid(self, call_sid: str) -> CallRecord | None:
        model = await self._repo.get_by_call_sid(call_sid)
        return model.to_domain() if model else None

    @database_errors
    async def update_routing_snapshot(self, call_sid: str, snapshot: RoutingSnapshot) -> bool:
        updated = await self._repo.set_routing_snapshot(
            call_sid,
            {
                "routing_decision": snapshot.routing_decision,
                "routed_to_number": snapshot.routed_to_number,
                "routed_to_name": snapshot.routed_to_name,
                "was_emergency": snapshot.was_emergency,
                "was_after_hours": snapshot.was_after_hours,
            },
        )
        return updated > 0

    @database_errors
    async def update_terminal_status(
        self,
        call_sid: str,
        status: CallStatus,
        *,
        end_time: datetime,
        duration_secs: int | None = None,
        disconnect_reason: str | None = None,
    ) -> bool:
        updated = await self._repo.close(
            call_sid,
            status,
            end_time=end_time,
            duration_secs=duration_secs,
            disconnect_reason=disconnect_reason,
        )
        return updated > 0

    @database_errors
    async def attach_recording(
        self,
        call_sid: str,
        recording_url: str,
        recording_sid: str,
        duration_secs: int | None = None,
    ) -> bool:
        updates: dict[str, Any] = {
            "recording_url": recording_url,
            "recording_sid": recording_sid,
        }
        if duration_secs is not None:
            updates["recording_duration_secs"] = duration_secs
        updated = await self._repo.bulk_update({"call_sid": call_sid}, updates)
        return updated > 0

    @database_errors
    async def mark_callback_requested(self, call_sid: str) -> bool:
        updated = await self._repo.bulk_update(
            {"call_sid": call_sid},
            {"callback_requested": True},
        )
        return updated > 0
