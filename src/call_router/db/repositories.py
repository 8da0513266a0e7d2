"""Repository Pattern for the call router database.

Provides generic CRUD operations with async SQLAlchemy support plus
the two specialised repositories the stores are built on.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Generic, TypeVar

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from call_router.calls.models import CallStatus
from call_router.db.base import Base
from call_router.db.models import AgentConfigModel, CallRecordModel
from call_router.routing.models import StatField

# Type variable for model classes
ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Generic base repository with async CRUD operations.

    Usage:
        class AgentConfigRepository(BaseRepository[AgentConfigModel]):
            def __init__(self, session: AsyncSession):
                super().__init__(AgentConfigModel, session)
    """

    def __init__(self, model: type[ModelT], session: AsyncSession):
        """Initialize repository with model class and session.

        Args:
            model: SQLAlchemy model class
            session: Async database session
        """
        self._model = model
        self._session = session

    @property
    def session(self) -> AsyncSession:
        """Get the current database session."""
        return self._session

    # ========================================================================
    # Basic CRUD Operations
    # ========================================================================

    async def get(self, id: str) -> ModelT | None:
        """Get a single record by ID.

        Args:
            id: String primary key

        Returns:
            Model instance or None if not found
        """
        stmt = (
            select(self._model)
            .where(self._model.id == id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, obj_in: ModelT) -> ModelT:
        """Create a new record.

        Args:
            obj_in: Model instance to create

        Returns:
            Created model instance with generated ID
        """
        self._session.add(obj_in)
        await self._session.flush()
        await self._session.refresh(obj_in)
        return obj_in

    async def find_one(self, **filters: Any) -> ModelT | None:
        """Find a single record by arbitrary filters.

        Args:
            **filters: Column name to value mappings

        Returns:
            First matching model instance or None
        """
        stmt = select(self._model).execution_options(populate_existing=True)
        for field, value in filters.items():
            if hasattr(self._model, field):
                stmt = stmt.where(getattr(self._model, field) == value)

        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def bulk_update(
        self,
        filters: dict[str, Any],
        updates: dict[str, Any],
    ) -> int:
        """Update records matching filters in a single statement.

        Args:
            filters: Column name to value filter mappings
            updates: Column name to new value (or SQL expression) mappings

        Returns:
            Number of records updated
        """
        stmt = update(self._model)

        for field, value in filters.items():
            if hasattr(self._model, field):
                stmt = stmt.where(getattr(self._model, field) == value)

        stmt = stmt.values(**updates).execution_options(synchronize_session="fetch")
        result = await self._session.execute(stmt)
        await self._session.flush()
        return result.rowcount


class AgentConfigRepository(BaseRepository[AgentConfigModel]):
    """Repository for agent routing configuration."""

    def __init__(self, session: AsyncSession):
        super().__init__(AgentConfigModel, session)

    async def get_for_tenant(self, agent_id: str, tenant_id: str) -> AgentConfigModel | None:
        """Get an agent only if it belongs to ``tenant_id``."""
        return await self.find_one(id=agent_id, tenant_id=tenant_id)

    async def increment(self, agent_id: str, field: StatField) -> int:
        """Add 1 to a counter column, and to the total for any other counter.

        The increment happens in SQL (``x = x + 1``) so concurrent calls for
        the same agent never lose an update.

        Returns:
            Number of rows updated (0 if the agent does not exist)
        """
        column = getattr(AgentConfigModel, field.value)
        updates: dict[str, Any] = {field.value: column + 1}
        if field is not StatField.TOTAL_CALLS_ROUTED:
            updates[StatField.TOTAL_CALLS_ROUTED.value] = AgentConfigModel.total_calls_routed + 1
        return await self.bulk_update({"id": agent_id}, updates)


class CallRecordRepository(BaseRepository[CallRecordModel]):
    """Repository for call records, addressed by carrier call id."""

    def __init__(self, session: AsyncSession):
        super().__init__(CallRecordModel, session)

    async def get_by_call_sid(self, call_sid: str) -> CallRecordModel | None:
        """Find a call record by carrier call id."""
        return await self.find_one(call_sid=call_sid)

    async def update_if_in_progress(self, call_sid: str, updates: dict[str, Any]) -> int:
        """Update a record only while it is still in progress.

        The status guard is part of the UPDATE itself, so a terminal record
        can never be modified even by concurrent callbacks.

        Returns:
            Number of rows updated
        """
        return await self.bulk_update(
            {"call_sid": call_sid, "status": CallStatus.IN_PROGRESS.value},
            updates,
        )

    async def set_routing_snapshot(self, call_sid: str, snapshot: dict[str, Any]) -> int:
        """Store the routing outcome on an in-progress record that has none yet."""
        return await self.bulk_update(
            {
                "call_sid": call_sid,
                "status": CallStatus.IN_PROGRESS.value,
                "routing_decision": None,
            },
            snapshot,
        )

    async def close(
        self,
        call_sid: str,
        status: CallStatus,
        end_time: datetime,
        duration_secs: int | None,
        disconnect_reason: str | None,
    ) -> int:
        """Move an in-progress record to a terminal status."""
        return await self.update_if_in_progress(
            call_sid,
            {
                "status": status.value,
                "end_time": end_time,
                "duration_secs": duration_secs,
                "disconnect_reason": disconnect_reason,
            },
        )
