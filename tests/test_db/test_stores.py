"""Tests for the SQLAlchemy config and call-record stores."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError

from call_router.calls.models import CallDirection, CallRecord, CallStatus, RoutingSnapshot
from call_router.core.exceptions import AgentConfigNotFoundError, DatabaseError
from call_router.routing.models import (
    AgentStatus,
    OverflowAction,
    StatField,
    TransferTarget,
    WorkingHoursConfig,
)

TENANT_ID = "tenant-1"
AGENT_ID = "agent-1"
FALLBACK_NUMBER = "+15555550111"
EMERGENCY_NUMBER = "+15555550100"


# ============================================================================
# Config Store Tests
# ============================================================================


class TestSqlConfigStore:
    """Tests for SqlConfigStore."""

    @pytest.mark.asyncio
    async def test_load_config(self, agent_row_factory, sql_config_store, weekday_hours):
        """Test loading a stored agent as routing config."""
        await agent_row_factory(working_hours=weekday_hours(), overflow_action="callback")

        config = await sql_config_store.get_agent_routing_config(AGENT_ID)

        assert config is not None
        assert config.tenant_id == TENANT_ID
        assert config.fallback_number == FALLBACK_NUMBER
        assert config.status is AgentStatus.ACTIVE
        assert config.overflow_action is OverflowAction.CALLBACK
        assert [t.name for t in config.transfer_numbers] == ["Dr. Smith", "Front Office"]
        assert config.working_hours.day("monday").lunch_start == "12:00"

    @pytest.mark.asyncio
    async def test_missing_agent(self, sql_config_store):
        """Test unknown agents load as None."""
        assert await sql_config_store.get_agent_routing_config("missing") is None

    @pytest.mark.asyncio
    async def test_unknown_status_loads_inactive(self, agent_row_factory, sql_config_store):
        await agent_row_factory(status="ARCHIVED")

        config = await sql_config_store.get_agent_routing_config(AGENT_ID)

        assert config.status is AgentStatus.INACTIVE
        assert config.agent_active is False

    @pytest.mark.asyncio
    async def test_increment_adds_to_total(self, agent_row_factory, sql_config_store):
        """Test a specific counter also bumps the total."""
        await agent_row_factory()

        await sql_config_store.increment_stat(AGENT_ID, StatField.EMERGENCY_CALLS_ROUTED)
        await sql_config_store.increment_stat(AGENT_ID, StatField.EMERGENCY_CALLS_ROUTED)
        await sql_config_store.increment_stat(AGENT_ID, StatField.TOTAL_CALLS_ROUTED)

        stats = (await sql_config_store.get_agent_routing_config(AGENT_ID)).stats
        assert stats.emergency_calls_routed == 2
        assert stats.total_calls_routed == 3
        assert stats.fallback_routed_calls == 0

    @pytest.mark.asyncio
    async def test_increment_missing_agent(self, sql_config_store):
        """Test incrementing an unknown agent is a no-op."""
        await sql_config_store.increment_stat("missing", StatField.TOTAL_CALLS_ROUTED)

    @pytest.mark.asyncio
    async def test_patch_only_touches_given_fields(self, agent_row_factory, sql_config_store):
        await agent_row_factory()

        updated = await sql_config_store.update_routing_config(
            AGENT_ID,
            TENANT_ID,
            {
                "after_hours_number": "+15555550122",
                "fallback_number": None,
                "overflow_action": OverflowAction.FORWARD,
            },
        )

        assert updated.after_hours_number == "+15555550122"
        assert updated.fallback_number is None
        assert updated.emergency_number == EMERGENCY_NUMBER
        assert updated.overflow_action is OverflowAction.FORWARD

    @pytest.mark.asyncio
    async def test_patch_structured_fields(self, agent_row_factory, sql_config_store, weekday_hours):
        await agent_row_factory()
        hours = WorkingHoursConfig.from_dict(weekday_hours(lunch=False))

        updated = await sql_config_store.update_routing_config(
            AGENT_ID,
            TENANT_ID,
            {
                "working_hours": hours,
                "transfer_numbers": [
                    TransferTarget(name="Billing", number="+15555550203", role="billing", extension="42"),
                ],
            },
        )

        assert updated.working_hours.day("tuesday").has_lunch is False
        assert len(updated.transfer_numbers) == 1
        assert updated.transfer_numbers[0].extension == "42"

    @pytest.mark.asyncio
    async def test_patch_ignores_counters(self, agent_row_factory, sql_config_store):
        """Test counters and identity cannot be patched."""
        await agent_row_factory()

        updated = await sql_config_store.update_routing_config(
            AGENT_ID,
            TENANT_ID,
            {"total_calls_routed": 99, "tenant_id": "other"},
        )

        assert updated.stats.total_calls_routed == 0
        assert updated.tenant_id == TENANT_ID

    @pytest.mark.asyncio
    async def test_patch_other_tenant(self, agent_row_factory, sql_config_store):
        await agent_row_factory()

        with pytest.raises(AgentConfigNotFoundError):
            await sql_config_store.update_routing_config(
                AGENT_ID, "tenant-2", {"fallback_number": None}
            )


# ============================================================================
# Call Record Store Tests
# ============================================================================


def record(call_sid: str = "CA200") -> CallRecord:
    return CallRecord(
        tenant_id=TENANT_ID,
        agent_config_id=AGENT_ID,
        call_sid=call_sid,
        direction=CallDirection.INBOUND,
        phone_number="***-***-1234",
        start_time=datetime.now(timezone.utc),
    )


class TestSqlCallRecordStore:
    """Tests for SqlCallRecordStore."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, sql_call_store):
        created = await sql_call_store.create(record())

        fetched = await sql_call_store.get_by_call_sid("CA200")

        assert fetched.id == created.id
        assert fetched.status is CallStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_duplicate_create_returns_existing(self, sql_call_store):
        """Test the same call id never creates a second record."""
        first = await sql_call_store.create(record())
        second = await sql_call_store.create(record())

        assert second.id == first.id

    @pytest.mark.asyncio
    async def test_terminal_transition_happens_once(self, sql_call_store):
        await sql_call_store.create(record())
        end = datetime.now(timezone.utc)

        assert await sql_call_store.update_terminal_status(
            "CA200", CallStatus.FAILED, end_time=end, disconnect_reason="failed"
        ) is True
        assert await sql_call_store.update_terminal_status(
            "CA200", CallStatus.COMPLETED, end_time=end
        ) is False

        fetched = await sql_call_store.get_by_call_sid("CA200")
        assert fetched.status is CallStatus.FAILED
        assert fetched.disconnect_reason == "failed"

    @pytest.mark.asyncio
    async def test_database_failure_raises_database_error(self, sql_call_store, monkeypatch):
        """Test SQLAlchemy errors surface as DatabaseError."""

        async def locked(call_sid):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(sql_call_store._repo, "get_by_call_sid", locked)

        with pytest.raises(DatabaseError) as exc_info:
            await sql_call_store.create(record())

        assert exc_info.value.status_code == 503
        assert isinstance(exc_info.value.cause, OperationalError)

    @pytest.mark.asyncio
    async def test_routing_snapshot_stored_once(self, sql_call_store):
        await sql_call_store.create(record())
        first = RoutingSnapshot(routing_decision="forward_emergency", was_emergency=True)
        second = RoutingSnapshot(routing_decision="forward_transfer", routed_to_name="Dr. Smith")

        assert await sql_call_store.update_routing_snapshot("CA200", first) is True
        assert await sql_call_store.update_routing_snapshot("CA200", second) is False

        fetched = await sql_call_store.get_by_call_sid("CA200")
        assert fetched.routing_decision == "forward_emergency"
        assert fetched.routed_to_name is None
        assert fetched.was_emergency is True
