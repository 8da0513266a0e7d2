"""Tests for the call record lifecycle."""

from __future__ import annotations

import pytest

from call_router.calls.lifecycle import CallLifecycleManager, direction_from_carrier
from call_router.calls.models import CallDirection, CallStatus, map_carrier_status, mask_phone_number
from call_router.core.exceptions import CallRecordNotFoundError
from call_router.routing.models import RoutingDecision, RoutingResult

TENANT_ID = "tenant-1"
AGENT_ID = "agent-1"
EMERGENCY_NUMBER = "+15555550100"


@pytest.fixture
def lifecycle(sql_call_store):
    return CallLifecycleManager(sql_call_store)


async def open_call(lifecycle, call_sid: str = "CA100", from_number: str = "+15555551234"):
    return await lifecycle.open_call(
        tenant_id=TENANT_ID,
        agent_config_id=AGENT_ID,
        call_sid=call_sid,
        from_number=from_number,
    )


class TestHelpers:
    @pytest.mark.parametrize("phone,expected", [
        ("+15555551234", "***-***-1234"),
        ("1234", "***-***-1234"),
        ("123", "****"),
        (None, "****"),
    ])
    def test_mask_phone_number(self, phone, expected):
        assert mask_phone_number(phone) == expected

    @pytest.mark.parametrize("carrier,expected", [
        ("completed", CallStatus.COMPLETED),
        ("busy", CallStatus.COMPLETED),
        ("no-answer", CallStatus.NO_ANSWER),
        ("failed", CallStatus.FAILED),
        ("canceled", CallStatus.CANCELED),
        ("ringing", CallStatus.IN_PROGRESS),
        ("something-new", CallStatus.COMPLETED),
    ])
    def test_map_carrier_status(self, carrier, expected):
        assert map_carrier_status(carrier) is expected

    def test_direction_from_carrier(self):
        assert direction_from_carrier("outbound-api") is CallDirection.OUTBOUND
        assert direction_from_carrier("inbound") is CallDirection.INBOUND
        assert direction_from_carrier(None) is CallDirection.INBOUND


class TestOpenCall:
    @pytest.mark.asyncio
    async def test_caller_number_is_masked(self, lifecycle):
        record = await open_call(lifecycle)

        assert record.phone_number == "***-***-1234"
        assert record.status is CallStatus.IN_PROGRESS
        assert record.id is not None

    @pytest.mark.asyncio
    async def test_repeated_call_sid_returns_first_record(self, lifecycle):
        first = await open_call(lifecycle)
        second = await open_call(lifecycle, from_number="+15555559999")

        assert second.id == first.id
        assert second.phone_number == "***-***-1234"


class TestRoutingSnapshot:
    @pytest.mark.asyncio
    async def test_annotate_masks_forward_number(self, lifecycle):
        await open_call(lifecycle)
        result = RoutingResult(
            decision=RoutingDecision.FORWARD_EMERGENCY,
            reason="emergency",
            forward_to=EMERGENCY_NUMBER,
            forward_to_name="Emergency Line",
            is_emergency=True,
        )

        assert await lifecycle.annotate_routing("CA100", result) is True

        record = await lifecycle.require("CA100")
        assert record.routing_decision == "forward_emergency"
        assert record.routed_to_number == "***-***-0100"
        assert record.was_emergency is True

    @pytest.mark.asyncio
    async def test_first_outcome_is_kept(self, lifecycle):
        await open_call(lifecycle)
        emergency = RoutingResult(
            decision=RoutingDecision.FORWARD_EMERGENCY,
            reason="emergency",
            forward_to=EMERGENCY_NUMBER,
            is_emergency=True,
            is_after_hours=True,
        )
        transfer = RoutingResult(
            decision=RoutingDecision.FORWARD_TRANSFER,
            reason="transfer",
            forward_to="+15555550201",
            forward_to_name="Dr. Smith",
        )

        assert await lifecycle.annotate_routing("CA100", emergency) is True
        assert await lifecycle.annotate_routing("CA100", transfer) is False

        record = await lifecycle.require("CA100")
        assert record.routing_decision == "forward_emergency"
        assert record.routed_to_number == "***-***-0100"
        assert record.was_emergency is True
        assert record.was_after_hours is True

    @pytest.mark.asyncio
    async def test_annotate_unknown_call(self, lifecycle):
        result = RoutingResult(decision=RoutingDecision.AI_AGENT, reason="ai")
        assert await lifecycle.annotate_routing("CA-missing", result) is False


class TestStatusCallbacks:
    @pytest.mark.asyncio
    async def test_terminal_status_closes_record(self, lifecycle):
        await open_call(lifecycle)

        status = await lifecycle.apply_status("CA100", "completed", duration_secs=42)

        assert status is CallStatus.COMPLETED
        record = await lifecycle.require("CA100")
        assert record.status is CallStatus.COMPLETED
        assert record.duration_secs == 42
        assert record.end_time is not None

    @pytest.mark.asyncio
    async def test_non_terminal_status_ignored(self, lifecycle):
        await open_call(lifecycle)

        assert await lifecycle.apply_status("CA100", "ringing") is None
        assert (await lifecycle.require("CA100")).status is CallStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_terminal_record_is_not_modified(self, lifecycle):
        await open_call(lifecycle)
        await lifecycle.apply_status("CA100", "no-answer")

        assert await lifecycle.apply_status("CA100", "completed", duration_secs=10) is None

        result = RoutingResult(decision=RoutingDecision.AI_AGENT, reason="late")
        assert await lifecycle.annotate_routing("CA100", result) is False

        record = await lifecycle.require("CA100")
        assert record.status is CallStatus.NO_ANSWER
        assert record.duration_secs is None
        assert record.routing_decision is None

    @pytest.mark.asyncio
    async def test_status_for_unknown_call(self, lifecycle):
        assert await lifecycle.apply_status("CA-missing", "completed") is None


class TestRecordings:
    @pytest.mark.asyncio
    async def test_recording_after_call_ended(self, lifecycle):
        await open_call(lifecycle)
        await lifecycle.apply_status("CA100", "completed")

        attached = await lifecycle.attach_recording(
            "CA100", "https://api.twilio.com/rec/RE1", "RE1", duration_secs=15
        )

        assert attached is True
        record = await lifecycle.require("CA100")
        assert record.recording_sid == "RE1"
        assert record.recording_duration_secs == 15

    @pytest.mark.asyncio
    async def test_recording_for_unknown_call(self, lifecycle):
        assert await lifecycle.attach_recording("CA-missing", "https://x", "RE2") is False

    @pytest.mark.asyncio
    async def test_mark_callback_requested(self, lifecycle):
        await open_call(lifecycle)

        assert await lifecycle.mark_callback_requested("CA100") is True
        assert (await lifecycle.require("CA100")).callback_requested is True


class TestLookup:
    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, lifecycle):
        assert await lifecycle.get("CA-missing") is None

    @pytest.mark.asyncio
    async def test_require_missing_raises(self, lifecycle):
        with pytest.raises(CallRecordNotFoundError) as exc_info:
            await lifecycle.require("CA-missing")

        assert exc_info.value.status_code == 404
