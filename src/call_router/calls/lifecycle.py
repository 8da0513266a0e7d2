"""Call record lifecycle.

State machine per call::

    (none) -> in_progress -> completed | failed | no_answer | canceled

Records are created once per carrier call id, annotated once with the
routing outcome and closed by the carrier's status callback. A terminal
record is never modified again, except that a recording may still be
attached after the call has ended.
"""
from __future__ import annotations

from datetime import datetime, timezone

from call_router.calls.models import (
    CallDirection,
    CallRecord,
    CallStatus,
    RoutingSnapshot,
    map_carrier_status,
    mask_phone_number,
)
from call_router.core.exceptions import CallRecordNotFoundError
from call_router.core.logging import get_logger
from call_router.routing.models import RoutingResult
from call_router.stores.base import CallRecordStore

log = get_logger(__name__)


def direction_from_carrier(direction: str | None) -> CallDirection:
    """Twilio reports ``inbound``, ``outbound-api`` or ``outbound-dial``."""
    if direction and direction.startswith("outbound"):
        return CallDirection.OUTBOUND
    return CallDirection.INBOUND


class CallLifecycleManager:
    """Create, annotate and close call records."""

    def __init__(self, store: CallRecordStore):
        self._store = store

    async def open_call(
        self,
        *,
        tenant_id: str,
        agent_config_id: str,
        call_sid: str,
        from_number: str | None,
        direction: CallDirection = CallDirection.INBOUND,
        caller_name: str | None = None,
    ) -> CallRecord:
        """Create the record for a new call, or return the existing one.

        Twilio may deliver the same webhook more than once; a repeated
        call id returns the record created the first time.
        """
        record = CallRecord(
            tenant_id=tenant_id,
            agent_config_id=agent_config_id,
            call_sid=call_sid,
            direction=direction,
            phone_number=mask_phone_number(from_number),
            caller_name=caller_name,
            start_time=datetime.now(timezone.utc),
        )
        created = await self._store.create(record)
        log.info(
            "Call record opened",
            call_sid=call_sid,
            agent_config_id=agent_config_id,
            direction=direction.value,
            caller=record.phone_number,
        )
        return created

    async def annotate_routing(self, call_sid: str, result: RoutingResult) -> bool:
        """Store the routing outcome on an open record (numbers masked)."""
        snapshot = RoutingSnapshot(
            routing_decision=result.decision.value,
            routed_to_number=mask_phone_number(result.forward_to) if result.forward_to else None,
            routed_to_name=result.forward_to_name,
            was_emergency=result.is_emergency,
            was_after_hours=result.is_after_hours,
        )
        updated = await self._store.update_routing_snapshot(call_sid, snapshot)
        if not updated:
            log.info(
                "Routing snapshot not stored",
                call_sid=call_sid,
                decision=snapshot.routing_decision,
            )
        return updated

    async def apply_status(
        self,
        call_sid: str,
        carrier_status: str | None,
        duration_secs: int | None = None,
    ) -> CallStatus | None:
        """Apply a carrier status callback.

        Args:
            call_sid: Carrier call id
            carrier_status: Twilio CallStatus value
            duration_secs: Twilio CallDuration, if reported

        Returns:
            The terminal status applied, or None when the status was not
            terminal or the record was missing or already closed
        """
        status = map_carrier_status(carrier_status)
        if not status.is_terminal:
            log.debug("Non-terminal call status ignored", call_sid=call_sid, status=carrier_status)
            return None

        closed = await self._store.update_terminal_status(
            call_sid,
            status,
            end_time=datetime.now(timezone.utc),
            duration_secs=duration_secs,
            disconnect_reason=carrier_status,
        )
        if not closed:
            log.info(
                "Status callback ignored, record missing or already terminal",
                call_sid=call_sid,
                status=carrier_status,
            )
            return None

        log.info("Call record closed", call_sid=call_sid, status=status.value, duration=duration_secs)
        return status

    async def attach_recording(
        self,
        call_sid: str,
        recording_url: str,
        recording_sid: str,
        duration_secs: int | None = None,
    ) -> bool:
        """Attach a recording; allowed after the call has ended."""
        attached = await self._store.attach_recording(
            call_sid, recording_url, recording_sid, duration_secs
        )
        if attached:
            log.info("Recording attached", call_sid=call_sid, recording_sid=recording_sid)
        else:
            log.warning("Recording for unknown call", call_sid=call_sid, recording_sid=recording_sid)
        return attached

    async def mark_callback_requested(self, call_sid: str) -> bool:
        """Flag the call as waiting for a callback."""
        return await self._store.mark_callback_requested(call_sid)

    async def get(self, call_sid: str) -> CallRecord | None:
        """Look up a record by carrier call id."""
        return await self._store.get_by_call_sid(call_sid)

    async def require(self, call_sid: str) -> CallRecord:
        """Look up a record that must exist.

        Raises:
            CallRecordNotFoundError: If no record has this call id
        """
        record = await self._store.get_by_call_sid(call_sid)
        if record is None:
            raise CallRecordNotFoundError(
                f"Call not found: {call_sid}",
                details={"call_sid": call_sid},
            )
        return record
