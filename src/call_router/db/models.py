"""ORM models for agent routing configuration and call records."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.types import JSON
from sqlalchemy.orm import Mapped, mapped_column

from call_router.calls.models import CallDirection, CallRecord, CallStatus
from call_router.db.base import Base, TimestampMixin, UUIDMixin
from call_router.routing.models import (
    AgentRoutingConfig,
    AgentStatus,
    OverflowAction,
    RoutingStats,
    TransferTarget,
    WorkingHoursConfig,
)


class AgentConfigModel(Base, UUIDMixin, TimestampMixin):
    """Voice agent configuration ORM model.

    Only the routing-relevant columns are modelled here; the rest of the
    agent definition belongs to agent management.
    """

    __tablename__ = "agent_configs"

    tenant_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    # Activation state
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=AgentStatus.ACTIVE.value,
        nullable=False,
        comment="ACTIVE, INACTIVE or PAUSED",
    )

    # Forwarding numbers (E.164)
    fallback_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    after_hours_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    emergency_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    transfer_numbers: Mapped[list[Any]] = mapped_column(JSON, default=list, nullable=False)

    working_hours: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    # Queue / overflow
    call_queue_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    max_queue_size: Mapped[int] = mapped_column(Integer, default=5, nullable=False)
    max_queue_wait_seconds: Mapped[int] = mapped_column(Integer, default=300, nullable=False)
    overflow_action: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
        comment="voicemail, forward or callback",
    )
    overflow_number: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Emergency handling
    emergency_keywords: Mapped[list[Any]] = mapped_column(JSON, default=list, nullable=False)
    emergency_bypass: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Routing counters, only ever incremented in place
    total_calls_routed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    emergency_calls_routed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    fallback_routed_calls: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    after_hours_routed_calls: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def to_domain(self) -> AgentRoutingConfig:
        """Convert to the routing domain model."""
        try:
            status = AgentStatus(self.status)
        except ValueError:
            status = AgentStatus.INACTIVE
        try:
            overflow = OverflowAction(self.overflow_action) if self.overflow_action else None
        except ValueError:
            overflow = None

        return AgentRoutingConfig(
            id=self.id,
            tenant_id=self.tenant_id,
            fallback_number=self.fallback_number,
            after_hours_number=self.after_hours_number,
            emergency_number=self.emergency_number,
            transfer_numbers=[TransferTarget.from_dict(t) for t in self.transfer_numbers or []],
            working_hours=(
                WorkingHoursConfig.from_dict(self.working_hours) if self.working_hours else None
            ),
            call_queue_enabled=self.call_queue_enabled,
            max_queue_size=self.max_queue_size,
            max_queue_wait_seconds=self.max_queue_wait_seconds,
            overflow_action=overflow,
            overflow_number=self.overflow_number,
            emergency_keywords=list(self.emergency_keywords or []),
            emergency_bypass=self.emergency_bypass,
            is_active=self.is_active,
            status=status,
            stats=RoutingStats(
                total_calls_routed=self.total_calls_routed,
                emergency_calls_routed=self.emergency_calls_routed,
                fallback_routed_calls=self.fallback_routed_calls,
                after_hours_routed_calls=self.after_hours_routed_calls,
            ),
        )


class CallRecordModel(Base, UUIDMixin, TimestampMixin):
    """Call record ORM model.

    One row per carrier call. Caller and routed-to numbers are stored
    masked; the full caller number is never persisted.
    """

    __tablename__ = "call_records"

    tenant_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    agent_config_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    call_sid: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        comment="Carrier-assigned call id",
    )
    direction: Mapped[str] = mapped_column(String(20), nullable=False)
    phone_number: Mapped[str] = mapped_column(String(20), nullable=False)
    caller_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    # Lifecycle
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    duration_secs: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        index=True,
        default=CallStatus.IN_PROGRESS.value,
        comment="in_progress, completed, failed, no_answer, canceled",
    )
    disconnect_reason: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Routing snapshot
    routing_decision: Mapped[str | None] = mapped_column(String(30), nullable=True)
    routed_to_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    routed_to_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    was_emergency: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    was_after_hours: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Recording
    recording_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    recording_sid: Mapped[str | None] = mapped_column(String(64), nullable=True)
    recording_duration_secs: Mapped[int | None] = mapped_column(Integer, nullable=True)

    callback_requested: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        Index("ix_call_records_tenant_start", "tenant_id", "start_time"),
    )

    @classmethod
    def from_domain(cls, record: CallRecord) -> CallRecordModel:
        """Build a new row from a domain record."""
        model = cls(
            tenant_id=record.tenant_id,
            agent_config_id=record.agent_config_id,
            call_sid=record.call_sid,
            direction=record.direction.value,
            phone_number=record.phone_number,
            caller_name=record.caller_name,
            start_time=record.start_time,
            status=record.status.value,
            routing_decision=record.routing_decision,
            routed_to_number=record.routed_to_number,
            routed_to_name=record.routed_to_name,
            was_emergency=record.was_emergency,
            was_after_hours=record.was_after_hours,
            callback_requested=record.callback_requested,
        )
        if record.id:
            model.id = record.id
        return model

    def to_domain(self) -> CallRecord:
        """Convert to the call domain model."""
        return CallRecord(
            id=self.id,
            tenant_id=self.tenant_id,
            agent_config_id=self.agent_config_id,
            call_sid=self.call_sid,
            direction=CallDirection(self.direction),
            phone_number=self.phone_number,
            caller_name=self.caller_name,
            start_time=self.start_time,
            end_time=self.end_time,
            duration_secs=self.duration_secs,
            status=CallStatus(self.status),
            disconnect_reason=self.disconnect_reason,
            routing_decision=self.routing_decision,
            routed_to_number=self.routed_to_number,
            routed_to_name=self.routed_to_name,
            was_emergency=self.was_emergency,
            was_after_hours=self.was_after_hours,
            recording_url=self.recording_url,
            recording_sid=self.recording_sid,
            recording_duration_secs=self.recording_duration_secs,
            callback_requested=self.callback_requested,
        )
