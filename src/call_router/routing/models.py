"""Routing domain models.

Plain dataclasses for per-agent routing configuration and the
ephemeral results produced while routing a single call. Stored
configuration uses the camelCase JSON shape the dashboard writes
(``lunchStart``, ``emergencyOnly``, ...), so every model converts
to and from that shape explicitly.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


WEEKDAYS: tuple[str, ...] = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


class AgentStatus(str, Enum):
    """Activation state of a voice agent."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    PAUSED = "PAUSED"


class OverflowAction(str, Enum):
    """What to do with a call when the agent cannot take it."""

    VOICEMAIL = "voicemail"
    FORWARD = "forward"
    CALLBACK = "callback"


class RoutingDecision(str, Enum):
    """Where a call is sent."""

    AI_AGENT = "ai_agent"
    FORWARD_FALLBACK = "forward_fallback"
    FORWARD_EMERGENCY = "forward_emergency"
    FORWARD_AFTER_HOURS = "forward_after_hours"
    FORWARD_TRANSFER = "forward_transfer"
    VOICEMAIL = "voicemail"
    QUEUE = "queue"
    CALLBACK = "callback"


class StatField(str, Enum):
    """Routing statistics counters on an agent config."""

    TOTAL_CALLS_ROUTED = "total_calls_routed"
    EMERGENCY_CALLS_ROUTED = "emergency_calls_routed"
    FALLBACK_ROUTED_CALLS = "fallback_routed_calls"
    AFTER_HOURS_ROUTED_CALLS = "after_hours_routed_calls"


@dataclass
class TransferTarget:
    """A staff number a call can be transferred to."""

    name: str
    number: str
    role: str
    priority: int = 100  # lower = more urgent
    available: bool = True
    extension: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TransferTarget:
        """Build from stored JSON."""
        return cls(
            name=data.get("name", ""),
            number=data.get("number", ""),
            role=data.get("role", ""),
            priority=int(data.get("priority", 100)),
            available=bool(data.get("available", True)),
            extension=data.get("extension"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to stored JSON."""
        result: dict[str, Any] = {
            "name": self.name,
            "number": self.number,
            "role": self.role,
            "priority": self.priority,
            "available": self.available,
        }
        if self.extension:
            result["extension"] = self.extension
        return result


@dataclass
class DaySchedule:
    """Opening hours for one weekday (HH:MM, 24h, local time)."""

    enabled: bool
    open: str
    close: str
    lunch_start: str | None = None
    lunch_end: str | None = None

    @property
    def has_lunch(self) -> bool:
        return bool(self.lunch_start and self.lunch_end)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DaySchedule:
        return cls(
            enabled=bool(data.get("enabled", False)),
            open=data.get("open", "00:00"),
            close=data.get("close", "00:00"),
            lunch_start=data.get("lunchStart"),
            lunch_end=data.get("lunchEnd"),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "enabled": self.enabled,
            "open": self.open,
            "close": self.close,
        }
        if self.lunch_start:
            result["lunchStart"] = self.lunch_start
        if self.lunch_end:
            result["lunchEnd"] = self.lunch_end
        return result


@dataclass
class Holiday:
    """A closure date that overrides the weekly schedule."""

    date: str  # YYYY-MM-DD
    name: str
    emergency_only: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Holiday:
        return cls(
            date=data.get("date", ""),
            name=data.get("name", ""),
            emergency_only=bool(data.get("emergencyOnly", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "name": self.name,
            "emergencyOnly": self.emergency_only,
        }


@dataclass
class WorkingHoursConfig:
    """Weekly schedule, holidays and the zone they are expressed in."""

    enabled: bool
    timezone: str
    schedule: dict[str, DaySchedule] = field(default_factory=dict)
    holidays: list[Holiday] = field(default_factory=list)

    def day(self, weekday: str) -> DaySchedule | None:
        """Schedule for a weekday name (case-insensitive)."""
        return self.schedule.get(weekday.lower())

    def holiday_on(self, date: str) -> Holiday | None:
        """Holiday falling on a YYYY-MM-DD date, if any."""
        for holiday in self.holidays:
            if holiday.date == date:
                return holiday
        return None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WorkingHoursConfig:
        schedule = {
            day.lower(): DaySchedule.from_dict(value)
            for day, value in (data.get("schedule") or {}).items()
            if value is not None
        }
        return cls(
            enabled=bool(data.get("enabled", False)),
            timezone=data.get("timezone") or "",
            schedule=schedule,
            holidays=[Holiday.from_dict(h) for h in data.get("holidays") or []],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "timezone": self.timezone,
            "schedule": {day: s.to_dict() for day, s in self.schedule.items()},
            "holidays": [h.to_dict() for h in self.holidays],
        }


@dataclass
class RoutingStats:
    """Routing counters for one agent. Never decremented."""

    total_calls_routed: int = 0
    emergency_calls_routed: int = 0
    fallback_routed_calls: int = 0
    after_hours_routed_calls: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "totalCallsRouted": self.total_calls_routed,
            "emergencyCallsRouted": self.emergency_calls_routed,
            "fallbackRoutedCalls": self.fallback_routed_calls,
            "afterHoursRoutedCalls": self.after_hours_routed_calls,
        }


@dataclass
class AgentRoutingConfig:
    """Routing configuration of one voice-capable agent."""

    id: str
    tenant_id: str
    fallback_number: str | None = None
    after_hours_number: str | None = None
    emergency_number: str | None = None
    transfer_numbers: list[TransferTarget] = field(default_factory=list)
    working_hours: WorkingHoursConfig | None = None
    call_queue_enabled: bool = False
    max_queue_size: int = 5
    max_queue_wait_seconds: int = 300
    overflow_action: OverflowAction | None = None
    overflow_number: str | None = None
    emergency_keywords: list[str] = field(default_factory=list)
    emergency_bypass: bool = True
    is_active: bool = True
    status: AgentStatus = AgentStatus.ACTIVE
    stats: RoutingStats = field(default_factory=RoutingStats)

    @property
    def agent_active(self) -> bool:
        """Agent is switched on and in ACTIVE status."""
        return self.is_active and self.status == AgentStatus.ACTIVE

    def to_dict(self) -> dict[str, Any]:
        """Convert to the dashboard's camelCase JSON shape."""
        return {
            "fallbackNumber": self.fallback_number,
            "afterHoursNumber": self.after_hours_number,
            "emergencyNumber": self.emergency_number,
            "transferNumbers": [t.to_dict() for t in self.transfer_numbers],
            "workingHours": self.working_hours.to_dict() if self.working_hours else None,
            "callQueueEnabled": self.call_queue_enabled,
            "maxQueueSize": self.max_queue_size,
            "maxQueueWaitSeconds": self.max_queue_wait_seconds,
            "overflowAction": self.overflow_action.value if self.overflow_action else None,
            "overflowNumber": self.overflow_number,
            "emergencyKeywords": list(self.emergency_keywords),
            "emergencyBypass": self.emergency_bypass,
            "stats": self.stats.to_dict(),
        }


@dataclass
class LocalTime:
    """Wall-clock reading in a specific timezone."""

    date: str  # YYYY-MM-DD
    time: str  # HH:MM
    weekday: str  # monday..sunday
    timezone: str


@dataclass
class HoursStatus:
    """Result of evaluating business hours at one instant."""

    is_after_hours: bool
    is_holiday: bool = False
    is_lunch_break: bool = False
    reason: str = ""
    next_open_time: str | None = None
    next_close_time: str | None = None

    @property
    def current_mode(self) -> str:
        """Dashboard mode: holiday, lunch, closed or open."""
        if self.is_holiday:
            return "holiday"
        if self.is_lunch_break:
            return "lunch"
        if self.is_after_hours:
            return "closed"
        return "open"


@dataclass
class RoutingResult:
    """Outcome of one routing decision."""

    decision: RoutingDecision
    reason: str
    forward_to: str | None = None
    forward_to_name: str | None = None
    queue_position: int | None = None
    estimated_wait: int | None = None
    is_emergency: bool = False
    is_after_hours: bool = False
    is_holiday: bool = False
    is_lunch_break: bool = False
    agent_available: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "decision": self.decision.value,
            "reason": self.reason,
            "forward_to": self.forward_to,
            "forward_to_name": self.forward_to_name,
            "queue_position": self.queue_position,
            "estimated_wait": self.estimated_wait,
            "is_emergency": self.is_emergency,
            "is_after_hours": self.is_after_hours,
            "is_holiday": self.is_holiday,
            "is_lunch_break": self.is_lunch_break,
            "agent_available": self.agent_available,
            "metadata": self.metadata,
        }


@dataclass
class RoutingStatus:
    """Snapshot of where calls for an agent would currently go."""

    current_mode: str
    agent_active: bool
    current_time: str
    timezone: str
    routing_to: str
    routing_reason: str
    is_accepting_calls: bool
    next_open_time: str | None = None
    next_close_time: str | None = None
    calls_in_queue: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "current_mode": self.current_mode,
            "agent_active": self.agent_active,
            "current_time": self.current_time,
            "timezone": self.timezone,
            "next_open_time": self.next_open_time,
            "next_close_time": self.next_close_time,
            "calls_in_queue": self.calls_in_queue,
            "routing_to": self.routing_to,
            "routing_reason": self.routing_reason,
            "is_accepting_calls": self.is_accepting_calls,
        }
