"""Call routing: business hours, emergency detection and decisions."""

from call_router.routing.models import (
    AgentRoutingConfig,
    AgentStatus,
    DaySchedule,
    Holiday,
    HoursStatus,
    LocalTime,
    OverflowAction,
    RoutingDecision,
    RoutingResult,
    RoutingStats,
    RoutingStatus,
    StatField,
    TransferTarget,
    WorkingHoursConfig,
)

__all__ = [
    "AgentRoutingConfig",
    "AgentStatus",
    "DaySchedule",
    "Holiday",
    "HoursStatus",
    "LocalTime",
    "OverflowAction",
    "RoutingDecision",
    "RoutingResult",
    "RoutingStats",
    "RoutingStatus",
    "StatField",
    "TransferTarget",
    "WorkingHoursConfig",
]
