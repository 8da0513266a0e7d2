"""Call records and their lifecycle."""

from call_router.calls.models import (
    CallDirection,
    CallRecord,
    CallStatus,
    RoutingSnapshot,
    map_carrier_status,
    mask_phone_number,
)

__all__ = [
    "CallDirection",
    "CallRecord",
    "CallStatus",
    "RoutingSnapshot",
    "map_carrier_status",
    "mask_phone_number",
]
