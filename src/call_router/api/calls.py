"""Call record endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from call_router.dependencies import CallLifecycleDep

router = APIRouter()


@router.get("/calls/{call_sid}")
async def get_call(call_sid: str, lifecycle: CallLifecycleDep) -> dict[str, Any]:
    """Get a call record by Twilio Call SID.

    Phone numbers in the record are masked.
    """
    record = await lifecycle.require(call_sid)
    return record.to_dict()
