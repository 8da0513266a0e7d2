"""Twilio voice webhook endpoints.

Twilio posts form-encoded call events here and executes the TwiML we
return. Every voice endpoint answers with ``application/xml``; the
status callback answers with plain text.

Security:
- Every endpoint validates the X-Twilio-Signature header
- See webhook_security.py for implementation details
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from call_router.core.logging import get_logger
from call_router.dependencies import VoiceServiceDep, verify_twilio_signature
from call_router.telephony.events import TwilioVoiceEvent

log = get_logger(__name__)

router = APIRouter(
    prefix="/webhooks/twilio",
    dependencies=[Depends(verify_twilio_signature)],
)

TWIML_MEDIA_TYPE = "application/xml"


def _twiml(content: str) -> Response:
    return Response(content=content, media_type=TWIML_MEDIA_TYPE)


async def _event(request: Request) -> TwilioVoiceEvent:
    form = await request.form()
    return TwilioVoiceEvent.from_form(form)


# =============================================================================
# Call entry points
# =============================================================================


@router.post("/voice/{agent_config_id}")
async def handle_incoming_call(
    agent_config_id: str,
    request: Request,
    service: VoiceServiceDep,
) -> Response:
    """Handle a new inbound call for an agent.

    Decides where the call goes and returns the TwiML for it.
    """
    event = await _event(request)
    log.info(
        "Twilio voice webhook",
        call_sid=event.call_sid,
        agent_config_id=agent_config_id,
        status=event.call_status,
    )
    return _twiml(await service.handle_incoming_call(event, agent_config_id))


@router.post("/outbound/{agent_config_id}")
async def handle_outbound_answer(
    agent_config_id: str,
    request: Request,
    service: VoiceServiceDep,
) -> Response:
    """Outbound call answered: connect the callee to the AI agent."""
    event = await _event(request)
    return _twiml(await service.handle_outbound_answer(event, agent_config_id))


@router.post("/status")
async def handle_call_status(request: Request, service: VoiceServiceDep) -> Response:
    """Call status callback; closes the call record on terminal states."""
    event = await _event(request)
    status = await service.handle_status(event)
    log.info(
        "Twilio status callback",
        call_sid=event.call_sid,
        carrier_status=event.call_status,
        status=status.value if status else None,
    )
    return Response(content="OK", media_type="text/plain")


# =============================================================================
# Menus and sub-flows
# =============================================================================


@router.post("/after-hours-menu")
async def handle_after_hours_menu(request: Request, service: VoiceServiceDep) -> Response:
    event = await _event(request)
    return _twiml(await service.handle_after_hours_menu(event))


@router.post("/transfer-menu/{agent_config_id}")
async def handle_transfer_menu(agent_config_id: str, service: VoiceServiceDep) -> Response:
    """Read out the agent's transfer targets and gather a choice."""
    return _twiml(await service.handle_transfer_menu(agent_config_id))


@router.post("/transfer-select/{agent_config_id}")
async def handle_transfer_select(
    agent_config_id: str,
    request: Request,
    service: VoiceServiceDep,
) -> Response:
    event = await _event(request)
    return _twiml(await service.handle_transfer_select(event, agent_config_id))


@router.post("/transfer/{agent_config_id}")
async def handle_transfer(
    agent_config_id: str,
    request: Request,
    service: VoiceServiceDep,
    role: str | None = None,
) -> Response:
    """Transfer a live call to staff, preferring ``role`` when given."""
    event = await _event(request)
    log.info(
        "Transfer requested",
        call_sid=event.call_sid,
        agent_config_id=agent_config_id,
        role=role,
    )
    return _twiml(await service.handle_transfer(event, agent_config_id, role))


@router.post("/dial-complete")
async def handle_dial_complete(request: Request, service: VoiceServiceDep) -> Response:
    event = await _event(request)
    return _twiml(await service.handle_dial_complete(event))


@router.post("/callback-confirm")
async def handle_callback_confirm(request: Request, service: VoiceServiceDep) -> Response:
    event = await _event(request)
    return _twiml(await service.handle_callback_confirm(event))


@router.api_route("/queue-wait", methods=["GET", "POST"])
async def handle_queue_wait(service: VoiceServiceDep) -> Response:
    """Hold music loop played to queued callers."""
    return _twiml(service.queue_wait())


# =============================================================================
# Recordings
# =============================================================================


@router.post("/recording-complete")
async def handle_recording_complete(request: Request, service: VoiceServiceDep) -> Response:
    event = await _event(request)
    log.info(
        "Recording complete",
        call_sid=event.call_sid,
        recording_sid=event.recording_sid,
        duration=event.recording_duration,
    )
    return _twiml(await service.handle_recording_complete(event))


@router.post("/recording-status")
async def handle_recording_status(request: Request, service: VoiceServiceDep) -> Response:
    """Asynchronous recording status callback."""
    event = await _event(request)
    await service.handle_recording_status(event)
    return Response(content="OK", media_type="text/plain")
