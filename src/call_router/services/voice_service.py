"""Voice call handling.

Ties the pieces together for each Twilio webhook: open the call record,
decide the routing, store the routing snapshot and render TwiML. Every
request is self-contained; whatever a follow-up needs (agent, routing)
is read back from the stores by call id.

Voice webhooks always answer with TwiML. Failures are logged and turned
into the apology + hangup document instead of an HTTP error.
"""
from __future__ import annotations

import functools

from call_router.calls.lifecycle import CallLifecycleManager, direction_from_carrier
from call_router.calls.models import CallDirection, CallStatus
from call_router.core.exceptions import AgentConfigNotFoundError, CallRouterError
from call_router.core.logging import get_logger
from call_router.routing.engine import RoutingEngine
from call_router.routing.models import AgentRoutingConfig
from call_router.routing.validation import validate_phone_number
from call_router.stores.base import CallRecordStore, ConfigStore
from call_router.telephony.dialer import OutboundCall, TwilioDialer
from call_router.telephony.events import TwilioVoiceEvent
from call_router.telephony.twiml import (
    MSG_NOT_CONFIGURED,
    MSG_TECHNICAL_DIFFICULTIES,
    CallContext,
    TwiMLGenerator,
)

log = get_logger(__name__)


def answers_twiml(handler):
    """Return the apology + hangup TwiML when a voice handler fails."""

    @functools.wraps(handler)
    async def wrapper(self, *args, **kwargs):
        try:
            return await handler(self, *args, **kwargs)
        except CallRouterError as e:
            log.error("Voice webhook failed", handler=handler.__name__, error=str(e))
        except Exception:
            log.exception("Unexpected voice webhook failure", handler=handler.__name__)
        return self._generator.hangup(MSG_TECHNICAL_DIFFICULTIES)

    return wrapper


class VoiceCallService:
    """Handle Twilio voice webhooks for routed calls.

    Usage:
        service = VoiceCallService(config_store, call_store, TwiMLGenerator())
        twiml = await service.handle_incoming_call(event, agent_config_id)
    """

    def __init__(
        self,
        config_store: ConfigStore,
        call_store: CallRecordStore,
        generator: TwiMLGenerator,
        engine: RoutingEngine | None = None,
        lifecycle: CallLifecycleManager | None = None,
    ):
        """Initialize voice call service.

        Args:
            config_store: Agent configuration store
            call_store: Call record store
            generator: TwiML generator
            engine: Routing engine (built on config_store if omitted)
            lifecycle: Call lifecycle manager (built on call_store if omitted)
        """
        self._configs = config_store
        self._generator = generator
        self._engine = engine or RoutingEngine(config_store)
        self._lifecycle = lifecycle or CallLifecycleManager(call_store)

    @property
    def engine(self) -> RoutingEngine:
        return self._engine

    @property
    def lifecycle(self) -> CallLifecycleManager:
        return self._lifecycle

    # ========================================================================
    # Inbound calls
    # ========================================================================

    @answers_twiml
    async def handle_incoming_call(self, event: TwilioVoiceEvent, agent_config_id: str) -> str:
        """Route a new inbound call and return its TwiML."""
        log.info(
            "Incoming call",
            call_sid=event.call_sid,
            agent_config_id=agent_config_id,
        )

        try:
            config = await self._engine.load_config(agent_config_id)
        except AgentConfigNotFoundError:
            log.warning("Call for unknown agent", call_sid=event.call_sid, agent_config_id=agent_config_id)
            return self._generator.hangup(MSG_NOT_CONFIGURED)

        await self._lifecycle.open_call(
            tenant_id=config.tenant_id,
            agent_config_id=config.id,
            call_sid=event.call_sid,
            from_number=event.from_number,
            direction=direction_from_carrier(event.direction),
            caller_name=event.caller_name,
        )
        result = await self._engine.decide(config, event.speech_result)
        await self._lifecycle.annotate_routing(event.call_sid, result)

        return self._generator.render(result, self._context(event, config.id))

    @answers_twiml
    async def handle_outbound_answer(self, event: TwilioVoiceEvent, agent_config_id: str) -> str:
        """TwiML for an outbound call once the callee answers: hand over to the AI agent."""
        return self._generator.ai_agent(self._context(event, agent_config_id, outbound=True))

    # ========================================================================
    # Menus
    # ========================================================================

    @answers_twiml
    async def handle_after_hours_menu(self, event: TwilioVoiceEvent) -> str:
        """After-hours menu digit; the agent is found through the call record."""
        config = await self._config_for_call(event.call_sid)
        log.info(
            "After-hours menu selection",
            call_sid=event.call_sid,
            digits=event.digits,
        )
        emergency_number = config.emergency_number if config else None
        return self._generator.after_hours_menu(event.digits, emergency_number)

    @answers_twiml
    async def handle_transfer_menu(self, agent_config_id: str) -> str:
        """Numbered transfer menu for an agent's team."""
        config = await self._configs.get_agent_routing_config(agent_config_id)
        targets = config.transfer_numbers if config else []
        return self._generator.transfer_menu(agent_config_id, targets)

    @answers_twiml
    async def handle_transfer_select(self, event: TwilioVoiceEvent, agent_config_id: str) -> str:
        """Bridge to the transfer target picked from the menu."""
        config = await self._configs.get_agent_routing_config(agent_config_id)
        log.info(
            "Transfer selection",
            call_sid=event.call_sid,
            agent_config_id=agent_config_id,
            digits=event.digits,
        )
        targets = config.transfer_numbers if config else []
        return self._generator.transfer_select(event.digits, targets)

    @answers_twiml
    async def handle_transfer(
        self,
        event: TwilioVoiceEvent,
        agent_config_id: str,
        preferred_role: str | None = None,
    ) -> str:
        """Hand a live call to the best available staff member.

        Used when the AI agent redirects the call to a human, optionally
        asking for a role ("dentist", "billing", ...).
        """
        try:
            config = await self._engine.load_config(agent_config_id)
        except AgentConfigNotFoundError:
            return self._generator.hangup(MSG_NOT_CONFIGURED)

        result = await self._engine.route_to_transfer(config, preferred_role)
        await self._lifecycle.annotate_routing(event.call_sid, result)
        return self._generator.render(result, self._context(event, config.id))

    @answers_twiml
    async def handle_dial_complete(self, event: TwilioVoiceEvent) -> str:
        """Bridge finished; take a message if it never connected."""
        log.info(
            "Dial complete",
            call_sid=event.call_sid,
            dial_status=event.dial_call_status,
        )
        return self._generator.dial_complete(event.dial_call_status)

    @answers_twiml
    async def handle_callback_confirm(self, event: TwilioVoiceEvent) -> str:
        """Callback offer answered: 1 books a callback, anything else holds."""
        if (event.digits or "").strip() == "1":
            await self._lifecycle.mark_callback_requested(event.call_sid)
            log.info("Callback requested", call_sid=event.call_sid)
        return self._generator.callback_confirm(event.digits)

    def queue_wait(self) -> str:
        return self._generator.queue_wait()

    # ========================================================================
    # Status and recordings
    # ========================================================================

    async def handle_status(self, event: TwilioVoiceEvent) -> CallStatus | None:
        """Apply a call status callback to the call record."""
        return await self._lifecycle.apply_status(
            event.call_sid,
            event.call_status,
            event.call_duration,
        )

    @answers_twiml
    async def handle_recording_complete(self, event: TwilioVoiceEvent) -> str:
        """Recording action callback: store the recording and say goodbye."""
        if event.recording_url and event.recording_sid:
            await self._lifecycle.attach_recording(
                event.call_sid,
                event.recording_url,
                event.recording_sid,
                event.recording_duration,
            )
        return self._generator.recording_complete()

    async def handle_recording_status(self, event: TwilioVoiceEvent) -> bool:
        """Asynchronous recording status; only completed recordings are stored."""
        if event.recording_status != "completed" or not event.recording_url:
            return False
        return await self._lifecycle.attach_recording(
            event.call_sid,
            event.recording_url,
            event.recording_sid or "",
            event.recording_duration,
        )

    # ========================================================================
    # Outbound calls
    # ========================================================================

    async def start_outbound_call(
        self,
        dialer: TwilioDialer,
        agent_config_id: str,
        to: str,
        *,
        record: bool = False,
    ) -> OutboundCall:
        """Place an outbound call for an agent and open its call record.

        Raises:
            InvalidPhoneNumberError: If ``to`` is not E.164
            AgentConfigNotFoundError: If the agent does not exist
            DialerNotConfiguredError: If Twilio is not configured
            DialerError: If Twilio rejects the call
        """
        validate_phone_number(to, "to")
        config = await self._engine.load_config(agent_config_id)

        call = await dialer.initiate_call(to, config.id, record=record)
        await self._lifecycle.open_call(
            tenant_id=config.tenant_id,
            agent_config_id=config.id,
            call_sid=call.call_sid,
            from_number=to,
            direction=CallDirection.OUTBOUND,
        )
        return call

    # ========================================================================
    # Helpers
    # ========================================================================

    def _context(
        self,
        event: TwilioVoiceEvent,
        agent_config_id: str,
        outbound: bool = False,
    ) -> CallContext:
        return CallContext(
            call_sid=event.call_sid,
            # On outbound calls the practice is "From"; the other party is "To"
            from_number=event.to_number if outbound else event.from_number,
            agent_config_id=agent_config_id,
        )

    async def _config_for_call(self, call_sid: str) -> AgentRoutingConfig | None:
        record = await self._lifecycle.get(call_sid)
        if record is None:
            log.warning("Follow-up for unknown call", call_sid=call_sid)
            return None
        return await self._configs.get_agent_routing_config(record.agent_config_id)
