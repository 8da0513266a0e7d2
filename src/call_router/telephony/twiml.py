"""TwiML generation for routed calls.

Turns a RoutingResult (and the follow-up menu events) into the TwiML
document Twilio executes. Documents are built with the twilio library's
VoiceResponse so attribute values are always escaped and well formed.

Rendering never raises on missing optional data: a missing forward
number skips the bridge and goes straight to the recording prompt, and
a missing callback or stream endpoint degrades to an apology + hangup.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from twilio.twiml.voice_response import VoiceResponse

from call_router.config import RoutingSettings, TwilioSettings, get_settings
from call_router.core.logging import get_logger
from call_router.routing.models import RoutingDecision, RoutingResult, TransferTarget

log = get_logger(__name__)


# ============================================================================
# Spoken messages
# ============================================================================

MSG_UNAVAILABLE = "We are unable to take your call at this time. Please try again later."
MSG_TECHNICAL_DIFFICULTIES = "We're experiencing technical difficulties. Please try again later."
MSG_NOT_CONFIGURED = "We're sorry, this number is not configured. Please try again later."
MSG_AI_GREETING = "Thank you for calling. I'm connecting you with our AI assistant."
MSG_EMERGENCY_CONNECT = "This is an emergency call. Connecting you now."
MSG_EMERGENCY_LINE = "Connecting you to our emergency line now."
MSG_HOLD_CONNECT = "Please hold while we connect your call."
MSG_DIAL_FAILED = "We were unable to connect your call. Please leave a message after the beep."
MSG_OFFICE_CLOSED = "Thank you for calling. Our office is currently closed."
MSG_AFTER_HOURS_MENU = (
    "If this is a dental emergency, press 1 to be connected to our emergency line. "
    "Otherwise, press 2 to leave a message."
)
MSG_NO_SELECTION_RECORD = "We did not receive your selection. Please leave a message after the beep."
MSG_LEAVE_MESSAGE = (
    "Please leave a message after the beep, and we will return your call as soon as possible."
)
MSG_VOICEMAIL = (
    "We're sorry, no one is available to take your call right now. "
    "Please leave your name, phone number, and a brief message after the beep. "
    "We will return your call as soon as possible."
)
MSG_NO_RECORDING = "We did not receive a recording. Goodbye."
MSG_CALLBACK_OFFER = (
    "Thank you for your patience. We are experiencing higher than normal call volume. "
    "Would you like us to call you back when a team member becomes available?"
)
MSG_CALLBACK_MENU = "Press 1 to receive a callback, or press 2 to continue holding."
MSG_NO_SELECTION_HOLD = "We did not receive your selection. Please hold."
MSG_CALLBACK_CONFIRMED = (
    "Thank you. We will call you back as soon as a team member is available. Goodbye."
)
MSG_PLEASE_HOLD = "Please hold."
MSG_QUEUE_WAIT = "Thank you for your patience. Your call is important to us."
MSG_TRANSFER_UNAVAILABLE = (
    "Transfer is not available at this time. Please call back during business hours."
)
MSG_TRANSFER_NO_SELECTION = "I didn't receive your selection. Returning to the assistant."
MSG_INVALID_SELECTION = "Invalid selection. Please call back and try again."
MSG_RECORDING_THANKS = "Thank you for your message. Goodbye."


@dataclass
class CallContext:
    """Per-call values a template may need."""

    call_sid: str
    from_number: str | None = None
    agent_config_id: str | None = None
    caller_id: str | None = None  # overrides the practice number on bridges


class TwiMLGenerator:
    """Render routing decisions and menu follow-ups as TwiML.

    Usage:
        generator = TwiMLGenerator()
        xml = generator.render(result, CallContext(call_sid, from_number, agent_id))
    """

    def __init__(
        self,
        twilio: TwilioSettings | None = None,
        routing: RoutingSettings | None = None,
    ):
        """Initialize generator.

        Args:
            twilio: Twilio settings (public URLs, practice number)
            routing: Voice, timeouts and recording limits
        """
        if twilio is None or routing is None:
            settings = get_settings()
            twilio = twilio or settings.telephony.twilio
            routing = routing or settings.routing
        self._twilio = twilio
        self._routing = routing

    # ========================================================================
    # URLs
    # ========================================================================

    def webhook_url(self, name: str) -> str | None:
        """Absolute URL of one of our Twilio webhooks, None without a backend URL."""
        backend = self._twilio.backend_url.rstrip("/")
        if not backend:
            return None
        return f"{backend}{self._twilio.webhook_path}/{name}"

    def stream_url(self, agent_config_id: str) -> str | None:
        """WebSocket URL of the media stream for an agent."""
        base = self._twilio.stream_url or self._twilio.backend_url
        base = base.rstrip("/")
        if not base:
            return None
        if base.startswith("https://"):
            base = "wss://" + base[len("https://"):]
        elif base.startswith("http://"):
            base = "ws://" + base[len("http://"):]
        return f"{base}/webhooks/twilio/stream/{agent_config_id}"

    # ========================================================================
    # Routing decisions
    # ========================================================================

    def render(self, result: RoutingResult, context: CallContext) -> str:
        """Render the TwiML for a routing decision.

        Args:
            result: Routing decision
            context: Call id, caller and agent of the call

        Returns:
            TwiML document
        """
        decision = result.decision

        if decision is RoutingDecision.AI_AGENT:
            return self.ai_agent(context)
        if decision is RoutingDecision.FORWARD_EMERGENCY:
            return self.forward(
                result.forward_to,
                MSG_EMERGENCY_CONNECT,
                timeout=self._routing.emergency_dial_timeout,
                caller_id=context.caller_id,
            )
        if decision is RoutingDecision.FORWARD_AFTER_HOURS:
            return self.after_hours(result)
        if decision in (RoutingDecision.FORWARD_FALLBACK, RoutingDecision.FORWARD_TRANSFER):
            return self.forward(
                result.forward_to,
                MSG_HOLD_CONNECT,
                caller_id=context.caller_id,
                extension=result.metadata.get("extension"),
            )
        if decision is RoutingDecision.VOICEMAIL:
            return self.voicemail()
        if decision is RoutingDecision.QUEUE:
            return self.queue(result)
        if decision is RoutingDecision.CALLBACK:
            return self.callback()

        return self.hangup(MSG_UNAVAILABLE)

    def ai_agent(self, context: CallContext) -> str:
        """Greeting followed by a bidirectional media stream to the AI agent."""
        stream_url = self.stream_url(context.agent_config_id) if context.agent_config_id else None
        if stream_url is None:
            log.warning("No stream endpoint configured", call_sid=context.call_sid)
            return self.hangup(MSG_TECHNICAL_DIFFICULTIES)

        response = VoiceResponse()
        self._say(response, MSG_AI_GREETING)
        connect = response.connect()
        stream = connect.stream(url=stream_url)
        stream.parameter(name="callSid", value=context.call_sid)
        stream.parameter(name="from", value=context.from_number or "")
        stream.parameter(name="agentConfigId", value=context.agent_config_id)
        return str(response)

    def forward(
        self,
        number: str | None,
        message: str,
        *,
        timeout: int | None = None,
        caller_id: str | None = None,
        extension: str | None = None,
    ) -> str:
        """Bridge the call to ``number``, recording a message if nobody answers.

        Args:
            number: Target number; without one the caller goes straight
                to the recording prompt
            message: Spoken before dialing
            timeout: Ring timeout in seconds
            caller_id: Caller ID for the bridged leg
            extension: DTMF extension dialed once the target answers
        """
        record_action = self.webhook_url("recording-complete")
        if not number and not record_action:
            return self.hangup(MSG_UNAVAILABLE)

        response = VoiceResponse()
        if number:
            self._say(response, message)
            dial = response.dial(
                timeout=timeout or self._routing.dial_timeout,
                caller_id=caller_id or self._twilio.phone_number or None,
                action=self.webhook_url("dial-complete"),
            )
            dial.number(number, send_digits=f"ww{extension}" if extension else None)

        if record_action is None:
            # Nowhere to post a recording to
            self._say(response, MSG_UNAVAILABLE)
            response.hangup()
        else:
            self._say(response, MSG_DIAL_FAILED)
            response.record(max_length=self._routing.record_max_length, action=record_action)
        return str(response)

    def after_hours(self, result: RoutingResult) -> str:
        """Closed-office message, with an emergency menu when a line exists."""
        record_action = self.webhook_url("recording-complete")
        if record_action is None:
            return self.hangup(MSG_UNAVAILABLE)

        message = MSG_OFFICE_CLOSED
        next_open = result.metadata.get("nextOpen")
        if next_open:
            message += f" We will reopen on {next_open}."

        response = VoiceResponse()
        if result.forward_to:
            self._say(response, message)
            gather = response.gather(
                num_digits=1,
                timeout=self._routing.gather_timeout,
                action=self.webhook_url("after-hours-menu"),
            )
            self._say(gather, MSG_AFTER_HOURS_MENU)
            self._say(response, MSG_NO_SELECTION_RECORD)
        else:
            self._say(response, f"{message} {MSG_LEAVE_MESSAGE}")

        response.record(max_length=self._routing.record_max_length, action=record_action)
        return str(response)

    def voicemail(self) -> str:
        """Voicemail prompt and bounded recording."""
        record_action = self.webhook_url("recording-complete")
        if record_action is None:
            return self.hangup(MSG_UNAVAILABLE)

        response = VoiceResponse()
        self._say(response, MSG_VOICEMAIL)
        response.record(
            max_length=self._routing.voicemail_max_length,
            action=record_action,
            recording_status_callback=self.webhook_url("recording-status"),
        )
        self._say(response, MSG_NO_RECORDING)
        return str(response)

    def queue(self, result: RoutingResult) -> str:
        """Queue position announcement and enqueue."""
        position = result.queue_position or 1
        wait = result.estimated_wait or 5

        response = VoiceResponse()
        self._say(
            response,
            "All of our team members are currently assisting other callers. "
            f"You are number {position} in the queue. "
            f"Your estimated wait time is {wait} minutes. "
            "Please hold and your call will be answered in the order it was received.",
        )
        self._enqueue(response)
        return str(response)

    def callback(self) -> str:
        """Offer a callback; holding in the queue is the default."""
        response = VoiceResponse()
        self._say(response, MSG_CALLBACK_OFFER)
        callback_action = self.webhook_url("callback-confirm")
        if callback_action:
            gather = response.gather(
                num_digits=1,
                timeout=self._routing.gather_timeout,
                action=callback_action,
            )
            self._say(gather, MSG_CALLBACK_MENU)
            self._say(response, MSG_NO_SELECTION_HOLD)
        self._enqueue(response)
        return str(response)

    def hangup(self, message: str = MSG_UNAVAILABLE) -> str:
        """Spoken apology followed by hangup."""
        response = VoiceResponse()
        self._say(response, message)
        response.hangup()
        return str(response)

    # ========================================================================
    # Menu and callback follow-ups
    # ========================================================================

    def after_hours_menu(self, digits: str | None, emergency_number: str | None) -> str:
        """Handle the after-hours menu: 1 reaches the emergency line, anything else voicemail."""
        if (digits or "").strip() == "1" and emergency_number:
            return self.forward(
                emergency_number,
                MSG_EMERGENCY_LINE,
                timeout=self._routing.emergency_dial_timeout,
            )
        return self.voicemail()

    def transfer_menu(self, agent_config_id: str, targets: Sequence[TransferTarget]) -> str:
        """Numbered menu of transfer targets, digit N selecting the Nth entry."""
        options = list(targets)[: self._routing.max_transfer_menu_options]
        select_action = self.webhook_url(f"transfer-select/{agent_config_id}")
        if not options or select_action is None:
            return self.hangup(MSG_TRANSFER_UNAVAILABLE)

        menu = " ".join(
            f"Press {index} to speak with {target.name}."
            for index, target in enumerate(options, start=1)
        )
        response = VoiceResponse()
        gather = response.gather(
            num_digits=1,
            timeout=self._routing.transfer_gather_timeout,
            action=select_action,
        )
        self._say(gather, f"I can transfer you to a team member. {menu}")
        self._say(response, MSG_TRANSFER_NO_SELECTION)
        return str(response)

    def transfer_select(self, digits: str | None, targets: Sequence[TransferTarget]) -> str:
        """Bridge to the target picked from the transfer menu."""
        options = list(targets)[: self._routing.max_transfer_menu_options]
        digits = (digits or "").strip()
        index = int(digits) - 1 if digits.isdigit() else -1

        if 0 <= index < len(options):
            target = options[index]
            return self.forward(
                target.number,
                f"Connecting you to {target.name} now.",
                timeout=self._routing.dial_timeout,
                extension=target.extension,
            )
        return self.hangup(MSG_INVALID_SELECTION)

    def dial_complete(self, dial_call_status: str | None) -> str:
        """After a bridge ends: hang up if it connected, else take a message."""
        if dial_call_status in ("completed", "answered"):
            response = VoiceResponse()
            response.hangup()
            return str(response)

        record_action = self.webhook_url("recording-complete")
        if record_action is None:
            return self.hangup(MSG_UNAVAILABLE)
        response = VoiceResponse()
        self._say(response, MSG_DIAL_FAILED)
        response.record(max_length=self._routing.record_max_length, action=record_action)
        return str(response)

    def callback_confirm(self, digits: str | None) -> str:
        """Confirm a callback request (digit 1) or keep the caller holding."""
        if (digits or "").strip() == "1":
            return self.hangup(MSG_CALLBACK_CONFIRMED)

        response = VoiceResponse()
        self._say(response, MSG_PLEASE_HOLD)
        self._enqueue(response)
        return str(response)

    def recording_complete(self) -> str:
        """Thank the caller once a recording is saved."""
        return self.hangup(MSG_RECORDING_THANKS)

    def queue_wait(self) -> str:
        """Hold message and music, looping back to itself."""
        response = VoiceResponse()
        self._say(response, MSG_QUEUE_WAIT)
        response.play(self._routing.hold_music_url)
        response.redirect(self._queue_wait_url())
        return str(response)

    # ========================================================================
    # Helpers
    # ========================================================================

    def _say(self, verb, message: str) -> None:
        verb.say(message, voice=self._routing.voice, language=self._routing.language)

    def _queue_wait_url(self) -> str:
        return self.webhook_url("queue-wait") or f"{self._twilio.webhook_path}/queue-wait"

    def _enqueue(self, response: VoiceResponse) -> None:
        response.enqueue(self._routing.queue_name, wait_url=self._queue_wait_url())
