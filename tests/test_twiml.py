"""Tests for TwiML generation."""

from __future__ import annotations

import pytest

from call_router.config import RoutingSettings, TwilioSettings
from call_router.routing.models import RoutingDecision, RoutingResult, TransferTarget
from call_router.telephony.twiml import (
    MSG_CALLBACK_CONFIRMED,
    MSG_INVALID_SELECTION,
    MSG_NOT_CONFIGURED,
    MSG_TRANSFER_UNAVAILABLE,
    CallContext,
    TwiMLGenerator,
)

AGENT_ID = "agent-1"
FALLBACK_NUMBER = "+15555550111"
AFTER_HOURS_NUMBER = "+15555550122"
EMERGENCY_NUMBER = "+15555550100"

WEBHOOKS = "https://api.example.com/api/v1/webhooks/twilio"


@pytest.fixture
def context():
    return CallContext(call_sid="CA123", from_number="+15555550999", agent_config_id=AGENT_ID)


@pytest.fixture
def offline_generator(routing_settings):
    """Generator without a public backend URL."""
    return TwiMLGenerator(TwilioSettings(backend_url=""), routing_settings)


def result(decision: RoutingDecision, **kwargs) -> RoutingResult:
    return RoutingResult(decision=decision, reason="test", **kwargs)


class TestUrls:
    def test_webhook_url(self, generator):
        assert generator.webhook_url("status") == f"{WEBHOOKS}/status"

    def test_stream_url_uses_secure_websocket(self, generator):
        assert generator.stream_url(AGENT_ID) == "wss://api.example.com/webhooks/twilio/stream/agent-1"

    def test_plain_http_backend(self, routing_settings):
        generator = TwiMLGenerator(TwilioSettings(backend_url="http://localhost:8080"), routing_settings)
        assert generator.stream_url(AGENT_ID) == "ws://localhost:8080/webhooks/twilio/stream/agent-1"

    def test_no_backend(self, offline_generator):
        assert offline_generator.webhook_url("status") is None
        assert offline_generator.stream_url(AGENT_ID) is None


class TestRenderDecisions:
    """render() for each routing decision."""

    def test_ai_agent_streams(self, generator, context):
        xml = generator.render(result(RoutingDecision.AI_AGENT), context)

        assert "<Connect>" in xml
        assert 'url="wss://api.example.com/webhooks/twilio/stream/agent-1"' in xml
        assert 'name="callSid" value="CA123"' in xml
        assert 'name="agentConfigId" value="agent-1"' in xml
        assert "<Dial" not in xml

    def test_ai_agent_without_stream_endpoint_hangs_up(self, offline_generator, context):
        xml = offline_generator.render(result(RoutingDecision.AI_AGENT), context)

        assert "technical difficulties" in xml
        assert "<Hangup" in xml
        assert "<Stream" not in xml

    def test_fallback_dials_number(self, generator, context):
        xml = generator.render(
            result(RoutingDecision.FORWARD_FALLBACK, forward_to=FALLBACK_NUMBER),
            context,
        )

        assert "<Dial" in xml
        assert f"<Number>{FALLBACK_NUMBER}</Number>" in xml
        assert f'action="{WEBHOOKS}/dial-complete"' in xml
        assert 'timeout="30"' in xml
        assert "<Record" in xml
        assert "<Stream" not in xml

    def test_emergency_uses_longer_timeout(self, generator, context):
        xml = generator.render(
            result(RoutingDecision.FORWARD_EMERGENCY, forward_to=EMERGENCY_NUMBER),
            context,
        )

        assert f"<Number>{EMERGENCY_NUMBER}</Number>" in xml
        assert 'timeout="45"' in xml
        assert "This is an emergency call" in xml

    def test_transfer_with_extension(self, generator, context):
        xml = generator.render(
            result(
                RoutingDecision.FORWARD_TRANSFER,
                forward_to="+15555550201",
                metadata={"extension": "42"},
            ),
            context,
        )

        assert 'sendDigits="ww42"' in xml

    def test_forward_without_number_records(self, generator, context):
        xml = generator.render(result(RoutingDecision.FORWARD_FALLBACK), context)

        assert "<Dial" not in xml
        assert f'action="{WEBHOOKS}/recording-complete"' in xml

    def test_forward_without_number_or_backend_hangs_up(self, offline_generator, context):
        xml = offline_generator.render(result(RoutingDecision.FORWARD_FALLBACK), context)

        assert "<Hangup" in xml
        assert "<Record" not in xml

    def test_after_hours_with_line_offers_menu(self, generator, context):
        xml = generator.render(
            result(
                RoutingDecision.FORWARD_AFTER_HOURS,
                forward_to=AFTER_HOURS_NUMBER,
                metadata={"nextOpen": "2025-03-10 08:00"},
            ),
            context,
        )

        assert "We will reopen on 2025-03-10 08:00." in xml
        assert f'action="{WEBHOOKS}/after-hours-menu"' in xml
        assert 'numDigits="1"' in xml
        assert "<Record" in xml

    def test_voicemail(self, generator, context):
        xml = generator.render(result(RoutingDecision.VOICEMAIL), context)

        assert 'maxLength="180"' in xml
        assert f'recordingStatusCallback="{WEBHOOKS}/recording-status"' in xml

    def test_queue_announces_position(self, generator, context):
        xml = generator.render(
            result(RoutingDecision.QUEUE, queue_position=3, estimated_wait=7),
            context,
        )

        assert "You are number 3 in the queue" in xml
        assert "7 minutes" in xml
        assert ">support</Enqueue>" in xml

    def test_callback_offer(self, generator, context):
        xml = generator.render(result(RoutingDecision.CALLBACK), context)

        assert f'action="{WEBHOOKS}/callback-confirm"' in xml
        assert "<Enqueue" in xml

    def test_say_uses_configured_voice(self, generator, context):
        xml = generator.render(result(RoutingDecision.VOICEMAIL), context)
        assert 'voice="Polly.Joanna"' in xml

    def test_caller_id_defaults_to_practice_number(self, generator, context):
        xml = generator.render(
            result(RoutingDecision.FORWARD_FALLBACK, forward_to=FALLBACK_NUMBER),
            context,
        )
        assert 'callerId="+15555550000"' in xml


class TestMenus:
    def test_after_hours_menu_emergency(self, generator):
        xml = generator.after_hours_menu("1", EMERGENCY_NUMBER)
        assert f"<Number>{EMERGENCY_NUMBER}</Number>" in xml

    @pytest.mark.parametrize("digits", ["2", "", None, "9"])
    def test_after_hours_menu_otherwise_voicemail(self, generator, digits):
        xml = generator.after_hours_menu(digits, EMERGENCY_NUMBER)

        assert "<Dial" not in xml
        assert "<Record" in xml

    def test_after_hours_menu_without_emergency_line(self, generator):
        assert "<Dial" not in generator.after_hours_menu("1", None)

    def test_transfer_menu_lists_targets(self, generator):
        targets = [
            TransferTarget(name="Dr. Smith", number="+15555550201", role="dentist"),
            TransferTarget(name="Front Office", number="+15555550202", role="reception"),
        ]

        xml = generator.transfer_menu(AGENT_ID, targets)

        assert "Press 1 to speak with Dr. Smith." in xml
        assert "Press 2 to speak with Front Office." in xml
        assert f'action="{WEBHOOKS}/transfer-select/agent-1"' in xml
        assert 'timeout="10"' in xml

    def test_transfer_menu_is_capped(self, twilio_settings):
        generator = TwiMLGenerator(
            twilio_settings,
            RoutingSettings(max_transfer_menu_options=2),
        )
        targets = [
            TransferTarget(name=f"Staff {i}", number=f"+1555555030{i}", role="staff")
            for i in range(1, 5)
        ]

        xml = generator.transfer_menu(AGENT_ID, targets)

        assert "Staff 2" in xml
        assert "Staff 3" not in xml

    def test_transfer_menu_without_targets(self, generator):
        xml = generator.transfer_menu(AGENT_ID, [])
        assert MSG_TRANSFER_UNAVAILABLE in xml

    def test_transfer_select(self, generator):
        targets = [
            TransferTarget(name="Dr. Smith", number="+15555550201", role="dentist"),
            TransferTarget(name="Front Office", number="+15555550202", role="reception", extension="7"),
        ]

        xml = generator.transfer_select("2", targets)

        assert "Connecting you to Front Office now." in xml
        assert "<Number sendDigits=\"ww7\">+15555550202</Number>" in xml

    @pytest.mark.parametrize("digits", ["0", "3", "*", None])
    def test_transfer_select_invalid(self, generator, digits):
        targets = [TransferTarget(name="Dr. Smith", number="+15555550201", role="dentist")]

        xml = generator.transfer_select(digits, targets)

        assert MSG_INVALID_SELECTION in xml
        assert "<Hangup" in xml


class TestFollowUps:
    @pytest.mark.parametrize("status", ["completed", "answered"])
    def test_dial_complete_connected(self, generator, status):
        xml = generator.dial_complete(status)

        assert "<Hangup" in xml
        assert "<Record" not in xml

    @pytest.mark.parametrize("status", ["busy", "no-answer", "failed", None])
    def test_dial_complete_unanswered_records(self, generator, status):
        xml = generator.dial_complete(status)

        assert "<Record" in xml
        assert 'maxLength="120"' in xml

    def test_callback_confirmed(self, generator):
        xml = generator.callback_confirm("1")

        assert MSG_CALLBACK_CONFIRMED in xml
        assert "<Hangup" in xml

    def test_callback_declined_keeps_holding(self, generator):
        xml = generator.callback_confirm("2")

        assert "Please hold." in xml
        assert "<Enqueue" in xml

    def test_queue_wait_loops(self, generator):
        xml = generator.queue_wait()

        assert "<Play>" in xml
        assert f"<Redirect>{WEBHOOKS}/queue-wait</Redirect>" in xml

    def test_recording_complete(self, generator):
        xml = generator.recording_complete()

        assert "Thank you for your message" in xml
        assert "<Hangup" in xml

    def test_not_configured_message(self, generator):
        xml = generator.hangup(MSG_NOT_CONFIGURED)
        assert "this number is not configured" in xml
