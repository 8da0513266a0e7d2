"""Tests for the Twilio outbound dialer."""

from __future__ import annotations

from urllib.parse import parse_qs

import httpx
import pytest

from call_router.config import TwilioSettings
from call_router.core.exceptions import DialerError, DialerNotConfiguredError
from call_router.telephony.dialer import TwilioDialer

AGENT_ID = "agent-1"
PRACTICE_NUMBER = "+15555550000"


def form_of(request: httpx.Request) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


class TestInitiateCall:
    """Tests for TwilioDialer.initiate_call."""

    @pytest.mark.asyncio
    async def test_posts_call_resource(self, twilio_settings):
        """Test the Calls API request carries our webhook URLs."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json={"sid": "CA999", "status": "queued"})

        dialer = TwilioDialer(twilio_settings, transport=httpx.MockTransport(handler))
        try:
            call = await dialer.initiate_call("+15555550999", AGENT_ID, record=True)
        finally:
            await dialer.close()

        assert call.call_sid == "CA999"
        assert call.to_dict()["from"] == PRACTICE_NUMBER

        request = seen[0]
        assert request.url.path == (
            "/2010-04-01/Accounts/AC00000000000000000000000000000000/Calls.json"
        )
        assert request.headers["Authorization"].startswith("Basic ")
        form = form_of(request)
        assert form["To"] == "+15555550999"
        assert form["From"] == PRACTICE_NUMBER
        assert form["Url"] == "https://api.example.com/api/v1/webhooks/twilio/outbound/agent-1"
        assert form["StatusCallback"] == "https://api.example.com/api/v1/webhooks/twilio/status"
        assert form["Record"] == "true"

    @pytest.mark.asyncio
    async def test_not_configured(self):
        dialer = TwilioDialer(TwilioSettings(account_sid="", auth_token="", phone_number=""))

        assert dialer.is_configured is False
        with pytest.raises(DialerNotConfiguredError):
            await dialer.initiate_call("+15555550999", AGENT_ID)

    @pytest.mark.asyncio
    async def test_rejected_by_twilio(self, twilio_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"code": 21211, "message": "Invalid 'To' Phone Number"})

        dialer = TwilioDialer(twilio_settings, transport=httpx.MockTransport(handler))

        with pytest.raises(DialerError) as exc_info:
            await dialer.initiate_call("+15555550999", AGENT_ID)

        assert exc_info.value.details["error_code"] == "21211"
        await dialer.close()

    @pytest.mark.asyncio
    async def test_network_failure(self, twilio_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        dialer = TwilioDialer(twilio_settings, transport=httpx.MockTransport(handler))

        with pytest.raises(DialerError):
            await dialer.initiate_call("+15555550999", AGENT_ID)
        await dialer.close()

    @pytest.mark.asyncio
    async def test_timeout(self, twilio_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        dialer = TwilioDialer(twilio_settings, transport=httpx.MockTransport(handler))

        with pytest.raises(DialerError, match="timed out"):
            await dialer.initiate_call("+15555550999", AGENT_ID)
        await dialer.close()
