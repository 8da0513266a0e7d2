"""Twilio outbound call initiation.

Places outbound calls through the Twilio REST API. The call's TwiML is
fetched by Twilio from our ``outbound/{agent_config_id}`` webhook and
progress arrives on the regular status callback.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from call_router.config import TwilioSettings, get_settings
from call_router.core.exceptions import DialerError, DialerNotConfiguredError, wrap_exception
from call_router.core.logging import get_logger

log = get_logger(__name__)

STATUS_CALLBACK_EVENTS = "initiated ringing answered completed"


@dataclass
class OutboundCall:
    """Outbound call accepted by Twilio."""

    call_sid: str
    to: str
    from_number: str
    status: str = "queued"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "call_sid": self.call_sid,
            "to": self.to,
            "from": self.from_number,
            "status": self.status,
        }


class TwilioDialer:
    """Start outbound calls via the Twilio Calls API.

    API Documentation: https://www.twilio.com/docs/voice/api/call-resource

    Attributes:
        account_sid: Twilio Account SID
        from_number: Practice number calls are placed from
        backend_url: Public base URL Twilio calls back into
    """

    def __init__(
        self,
        settings: TwilioSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize dialer.

        Args:
            settings: Twilio settings (defaults to application settings)
            transport: Optional httpx transport, used by tests
        """
        self._settings = settings or get_settings().telephony.twilio
        self.account_sid = self._settings.account_sid
        self.from_number = self._settings.phone_number
        self.backend_url = self._settings.backend_url.rstrip("/")
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def is_configured(self) -> bool:
        """Credentials and a practice number are set."""
        return bool(self.account_sid and self._settings.auth_token and self.from_number)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=f"{self._settings.api_base}/Accounts/{self.account_sid}",
                auth=httpx.BasicAuth(self.account_sid, self._settings.auth_token),
                timeout=self._settings.request_timeout,
                headers={"Accept": "application/json"},
                transport=self._transport,
            )
        return self._client

    def _webhook_url(self, name: str) -> str:
        return f"{self.backend_url}{self._settings.webhook_path}/{name}"

    async def initiate_call(
        self,
        to: str,
        agent_config_id: str,
        *,
        record: bool = False,
    ) -> OutboundCall:
        """Place an outbound call.

        Args:
            to: Number to call (E.164)
            agent_config_id: Agent whose TwiML handles the call
            record: Ask Twilio to record the call

        Returns:
            The accepted call with its Twilio Call SID

        Raises:
            DialerNotConfiguredError: If credentials or number are missing
            DialerError: If Twilio rejects the request or is unreachable
        """
        if not self.is_configured:
            raise DialerNotConfiguredError("Twilio not configured")

        data = {
            "To": to,
            "From": self.from_number,
            "Url": self._webhook_url(f"outbound/{agent_config_id}"),
            "StatusCallback": self._webhook_url("status"),
            "StatusCallbackEvent": STATUS_CALLBACK_EVENTS,
            "Record": "true" if record else "false",
        }

        try:
            response = await self._get_client().post("/Calls.json", data=data)
        except httpx.TimeoutException as e:
            log.error("Twilio call timeout", agent_config_id=agent_config_id)
            raise DialerError("Twilio request timed out", cause=e) from e
        except httpx.HTTPError as e:
            log.error("Twilio call HTTP error", error=str(e), agent_config_id=agent_config_id)
            raise wrap_exception(e, DialerError, "Failed to initiate call") from e

        if response.status_code not in (200, 201):
            try:
                error_data = response.json() if response.content else {}
            except ValueError:
                error_data = {}
            error_code = str(error_data.get("code", response.status_code))
            error_message = error_data.get("message", f"HTTP {response.status_code}")
            log.error(
                "Twilio rejected outbound call",
                status_code=response.status_code,
                error_code=error_code,
                error=error_message,
            )
            raise DialerError(
                "Failed to initiate call",
                details={"error_code": error_code, "error": error_message},
            )

        result = response.json()
        call = OutboundCall(
            call_sid=result.get("sid", ""),
            to=to,
            from_number=self.from_number,
            status=result.get("status", "queued"),
        )
        log.info(
            "Initiated outbound call",
            call_sid=call.call_sid,
            agent_config_id=agent_config_id,
            status=call.status,
        )
        return call

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
