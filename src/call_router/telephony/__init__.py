"""Twilio integration: TwiML rendering and outbound dialing."""

from call_router.telephony.dialer import OutboundCall, TwilioDialer
from call_router.telephony.twiml import CallContext, TwiMLGenerator

__all__ = ["CallContext", "OutboundCall", "TwiMLGenerator", "TwilioDialer"]
