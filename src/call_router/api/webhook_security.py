"""Twilio webhook signature verification.

Twilio signs every webhook request with HMAC-SHA1.
See: https://www.twilio.com/docs/usage/security

Signature calculation:
1. Take the full URL of the request
2. If POST, sort parameters alphabetically and append name + value
3. Compute HMAC-SHA1 of the result using the Auth Token as key
4. Base64 encode the result
"""

from __future__ import annotations

import base64
import hashlib
import hmac
from typing import TYPE_CHECKING, Any, Mapping

from call_router.config import Settings
from call_router.core.exceptions import WebhookSecurityError
from call_router.core.logging import get_logger

if TYPE_CHECKING:
    from fastapi import Request

log = get_logger(__name__)

TWILIO_SIGNATURE_HEADER = "X-Twilio-Signature"


class TwilioSignatureValidator:
    """Validate Twilio webhook signatures."""

    def __init__(self, auth_token: str) -> None:
        """Initialize validator.

        Args:
            auth_token: Twilio Auth Token
        """
        self.auth_token = auth_token

    def compute_signature(self, url: str, params: Mapping[str, Any] | None = None) -> str:
        """Signature Twilio would send for ``url`` and ``params``."""
        data = url
        if params:
            for key, value in sorted(params.items()):
                data += str(key) + str(value)

        return base64.b64encode(
            hmac.new(
                self.auth_token.encode("utf-8"),
                data.encode("utf-8"),
                hashlib.sha1,
            ).digest()
        ).decode("utf-8")

    def validate(
        self,
        signature: str,
        url: str,
        params: Mapping[str, Any] | None = None,
    ) -> bool:
        """Validate a Twilio signature.

        Args:
            signature: Value from X-Twilio-Signature header
            url: Full request URL (including https://)
            params: POST parameters (if any)

        Returns:
            True if signature is valid
        """
        if not self.auth_token:
            log.warning("Twilio auth token not configured")
            return False
        if not signature:
            return False

        # Constant-time comparison
        return hmac.compare_digest(self.compute_signature(url, params), signature)


def public_request_url(request: "Request", backend_url: str | None) -> str:
    """URL Twilio called, which may differ from ours behind a proxy."""
    if not backend_url:
        return str(request.url)
    url = backend_url.rstrip("/") + request.url.path
    if request.url.query:
        url += "?" + request.url.query
    return url


async def validate_twilio_request(request: "Request", settings: Settings) -> None:
    """Validate a Twilio webhook request.

    Raises:
        WebhookSecurityError: If validation is enabled and the signature
            is missing or wrong
    """
    if not settings.webhook_validate_signatures:
        return

    validator = TwilioSignatureValidator(settings.twilio_auth_token or "")
    params: dict[str, Any] = {}
    if request.method == "POST":
        form = await request.form()
        params = dict(form)

    url = public_request_url(request, settings.telephony.twilio.backend_url)
    signature = request.headers.get(TWILIO_SIGNATURE_HEADER, "")
    if not validator.validate(signature, url, params):
        log.warning("Invalid Twilio signature", path=request.url.path)
        raise WebhookSecurityError(
            "Invalid Twilio signature",
            details={"path": request.url.path},
        )
