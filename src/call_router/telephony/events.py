"""Twilio voice webhook payloads."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping


def _int_or_none(value: Any) -> int | None:
    try:
        return int(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


@dataclass
class TwilioVoiceEvent:
    """Fields Twilio posts (form-encoded) to voice webhooks.

    Only the fields routing cares about are kept; everything is optional
    except the call id, since menu and status callbacks send subsets.
    """

    call_sid: str
    from_number: str | None = None
    to_number: str | None = None
    call_status: str | None = None
    direction: str | None = None
    caller_name: str | None = None
    digits: str | None = None
    speech_result: str | None = None
    call_duration: int | None = None
    dial_call_status: str | None = None
    recording_url: str | None = None
    recording_sid: str | None = None
    recording_status: str | None = None
    recording_duration: int | None = None

    @classmethod
    def from_form(cls, form: Mapping[str, Any]) -> TwilioVoiceEvent:
        """Build from a webhook's form data."""
        return cls(
            call_sid=str(form.get("CallSid", "")),
            from_number=form.get("From"),
            to_number=form.get("To"),
            call_status=form.get("CallStatus"),
            direction=form.get("Direction"),
            caller_name=form.get("CallerName"),
            digits=form.get("Digits"),
            speech_result=form.get("SpeechResult"),
            call_duration=_int_or_none(form.get("CallDuration")),
            dial_call_status=form.get("DialCallStatus"),
            recording_url=form.get("RecordingUrl"),
            recording_sid=form.get("RecordingSid"),
            recording_status=form.get("RecordingStatus"),
            recording_duration=_int_or_none(form.get("RecordingDuration")),
        )
