"""Write-time validation of routing configuration.

Numbers and schedules are checked when configuration is saved, never
when a call is being routed.
"""
from __future__ import annotations

import re
from datetime import date

from call_router.core.exceptions import (
    InvalidConfigurationError,
    InvalidPhoneNumberError,
    InvalidWorkingHoursError,
)
from call_router.routing.clock import get_zone
from call_router.routing.models import WEEKDAYS, TransferTarget, WorkingHoursConfig

E164_PATTERN = re.compile(r"^\+[1-9]\d{1,14}$")
TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def is_e164(number: str | None) -> bool:
    """Check a phone number against E.164 (``+`` then 2-15 digits)."""
    return bool(number) and E164_PATTERN.match(number) is not None


def validate_phone_number(number: str, field: str) -> str:
    """Validate an E.164 phone number.

    Args:
        number: Phone number to check
        field: Field name reported in the error

    Returns:
        The number, unchanged

    Raises:
        InvalidPhoneNumberError: If the number is not E.164
    """
    if not is_e164(number):
        raise InvalidPhoneNumberError(
            f"Invalid phone number format for {field}. Use E.164 format (e.g., +15551234567)",
            details={"field": field},
        )
    return number


def validate_transfer_targets(targets: list[TransferTarget]) -> None:
    """Validate every transfer target's number."""
    for target in targets:
        validate_phone_number(target.number, f"transferNumber:{target.name}")


def _check_time(value: str | None, label: str, day: str) -> None:
    if value is None or not TIME_PATTERN.match(value):
        raise InvalidWorkingHoursError(
            f"Invalid {label} time for {day}. Use HH:MM format.",
            details={"day": day, "value": value},
        )


def validate_working_hours(config: WorkingHoursConfig) -> None:
    """Validate a weekly schedule.

    Enabled days need ``open < close``; a lunch break needs both ends,
    ``lunchStart < lunchEnd`` and must sit inside ``[open, close)``.
    Holiday dates must be ISO ``YYYY-MM-DD`` and the zone must exist.

    Raises:
        InvalidWorkingHoursError: On the first problem found
    """
    try:
        get_zone(config.timezone)
    except InvalidConfigurationError as e:
        raise InvalidWorkingHoursError(
            f"Unknown timezone: {config.timezone!r}",
            details={"timezone": config.timezone},
            cause=e,
        ) from e

    unknown = set(config.schedule) - set(WEEKDAYS)
    if unknown:
        raise InvalidWorkingHoursError(
            f"Unknown weekday(s) in schedule: {', '.join(sorted(unknown))}",
        )

    for day in WEEKDAYS:
        schedule = config.day(day)
        if schedule is None or not schedule.enabled:
            continue

        _check_time(schedule.open, "open", day)
        _check_time(schedule.close, "close", day)
        if schedule.open >= schedule.close:
            raise InvalidWorkingHoursError(
                f"Open time must be before close time for {day}.",
                details={"day": day},
            )

        if schedule.lunch_start is None and schedule.lunch_end is None:
            continue
        _check_time(schedule.lunch_start, "lunch start", day)
        _check_time(schedule.lunch_end, "lunch end", day)
        if not (schedule.open <= schedule.lunch_start < schedule.lunch_end <= schedule.close):
            raise InvalidWorkingHoursError(
                f"Lunch break must fall within opening hours for {day}.",
                details={"day": day},
            )

    for holiday in config.holidays:
        try:
            date.fromisoformat(holiday.date)
        except ValueError as e:
            raise InvalidWorkingHoursError(
                f"Invalid holiday date {holiday.date!r}. Use YYYY-MM-DD format.",
                details={"holiday": holiday.name},
                cause=e,
            ) from e
