"""Business-hours evaluation against a weekly schedule and holiday list.

All comparisons are lexical on zero-padded ``HH:MM`` strings, which
orders correctly for 24-hour local times.
"""
from __future__ import annotations

from datetime import date, timedelta

from call_router.routing.models import (
    WEEKDAYS,
    DaySchedule,
    HoursStatus,
    LocalTime,
    WorkingHoursConfig,
)

# Returned by the next-open scan when no open day exists within a week
NEXT_OPEN_UNKNOWN = "Unknown"

NEXT_OPEN_SCAN_DAYS = 7


class BusinessHoursEvaluator:
    """Decide whether a practice is open at a given local time.

    Rule order (first match wins):
    1. No config or disabled -> always open
    2. Holiday -> closed all day
    3. Weekday disabled -> closed
    4. Inside lunch break -> closed until lunch ends
    5. Before opening -> closed until open
    6. At or after closing -> closed until next open day
    7. Otherwise open
    """

    def evaluate(
        self,
        config: WorkingHoursConfig | None,
        now: LocalTime,
    ) -> HoursStatus:
        """Evaluate business hours.

        Args:
            config: Working hours, or None for "always open"
            now: Local wall-clock time in the config's timezone

        Returns:
            HoursStatus describing open/closed state and next transition
        """
        if config is None or not config.enabled:
            return HoursStatus(
                is_after_hours=False,
                reason="Business hours not configured - always available",
            )

        holiday = config.holiday_on(now.date)
        if holiday is not None:
            return HoursStatus(
                is_after_hours=True,
                is_holiday=True,
                reason=f"Closed for {holiday.name}",
                next_open_time=self.find_next_open_time(config, now.date),
            )

        day = config.day(now.weekday)
        if day is None or not day.enabled:
            return HoursStatus(
                is_after_hours=True,
                reason=f"Closed on {now.weekday}",
                next_open_time=self.find_next_open_time(config, now.date),
            )

        if day.has_lunch and day.lunch_start <= now.time < day.lunch_end:
            return HoursStatus(
                is_after_hours=True,
                is_lunch_break=True,
                reason="Currently on lunch break",
                next_open_time=day.lunch_end,
            )

        if now.time < day.open:
            return HoursStatus(
                is_after_hours=True,
                reason=f"Office opens at {day.open}",
                next_open_time=day.open,
            )

        if now.time >= day.close:
            return HoursStatus(
                is_after_hours=True,
                reason=f"Office closed at {day.close}",
                next_open_time=self.find_next_open_time(config, now.date),
            )

        return HoursStatus(
            is_after_hours=False,
            reason="Within business hours",
            next_close_time=self._next_close(day, now.time),
        )

    def find_next_open_time(self, config: WorkingHoursConfig, from_date: str) -> str:
        """Scan forward up to a week for the next opening.

        Args:
            config: Working hours
            from_date: Local YYYY-MM-DD date to scan forward from (exclusive)

        Returns:
            "YYYY-MM-DD HH:MM" of the next opening, or NEXT_OPEN_UNKNOWN
        """
        start = date.fromisoformat(from_date)
        for offset in range(1, NEXT_OPEN_SCAN_DAYS + 1):
            candidate = start + timedelta(days=offset)
            schedule = config.day(WEEKDAYS[candidate.weekday()])
            if schedule is None or not schedule.enabled:
                continue
            date_str = candidate.isoformat()
            if config.holiday_on(date_str) is None:
                return f"{date_str} {schedule.open}"

        return NEXT_OPEN_UNKNOWN

    @staticmethod
    def _next_close(day: DaySchedule, current_time: str) -> str:
        if day.lunch_start and current_time < day.lunch_start:
            return day.lunch_start
        return day.close


def default_working_hours(timezone: str = "America/New_York") -> WorkingHoursConfig:
    """Default weekly template for a dental office."""
    weekday = {"open": "08:00", "close": "17:00", "lunchStart": "12:00", "lunchEnd": "13:00"}
    return WorkingHoursConfig.from_dict(
        {
            "enabled": True,
            "timezone": timezone,
            "schedule": {
                "monday": {"enabled": True, **weekday},
                "tuesday": {"enabled": True, **weekday},
                "wednesday": {"enabled": True, **weekday},
                "thursday": {"enabled": True, **weekday},
                "friday": {"enabled": True, **weekday},
                "saturday": {"enabled": False, "open": "09:00", "close": "14:00"},
                "sunday": {"enabled": False, "open": "00:00", "close": "00:00"},
            },
            "holidays": [],
        }
    )
