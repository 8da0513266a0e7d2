"""Emergency keyword detection for inbound dental calls.

Detection is a plain case-insensitive substring scan, so keywords also
match inside longer words.
"""
from __future__ import annotations

from enum import Enum
from typing import Sequence


# Default emergency keywords for dental offices
DEFAULT_EMERGENCY_KEYWORDS: tuple[str, ...] = (
    "emergency",
    "urgent",
    "severe pain",
    "extreme pain",
    "bleeding",
    "swelling",
    "trauma",
    "accident",
    "knocked out tooth",
    "avulsed",
    "broken tooth",
    "fractured",
    "abscess",
    "infection",
    "cant breathe",
    "can't breathe",
    "allergic reaction",
    "anaphylaxis",
)


class EmergencyPriority(str, Enum):
    """Emergency tiers, most urgent first."""

    CRITICAL = "critical"
    HIGH = "high"
    STANDARD = "standard"
    GENERAL = "general"

    @property
    def rank(self) -> int:
        """Numeric rank, 0 = most urgent."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK: dict[EmergencyPriority, int] = {
    EmergencyPriority.CRITICAL: 0,
    EmergencyPriority.HIGH: 1,
    EmergencyPriority.STANDARD: 2,
    EmergencyPriority.GENERAL: 3,
}

# Evaluated top-down; first tier with a matching phrase wins
PRIORITY_TIERS: tuple[tuple[EmergencyPriority, tuple[str, ...]], ...] = (
    (
        EmergencyPriority.CRITICAL,
        ("cant breathe", "can't breathe", "anaphylaxis", "severe bleeding"),
    ),
    (
        EmergencyPriority.HIGH,
        ("trauma", "knocked out", "avulsed"),
    ),
    (
        EmergencyPriority.STANDARD,
        ("severe pain", "swelling", "abscess"),
    ),
)


def detect_emergency(text: str | None, keywords: Sequence[str] | None = None) -> bool:
    """Check whether caller input contains an emergency keyword.

    Args:
        text: Caller utterance (speech result or typed input)
        keywords: Tenant keywords; the built-in list is used when empty

    Returns:
        True if any keyword occurs in the text, ignoring case
    """
    if not text:
        return False

    folded = text.casefold()
    return any(
        keyword.casefold() in folded
        for keyword in (keywords or DEFAULT_EMERGENCY_KEYWORDS)
        if keyword
    )


def classify_priority(text: str | None) -> EmergencyPriority:
    """Classify how urgent an emergency utterance is."""
    if not text:
        return EmergencyPriority.GENERAL

    folded = text.casefold()
    for priority, phrases in PRIORITY_TIERS:
        if any(phrase in folded for phrase in phrases):
            return priority
    return EmergencyPriority.GENERAL
