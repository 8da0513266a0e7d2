"""Tests for transfer target selection."""

from __future__ import annotations

from call_router.routing.models import TransferTarget
from call_router.routing.transfer import select_transfer


def target(name: str, role: str, priority: int, available: bool = True) -> TransferTarget:
    return TransferTarget(
        name=name,
        number="+1555555" + str(1000 + priority),
        role=role,
        priority=priority,
        available=available,
    )


class TestSelectTransfer:
    """Tests for select_transfer."""

    def test_empty_list(self):
        assert select_transfer([]) is None
        assert select_transfer(None) is None

    def test_nobody_available(self):
        assert select_transfer([target("A", "dentist", 1, available=False)]) is None

    def test_preferred_role_beats_priority(self):
        dentist = target("Dr. Smith", "dentist", 5)
        hygienist = target("Jo", "hygienist", 1)

        assert select_transfer([dentist, hygienist], preferred_role="dentist") is dentist

    def test_lowest_priority_value_without_role(self):
        dentist = target("Dr. Smith", "dentist", 5)
        hygienist = target("Jo", "hygienist", 1)

        assert select_transfer([dentist, hygienist]) is hygienist

    def test_unmatched_role_falls_back_to_priority(self):
        dentist = target("Dr. Smith", "dentist", 5)
        hygienist = target("Jo", "hygienist", 1)

        assert select_transfer([dentist, hygienist], preferred_role="billing") is hygienist

    def test_unavailable_role_match_is_skipped(self):
        away = target("Dr. Smith", "dentist", 1, available=False)
        on_call = target("Dr. Jones", "dentist", 9)

        assert select_transfer([away, on_call], preferred_role="dentist") is on_call

    def test_ties_keep_list_order(self):
        first = target("First", "reception", 3)
        second = target("Second", "reception", 3)

        assert select_transfer([first, second]) is first
        assert select_transfer([second, first]) is second

    def test_first_role_match_in_list_order(self):
        first = target("First", "dentist", 9)
        second = target("Second", "dentist", 1)

        assert select_transfer([first, second], preferred_role="dentist") is first

    def test_repeated_calls_agree(self):
        targets = [target("A", "dentist", 2), target("B", "reception", 2)]
        assert select_transfer(targets) is select_transfer(targets)
