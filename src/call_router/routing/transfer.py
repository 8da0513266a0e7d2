"""Transfer target selection."""

from __future__ import annotations

from typing import Sequence

from call_router.routing.models import TransferTarget


def select_transfer(
    targets: Sequence[TransferTarget] | None,
    preferred_role: str | None = None,
) -> TransferTarget | None:
    """Pick the best available transfer target.

    A role match takes precedence over priority: the first available
    target with ``preferred_role`` (in list order) is returned. Otherwise
    the available target with the lowest priority value wins, ties going
    to whichever came first in the list.

    Args:
        targets: Configured transfer targets
        preferred_role: Role to prefer (e.g. "dentist")

    Returns:
        Selected target, or None if nobody is available
    """
    available = [t for t in targets or () if t.available]
    if not available:
        return None

    if preferred_role:
        for target in available:
            if target.role == preferred_role:
                return target

    # sorted() is stable, so equal priorities keep list order
    return sorted(available, key=lambda t: t.priority)[0]
