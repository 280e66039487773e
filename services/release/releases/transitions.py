"""Canonical stop status vocabulary and transition table."""
from __future__ import annotations

from typing import Dict, FrozenSet

from .exceptions import IllegalTransition
from .models import Stop

STATUSES = frozenset(value for value, _ in Stop.STATUS_CHOICES)

ALLOWED_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    Stop.NOT_STARTED: frozenset({Stop.IN_PROGRESS}),
    Stop.IN_PROGRESS: frozenset({Stop.DONE, Stop.BLOCKED}),
    Stop.BLOCKED: frozenset({Stop.IN_PROGRESS}),
    Stop.DONE: frozenset(),
}


def normalize_status(value: str) -> str:
    """Map external spellings such as ``In-Progress`` onto the canonical value."""

    normalized = str(value).strip().lower().replace("-", "_").replace(" ", "_")
    if normalized not in STATUSES:
        raise ValueError(f"Unknown stop status: {value!r}")
    return normalized


def is_allowed(current: str, target: str) -> bool:
    return current == target or target in ALLOWED_TRANSITIONS.get(current, frozenset())


def check_transition(current: str, target: str) -> None:
    if not is_allowed(current, target):
        raise IllegalTransition(f"Cannot move a stop from {current} to {target}.")
