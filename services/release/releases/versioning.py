"""Best-effort ordering of release version labels.

Labels are not required to be semver. Every character other than digits and
dots is stripped, the remainder is split on ``.`` and compared numerically
segment by segment, with missing segments counting as ``0``. ``"v1.10.0"``
therefore sorts above ``"v1.2.0"`` and ``"2.1-beta"`` equals ``"2.1"``.
"""
from __future__ import annotations

import functools
import re
from typing import Callable, Iterable, List, Tuple, TypeVar

T = TypeVar("T")

_NON_NUMERIC = re.compile(r"[^0-9.]")


def parse_version(label: str) -> Tuple[int, ...]:
    cleaned = _NON_NUMERIC.sub("", label or "")
    segments = []
    for part in cleaned.split("."):
        segments.append(int(part) if part else 0)
    return tuple(segments)


def compare_versions(left: str, right: str) -> int:
    """Return 1, 0 or -1 like a classic ``cmp``."""

    a, b = parse_version(left), parse_version(right)
    width = max(len(a), len(b))
    a = a + (0,) * (width - len(a))
    b = b + (0,) * (width - len(b))
    if a > b:
        return 1
    if a < b:
        return -1
    return 0


def sort_by_version(
    items: Iterable[T], key: Callable[[T], str], descending: bool = True
) -> List[T]:
    return sorted(
        items,
        key=functools.cmp_to_key(lambda x, y: compare_versions(key(x), key(y))),
        reverse=descending,
    )
