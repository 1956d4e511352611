"""
Shared comparison primitives: ordered set difference, fingerprint, threshold cross.
"""

import hashlib
import json
from typing import Any, Hashable, Iterable, Sequence, TypeVar

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)


def new_items(items: Sequence[T], key_of, seen: Iterable[K]) -> list[T]:
    """Items whose key is not in *seen*, in input order, each key at most once."""
    seen_keys = set(seen)
    out: list[T] = []
    for item in items:
        k = key_of(item)
        if k in seen_keys:
            continue
        seen_keys.add(k)
        out.append(item)
    return out


def fingerprint(projection: Any) -> str:
    """sha256 of a canonical JSON serialization. Order-sensitive for lists."""
    canonical = json.dumps(projection, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def rose_to(previous: float | None, current: float, target: float) -> bool:
    """At or above target now, and not already at or above it before."""
    return current >= target and (previous is None or previous < target)


def fell_to(previous: float | None, current: float, target: float) -> bool:
    """At or below target now, and not already at or below it before."""
    return current <= target and (previous is None or previous > target)


def crossed(previous: float | None, current: float, target: float) -> bool:
    """Moved through target in either direction. Never true without a previous value."""
    if previous is None:
        return False
    return (current >= target and previous < target) or (current <= target and previous > target)
