"""
Field level diffing.

Tasks compare the object read from the remote API with the object built from
InfraSpec and update only when a field differs.

Comparison rules
Scalars compare with !=.
Ordered lists such as DNS servers compare positionally.
Tag sets compare as multisets, the remote API does not keep tag order.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Iterable, List, Sequence

from nsxt_dhcp.core.types import Tag


def equal_tags(a: Iterable[Tag], b: Iterable[Tag]) -> bool:
    """Return True when both tag sets hold the same tags, ignoring order."""
    return Counter((t.scope, t.value) for t in a) == Counter((t.scope, t.value) for t in b)


def equal_ordered(a: Sequence[Any], b: Sequence[Any]) -> bool:
    """Return True when both sequences hold the same items in the same order."""
    return list(a) == list(b)


class FieldDiff:
    """
    Collects the names of differing fields.

    Usage
    diff = FieldDiff()
    diff.scalar("display_name", old.display_name, new.display_name)
    diff.tags("tags", old.tags, new.tags)
    if diff: update
    """

    def __init__(self) -> None:
        self.changed: List[str] = []

    def scalar(self, name: str, old: Any, new: Any) -> None:
        if old != new:
            self.changed.append(name)

    def ordered(self, name: str, old: Sequence[Any], new: Sequence[Any]) -> None:
        if not equal_ordered(old, new):
            self.changed.append(name)

    def tags(self, name: str, old: Iterable[Tag], new: Iterable[Tag]) -> None:
        if not equal_tags(old, new):
            self.changed.append(name)

    def missing(self, name: str) -> None:
        """Record a field that is absent on the remote object."""
        self.changed.append(name)

    def __bool__(self) -> bool:
        return bool(self.changed)
