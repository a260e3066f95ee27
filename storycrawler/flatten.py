from __future__ import annotations

from collections.abc import Iterable

from .story_types import LegacyKindGroup, StoryRecord


def flatten_stories(groups: Iterable[LegacyKindGroup]) -> list[StoryRecord]:
    """Flatten legacy kind groups into id-less story records.

    Output order is group order, then name order within each group. Repeated
    kinds are kept as separate groups.
    """
    return [StoryRecord(id="", kind=group.kind, name=name) for group in groups for name in group.names]


__all__ = ["flatten_stories"]
