"""Projection of a document and its entities into paintable segments."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING

from spanapp.services.entities import sorted_order

if TYPE_CHECKING:
    from collections.abc import Sequence

    from spanapp.services.entities import Entities, Entity


@dataclass(frozen=True)
class Segment:
    """A run of literal or annotated text."""

    #: The painted text, ``document_text[start:end]``.
    text: str
    #: Offset of the first character.
    start: int
    #: Offset one past the last character.
    end: int
    #: Sorted index of the entity, the click and dismiss target.  ``None``
    #: for literal text.
    index: int | None = None
    #: Insertion index of the entity in the entity set.
    entity_index: int | None = None
    #: Label of the entity.
    label: str | None = None
    #: Color of the entity.
    color: str | None = None

    @property
    def is_annotated(self) -> bool:
        return self.index is not None


def project(text: str, entities: Sequence[Entity]) -> tuple[Segment, ...]:
    """
    Split ``text`` into literal and annotated segments.

    Entities are painted in order of ``start`` (ties keep insertion order).
    Overlaps are clipped: a range already painted by an earlier entity is not
    painted again, so an entity starting inside it is painted from where the
    earlier one ends, and an entity wholly inside it is not painted at all.
    Joining the segment texts always gives back ``text``.

    Args:
        text: The document text
        entities: The entity set in insertion order

    Returns:
        Segments in document order

    """
    return _project(text, tuple(entities))


@lru_cache(maxsize=64)
def _project(text: str, entities: Entities) -> tuple[Segment, ...]:
    segments: list[Segment] = []
    last_index = 0
    for index, entity_index in enumerate(sorted_order(entities)):
        entity = entities[entity_index]
        start = min(max(entity.start, last_index), len(text))
        end = min(entity.end, len(text))
        if start > last_index:
            segments.append(
                Segment(text=text[last_index:start], start=last_index, end=start)
            )
        if start < end:
            segments.append(
                Segment(
                    text=text[start:end],
                    start=start,
                    end=end,
                    index=index,
                    entity_index=entity_index,
                    label=entity.label,
                    color=entity.color,
                )
            )
        last_index = max(last_index, end, start)
    if last_index < len(text):
        segments.append(Segment(text=text[last_index:], start=last_index, end=len(text)))
    return tuple(segments)
