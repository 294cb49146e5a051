"""
Mapping between host text selections and document character offsets.

Offsets count characters of the canonical document text.  Hosts describe a
selection by the text of the container before it, so the mapping stays right
whatever mix of literal and annotated segments the container is painted with.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from spanapp.services.entities import Entity, EntityClass

if TYPE_CHECKING:
    from collections.abc import Sequence

    from spanapp.services.rendering import Segment


@dataclass(frozen=True)
class TextSelection:
    """A selection reported by the host."""

    #: The selected string.
    text: str
    #: The container text from its start up to the selection start.
    preceding: str
    #: Whether the selection anchor lies inside the annotatable container.
    anchor_inside: bool = True
    #: Whether the selection focus lies inside the annotatable container.
    focus_inside: bool = True

    @property
    def start(self) -> int:
        return len(self.preceding)

    @property
    def end(self) -> int:
        return self.start + len(self.text)


def selection_from_range(document_text: str, start: int, end: int) -> TextSelection:
    """
    Build a selection from character positions.

    Positions are clamped to the text and swapped when given in reverse, as
    happens when the user drags right to left.

    Args:
        document_text: The container's text
        start: Anchor position
        end: Focus position

    Returns:
        New :class:`TextSelection`

    """
    length = len(document_text)
    start, end = sorted((max(0, min(start, length)), max(0, min(end, length))))
    return TextSelection(
        text=document_text[start:end], preceding=document_text[:start]
    )


def map_selection(
    selection: TextSelection | None, entity_class: EntityClass | None
) -> Entity | None:
    """
    Turn a selection into an entity of the active class.

    Returns ``None`` when there is no active class, when the selection is
    empty or only whitespace, or when it reaches outside the container.
    """
    if entity_class is None or selection is None:
        return None
    if not selection.text.strip():
        return None
    if not (selection.anchor_inside and selection.focus_inside):
        return None
    return Entity(
        start=selection.start,
        end=selection.end,
        label=entity_class.name,
        text=selection.text,
        color=entity_class.color,
    )


def segment_at(segments: Sequence[Segment], offset: int) -> Segment | None:
    """
    Find the segment painting the character at ``offset``.

    Args:
        segments: Output of :func:`spanapp.services.rendering.project`
        offset: Character offset into the document text

    Returns:
        The covering segment, or ``None`` when the offset is past the text

    """
    for segment in segments:
        if segment.start <= offset < segment.end:
            return segment
    return None
