"""
Entity model: annotated spans of one document and their edit operations.

Entity sets are tuples kept in insertion order.  Every operation returns a new
tuple together with the :class:`ChangeSnapshot` the change buffer stores, so
callers never hold a half-updated set.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from spanapp.services import serializers

if TYPE_CHECKING:
    from collections.abc import Sequence

#: Entity sets are immutable, insertion-ordered tuples.
Entities = tuple["Entity", ...]


@dataclass(frozen=True)
class EntityClass:
    """A label of the project's class list."""

    #: The label name.
    name: str
    #: The display color.
    color: str

    @classmethod
    def from_dict(cls, data: dict) -> EntityClass:
        """Create from a ``{"name", "color"}`` dictionary."""
        return cls(name=data["name"], color=data["color"])


@dataclass(frozen=True)
class Entity:
    """
    An annotated span of a document.

    ``text`` caches ``document_text[start:end]`` as it was when the entity was
    created; document text never changes after load, so it is not re-checked.
    """

    #: Offset of the first character.
    start: int
    #: Offset one past the last character.
    end: int
    #: The label name.
    label: str
    #: The annotated substring.
    text: str
    #: The resolved display color.
    color: str

    def __post_init__(self) -> None:
        if self.start < 0:
            msg = f"Entity start must be non-negative, got {self.start}"
            raise ValueError(msg)
        if self.end <= self.start:
            msg = f"Entity end must be greater than start, got {self.start}-{self.end}"
            raise ValueError(msg)

    @classmethod
    def from_selection(
        cls, document_text: str, start: int, end: int, entity_class: EntityClass
    ) -> Entity:
        """
        Create an entity for ``document_text[start:end]``.

        Args:
            document_text: The canonical document text
            start: Start offset
            end: End offset
            entity_class: The class to tag the span with

        Returns:
            New :class:`Entity`

        """
        return cls(
            start=start,
            end=end,
            label=entity_class.name,
            text=document_text[start:end],
            color=entity_class.color,
        )

    def with_class(self, entity_class: EntityClass) -> Entity:
        """Return a copy tagged with another class; the span is unchanged."""
        return replace(self, label=entity_class.name, color=entity_class.color)


@dataclass(frozen=True)
class ChangeSnapshot:
    """
    The pending state of one document.

    The entity tuple is the only stored data; the view and wire projections
    are derived from it through :mod:`spanapp.services.serializers`.
    """

    entities: Entities = ()

    def view(self) -> list[dict]:
        """The entities in the view shape, without colors."""
        return [serializers.entity_to_view(entity) for entity in self.entities]

    def annotations(self) -> list[dict]:
        """The entities in the persisted wire shape."""
        return [serializers.entity_to_annotation(entity) for entity in self.entities]

    def payload(self) -> dict[str, list[dict]]:
        """The body of an ``update_document`` call for this snapshot."""
        return {"entities": self.view(), "annotations": self.annotations()}


def add(entities: Sequence[Entity], entity: Entity) -> tuple[Entities, ChangeSnapshot]:
    """
    Append an entity.  Duplicates and overlaps are allowed.
    """
    result = (*entities, entity)
    return result, ChangeSnapshot(result)


def remove(entities: Sequence[Entity], index: int) -> tuple[Entities, ChangeSnapshot]:
    """
    Remove the entity at ``index`` in insertion order.

    An index out of range leaves the set unchanged.
    """
    result = tuple(entities)
    if 0 <= index < len(result):
        result = result[:index] + result[index + 1 :]
    return result, ChangeSnapshot(result)


def reclassify(
    entities: Sequence[Entity], index: int, entity_class: EntityClass
) -> tuple[Entities, ChangeSnapshot]:
    """
    Change the label and color of the entity at ``index`` in insertion order.

    ``start``, ``end`` and ``text`` are kept.  An index out of range leaves the
    set unchanged.
    """
    result = tuple(entities)
    if 0 <= index < len(result):
        result = (
            *result[:index],
            result[index].with_class(entity_class),
            *result[index + 1 :],
        )
    return result, ChangeSnapshot(result)


def sorted_order(entities: Sequence[Entity]) -> list[int]:
    """
    Insertion indices of ``entities`` in display order.

    Display order sorts by ``start``; ties keep insertion order.  Position
    ``i`` of the result is the insertion index of the entity painted with
    sorted index ``i``.
    """
    return sorted(range(len(entities)), key=lambda i: entities[i].start)
