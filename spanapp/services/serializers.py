"""
Conversion between in-memory entities and their serialized shapes.

- View shape: ``{"start", "end", "label", "text"}`` (plus ``color`` in memory).
- Wire shape: ``{"start_index", "end_index", "entity", "text"}``.

Colors are never serialized; they are resolved from the project's class list
on load.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final

from spanapp.services import entities

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

logger = logging.getLogger(__name__)

#: Color of entities whose label is not in the project's class list.
FALLBACK_COLOR: Final[str] = "#ffeb3b"


def entity_to_view(entity: entities.Entity) -> dict:
    return {
        "start": entity.start,
        "end": entity.end,
        "label": entity.label,
        "text": entity.text,
    }


def entity_to_annotation(entity: entities.Entity) -> dict:
    return {
        "start_index": entity.start,
        "end_index": entity.end,
        "entity": entity.label,
        "text": entity.text,
    }


def resolve_color(
    label: str,
    entity_classes: Sequence[entities.EntityClass],
    fallback: str = FALLBACK_COLOR,
) -> str:
    """
    Find the display color of a label.

    Args:
        label: Label name
        entity_classes: The project's class list

    Keyword Args:
        fallback: Color used when no class has this name

    Returns:
        The color of the first class named ``label``, or ``fallback``

    """
    for entity_class in entity_classes:
        if entity_class.name == label:
            return entity_class.color
    return fallback


def annotation_to_entity(
    data: dict,
    entity_classes: Sequence[entities.EntityClass],
    fallback: str = FALLBACK_COLOR,
) -> entities.Entity:
    """
    Build an entity from a wire annotation.

    Args:
        data: Wire annotation dictionary
        entity_classes: The project's class list, used to resolve the color

    Keyword Args:
        fallback: Color used when the label is not in the class list

    Returns:
        New :class:`~spanapp.services.entities.Entity`

    """
    label = data["entity"]
    return entities.Entity(
        start=int(data["start_index"]),
        end=int(data["end_index"]),
        label=label,
        text=data["text"],
        color=resolve_color(label, entity_classes, fallback),
    )


def annotations_to_entities(
    annotations: Iterable[dict],
    entity_classes: Sequence[entities.EntityClass],
    fallback: str = FALLBACK_COLOR,
) -> entities.Entities:
    """
    Build an entity set from persisted annotations, skipping malformed rows.
    """
    result = []
    for data in annotations:
        try:
            result.append(annotation_to_entity(data, entity_classes, fallback))
        except (KeyError, TypeError, ValueError):
            logger.warning(f"Skipping malformed annotation: {data!r}")
    return tuple(result)
