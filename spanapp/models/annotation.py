"""Annotation model."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from spanapp.db import Base

if TYPE_CHECKING:
    from spanapp.models.document import Document


class Annotation(Base):
    """
    Represents a persisted span annotation of a document.

    Rows are stored in the wire shape: ``start_index``, ``end_index``,
    ``entity`` and ``text``.  Colors are never persisted.
    """

    __tablename__ = "annotations"
    __table_args__ = (
        CheckConstraint(
            "start_index >= 0 AND end_index > start_index",
            name="ck_annotations_span",
        ),
    )

    #: The annotation ID.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    #: The document ID.
    document_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False
    )
    #: The position of the annotation in insertion order.
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    #: The offset of the first character of the span.
    start_index: Mapped[int] = mapped_column(Integer, nullable=False)
    #: The offset one past the last character of the span.
    end_index: Mapped[int] = mapped_column(Integer, nullable=False)
    #: The label name.
    entity: Mapped[str] = mapped_column(String, nullable=False)
    #: The annotated substring.
    text: Mapped[str] = mapped_column(String, nullable=False)

    # Relationships
    document: Mapped[Document] = relationship("Document", back_populates="annotations")

    def to_json(self) -> dict:
        """
        Serialize annotation to its wire shape.

        Returns:
            Dictionary with ``start_index``, ``end_index``, ``entity`` and ``text``

        """
        return {
            "start_index": self.start_index,
            "end_index": self.end_index,
            "entity": self.entity,
            "text": self.text,
        }

    @classmethod
    def from_json(cls, data: dict, position: int = 0) -> Annotation:
        """
        Create an (unattached) annotation from its wire shape.

        Args:
            data: Wire annotation dictionary

        Keyword Args:
            position: Position of the annotation in insertion order

        Returns:
            New :class:`Annotation`

        """
        return cls(
            position=position,
            start_index=int(data["start_index"]),
            end_index=int(data["end_index"]),
            entity=data["entity"],
            text=data["text"],
        )
