"""Document model."""

from __future__ import annotations

import builtins
from datetime import datetime
from typing import TYPE_CHECKING, Final

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from spanapp.db import Base
from spanapp.models.annotation import Annotation
from spanapp.utils import to_utc_iso

if TYPE_CHECKING:
    from spanapp.models.project import Project


class DocumentStatus:
    """Completion states of a document."""

    #: The document is still being annotated.
    IN_PROGRESS: Final[str] = "in_progress"
    #: The annotator marked the document complete.
    COMPLETED: Final[str] = "completed"
    #: All valid states.
    ALL: Final[tuple[str, ...]] = (IN_PROGRESS, COMPLETED)


class Document(Base):
    """
    Represents a text document of a project.

    The text is immutable once loaded; annotations refer to it by character
    offsets.
    """

    __tablename__ = "documents"
    __table_args__ = (
        CheckConstraint(
            "status IN ('in_progress','completed')", name="ck_documents_status"
        ),
    )

    #: The document ID.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    #: The project ID.
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    #: The document name.
    name: Mapped[str] = mapped_column(String, nullable=False, default="")
    #: The canonical document text.
    text: Mapped[str] = mapped_column(String, nullable=False)
    #: The completion status.
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=DocumentStatus.IN_PROGRESS
    )
    #: The position of the document in the project.
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    #: The date and time the document was created.
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, nullable=False
    )
    #: The date and time the document was last updated.
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, onupdate=datetime.now, nullable=False
    )

    # Relationships
    project: Mapped[Project] = relationship("Project", back_populates="documents")
    annotations: Mapped[builtins.list[Annotation]] = relationship(
        "Annotation",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="Annotation.position",
    )

    @classmethod
    def get(cls, session: Session, document_id: int) -> Document | None:
        """
        Get a document by ID.

        Args:
            session: SQLAlchemy session
            document_id: Document ID

        Returns:
            Document or None if not found

        """
        return session.get(cls, document_id)

    @classmethod
    def list(cls, session: Session, project_id: int) -> builtins.list[Document]:
        """
        List the documents of a project in project order.
        """
        return builtins.list(
            session.scalars(
                select(cls)
                .where(cls.project_id == project_id)
                .order_by(cls.position, cls.id)
            ).all()
        )

    def replace_annotations(self, annotations: builtins.list[dict]) -> None:
        """
        Replace all annotations of this document.

        Args:
            annotations: Wire annotations in insertion order

        """
        self.annotations = [
            Annotation.from_json(data, position=position)
            for position, data in enumerate(annotations)
        ]

    def to_summary(self) -> dict:
        """
        Serialize the document as an entry of its project's document list.
        """
        return {"id": self.id, "name": self.name, "status": self.status}

    def to_json(self) -> dict:
        """
        Serialize the document with its annotations.

        ``entities`` and ``annotations`` describe the same spans, the first in
        the view shape and the second in the wire shape.

        Returns:
            Dictionary containing document data

        """
        annotations = [annotation.to_json() for annotation in self.annotations]
        return {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "text": self.text,
            "status": self.status,
            "updated_at": to_utc_iso(self.updated_at),
            "entities": [
                {
                    "start": data["start_index"],
                    "end": data["end_index"],
                    "label": data["entity"],
                    "text": data["text"],
                }
                for data in annotations
            ],
            "annotations": annotations,
        }
