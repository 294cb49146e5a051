"""Project model."""

from __future__ import annotations

import builtins
from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import DateTime, Integer, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from spanapp.db import Base
from spanapp.exc import AlreadyExists
from spanapp.models.document import Document, DocumentStatus
from spanapp.models.label import Label


class Project(Base):
    """
    Represents a project: an ordered class list and an ordered set of documents.
    """

    __tablename__ = "projects"

    #: The project ID.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    #: The project name.
    name: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    #: The date and time the project was created.
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, nullable=False
    )
    #: The date and time the project was last updated.
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, onupdate=datetime.now, nullable=False
    )

    # Relationships
    labels: Mapped[builtins.list[Label]] = relationship(
        "Label",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="Label.position",
    )
    documents: Mapped[builtins.list[Document]] = relationship(
        "Document",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="Document.position",
    )

    @classmethod
    def get(cls, session: Session, project_id: int) -> Project | None:
        """
        Get a project by ID.
        """
        return session.get(cls, project_id)

    @classmethod
    def first(cls, session: Session) -> Project | None:
        """
        Get the first project, if any.
        """
        return session.scalar(select(cls).order_by(cls.id).limit(1))

    @classmethod
    def list(cls, session: Session) -> builtins.list[Project]:
        """
        List all projects by name.
        """
        return builtins.list(session.scalars(select(cls).order_by(cls.name)).all())

    @classmethod
    def exists(cls, session: Session, name: str) -> bool:
        """
        Check whether a project with this name exists.
        """
        return session.scalar(select(cls.id).where(cls.name == name)) is not None

    @classmethod
    def create(
        cls,
        session: Session,
        name: str,
        entity_classes: Iterable[dict],
        texts: Iterable[str] = (),
    ) -> Project:
        """
        Create a new project.

        Args:
            session: SQLAlchemy session
            name: Project name
            entity_classes: Ordered ``{"name", "color"}`` dictionaries

        Keyword Args:
            texts: Document texts, in project order

        Raises:
            AlreadyExists: If a project with this name exists

        Returns:
            The new :class:`~spanapp.models.project.Project` object

        """
        if cls.exists(session, name):
            raise AlreadyExists("Project", name)

        project = cls(name=name)
        project.labels = [
            Label(name=entity_class["name"], color=entity_class["color"], position=i)
            for i, entity_class in enumerate(entity_classes)
        ]
        project.documents = [
            Document(
                name=f"Document {i + 1}",
                text=text,
                status=DocumentStatus.IN_PROGRESS,
                position=i,
            )
            for i, text in enumerate(texts)
        ]
        session.add(project)
        session.commit()
        return project

    def to_json(self) -> dict:
        """
        Serialize project with its class list.

        Returns:
            Dictionary with ``id``, ``name`` and ``entity_classes``

        """
        return {
            "id": self.id,
            "name": self.name,
            "entity_classes": [label.to_json() for label in self.labels],
        }
