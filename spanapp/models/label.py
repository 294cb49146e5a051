"""Label model."""

from __future__ import annotations

import builtins
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint, select
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from spanapp.db import Base

if TYPE_CHECKING:
    from spanapp.models.project import Project


class Label(Base):
    """
    Represents an entity class of a project.

    The position of a label in its project is its priority: the first nine
    labels are selectable with the ``1``-``9`` keys.
    """

    __tablename__ = "labels"
    __table_args__ = (
        UniqueConstraint("project_id", "name", name="uq_labels_project_name"),
    )

    #: The label ID.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    #: The project ID.
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    #: The label name, stored as ``entity`` on annotations.
    name: Mapped[str] = mapped_column(String, nullable=False)
    #: The display color, e.g. ``#ff0000``.
    color: Mapped[str] = mapped_column(String, nullable=False)
    #: The position of the label in the project's class list.
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Relationships
    project: Mapped[Project] = relationship("Project", back_populates="labels")

    @classmethod
    def list(cls, session: Session, project_id: int) -> builtins.list[Label]:
        """
        List the labels of a project in class list order.
        """
        return builtins.list(
            session.scalars(
                select(cls).where(cls.project_id == project_id).order_by(cls.position)
            ).all()
        )

    def to_json(self) -> dict:
        """
        Serialize label to its wire shape.

        Returns:
            Dictionary with ``name`` and ``color``

        """
        return {"name": self.name, "color": self.color}
