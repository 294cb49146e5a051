"""Persistence of projects, documents and annotations."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from spanapp.exc import DoesNotExist
from spanapp.models.document import Document, DocumentStatus
from spanapp.models.project import Project

if TYPE_CHECKING:
    from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)


class DocumentStore(ABC):
    """
    Data access used by annotation sessions.

    Implementations may be called from worker threads when several documents
    are saved at once.
    """

    @abstractmethod
    def get_document(self, doc_id: int) -> dict[str, Any]:
        """
        Get a document with its annotations.

        Returns:
            ``{"id", "project_id", "name", "text", "status", "entities",
            "annotations"}``

        Raises:
            DoesNotExist: If there is no such document

        """

    @abstractmethod
    def get_project(self, project_id: int) -> dict[str, Any]:
        """
        Get a project with its ordered class list.

        Returns:
            ``{"id", "name", "entity_classes": [{"name", "color"}, ...]}``

        Raises:
            DoesNotExist: If there is no such project

        """

    @abstractmethod
    def get_project_documents(self, project_id: int) -> list[dict[str, Any]]:
        """
        List the documents of a project in project order.

        Returns:
            ``[{"id", "name", "status"}, ...]``

        """

    @abstractmethod
    def update_document(self, doc_id: int, changes: dict[str, Any]) -> None:
        """
        Update a document.

        Args:
            doc_id: Document ID
            changes: Any of ``entities``, ``annotations`` (replaces all
                annotations) and ``status``

        Raises:
            DoesNotExist: If there is no such document
            ValueError: If ``status`` is not a valid status

        """


class SQLDocumentStore(DocumentStore):
    """
    :class:`DocumentStore` backed by the SQLAlchemy models.

    Every call runs in its own session, so concurrent saves never share one.

    Args:
        session_factory: Factory for SQLAlchemy sessions

    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        #: The session factory.
        self.session_factory = session_factory

    def get_document(self, doc_id: int) -> dict[str, Any]:
        with self.session_factory() as session:
            document = Document.get(session, doc_id)
            if document is None:
                raise DoesNotExist("Document", doc_id)
            return document.to_json()

    def get_project(self, project_id: int) -> dict[str, Any]:
        with self.session_factory() as session:
            project = Project.get(session, project_id)
            if project is None:
                raise DoesNotExist("Project", project_id)
            return project.to_json()

    def get_project_documents(self, project_id: int) -> list[dict[str, Any]]:
        with self.session_factory() as session:
            if Project.get(session, project_id) is None:
                raise DoesNotExist("Project", project_id)
            return [
                document.to_summary()
                for document in Document.list(session, project_id)
            ]

    def update_document(self, doc_id: int, changes: dict[str, Any]) -> None:
        status = changes.get("status")
        if status is not None and status not in DocumentStatus.ALL:
            msg = f"Invalid document status: {status!r}"
            raise ValueError(msg)
        with self.session_factory() as session:
            document = Document.get(session, doc_id)
            if document is None:
                raise DoesNotExist("Document", doc_id)
            if "annotations" in changes:
                document.replace_annotations(changes["annotations"])
            if status is not None:
                document.status = status
            session.commit()
        logger.debug(f"Updated document {doc_id}: {sorted(changes)}")
