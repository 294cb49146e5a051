"""Project import/export service for Span Annotator."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final

from spanapp.models.document import Document, DocumentStatus
from spanapp.models.label import Label
from spanapp.models.project import Project

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

#: Version of the export file format.
EXPORT_VERSION: Final[str] = "1.0"


class ProjectExporter:
    """Exports projects to JSON format."""

    def __init__(self, session: Session) -> None:
        """
        Initialize exporter.

        Args:
            session: SQLAlchemy session

        """
        self.session = session

    @staticmethod
    def sanitize_filename(filename: str) -> str:
        """
        Sanitize filename.

        Args:
            filename: Filename to sanitize

        Returns:
            Sanitized filename

        """
        return filename.replace(" ", "_").replace(".", "")

    def get_project(self, project_id: int) -> Project:
        """
        Get project by ID.

        Args:
            project_id: Project ID

        Raises:
            ValueError: If there is no such project

        Returns:
            Project

        """
        project = Project.get(self.session, project_id)
        if project is None:
            msg = f"Project with ID {project_id} not found"
            raise ValueError(msg)
        return project

    def to_json(self, project_id: int) -> dict[str, Any]:
        """
        Serialize a project, its class list, documents and annotations.

        Args:
            project_id: Project ID to export

        Returns:
            Export dictionary

        """
        project = self.get_project(project_id)
        return {
            "export_version": EXPORT_VERSION,
            "project": {
                "name": project.name,
                "entity_classes": [label.to_json() for label in project.labels],
            },
            "documents": [
                {
                    "name": document.name,
                    "text": document.text,
                    "status": document.status,
                    "annotations": [a.to_json() for a in document.annotations],
                }
                for document in project.documents
            ],
        }

    def export_project_json(self, project_id: int, filename: str) -> None:
        """
        Export project as JSON to a file.

        Args:
            project_id: Project ID to export
            filename: Filename to export the project to

        Raises:
            ValueError: If project is not found or if the export fails, with a
                descriptive message

        """
        if not filename.endswith(".json"):
            filename += ".json"

        project_data = self.to_json(project_id)

        try:
            with Path(filename).open("w", encoding="utf-8") as f:
                json.dump(project_data, f, indent=2, ensure_ascii=False)
        except (OSError, PermissionError) as e:
            msg = f"Failed to write export file:\n{e!s}"
            raise ValueError(msg) from e


class ProjectImporter:
    """Creates a project from an export file."""

    def __init__(self, session: Session) -> None:
        """
        Initialize importer.

        Args:
            session: SQLAlchemy session

        """
        self.session = session

    def _resolve_project_name(self, name: str) -> tuple[str, bool]:
        """
        Resolve project name collision by appending number.

        Args:
            name: Original project name

        Returns:
            Tuple of (resolved_name, was_renamed)

        """
        original_name = name
        counter = 1
        was_renamed = False

        while Project.exists(self.session, name):
            name = f"{original_name} ({counter})"
            counter += 1
            was_renamed = True

        return name, was_renamed

    @staticmethod
    def _valid_annotations(text: str, annotations: list[dict]) -> list[dict]:
        """
        Keep the annotations whose span matches the document text.

        Args:
            text: Document text
            annotations: Wire annotations from the export file

        Returns:
            The annotations that can be imported

        """
        valid = []
        for data in annotations:
            try:
                start, end = int(data["start_index"]), int(data["end_index"])
                ok = 0 <= start < end <= len(text) and text[start:end] == data["text"]
                ok = ok and bool(data["entity"])
            except (KeyError, TypeError, ValueError):
                ok = False
            if ok:
                valid.append(data)
            else:
                logger.warning(f"Skipping annotation not matching its text: {data!r}")
        return valid

    def _parse_document(self, position: int, data: dict[str, Any]) -> Document:
        """
        Build a document from one row of the export file.

        Args:
            position: Position of the document in the project
            data: Document row

        Raises:
            ValueError: If the row is not a document with text

        Returns:
            New, unsaved :class:`Document`

        """
        try:
            text = data["text"]
            annotations = data.get("annotations") or []
            status = data.get("status", DocumentStatus.IN_PROGRESS)
            name = data.get("name") or f"Document {position + 1}"
        except (KeyError, TypeError, AttributeError) as e:
            msg = f"Invalid document {position + 1} in project export: {e!s}"
            raise ValueError(msg) from e
        if not isinstance(text, str) or not isinstance(annotations, list):
            msg = f"Invalid document {position + 1} in project export"
            raise ValueError(msg)
        if status not in DocumentStatus.ALL:
            status = DocumentStatus.IN_PROGRESS
        document = Document(name=name, text=text, status=status, position=position)
        document.replace_annotations(self._valid_annotations(text, annotations))
        return document

    def import_data(self, data: dict[str, Any]) -> tuple[Project, bool]:
        """
        Create a project from an export dictionary.

        Args:
            data: Export dictionary

        Raises:
            ValueError: If the data is not a project export

        Returns:
            Tuple of (imported_project, was_renamed)

        """
        try:
            project_data = data["project"]
            documents = data["documents"]
            name = project_data["name"]
            entity_classes = project_data["entity_classes"]
        except (KeyError, TypeError) as e:
            msg = f"Not a project export file: missing {e!s}"
            raise ValueError(msg) from e
        if not isinstance(documents, list):
            msg = "Not a project export file: documents is not a list"
            raise ValueError(msg)

        try:
            labels = [
                Label(name=ec["name"], color=ec["color"], position=i)
                for i, ec in enumerate(entity_classes)
            ]
        except (KeyError, TypeError) as e:
            msg = f"Invalid entity class in project export: {e!s}"
            raise ValueError(msg) from e
        project_documents = [
            self._parse_document(position, document_data)
            for position, document_data in enumerate(documents)
        ]

        resolved_name, was_renamed = self._resolve_project_name(name)
        project = Project(name=resolved_name)
        project.labels = labels
        project.documents = project_documents

        self.session.add(project)
        self.session.commit()
        logger.info(
            f"Imported project {resolved_name!r} with {len(documents)} document(s)"
        )
        return project, was_renamed

    def import_project_json(self, filename: str) -> tuple[Project, bool]:
        """
        Import a project from a JSON export file.

        Args:
            filename: Filename to import the project from

        Raises:
            ValueError: If the file cannot be read or is not a project export

        Returns:
            Tuple of (imported_project, was_renamed)

        """
        if not Path(filename).exists():
            msg = f"File {filename} not found"
            raise ValueError(msg)

        try:
            with Path(filename).open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, PermissionError, json.JSONDecodeError) as e:
            msg = f"Failed to load project data from file:\n{e!s}"
            raise ValueError(msg) from e

        return self.import_data(data)
