"""Services package initialization."""

from spanapp.services.buffer import ChangeBuffer
from spanapp.services.entities import ChangeSnapshot, Entity, EntityClass
from spanapp.services.import_export import ProjectExporter, ProjectImporter
from spanapp.services.offsets import TextSelection, map_selection
from spanapp.services.rendering import Segment, project
from spanapp.services.session import AnnotationSession, SessionContext
from spanapp.services.store import DocumentStore, SQLDocumentStore

__all__ = [
    "AnnotationSession",
    "ChangeBuffer",
    "ChangeSnapshot",
    "DocumentStore",
    "Entity",
    "EntityClass",
    "ProjectExporter",
    "ProjectImporter",
    "SQLDocumentStore",
    "Segment",
    "SessionContext",
    "TextSelection",
    "map_selection",
    "project",
]
