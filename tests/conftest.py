"""Shared pytest fixtures and test helpers for Span Annotator tests."""

import copy
import os
import threading

# Widgets are created without a display
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PySide6.QtCore import QCoreApplication, QSettings
from PySide6.QtWidgets import QApplication

from spanapp.db import create_session_factory
from spanapp.exc import DoesNotExist
from spanapp.models.document import DocumentStatus
from spanapp.models.project import Project
from spanapp.services.entities import Entity, EntityClass
from spanapp.services.store import DocumentStore, SQLDocumentStore

#: Class list used by the sample projects.
ENTITY_CLASSES = [
    {"name": "PERSON", "color": "#ff0000"},
    {"name": "ORG", "color": "#00ff00"},
]
#: Document texts used by the sample projects.
TEXTS = [
    "Barack Obama was president.",
    "Apple hired Tim Cook.",
    "Nothing to see here.",
]

PERSON = EntityClass("PERSON", "#ff0000")
ORG = EntityClass("ORG", "#00ff00")


@pytest.fixture(scope="session")
def qapp(tmp_path_factory):
    """Create QApplication instance for testing PySide6 widgets."""
    QCoreApplication.setOrganizationName("Span Annotator Tests")
    QCoreApplication.setApplicationName("Span Annotator Tests")
    # Keep preferences written by tests out of the user's settings
    QSettings.setDefaultFormat(QSettings.Format.IniFormat)
    QSettings.setPath(
        QSettings.Format.IniFormat,
        QSettings.Scope.UserScope,
        str(tmp_path_factory.mktemp("settings")),
    )
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    return app


@pytest.fixture
def session_factory(tmp_path):
    """Create a temporary database and return a session factory bound to it."""
    factory = create_session_factory(tmp_path / "test.db")
    yield factory
    factory.kw["bind"].dispose()


@pytest.fixture
def db_session(session_factory):
    """Create a session on the temporary database."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def store(session_factory):
    """A SQL document store on the temporary database."""
    return SQLDocumentStore(session_factory)


@pytest.fixture
def sample_project(db_session):
    """Create a sample project with two classes and three documents."""
    return create_test_project(db_session, name="Sample Project")


@pytest.fixture
def memory_store():
    """An in-memory document store with the sample class list and texts."""
    return MemoryStore()


# Test helper functions (not fixtures, but available for import)


def create_test_project(session, name=None, entity_classes=None, texts=None):
    """
    Helper to create a project with defaults.

    Args:
        session: SQLAlchemy session
        name: Project name (if None, generates unique name)
        entity_classes: Class list (defaults to ``ENTITY_CLASSES``)
        texts: Document texts (defaults to ``TEXTS``)

    Returns:
        Created Project instance

    """
    if name is None:
        name = f"Test Project {id(session)}"
    return Project.create(
        session,
        name,
        ENTITY_CLASSES if entity_classes is None else entity_classes,
        TEXTS if texts is None else texts,
    )


def make_entity(text, start, end, entity_class=PERSON):
    """Helper to create an entity for ``text[start:end]``."""
    return Entity.from_selection(text, start, end, entity_class)


def wire(start, end, label, text):
    """Helper to create a wire annotation."""
    return {"start_index": start, "end_index": end, "entity": label, "text": text}


class MemoryStore(DocumentStore):
    """
    In-memory :class:`DocumentStore` that records updates and can be told to
    fail.

    Documents get IDs 1, 2, 3, ... in project order; the project has ID 1.
    """

    def __init__(self, entity_classes=None, texts=None):
        self.project = {
            "id": 1,
            "name": "Memory Project",
            "entity_classes": copy.deepcopy(entity_classes or ENTITY_CLASSES),
        }
        self.documents = {
            i + 1: {
                "id": i + 1,
                "project_id": 1,
                "name": f"Document {i + 1}",
                "text": text,
                "status": DocumentStatus.IN_PROGRESS,
                "annotations": [],
            }
            for i, text in enumerate(texts or TEXTS)
        }
        #: Document IDs whose updates raise.
        self.fail_updates = set()
        #: Whether loading anything raises.
        self.fail_loads = False
        #: ``(doc_id, changes)`` of every update call, failed ones included.
        self.updates = []
        #: Called with the doc ID at the start of each update.
        self.on_update = None
        self._lock = threading.Lock()

    def get_document(self, doc_id):
        if self.fail_loads:
            msg = "network unreachable"
            raise ConnectionError(msg)
        if doc_id not in self.documents:
            raise DoesNotExist("Document", doc_id)
        return copy.deepcopy(self.documents[doc_id])

    def get_project(self, project_id):
        if project_id != self.project["id"]:
            raise DoesNotExist("Project", project_id)
        return copy.deepcopy(self.project)

    def get_project_documents(self, project_id):
        return [
            {"id": d["id"], "name": d["name"], "status": d["status"]}
            for d in self.documents.values()
            if d["project_id"] == project_id
        ]

    def update_document(self, doc_id, changes):
        with self._lock:
            self.updates.append((doc_id, copy.deepcopy(changes)))
        if self.on_update is not None:
            self.on_update(doc_id)
        if doc_id in self.fail_updates:
            msg = f"cannot save document {doc_id}"
            raise ConnectionError(msg)
        with self._lock:
            document = self.documents[doc_id]
            if "annotations" in changes:
                document["annotations"] = copy.deepcopy(changes["annotations"])
            if "status" in changes:
                document["status"] = changes["status"]

    def updated_ids(self):
        return [doc_id for doc_id, _ in self.updates]
