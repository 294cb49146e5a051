"""Data models for Span Annotator."""

from spanapp.models.annotation import Annotation
from spanapp.models.document import Document, DocumentStatus
from spanapp.models.label import Label
from spanapp.models.project import Project

__all__ = ["Annotation", "Document", "DocumentStatus", "Label", "Project"]
