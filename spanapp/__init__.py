"""Span Annotator: interactive span annotation of text documents."""

__version__ = "0.1.0"
