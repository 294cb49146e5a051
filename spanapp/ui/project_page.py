"""Document list of the open project."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QBrush, QColor
from PySide6.QtWidgets import (
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QPushButton,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from spanapp.models.document import DocumentStatus

if TYPE_CHECKING:
    from spanapp.models.project import Project


class ProjectPage(QWidget):
    """
    Table of the documents of a project with their completion status.

    Double clicking a row, or clicking "Annotate", emits
    :attr:`document_activated` with the document ID.
    """

    #: Row color of completed documents.
    COMPLETED_COLOR: Final[str] = "#e8f5e9"
    #: Text shown when no project is open.
    WELCOME_TEXT: Final[str] = (
        "Welcome to Span Annotator\n\nUse File → Open Project to get started"
    )
    #: Characters of document text shown in the preview column.
    PREVIEW_LENGTH: Final[int] = 80

    #: Emitted with the ID of the document to annotate.
    document_activated = Signal(int)

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        #: ID of the project shown, if any.
        self.project_id: int | None = None
        self.build()

    def build(self) -> None:
        layout = QVBoxLayout(self)

        self.title_label = QLabel(self.WELCOME_TEXT, self)
        self.title_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.title_label.setStyleSheet("font-size: 14pt; color: #666; padding: 20px;")
        layout.addWidget(self.title_label)

        self.document_table = QTableWidget(self)
        self.document_table.setColumnCount(4)
        self.document_table.setHorizontalHeaderLabels(
            ["Document", "Status", "Annotations", "Text"]
        )
        self.document_table.setSelectionBehavior(
            QTableWidget.SelectionBehavior.SelectRows
        )
        self.document_table.setSelectionMode(
            QTableWidget.SelectionMode.SingleSelection
        )
        self.document_table.setEditTriggers(QTableWidget.EditTrigger.NoEditTriggers)
        self.document_table.doubleClicked.connect(lambda _index: self._activate())
        header = self.document_table.horizontalHeader()
        for column in (0, 1, 2):
            header.setSectionResizeMode(
                column, QHeaderView.ResizeMode.ResizeToContents
            )
        header.setSectionResizeMode(3, QHeaderView.ResizeMode.Stretch)
        layout.addWidget(self.document_table, stretch=1)

        button_layout = QHBoxLayout()
        self.progress_label = QLabel(self)
        button_layout.addWidget(self.progress_label)
        button_layout.addStretch()
        self.annotate_button = QPushButton("Annotate", self)
        self.annotate_button.clicked.connect(self._activate)
        button_layout.addWidget(self.annotate_button)
        layout.addLayout(button_layout)
        self.show_project(None)

    def show_project(self, project: Project | None) -> None:
        """
        Fill the table with the documents of ``project``.

        Args:
            project: The project to show, or None for the welcome page

        """
        self.document_table.setRowCount(0)
        if project is None:
            self.project_id = None
            self.title_label.setText(self.WELCOME_TEXT)
            self.document_table.setVisible(False)
            self.annotate_button.setEnabled(False)
            self.progress_label.clear()
            return

        self.project_id = project.id
        self.title_label.setText(project.name)
        self.document_table.setVisible(True)
        documents = project.documents
        self.document_table.setRowCount(len(documents))
        for row, document in enumerate(documents):
            completed = document.status == DocumentStatus.COMPLETED
            preview = document.text[: self.PREVIEW_LENGTH].replace("\n", " ")
            if len(document.text) > self.PREVIEW_LENGTH:
                preview += "…"
            name_item = QTableWidgetItem(document.name)
            name_item.setData(Qt.ItemDataRole.UserRole, document.id)
            count_item = QTableWidgetItem()
            count_item.setData(Qt.ItemDataRole.DisplayRole, len(document.annotations))
            items = [
                name_item,
                QTableWidgetItem("Completed" if completed else "In progress"),
                count_item,
                QTableWidgetItem(preview),
            ]
            for column, item in enumerate(items):
                if completed:
                    item.setBackground(QBrush(QColor(self.COMPLETED_COLOR)))
                self.document_table.setItem(row, column, item)

        done = sum(1 for d in documents if d.status == DocumentStatus.COMPLETED)
        self.progress_label.setText(f"{done} of {len(documents)} document(s) completed")
        self.annotate_button.setEnabled(bool(documents))
        if documents:
            self.document_table.selectRow(0)

    def selected_document_id(self) -> int | None:
        row = self.document_table.currentRow()
        if row < 0:
            return None
        item = self.document_table.item(row, 0)
        return item.data(Qt.ItemDataRole.UserRole) if item else None

    def _activate(self) -> None:
        doc_id = self.selected_document_id()
        if doc_id is not None:
            self.document_activated.emit(doc_id)
