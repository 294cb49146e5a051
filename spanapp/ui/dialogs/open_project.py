from __future__ import annotations

from typing import TYPE_CHECKING, Final

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QDialog,
    QDialogButtonBox,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QLineEdit,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
)

from spanapp.models.project import Project

if TYPE_CHECKING:
    from datetime import datetime

    from spanapp.ui.main_window import MainWindow


class DateTimeTableWidgetItem(QTableWidgetItem):
    """
    QTableWidgetItem that sorts by datetime value instead of display text.
    """

    def __init__(self, dt: datetime) -> None:
        super().__init__(dt.strftime("%b %d, %Y %I:%M %p"))
        self._datetime = dt

    def __lt__(self, other: QTableWidgetItem) -> bool:
        if isinstance(other, DateTimeTableWidgetItem):
            return self._datetime < other._datetime
        return super().__lt__(other)


class OpenProjectDialog:
    """
    Open project dialog.  This gets opened from the "Open Project..." item of
    the File menu, and when the application starts with no project to show.
    """

    #: Dialog width
    DIALOG_WIDTH: Final[int] = 600
    #: Dialog height
    DIALOG_HEIGHT: Final[int] = 450

    def __init__(self, main_window: MainWindow) -> None:
        self.main_window = main_window
        #: ID of the chosen project, once the dialog is accepted.
        self.project_id: int | None = None

    def build(self) -> None:
        """
        Build the open project dialog.
        """
        self.dialog = QDialog(self.main_window)
        self.dialog.setWindowTitle("Open Project")
        self.dialog.setMinimumSize(self.DIALOG_WIDTH, self.DIALOG_HEIGHT)
        self.layout = QVBoxLayout(self.dialog)

        search_layout = QHBoxLayout()
        search_layout.addWidget(QLabel("Search:"))
        self.search_box = QLineEdit(self.dialog)
        self.search_box.setPlaceholderText("Search projects...")
        self.search_box.textChanged.connect(self._filter_projects)
        search_layout.addWidget(self.search_box)
        self.layout.addLayout(search_layout)

        self.project_table = QTableWidget(self.dialog)
        self.project_table.setColumnCount(4)
        self.project_table.setHorizontalHeaderLabels(
            ["Project Name", "Documents", "Last Modified", "Created"]
        )
        self.project_table.setSelectionBehavior(
            QTableWidget.SelectionBehavior.SelectRows
        )
        self.project_table.setSelectionMode(QTableWidget.SelectionMode.SingleSelection)
        self.project_table.setAlternatingRowColors(True)
        self.project_table.setEditTriggers(QTableWidget.EditTrigger.NoEditTriggers)
        self.project_table.doubleClicked.connect(lambda _index: self.dialog.accept())
        header = self.project_table.horizontalHeader()
        header.setSectionResizeMode(0, QHeaderView.ResizeMode.Stretch)
        for column in (1, 2, 3):
            header.setSectionResizeMode(
                column, QHeaderView.ResizeMode.ResizeToContents
            )
        self.layout.addWidget(self.project_table)
        self.load_project_list()

        self.button_box = QDialogButtonBox(self.dialog)
        self.button_box.addButton(QDialogButtonBox.StandardButton.Open)
        self.button_box.addButton(QDialogButtonBox.StandardButton.Cancel)
        self.button_box.accepted.connect(self.dialog.accept)
        self.button_box.rejected.connect(self.dialog.reject)
        self.layout.addWidget(self.button_box)

    def load_project_list(self) -> None:
        """
        Fill the table with the projects in the database, most recently
        modified first.
        """
        self.project_table.setSortingEnabled(False)
        projects = Project.list(self.main_window.session)
        projects.sort(key=lambda x: x.updated_at, reverse=True)
        self.project_table.setRowCount(len(projects))
        for row, project in enumerate(projects):
            name_item = QTableWidgetItem(project.name)
            name_item.setData(Qt.ItemDataRole.UserRole, project.id)
            self.project_table.setItem(row, 0, name_item)
            count_item = QTableWidgetItem()
            count_item.setData(Qt.ItemDataRole.DisplayRole, len(project.documents))
            self.project_table.setItem(row, 1, count_item)
            self.project_table.setItem(
                row, 2, DateTimeTableWidgetItem(project.updated_at)
            )
            self.project_table.setItem(
                row, 3, DateTimeTableWidgetItem(project.created_at)
            )
        self.project_table.setSortingEnabled(True)
        if projects:
            self.project_table.selectRow(0)

    def _filter_projects(self, search_text: str) -> None:
        search_lower = search_text.lower()
        for row in range(self.project_table.rowCount()):
            name_item = self.project_table.item(row, 0)
            if name_item:
                hide = bool(search_text) and search_lower not in name_item.text().lower()
                self.project_table.setRowHidden(row, hide)

    def selected_project_id(self) -> int | None:
        """Return the ID of the selected project, if any."""
        row = self.project_table.currentRow()
        if row < 0:
            return None
        name_item = self.project_table.item(row, 0)
        return name_item.data(Qt.ItemDataRole.UserRole) if name_item else None

    def execute(self) -> int | None:
        """
        Ask the user for a project.

        Returns:
            The chosen project's ID, or None if the dialog was cancelled

        """
        self.build()
        if not self.project_table.rowCount():
            self.main_window.show_information(
                "No projects found. Import a project first.", title="No Projects"
            )
            return None
        if self.dialog.exec():
            self.project_id = self.selected_project_id()
        return self.project_id
