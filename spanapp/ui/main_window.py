"""Main application window."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final

from PySide6.QtCore import QTimer
from PySide6.QtWidgets import (
    QApplication,
    QFileDialog,
    QMainWindow,
    QMessageBox,
    QStackedWidget,
)

from spanapp.db import create_session_factory
from spanapp.models.project import Project
from spanapp.services.import_export import ProjectExporter, ProjectImporter
from spanapp.services.session import (
    AnnotationSession,
    ClearSelection,
    DocumentTarget,
    ExitTarget,
    Navigate,
    Notify,
    NotifyLevel,
    OpenDocument,
    ProjectsTarget,
    ProjectTarget,
    PromptLeave,
    Render,
    RequestLeave,
    ResolveLeave,
    SessionContext,
)
from spanapp.services.store import SQLDocumentStore
from spanapp.ui.annotation_view import AnnotationView
from spanapp.ui.dialogs import LeaveDialog, OpenProjectDialog, SettingsDialog
from spanapp.ui.dialogs.settings import autosave_setting, fallback_color_setting
from spanapp.ui.menus import MainMenu
from spanapp.ui.project_page import ProjectPage

if TYPE_CHECKING:
    from PySide6.QtGui import QCloseEvent
    from sqlalchemy.orm import Session, sessionmaker

    from spanapp.services.session import Effect, Event, Target

logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    """
    Main application window.

    The window has two pages: the document list of the open project and the
    annotation view.  While the annotation view is shown the window owns an
    :class:`~spanapp.services.session.AnnotationSession`; every user action
    on that page is dispatched to it and the effects it returns are carried
    out by :meth:`apply_effects`.

    Keyword Args:
        session_factory: Database session factory; the default database is
            used if omitted

    """

    #: Main window geometry
    MAIN_WINDOW_GEOMETRY: Final[tuple[int, int, int, int]] = (100, 100, 1200, 800)
    #: Window title
    TITLE: Final[str] = "Span Annotator"

    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        super().__init__()
        #: Database session factory
        self.session_factory = session_factory or create_session_factory()
        #: SQLAlchemy session used by the window for project lists and files
        self.session = self.session_factory()
        #: Persistence collaborator of annotation sessions
        self.store = SQLDocumentStore(self.session_factory)
        #: Current project ID
        self.current_project_id: int | None = None
        #: The running annotation session, if any
        self.annotation_session: AnnotationSession | None = None
        #: Whether the window may close without asking again
        self._exit_confirmed = False
        self.build()

    def build(self) -> None:
        """
        Build the main window.

        - Setup the main window.
        - Setup the main menu.

        """
        self.setWindowTitle(self.TITLE)
        app = QApplication.instance()
        if isinstance(app, QApplication) and not app.windowIcon().isNull():
            self.setWindowIcon(app.windowIcon())
        self.setGeometry(*self.MAIN_WINDOW_GEOMETRY)

        self.pages = QStackedWidget(self)
        self.project_page = ProjectPage(self.pages)
        self.project_page.document_activated.connect(self.start_annotation)
        self.annotation_view = AnnotationView(self.dispatch, self.pages)
        self.annotation_view.back_requested.connect(self.back_to_project)
        self.pages.addWidget(self.project_page)
        self.pages.addWidget(self.annotation_view)
        self.setCentralWidget(self.pages)

        self.main_menu = MainMenu(self)
        self.main_menu.build()
        self.show_message("Ready")

    # Messages

    def show_message(self, message: str, duration: int = 2000) -> None:
        """
        Show a message in the status bar.

        Args:
            message: Message to show

        Keyword Args:
            duration: Duration of the message in milliseconds (default: 2000)

        """
        self.statusBar().showMessage(message, duration)

    def show_warning(self, message: str, title: str = "Warning") -> None:
        """
        Show a warning message.

        Args:
            message: Message to show

        Keyword Args:
            title: Title of the message (default: "Warning")

        """
        QMessageBox.warning(self, title, message)

    def show_error(self, message: str, title: str = "Error") -> None:
        """
        Show an error message.

        Args:
            message: Message to show

        Keyword Args:
            title: Title of the message (default: "Error")

        """
        QMessageBox.warning(self, title, message)

    def show_information(self, message: str, title: str = "Information") -> None:
        """
        Show an information message.

        Args:
            message: Message to show

        Keyword Args:
            title: Title of the message (default: "Information")

        """
        QMessageBox.information(self, title, message)

    # Projects

    def show_startup_project(self) -> None:
        """Show the most recently modified project, if there is one."""
        projects = Project.list(self.session)
        if not projects:
            return
        projects.sort(key=lambda x: x.updated_at, reverse=True)
        self.show_project(projects[0].id)

    def show_project(self, project_id: int | None) -> None:
        """
        Show the document list of a project.

        Args:
            project_id: Project ID, or None for the welcome page

        """
        # Pick up statuses and annotations written by annotation sessions
        self.session.expire_all()
        project = Project.get(self.session, project_id) if project_id else None
        if project_id is not None and project is None:
            self.show_warning("Project not found")
        self.current_project_id = project.id if project else None
        self.project_page.show_project(project)
        self.main_menu.file_menu.export_action.setEnabled(project is not None)
        self.setWindowTitle(f"{self.TITLE} - {project.name}" if project else self.TITLE)
        self.pages.setCurrentWidget(self.project_page)

    def open_project_dialog(self) -> None:
        """
        Ask for a project and show it.  Leaving an annotation session with
        unsaved changes asks first.
        """
        project_id = OpenProjectDialog(self).execute()
        if project_id is None:
            return
        if self.annotation_session is not None:
            self.dispatch(RequestLeave(ProjectTarget(project_id)))
        else:
            self.show_project(project_id)
            self.show_message("Project opened")

    def import_project_json(self) -> None:
        """
        Import project from JSON format.
        """
        file_path, _ = QFileDialog.getOpenFileName(
            self, "Import Project", "", "JSON Files (*.json);;All Files (*)"
        )
        if not file_path:
            return

        try:
            project, was_renamed = ProjectImporter(self.session).import_project_json(
                file_path
            )
        except ValueError as e:
            self.session.rollback()
            self.show_error(str(e), title="Import Error")
            return

        message = f"Project '{project.name}' imported successfully."
        if was_renamed:
            message += (
                "\n\nThe project name was changed to avoid a collision with an "
                "existing project."
            )
        self.show_information(message, title="Import Successful")
        if self.annotation_session is None:
            self.show_project(project.id)
        self.show_message("Project imported", duration=3000)

    def export_project_json(self) -> bool:
        """
        Export the current project to JSON format.

        Annotations not yet saved are not part of the export.

        Returns:
            True if export was successful, False if canceled or failed

        """
        if self.current_project_id is None:
            self.show_warning("No project open")
            return False
        project = Project.get(self.session, self.current_project_id)
        if project is None:
            self.show_warning("Project not found")
            return False

        default_filename = ProjectExporter.sanitize_filename(project.name) + ".json"
        file_path, _ = QFileDialog.getSaveFileName(
            self,
            "Export Project",
            default_filename,
            "JSON Files (*.json);;All Files (*)",
        )
        if not file_path:
            return False

        self.session.expire_all()
        try:
            ProjectExporter(self.session).export_project_json(
                self.current_project_id, file_path
            )
        except ValueError as e:
            self.show_error(str(e), title="Export Error")
            return False

        self.show_information(
            f"Project exported successfully to:\n{file_path}",
            title="Export Successful",
        )
        self.show_message("Export completed", duration=3000)
        return True

    def show_settings_dialog(self) -> None:
        """Show the preferences dialog."""
        SettingsDialog(self).execute()

    # Annotation sessions

    def start_annotation(self, doc_id: int) -> None:
        """
        Start an annotation session on a document of the current project.

        Args:
            doc_id: ID of the first document to show

        """
        if self.annotation_session is None:
            context = SessionContext(
                autosave=autosave_setting(),
                fallback_color=fallback_color_setting(),
            )
            self.annotation_session = AnnotationSession(self.store, context)
            logger.info(f"Started annotation session at document {doc_id}")
        self.pages.setCurrentWidget(self.annotation_view)
        self.dispatch(OpenDocument(doc_id))

    def end_annotation(self) -> None:
        """Close the annotation session, if one is running."""
        if self.annotation_session is None:
            return
        self.annotation_session.context.close()
        self.annotation_session = None
        logger.info("Ended annotation session")

    def back_to_project(self) -> None:
        """Leave the annotation view for the project's document list."""
        if self.annotation_session is None or self.annotation_session.state is None:
            self.end_annotation()
            self.show_project(self.current_project_id)
            return
        project_id = self.annotation_session.state.project_id
        self.dispatch(RequestLeave(ProjectTarget(project_id)))

    def dispatch(self, event: Event) -> None:
        """
        Send an event to the annotation session and carry out its effects.

        Args:
            event: The user action

        """
        if self.annotation_session is None:
            return
        self.apply_effects(self.annotation_session.dispatch(event))

    def apply_effects(self, effects: list[Effect]) -> None:
        """
        Carry out the effects returned by the annotation session, in order.

        Args:
            effects: Effects to carry out

        """
        for effect in effects:
            if isinstance(effect, Render):
                if self.annotation_session is not None:
                    self.annotation_view.render(self.annotation_session)
            elif isinstance(effect, ClearSelection):
                self.annotation_view.clear_selection()
            elif isinstance(effect, Notify):
                self.notify(effect)
            elif isinstance(effect, PromptLeave):
                self.prompt_leave()
            elif isinstance(effect, Navigate):
                self.navigate(effect.target)

    def notify(self, notification: Notify) -> None:
        """Show a session notification: errors in a box, the rest in the status bar."""
        self.show_message(notification.message, duration=3000)
        if notification.level is NotifyLevel.ERROR:
            self.show_error(notification.message)

    def prompt_leave(self) -> None:
        """Ask whether to save, discard or keep the unsaved changes."""
        if self.annotation_session is None:
            return
        decision = LeaveDialog(
            self, self.annotation_session.buffer.dirty_count
        ).execute()
        self.dispatch(ResolveLeave(decision))

    def navigate(self, target: Target) -> None:
        """
        Go to a navigation target.

        Args:
            target: Where to go

        """
        if isinstance(target, DocumentTarget):
            self.start_annotation(target.doc_id)
        elif isinstance(target, ProjectTarget):
            self.end_annotation()
            self.show_project(target.project_id)
        elif isinstance(target, ProjectsTarget):
            self.end_annotation()
            self.show_project(None)
            QTimer.singleShot(0, self.open_project_dialog)
        elif isinstance(target, ExitTarget):
            self.end_annotation()
            self._exit_confirmed = True
            QTimer.singleShot(0, self.close)

    def closeEvent(self, event: QCloseEvent) -> None:  # noqa: N802
        """
        Ask before closing while an annotation session has unsaved changes.
        """
        session = self.annotation_session
        if (
            not self._exit_confirmed
            and session is not None
            and session.needs_unload_confirmation
        ):
            event.ignore()
            self.dispatch(RequestLeave(ExitTarget()))
            return
        self.end_annotation()
        self.session.close()
        event.accept()

