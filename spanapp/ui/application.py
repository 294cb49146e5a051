from __future__ import annotations

import sys
from typing import TYPE_CHECKING, Final

from PySide6.QtCore import QCoreApplication, QTimer
from PySide6.QtGui import QGuiApplication
from PySide6.QtWidgets import QApplication

from spanapp import __version__

from .main_window import MainWindow

if TYPE_CHECKING:
    from sqlalchemy.orm import Session, sessionmaker

#: Organization name used by QSettings.
ORGANIZATION_NAME: Final[str] = "Span Annotator"
#: Application name used by QSettings and the menu bar.
APPLICATION_NAME: Final[str] = "Span Annotator"


def configure_application_names() -> None:
    """
    Set the organization and application names.  QSettings needs these, so
    this must run before any setting is read.
    """
    QCoreApplication.setOrganizationName(ORGANIZATION_NAME)
    QCoreApplication.setApplicationName(APPLICATION_NAME)


def create_application(
    session_factory: sessionmaker[Session] | None = None,
) -> tuple[QApplication, MainWindow]:
    """
    Create the application and show the main window.

    Keyword Args:
        session_factory: Database session factory; the default database is
            used if omitted

    Returns:
        The application and its main window

    """
    configure_application_names()
    app = QApplication.instance() or QApplication(sys.argv)
    app.setApplicationVersion(__version__)
    QGuiApplication.setApplicationDisplayName(APPLICATION_NAME)

    window = MainWindow(session_factory)
    window.show()

    # Run after the event loop starts so dialogs have a visible parent
    QTimer.singleShot(0, window.show_startup_project)
    return app, window
