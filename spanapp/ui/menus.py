from __future__ import annotations

from typing import TYPE_CHECKING

from PySide6.QtGui import QAction, QKeySequence

if TYPE_CHECKING:
    from PySide6.QtWidgets import QMenu

    from spanapp.ui.main_window import MainWindow


class MainMenu:
    """Main application menu."""

    def __init__(self, main_window: MainWindow) -> None:
        """
        Initialize main menu.

        Args:
            main_window: Main window instance

        """
        #: Main window instance
        self.main_window = main_window
        #: Menu bar
        self.menu = self.main_window.menuBar()

    def build(self) -> None:
        """Build the main menu."""
        self.file_menu = FileMenu(self.main_window, self.menu.addMenu("&File"))
        self.file_menu.build()


class FileMenu:
    """
    The "File" menu:

    - Open Project...
    - Import Project...
    - Export Project...
    - Preferences...
    - Quit

    Args:
        main_window: Main window instance
        menu: The menu to fill

    """

    def __init__(self, main_window: MainWindow, menu: QMenu) -> None:
        #: Main window instance
        self.main_window = main_window
        #: The File menu
        self.file_menu = menu

    def _add_action(
        self, text: str, slot, shortcut: QKeySequence | None = None
    ) -> QAction:
        action = QAction(text, self.main_window)
        if shortcut is not None:
            action.setShortcut(shortcut)
        action.triggered.connect(slot)
        self.file_menu.addAction(action)
        return action

    def build(self) -> None:
        """Add the actions to the menu."""
        self._add_action(
            "&Open Project...",
            self.main_window.open_project_dialog,
            QKeySequence(QKeySequence.StandardKey.Open),
        )
        self.file_menu.addSeparator()
        self._add_action("&Import Project...", self.main_window.import_project_json)
        self.export_action = self._add_action(
            "&Export Project...", self.main_window.export_project_json
        )
        self.file_menu.addSeparator()
        preferences = self._add_action(
            "&Preferences...",
            self.main_window.show_settings_dialog,
            QKeySequence(QKeySequence.StandardKey.Preferences),
        )
        preferences.setMenuRole(QAction.MenuRole.PreferencesRole)
        quit_action = self._add_action(
            "&Quit",
            self.main_window.close,
            QKeySequence(QKeySequence.StandardKey.Quit),
        )
        quit_action.setMenuRole(QAction.MenuRole.QuitRole)
