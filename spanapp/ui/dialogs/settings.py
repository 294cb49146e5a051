from __future__ import annotations

from typing import TYPE_CHECKING, Final, cast

from PySide6.QtCore import QSettings
from PySide6.QtGui import QColor
from PySide6.QtWidgets import (
    QCheckBox,
    QComboBox,
    QDialog,
    QDialogButtonBox,
    QLabel,
    QLineEdit,
    QVBoxLayout,
)

from spanapp.services.serializers import FALLBACK_COLOR

if TYPE_CHECKING:
    from spanapp.ui.main_window import MainWindow

#: Setting: whether new annotation sessions start with autosave on.
AUTOSAVE_KEY: Final[str] = "annotation/autosave"
#: Setting: color for labels missing from a project's class list.
FALLBACK_COLOR_KEY: Final[str] = "annotation/fallback_color"
#: Setting: root logging level.
LOG_LEVEL_KEY: Final[str] = "logging/level"
#: Logging levels offered in the dialog.
LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")


def autosave_setting(settings: QSettings | None = None) -> bool:
    """Return the stored autosave preference."""
    if settings is None:
        settings = QSettings()
    return cast("bool", settings.value(AUTOSAVE_KEY, False, type=bool))


def fallback_color_setting(settings: QSettings | None = None) -> str:
    """Return the stored fallback color, or the default if it is not a color."""
    if settings is None:
        settings = QSettings()
    color = cast("str", settings.value(FALLBACK_COLOR_KEY, FALLBACK_COLOR, type=str))
    return color if QColor.isValidColorName(color) else FALLBACK_COLOR


def log_level_setting(settings: QSettings | None = None) -> str:
    """Return the stored logging level name."""
    if settings is None:
        settings = QSettings()
    level = cast("str", settings.value(LOG_LEVEL_KEY, "INFO", type=str)).upper()
    return level if level in LOG_LEVELS else "INFO"


class SettingsDialog:
    """
    Settings dialog for annotation preferences.
    """

    #: Dialog width
    DIALOG_WIDTH: Final[int] = 400
    #: Dialog height
    DIALOG_HEIGHT: Final[int] = 220

    def __init__(self, main_window: MainWindow) -> None:
        """
        Initialize settings dialog.
        """
        self.main_window = main_window
        self.settings = QSettings()

    def build(self) -> None:
        """
        Build the settings dialog.
        """
        self.dialog = QDialog(self.main_window)
        self.dialog.setWindowTitle("Preferences")
        self.dialog.setMinimumSize(self.DIALOG_WIDTH, self.DIALOG_HEIGHT)
        self.layout = QVBoxLayout(self.dialog)

        self.autosave_checkbox = QCheckBox(
            "Save documents automatically when moving between them", self.dialog
        )
        self.autosave_checkbox.setChecked(autosave_setting(self.settings))
        self.layout.addWidget(self.autosave_checkbox)

        color_label = QLabel("Color for unknown entity classes:")
        self.color_edit = QLineEdit(self.dialog)
        self.color_edit.setPlaceholderText(FALLBACK_COLOR)
        self.color_edit.setText(fallback_color_setting(self.settings))
        self.layout.addWidget(color_label)
        self.layout.addWidget(self.color_edit)

        level_label = QLabel("Log level:")
        self.level_combo = QComboBox(self.dialog)
        self.level_combo.addItems(list(LOG_LEVELS))
        self.level_combo.setCurrentText(log_level_setting(self.settings))
        self.layout.addWidget(level_label)
        self.layout.addWidget(self.level_combo)

        # Button box
        self.button_box = QDialogButtonBox(self.dialog)
        self.button_box.addButton(QDialogButtonBox.StandardButton.Ok)
        self.button_box.addButton(QDialogButtonBox.StandardButton.Cancel)
        self.button_box.accepted.connect(self.save_settings)
        self.button_box.rejected.connect(self.dialog.reject)
        self.layout.addWidget(self.button_box)

    def save_settings(self) -> None:
        """Save settings to QSettings."""
        color = self.color_edit.text().strip() or FALLBACK_COLOR
        if not QColor.isValidColorName(color):
            self.main_window.show_warning(f"{color!r} is not a color")
            return
        self.settings.setValue(AUTOSAVE_KEY, self.autosave_checkbox.isChecked())
        self.settings.setValue(FALLBACK_COLOR_KEY, color)
        self.settings.setValue(LOG_LEVEL_KEY, self.level_combo.currentText())
        self.dialog.accept()

    def execute(self) -> None:
        """
        Execute the settings dialog.
        """
        self.build()
        self.dialog.exec()
