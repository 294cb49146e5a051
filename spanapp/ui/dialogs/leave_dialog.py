from __future__ import annotations

from typing import TYPE_CHECKING, Final

from PySide6.QtWidgets import QDialog, QDialogButtonBox, QLabel, QVBoxLayout

from spanapp.services.session import LeaveDecision

if TYPE_CHECKING:
    from PySide6.QtWidgets import QWidget


class LeaveDialog:
    """
    Unsaved changes prompt, shown before leaving an annotation session with
    dirty documents.

    Args:
        parent: Parent widget
        dirty_count: Number of documents with unsaved edits

    """

    #: Dialog width
    DIALOG_WIDTH: Final[int] = 400
    #: Dialog height
    DIALOG_HEIGHT: Final[int] = 150

    def __init__(self, parent: QWidget, dirty_count: int) -> None:
        self.parent = parent
        self.dirty_count = dirty_count
        self.decision = LeaveDecision.CANCEL

    def build(self) -> None:
        """
        Build the leave dialog.
        """
        self.dialog = QDialog(self.parent)
        self.dialog.setWindowTitle("Unsaved Changes")
        self.dialog.setMinimumSize(self.DIALOG_WIDTH, self.DIALOG_HEIGHT)
        self.layout = QVBoxLayout(self.dialog)

        message_label = QLabel(
            f"You have unsaved changes in {self.dirty_count} document(s). "
            "Do you want to save them before leaving?"
        )
        message_label.setWordWrap(True)
        self.layout.addWidget(message_label)

        self.button_box = QDialogButtonBox(self.dialog)
        save_button = self.button_box.addButton(
            "Save && Leave", QDialogButtonBox.ButtonRole.AcceptRole
        )
        discard_button = self.button_box.addButton(
            "Don't Save", QDialogButtonBox.ButtonRole.DestructiveRole
        )
        cancel_button = self.button_box.addButton(
            QDialogButtonBox.StandardButton.Cancel
        )
        save_button.clicked.connect(lambda: self._decide(LeaveDecision.SAVE))
        discard_button.clicked.connect(lambda: self._decide(LeaveDecision.DISCARD))
        cancel_button.clicked.connect(lambda: self._decide(LeaveDecision.CANCEL))
        save_button.setDefault(True)
        self.layout.addWidget(self.button_box)

    def _decide(self, decision: LeaveDecision) -> None:
        self.decision = decision
        if decision is LeaveDecision.CANCEL:
            self.dialog.reject()
        else:
            self.dialog.accept()

    def execute(self) -> LeaveDecision:
        """
        Ask the user.

        Returns:
            The user's answer; closing the dialog counts as cancel

        """
        self.build()
        self.dialog.exec()
        return self.decision
