"""Popover for reclassifying or removing an entity."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QColor, QHideEvent
from PySide6.QtWidgets import (
    QFrame,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from spanapp.services.session import ChooseClass, FilterClasses, RemoveEntity

if TYPE_CHECKING:
    from collections.abc import Callable

    from spanapp.services.session import DocumentState, Event
    from spanapp.ui.annotation_view import SpanTextEdit


class ClassPopover(QFrame):
    """
    Popup for changing the class of an entity.  It opens under an annotated
    segment when the user clicks it, and lists the entity classes matching the
    filter typed in its search box.

    The popover only mirrors ``state.popover``; choosing, filtering, removing
    and closing are all sent to the session through ``dispatch``.

    Args:
        dispatch: Callable sending an event to the session

    Keyword Args:
        parent: Parent widget

    """

    #: Popover width
    POPOVER_WIDTH: Final[int] = 240
    #: Popover height
    POPOVER_HEIGHT: Final[int] = 280

    #: Emitted when the popover is hidden, including clicks outside it.
    closed = Signal()

    def __init__(
        self, dispatch: Callable[[Event], None], parent: QWidget | None = None
    ) -> None:
        super().__init__(parent, Qt.WindowType.Popup)
        self.dispatch = dispatch
        #: Sorted index of the entity the popover is showing.
        self.index: int | None = None
        self.build()

    def build(self) -> None:
        """
        Build the popover.
        """
        self.setFrameShape(QFrame.Shape.StyledPanel)
        self.setFixedSize(self.POPOVER_WIDTH, self.POPOVER_HEIGHT)
        layout = QVBoxLayout(self)

        self.title_label = QLabel(self)
        layout.addWidget(self.title_label)

        self.search_box = QLineEdit(self)
        self.search_box.setPlaceholderText("Search classes...")
        self.search_box.textChanged.connect(
            lambda term: self.dispatch(FilterClasses(term))
        )
        layout.addWidget(self.search_box)

        self.class_list = QListWidget(self)
        self.class_list.itemClicked.connect(self._choose)
        self.class_list.itemActivated.connect(self._choose)
        layout.addWidget(self.class_list)

        self.remove_button = QPushButton("Remove annotation", self)
        self.remove_button.clicked.connect(self._remove)
        layout.addWidget(self.remove_button)

    def render(self, state: DocumentState, text_edit: SpanTextEdit) -> None:
        """
        Show, refresh or hide the popover to match the session state.

        Args:
            state: State of the visited document
            text_edit: Text area the entities are painted in, used to place
                the popover under the focused entity

        """
        popover = state.popover
        if popover is None:
            self.index = None
            if self.isVisible():
                self.hide()
            return

        segment = next(
            (s for s in state.segments if s.index == popover.index), None
        )
        if segment is None:
            self.hide()
            return

        self.title_label.setText(f"Change class of “{segment.text}”")
        if self.search_box.text() != popover.term:
            self.search_box.blockSignals(True)
            self.search_box.setText(popover.term)
            self.search_box.blockSignals(False)

        self.class_list.clear()
        for entity_class in state.filtered_classes:
            item = QListWidgetItem(entity_class.name)
            item.setData(Qt.ItemDataRole.UserRole, entity_class.name)
            item.setBackground(QColor(entity_class.color))
            if entity_class.name == segment.label:
                font = item.font()
                font.setBold(True)
                item.setFont(font)
            self.class_list.addItem(item)

        if self.index != popover.index or not self.isVisible():
            self.index = popover.index
            self.move(text_edit.point_for(segment.start))
            self.show()
            self.search_box.setFocus()

    def _choose(self, item: QListWidgetItem) -> None:
        self.dispatch(ChooseClass(item.data(Qt.ItemDataRole.UserRole)))

    def _remove(self) -> None:
        if self.index is not None:
            self.dispatch(RemoveEntity(self.index))

    def hideEvent(self, event: QHideEvent) -> None:  # noqa: N802
        """Tell the session the popover is gone."""
        super().hideEvent(event)
        self.index = None
        self.closed.emit()
