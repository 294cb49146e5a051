"""Annotation page: class chips, painted document text and document toolbar."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from PySide6.QtCore import QPoint, QSettings, Qt, Signal
from PySide6.QtGui import (
    QColor,
    QKeySequence,
    QMouseEvent,
    QShortcut,
    QTextCharFormat,
    QTextCursor,
)
from PySide6.QtWidgets import (
    QCheckBox,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QTextEdit,
    QVBoxLayout,
    QWidget,
)

from spanapp.services.offsets import segment_at, selection_from_range
from spanapp.services.session import (
    ClosePopover,
    KeyPressed,
    NavigateDocument,
    OpenPopover,
    RemoveEntity,
    SaveAll,
    SaveDocument,
    SelectClass,
    SelectText,
    SetAutosave,
    ToggleComplete,
)
from spanapp.ui.dialogs.class_popover import ClassPopover
from spanapp.ui.dialogs.settings import AUTOSAVE_KEY

if TYPE_CHECKING:
    from collections.abc import Callable

    from spanapp.services.rendering import Segment
    from spanapp.services.session import AnnotationSession, Event


class SpanTextEdit(QTextEdit):
    """
    Read-only text area that reports selections and clicks.

    Qt cursor positions count UTF-16 code units, so characters outside the
    Basic Multilingual Plane take two positions. The signals and
    :meth:`point_for` work in document offsets (code points); use
    :meth:`to_offset` and :meth:`to_position` to convert.
    """

    #: Emitted on mouse release: anchor and focus offsets of the selection.
    selection_released = Signal(int, int)
    #: Emitted on right click with the document offset under the mouse.
    context_clicked = Signal(int)

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setReadOnly(True)
        self.setTextInteractionFlags(
            Qt.TextInteractionFlag.TextSelectableByMouse
            | Qt.TextInteractionFlag.TextSelectableByKeyboard
        )
        self.setContextMenuPolicy(Qt.ContextMenuPolicy.NoContextMenu)
        #: Document offset of each Qt position, plus the end of the text.
        self._offsets: list[int] = [0]
        #: Qt position of each document offset, plus the end of the text.
        self._positions: list[int] = [0]

    def set_document_text(self, text: str) -> None:
        """
        Show ``text`` and rebuild the offset tables.

        Args:
            text: The document text

        """
        self.setPlainText(text)
        offsets: list[int] = []
        positions = [0]
        for offset, char in enumerate(text):
            units = 2 if ord(char) > 0xFFFF else 1
            offsets.extend([offset] * units)
            positions.append(positions[-1] + units)
        offsets.append(len(text))
        self._offsets = offsets
        self._positions = positions

    def to_offset(self, position: int) -> int:
        """Document offset of the Qt cursor ``position``."""
        return self._offsets[max(0, min(position, len(self._offsets) - 1))]

    def to_position(self, offset: int) -> int:
        """Qt cursor position of the document ``offset``."""
        return self._positions[max(0, min(offset, len(self._positions) - 1))]

    def emit_selection(self) -> None:
        """Emit the current selection in document offsets."""
        cursor = self.textCursor()
        self.selection_released.emit(
            self.to_offset(cursor.anchor()), self.to_offset(cursor.position())
        )

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        """Emit the selection when the left button is released."""
        super().mouseReleaseEvent(event)
        if event.button() != Qt.MouseButton.LeftButton:
            return
        if self.textCursor().hasSelection():
            self.emit_selection()
        else:
            offset = self.to_offset(
                self.cursorForPosition(event.position().toPoint()).position()
            )
            self.selection_released.emit(offset, offset)

    def mousePressEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        """Emit right clicks; pass everything else on."""
        if event.button() == Qt.MouseButton.RightButton:
            position = self.cursorForPosition(event.position().toPoint()).position()
            self.context_clicked.emit(self.to_offset(position))
            return
        super().mousePressEvent(event)

    def clear_selection(self) -> None:
        cursor = self.textCursor()
        cursor.clearSelection()
        self.setTextCursor(cursor)

    def point_for(self, offset: int) -> QPoint:
        """Global position just below the character at document ``offset``."""
        cursor = QTextCursor(self.document())
        cursor.setPosition(self.to_position(offset))
        return self.viewport().mapToGlobal(self.cursorRect(cursor).bottomLeft())


class AnnotationView(QWidget):
    """
    The annotation page.

    The view never changes session state itself: every user action is sent as
    an event through ``dispatch``, and :meth:`render` repaints from the
    session afterwards.

    Args:
        dispatch: Callable sending an event to the session and applying the
            resulting effects

    Keyword Args:
        parent: Parent widget

    """

    #: Background of literal text.
    TEXT_BACKGROUND: Final[str] = "#f5f5f5"
    #: Stylesheet of a class chip; ``{border}`` marks the active class.
    CHIP_STYLE: Final[str] = (
        "background-color: {color}; border: {border}; border-radius: 10px; "
        "padding: 4px 10px;"
    )

    #: Emitted when the user asks to go back to the project.
    back_requested = Signal()

    def __init__(
        self, dispatch: Callable[[Event], None], parent: QWidget | None = None
    ) -> None:
        super().__init__(parent)
        #: Sends events to the session.
        self.dispatch = dispatch
        #: The session being displayed.
        self.session: AnnotationSession | None = None
        #: Segments currently painted.
        self.segments: tuple[Segment, ...] = ()
        #: Text currently shown, to avoid resetting the widget on every render.
        self._shown_text: str | None = None
        self.build()

    def build(self) -> None:
        """
        Build the page.

        - The toolbar with back, autosave, completion, save and navigation
        - The class chips
        - The text area
        - The reclassification popover
        - The ``1``-``9`` shortcuts
        """
        layout = QVBoxLayout(self)
        layout.addLayout(self._build_toolbar())

        self.title_label = QLabel(self)
        self.title_label.setStyleSheet("font-size: 14pt; font-weight: bold;")
        layout.addWidget(self.title_label)

        layout.addWidget(QLabel("Entity Classes (1-9 keys to select):", self))
        self.chip_layout = QHBoxLayout()
        self.chip_layout.setAlignment(Qt.AlignmentFlag.AlignLeft)
        layout.addLayout(self.chip_layout)
        self.chips: list[QPushButton] = []

        self.text_edit = SpanTextEdit(self)
        self.text_edit.setStyleSheet(
            f"background-color: {self.TEXT_BACKGROUND}; font-size: 13pt;"
        )
        self.text_edit.selection_released.connect(self._on_selection_released)
        self.text_edit.context_clicked.connect(self._on_context_clicked)
        layout.addWidget(self.text_edit, stretch=1)

        self.popover = ClassPopover(self.dispatch, self)
        self.popover.closed.connect(lambda: self.dispatch(ClosePopover()))

        for digit in "123456789":
            shortcut = QShortcut(QKeySequence(digit), self)
            shortcut.setContext(Qt.ShortcutContext.WidgetWithChildrenShortcut)
            shortcut.activated.connect(
                lambda key=digit: self.dispatch(KeyPressed(key))
            )

    def _build_toolbar(self) -> QHBoxLayout:
        toolbar = QHBoxLayout()
        self.back_button = QPushButton("← Back to Project", self)
        self.back_button.clicked.connect(self.back_requested.emit)
        toolbar.addWidget(self.back_button)
        toolbar.addStretch()

        self.autosave_checkbox = QCheckBox("AutoSave", self)
        self.autosave_checkbox.toggled.connect(self._on_autosave_toggled)
        toolbar.addWidget(self.autosave_checkbox)

        self.complete_button = QPushButton("Mark as Complete", self)
        self.complete_button.clicked.connect(lambda: self.dispatch(ToggleComplete()))
        toolbar.addWidget(self.complete_button)

        self.save_button = QPushButton("Save", self)
        self.save_button.setShortcut(QKeySequence("Ctrl+S"))
        self.save_button.clicked.connect(lambda: self.dispatch(SaveDocument()))
        toolbar.addWidget(self.save_button)

        self.save_all_button = QPushButton("Save All", self)
        self.save_all_button.clicked.connect(lambda: self.dispatch(SaveAll()))
        toolbar.addWidget(self.save_all_button)

        self.previous_button = QPushButton("Previous", self)
        self.previous_button.clicked.connect(
            lambda: self.dispatch(NavigateDocument(-1))
        )
        toolbar.addWidget(self.previous_button)

        self.next_button = QPushButton("Next", self)
        self.next_button.clicked.connect(lambda: self.dispatch(NavigateDocument(1)))
        toolbar.addWidget(self.next_button)
        return toolbar

    # Rendering

    def render(self, session: AnnotationSession) -> None:
        """
        Repaint everything from the session state.

        Args:
            session: The session to display

        """
        self.session = session
        state = session.state
        if state is None:
            self.setEnabled(False)
            return
        self.setEnabled(True)
        self.title_label.setText(state.name or f"Document {state.doc_id}")
        self._render_toolbar(session)
        self._render_chips(session)
        self._render_text(state.text, state.segments)
        self.popover.render(state, self.text_edit)

    def _render_toolbar(self, session: AnnotationSession) -> None:
        state = session.state
        assert state is not None  # noqa: S101
        autosave = session.context.autosave
        if self.autosave_checkbox.isChecked() != autosave:
            self.autosave_checkbox.blockSignals(True)
            self.autosave_checkbox.setChecked(autosave)
            self.autosave_checkbox.blockSignals(False)
        self.complete_button.setText(
            "✓ Marked Complete" if state.completed else "Mark as Complete"
        )
        self.save_button.setEnabled(session.is_dirty)
        dirty_count = session.buffer.dirty_count
        self.save_all_button.setText(f"Save All ({dirty_count})")
        self.save_all_button.setVisible(not autosave and dirty_count > 0)
        self.previous_button.setEnabled(state.has_previous)
        self.next_button.setEnabled(state.has_next)

    def _render_chips(self, session: AnnotationSession) -> None:
        state = session.state
        assert state is not None  # noqa: S101
        if len(self.chips) != len(state.entity_classes):
            for chip in self.chips:
                self.chip_layout.removeWidget(chip)
                chip.deleteLater()
            self.chips = []
            for index in range(len(state.entity_classes)):
                chip = QPushButton(self)
                chip.clicked.connect(
                    lambda _checked=False, i=index: self.dispatch(SelectClass(i))
                )
                self.chip_layout.addWidget(chip)
                self.chips.append(chip)
        for index, (chip, entity_class) in enumerate(
            zip(self.chips, state.entity_classes, strict=True)
        ):
            chip.setText(f"{index + 1}. {entity_class.name}")
            border = "2px solid black" if entity_class == state.active_class else "none"
            chip.setStyleSheet(
                self.CHIP_STYLE.format(color=entity_class.color, border=border)
            )

    def _render_text(self, text: str, segments: tuple[Segment, ...]) -> None:
        if text != self._shown_text:
            self.text_edit.set_document_text(text)
            self._shown_text = text
        self.segments = segments
        extra_selections = []
        for segment in segments:
            if not segment.is_annotated:
                continue
            cursor = QTextCursor(self.text_edit.document())
            cursor.setPosition(self.text_edit.to_position(segment.start))
            cursor.setPosition(
                self.text_edit.to_position(segment.end),
                QTextCursor.MoveMode.KeepAnchor,
            )
            char_format = QTextCharFormat()
            char_format.setBackground(QColor(segment.color))
            char_format.setToolTip(f"{segment.label} (right click to remove)")
            extra_selection = QTextEdit.ExtraSelection()
            extra_selection.cursor = cursor  # type: ignore[attr-defined]
            extra_selection.format = char_format  # type: ignore[attr-defined]
            extra_selections.append(extra_selection)
        self.text_edit.setExtraSelections(extra_selections)

    def clear_selection(self) -> None:
        self.text_edit.clear_selection()

    # Input

    def _on_selection_released(self, anchor: int, focus: int) -> None:
        """
        A selection adds an entity; a plain click on an entity opens the popover.
        """
        if self._shown_text is None:
            return
        if anchor != focus:
            self.dispatch(
                SelectText(selection_from_range(self._shown_text, anchor, focus))
            )
            return
        segment = segment_at(self.segments, focus)
        if segment is not None and segment.index is not None:
            self.dispatch(OpenPopover(segment.index))

    def _on_context_clicked(self, position: int) -> None:
        segment = segment_at(self.segments, position)
        if segment is not None and segment.index is not None:
            self.dispatch(RemoveEntity(segment.index))

    def _on_autosave_toggled(self, checked: bool) -> None:
        """Switch autosave for this session and keep it as the default."""
        QSettings().setValue(AUTOSAVE_KEY, checked)
        self.dispatch(SetAutosave(checked))
