"""
Annotation session controller.

The host feeds user actions to :meth:`AnnotationSession.dispatch` as event
objects.  Each dispatch applies one state transition, performs the
persistence calls it needs, and returns the effects the host must carry out
(navigate, prompt, notify, repaint).  Persistence failures are turned into
:class:`Notify` effects here; they never reach the host's rendering code.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any

from spanapp.exc import (
    LoadFailed,
    SaveAllFailed,
    SaveFailed,
    StatusUpdateFailed,
)
from spanapp.models.document import DocumentStatus
from spanapp.services import entities as entity_model
from spanapp.services import rendering
from spanapp.services.buffer import ChangeBuffer
from spanapp.services.entities import EntityClass
from spanapp.services.offsets import map_selection
from spanapp.services.serializers import FALLBACK_COLOR, annotations_to_entities

if TYPE_CHECKING:
    from collections.abc import Callable

    from spanapp.services.entities import Entities
    from spanapp.services.offsets import TextSelection
    from spanapp.services.rendering import Segment
    from spanapp.services.store import DocumentStore

logger = logging.getLogger(__name__)


# Navigation targets


@dataclass(frozen=True)
class ProjectsTarget:
    """The project list, the safe view after a load failure."""


@dataclass(frozen=True)
class ProjectTarget:
    """The document list of a project."""

    project_id: int


@dataclass(frozen=True)
class DocumentTarget:
    """The annotation view of a document."""

    doc_id: int


@dataclass(frozen=True)
class ExitTarget:
    """Closing the application."""


Target = ProjectsTarget | ProjectTarget | DocumentTarget | ExitTarget


# Events


@dataclass(frozen=True)
class OpenDocument:
    doc_id: int


@dataclass(frozen=True)
class SelectClass:
    """Class chip clicked; ``index`` is the position in the class list."""

    index: int


@dataclass(frozen=True)
class KeyPressed:
    key: str


@dataclass(frozen=True)
class SelectText:
    selection: TextSelection | None


@dataclass(frozen=True)
class RemoveEntity:
    """Dismiss control of the annotated segment with sorted index ``index``."""

    index: int


@dataclass(frozen=True)
class OpenPopover:
    """Annotated segment with sorted index ``index`` clicked."""

    index: int


@dataclass(frozen=True)
class FilterClasses:
    term: str


@dataclass(frozen=True)
class ChooseClass:
    name: str


@dataclass(frozen=True)
class ClosePopover:
    pass


@dataclass(frozen=True)
class ToggleComplete:
    pass


@dataclass(frozen=True)
class NavigateDocument:
    """Previous (``-1``) or next (``1``) document of the project."""

    step: int


@dataclass(frozen=True)
class SaveDocument:
    pass


@dataclass(frozen=True)
class SaveAll:
    pass


@dataclass(frozen=True)
class SetAutosave:
    enabled: bool


@dataclass(frozen=True)
class RequestLeave:
    target: Target


class LeaveDecision(Enum):
    """Answers to the unsaved changes prompt."""

    SAVE = "save"
    DISCARD = "discard"
    CANCEL = "cancel"


@dataclass(frozen=True)
class ResolveLeave:
    decision: LeaveDecision


@dataclass(frozen=True)
class RequestUnload:
    pass


Event = (
    OpenDocument
    | SelectClass
    | KeyPressed
    | SelectText
    | RemoveEntity
    | OpenPopover
    | FilterClasses
    | ChooseClass
    | ClosePopover
    | ToggleComplete
    | NavigateDocument
    | SaveDocument
    | SaveAll
    | SetAutosave
    | RequestLeave
    | ResolveLeave
    | RequestUnload
)


# Effects


class NotifyLevel(Enum):
    SUCCESS = "success"
    INFO = "info"
    ERROR = "error"


@dataclass(frozen=True)
class Navigate:
    target: Target


@dataclass(frozen=True)
class PromptLeave:
    """Ask the user to save, discard or cancel."""


@dataclass(frozen=True)
class Notify:
    level: NotifyLevel
    message: str


@dataclass(frozen=True)
class ClearSelection:
    """Clear the host's native text selection."""


@dataclass(frozen=True)
class Render:
    """Repaint from the session state."""


Effect = Navigate | PromptLeave | Notify | ClearSelection | Render


# State


@dataclass(frozen=True)
class Popover:
    """
    The reclassification popover.

    Each opening starts with an empty filter; the term typed during an
    earlier opening is not kept.
    """

    #: Sorted index of the focused entity.
    index: int
    #: Class filter typed by the user.
    term: str = ""


@dataclass(frozen=True)
class DocumentState:
    """What the session knows about the document being visited."""

    doc_id: int
    project_id: int
    name: str
    text: str
    entity_classes: tuple[EntityClass, ...]
    #: Document list of the project: ``{"id", "name", "status"}`` dictionaries.
    documents: tuple[dict[str, Any], ...]
    entities: Entities = ()
    active_class: EntityClass | None = None
    popover: Popover | None = None
    completed: bool = False

    @property
    def segments(self) -> tuple[Segment, ...]:
        return rendering.project(self.text, self.entities)

    @property
    def position(self) -> int | None:
        """Position of this document in the project's document list."""
        for i, document in enumerate(self.documents):
            if document["id"] == self.doc_id:
                return i
        return None

    @property
    def has_previous(self) -> bool:
        position = self.position
        return position is not None and position > 0

    @property
    def has_next(self) -> bool:
        position = self.position
        return position is not None and position < len(self.documents) - 1

    @property
    def filtered_classes(self) -> tuple[EntityClass, ...]:
        """Classes matching the popover filter, case-insensitively."""
        term = self.popover.term.lower() if self.popover else ""
        return tuple(
            entity_class
            for entity_class in self.entity_classes
            if term in entity_class.name.lower()
        )

    def entity_index(self, sorted_index: int) -> int | None:
        """Insertion index of the entity painted with ``sorted_index``."""
        order = entity_model.sorted_order(self.entities)
        if 0 <= sorted_index < len(order):
            return order[sorted_index]
        return None


@dataclass
class SessionContext:
    """
    State shared by all document visits of one annotation session.

    Created when the user starts annotating a project and closed when they
    leave it.
    """

    #: Whether to save the current document before moving to another one.
    autosave: bool = False
    #: Color for labels missing from the class list.
    fallback_color: str = FALLBACK_COLOR
    #: Unsaved edits of every document visited in this session.
    buffer: ChangeBuffer = field(default_factory=ChangeBuffer)
    #: Where to go once the unsaved changes prompt is answered.
    pending_navigation: Target | None = None
    #: Whether :meth:`close` was called.
    closed: bool = False

    def close(self) -> None:
        """End the session, dropping anything still buffered."""
        if self.buffer.has_changes:
            logger.warning(
                f"Closing session with {self.buffer.dirty_count} unsaved document(s)"
            )
        self.buffer.discard()
        self.pending_navigation = None
        self.closed = True


class AnnotationSession:
    """
    Controller of an annotation session.

    Args:
        store: Persistence collaborator

    Keyword Args:
        context: Session context; a new one is created if omitted

    """

    def __init__(
        self, store: DocumentStore, context: SessionContext | None = None
    ) -> None:
        #: The persistence collaborator.
        self.store = store
        #: The session context.
        self.context = context if context is not None else SessionContext()
        #: The visited document, or None while loading.
        self.state: DocumentState | None = None
        self._handlers: dict[type, Callable[[Any], list[Effect]]] = {
            OpenDocument: self._open_document,
            SelectClass: self._select_class,
            KeyPressed: self._key_pressed,
            SelectText: self._select_text,
            RemoveEntity: self._remove_entity,
            OpenPopover: self._open_popover,
            FilterClasses: self._filter_classes,
            ChooseClass: self._choose_class,
            ClosePopover: self._close_popover,
            ToggleComplete: self._toggle_complete,
            NavigateDocument: self._navigate_document,
            SaveDocument: self._save_document,
            SaveAll: self._save_all,
            SetAutosave: self._set_autosave,
            RequestLeave: self._request_leave,
            ResolveLeave: self._resolve_leave,
            RequestUnload: self._request_unload,
        }

    @property
    def buffer(self) -> ChangeBuffer:
        return self.context.buffer

    @property
    def is_loading(self) -> bool:
        return self.state is None

    @property
    def is_dirty(self) -> bool:
        """Whether the visited document has unsaved edits."""
        return self.state is not None and self.buffer.is_dirty(self.state.doc_id)

    @property
    def needs_unload_confirmation(self) -> bool:
        """Whether closing now would lose edits."""
        return self.buffer.has_changes

    def dispatch(self, event: Event) -> list[Effect]:
        """
        Apply one event.

        Events that need a loaded document are ignored while loading.

        Args:
            event: The user action

        Returns:
            Effects for the host to carry out, in order

        """
        handler = self._handlers.get(type(event))
        if handler is None:
            msg = f"Unknown session event: {event!r}"
            raise TypeError(msg)
        return handler(event)

    # Loading

    def _load(
        self,
        resource_type: str,
        resource_id: int,
        loader: Callable[..., Any],
        *args: Any,
    ) -> Any:
        try:
            return loader(*args)
        except Exception as e:
            raise LoadFailed(resource_type, resource_id, e) from e

    def _open_document(self, event: OpenDocument) -> list[Effect]:
        previous = self.state
        self.state = None
        try:
            document = self._load(
                "Document", event.doc_id, self.store.get_document, event.doc_id
            )
            project_id = document["project_id"]
            project_data = self._load(
                "Project", project_id, self.store.get_project, project_id
            )
            documents = self._load(
                "Project documents",
                project_id,
                self.store.get_project_documents,
                project_id,
            )
        except LoadFailed as e:
            logger.exception(f"Error loading document {event.doc_id}")
            return [
                Notify(NotifyLevel.ERROR, f"Error loading {e.resource_type.lower()}"),
                Navigate(ProjectsTarget()),
            ]

        entity_classes = tuple(
            EntityClass.from_dict(data) for data in project_data["entity_classes"]
        )
        persisted = annotations_to_entities(
            document.get("annotations") or [],
            entity_classes,
            self.context.fallback_color,
        )
        snapshot = self.buffer.seed(event.doc_id, persisted)

        active_class = None
        if previous is not None and previous.active_class in entity_classes:
            active_class = previous.active_class

        self.state = DocumentState(
            doc_id=event.doc_id,
            project_id=project_id,
            name=document.get("name", ""),
            text=document["text"],
            entity_classes=entity_classes,
            documents=tuple(documents),
            entities=snapshot.entities,
            active_class=active_class,
            completed=document.get("status") == DocumentStatus.COMPLETED,
        )
        logger.info(
            f"Opened document {event.doc_id} with {len(snapshot.entities)} entities"
        )
        return [Render()]

    # Classes

    def _select_class(self, event: SelectClass) -> list[Effect]:
        if self.state is None:
            return []
        if not 0 <= event.index < len(self.state.entity_classes):
            return []
        self.state = replace(
            self.state, active_class=self.state.entity_classes[event.index]
        )
        return [Render()]

    def _key_pressed(self, event: KeyPressed) -> list[Effect]:
        if len(event.key) != 1 or event.key not in "123456789":
            return []
        return self._select_class(SelectClass(int(event.key) - 1))

    # Entity edits

    def _record(self, entities: Entities) -> None:
        assert self.state is not None  # noqa: S101
        self.buffer.record_edit(self.state.doc_id, entities)
        self.state = replace(self.state, entities=entities)

    def _select_text(self, event: SelectText) -> list[Effect]:
        if self.state is None:
            return []
        entity = map_selection(event.selection, self.state.active_class)
        if entity is None or entity.end > len(self.state.text):
            return []
        entities, _ = entity_model.add(self.state.entities, entity)
        self._record(entities)
        return [ClearSelection(), Render()]

    def _remove_entity(self, event: RemoveEntity) -> list[Effect]:
        if self.state is None:
            return []
        index = self.state.entity_index(event.index)
        if index is None:
            return []
        entities, _ = entity_model.remove(self.state.entities, index)
        self._record(entities)
        self.state = replace(self.state, popover=None)
        return [Render()]

    # Reclassification popover

    def _open_popover(self, event: OpenPopover) -> list[Effect]:
        """Focus the entity and start with an empty class filter."""
        if self.state is None or self.state.entity_index(event.index) is None:
            return []
        self.state = replace(self.state, popover=Popover(index=event.index))
        return [Render()]

    def _filter_classes(self, event: FilterClasses) -> list[Effect]:
        if self.state is None or self.state.popover is None:
            return []
        self.state = replace(
            self.state, popover=replace(self.state.popover, term=event.term)
        )
        return [Render()]

    def _choose_class(self, event: ChooseClass) -> list[Effect]:
        if self.state is None or self.state.popover is None:
            return []
        entity_class = next(
            (ec for ec in self.state.entity_classes if ec.name == event.name), None
        )
        index = self.state.entity_index(self.state.popover.index)
        if entity_class is not None and index is not None:
            entities, _ = entity_model.reclassify(
                self.state.entities, index, entity_class
            )
            self._record(entities)
        self.state = replace(self.state, popover=None)
        return [Render()]

    def _close_popover(self, _event: ClosePopover) -> list[Effect]:
        if self.state is None or self.state.popover is None:
            return []
        self.state = replace(self.state, popover=None)
        return [Render()]

    # Completion status

    def _toggle_complete(self, _event: ToggleComplete) -> list[Effect]:
        if self.state is None:
            return []
        completed = not self.state.completed
        status = DocumentStatus.COMPLETED if completed else DocumentStatus.IN_PROGRESS
        try:
            self.store.update_document(self.state.doc_id, {"status": status})
        except Exception as e:
            logger.exception(str(StatusUpdateFailed(self.state.doc_id, e)))
            return [Notify(NotifyLevel.ERROR, "Failed to update document status")]
        documents = tuple(
            {**document, "status": status}
            if document["id"] == self.state.doc_id
            else document
            for document in self.state.documents
        )
        self.state = replace(self.state, completed=completed, documents=documents)
        message = (
            "Document marked as complete"
            if completed
            else "Document marked as in progress"
        )
        return [Notify(NotifyLevel.SUCCESS, message), Render()]

    # Saving

    def _save_document(self, _event: SaveDocument) -> list[Effect]:
        if self.state is None:
            return []
        try:
            saved = self.buffer.save(self.state.doc_id, self.store)
        except SaveFailed:
            return [Notify(NotifyLevel.ERROR, "Failed to save annotations"), Render()]
        if not saved:
            return []
        return [Notify(NotifyLevel.SUCCESS, "Changes saved successfully"), Render()]

    def _save_all(self, _event: SaveAll) -> list[Effect]:
        try:
            self.buffer.save_all(self.store)
        except SaveAllFailed as e:
            logger.error(str(e))  # noqa: TRY400
            self.context.pending_navigation = None
            return [Notify(NotifyLevel.ERROR, "Failed to save all documents"), Render()]
        effects: list[Effect] = [
            Notify(NotifyLevel.SUCCESS, "All documents saved successfully"),
            Render(),
        ]
        target = self.context.pending_navigation
        if target is not None:
            self.context.pending_navigation = None
            effects.append(Navigate(target))
        return effects

    def _set_autosave(self, event: SetAutosave) -> list[Effect]:
        self.context.autosave = event.enabled
        return [Render()]

    # Navigation

    def _navigate_document(self, event: NavigateDocument) -> list[Effect]:
        if self.state is None:
            return []
        position = self.state.position
        if position is None:
            return []
        target = position + event.step
        if not 0 <= target < len(self.state.documents):
            return []
        next_id = self.state.documents[target]["id"]
        effects: list[Effect] = []
        if self.context.autosave and self.is_dirty:
            try:
                self.buffer.save(self.state.doc_id, self.store)
            except SaveFailed:
                return [Notify(NotifyLevel.ERROR, "Failed to save annotations")]
            effects.append(Notify(NotifyLevel.SUCCESS, "Changes saved successfully"))
        effects.append(Navigate(DocumentTarget(next_id)))
        return effects

    def _request_leave(self, event: RequestLeave) -> list[Effect]:
        if self.buffer.has_changes:
            self.context.pending_navigation = event.target
            return [PromptLeave()]
        return [Navigate(event.target)]

    def _resolve_leave(self, event: ResolveLeave) -> list[Effect]:
        target = self.context.pending_navigation
        if event.decision is LeaveDecision.SAVE:
            return self._save_all(SaveAll())
        self.context.pending_navigation = None
        if event.decision is LeaveDecision.CANCEL or target is None:
            return []
        self.buffer.discard()
        return [Navigate(target)]

    def _request_unload(self, _event: RequestUnload) -> list[Effect]:
        if self.needs_unload_confirmation:
            return [PromptLeave()]
        return []
