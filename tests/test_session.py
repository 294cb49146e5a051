"""Unit tests for AnnotationSession."""

import logging

import pytest

from spanapp.models.document import DocumentStatus
from spanapp.services.offsets import TextSelection, selection_from_range
from spanapp.services.session import (
    AnnotationSession,
    ChooseClass,
    ClearSelection,
    ClosePopover,
    DocumentTarget,
    ExitTarget,
    FilterClasses,
    KeyPressed,
    LeaveDecision,
    Navigate,
    NavigateDocument,
    Notify,
    NotifyLevel,
    OpenDocument,
    OpenPopover,
    ProjectsTarget,
    ProjectTarget,
    PromptLeave,
    RemoveEntity,
    Render,
    RequestLeave,
    RequestUnload,
    ResolveLeave,
    SaveAll,
    SaveDocument,
    SelectClass,
    SelectText,
    SessionContext,
    SetAutosave,
    ToggleComplete,
)
from tests.conftest import ORG, PERSON, MemoryStore, wire


def open_session(store, doc_id=1, **context):
    """Helper to start a session on a document."""
    session = AnnotationSession(store, SessionContext(**context))
    session.dispatch(OpenDocument(doc_id))
    return session


def annotate(session, start, end, class_index=0):
    """Helper to tag ``text[start:end]`` of the visited document."""
    session.dispatch(SelectClass(class_index))
    return session.dispatch(
        SelectText(selection_from_range(session.state.text, start, end))
    )


class TestOpenDocument:
    """Test cases for loading documents."""

    def test_loads_document(self, memory_store):
        """Test the document, class list and document list are loaded."""
        session = AnnotationSession(memory_store)
        assert session.is_loading
        effects = session.dispatch(OpenDocument(2))
        assert effects == [Render()]
        state = session.state
        assert state.doc_id == 2
        assert state.text == "Apple hired Tim Cook."
        assert state.entity_classes == (PERSON, ORG)
        assert [d["id"] for d in state.documents] == [1, 2, 3]
        assert state.active_class is None
        assert not state.completed
        assert not session.is_dirty

    def test_resolves_colors_of_persisted_annotations(self):
        """Test colors come from the class list, with a fallback."""
        store = MemoryStore()
        store.documents[2]["annotations"] = [
            wire(0, 5, "ORG", "Apple"),
            wire(12, 20, "CEO", "Tim Cook"),
        ]
        session = open_session(store, 2, fallback_color="#cccccc")
        assert [(e.label, e.color) for e in session.state.entities] == [
            ("ORG", "#00ff00"),
            ("CEO", "#cccccc"),
        ]

    def test_completed_status(self, memory_store):
        """Test a completed document opens as completed."""
        memory_store.documents[1]["status"] = DocumentStatus.COMPLETED
        assert open_session(memory_store).state.completed

    def test_load_failure_redirects_to_projects(self, memory_store, caplog):
        """Test a failed load notifies and navigates to the project list."""
        memory_store.fail_loads = True
        session = AnnotationSession(memory_store)
        with caplog.at_level(logging.ERROR):
            effects = session.dispatch(OpenDocument(1))
        assert effects == [
            Notify(NotifyLevel.ERROR, "Error loading document"),
            Navigate(ProjectsTarget()),
        ]
        assert session.state is None
        assert "Error loading document 1" in caplog.text

    def test_missing_document(self, memory_store):
        """Test a missing document is a load failure."""
        effects = AnnotationSession(memory_store).dispatch(OpenDocument(99))
        assert effects[-1] == Navigate(ProjectsTarget())

    def test_events_ignored_while_loading(self, memory_store):
        """Test events that need a document do nothing before one is loaded."""
        session = AnnotationSession(memory_store)
        assert session.dispatch(SelectClass(0)) == []
        assert session.dispatch(SelectText(selection_from_range("abc", 0, 2))) == []
        assert session.dispatch(ToggleComplete()) == []
        assert session.dispatch(SaveDocument()) == []
        assert session.dispatch(NavigateDocument(1)) == []
        assert memory_store.updates == []

    def test_unknown_event(self, memory_store):
        """Test an unknown event raises TypeError."""
        with pytest.raises(TypeError, match="Unknown session event"):
            AnnotationSession(memory_store).dispatch("click")

    def test_active_class_survives_navigation(self, memory_store):
        """Test the selected class stays selected on the next document."""
        session = open_session(memory_store)
        session.dispatch(SelectClass(1))
        session.dispatch(OpenDocument(2))
        assert session.state.active_class == ORG


class TestClassSelection:
    """Test cases for choosing the active class."""

    def test_select_class(self, memory_store):
        """Test clicking a chip selects its class."""
        session = open_session(memory_store)
        assert session.dispatch(SelectClass(1)) == [Render()]
        assert session.state.active_class == ORG

    def test_select_class_out_of_range(self, memory_store):
        """Test an invalid index changes nothing."""
        session = open_session(memory_store)
        assert session.dispatch(SelectClass(5)) == []
        assert session.dispatch(SelectClass(-1)) == []
        assert session.state.active_class is None

    def test_digit_keys(self, memory_store):
        """Test digits 1-9 select the class at that position."""
        session = open_session(memory_store)
        session.dispatch(KeyPressed("2"))
        assert session.state.active_class == ORG
        session.dispatch(KeyPressed("1"))
        assert session.state.active_class == PERSON

    def test_digit_past_class_list(self, memory_store):
        """Test a digit beyond the number of classes does nothing."""
        session = open_session(memory_store)
        session.dispatch(KeyPressed("1"))
        assert session.dispatch(KeyPressed("3")) == []
        assert session.state.active_class == PERSON

    @pytest.mark.parametrize("key", ["0", "a", "12", "", "Enter"])
    def test_other_keys(self, memory_store, key):
        """Test other keys are ignored."""
        session = open_session(memory_store)
        assert session.dispatch(KeyPressed(key)) == []


class TestSelection:
    """Test cases for creating entities from selections."""

    def test_select_text_creates_entity(self, memory_store):
        """Test selecting "Obama" with PERSON active tags it."""
        session = open_session(memory_store)
        effects = annotate(session, 7, 12)
        assert effects == [ClearSelection(), Render()]
        entity = session.state.entities[0]
        assert (entity.start, entity.end, entity.label, entity.text) == (
            7,
            12,
            "PERSON",
            "Obama",
        )
        assert [s.text for s in session.state.segments] == [
            "Barack ",
            "Obama",
            " was president.",
        ]
        assert session.is_dirty
        assert memory_store.updates == []

    def test_selection_without_class(self, memory_store):
        """Test nothing happens without an active class."""
        session = open_session(memory_store)
        effects = session.dispatch(
            SelectText(selection_from_range(session.state.text, 7, 12))
        )
        assert effects == []
        assert session.state.entities == ()
        assert not session.is_dirty

    def test_whitespace_selection(self, memory_store):
        """Test a whitespace selection is ignored."""
        session = open_session(memory_store)
        assert annotate(session, 6, 7) == []
        assert session.state.entities == ()

    def test_selection_outside_container(self, memory_store):
        """Test a selection leaving the text container is ignored."""
        session = open_session(memory_store)
        session.dispatch(SelectClass(0))
        selection = TextSelection(text="Obama", preceding="Barack ", focus_inside=False)
        assert session.dispatch(SelectText(selection)) == []

    def test_selection_past_the_text(self, memory_store):
        """Test a selection not inside the document text is ignored."""
        session = open_session(memory_store)
        session.dispatch(SelectClass(0))
        selection = TextSelection(text="later", preceding=session.state.text)
        assert session.dispatch(SelectText(selection)) == []

    def test_overlapping_selection(self, memory_store):
        """Test overlaps are stored and the painting stays consistent."""
        session = open_session(memory_store)
        annotate(session, 0, 12)
        annotate(session, 7, 16, class_index=1)
        assert len(session.state.entities) == 2
        assert "".join(s.text for s in session.state.segments) == session.state.text


class TestRemoval:
    """Test cases for removing entities."""

    def test_remove_restores_literal_text(self, memory_store):
        """Test removing the only entity leaves the plain text."""
        session = open_session(memory_store)
        annotate(session, 7, 12)
        assert session.dispatch(RemoveEntity(0)) == [Render()]
        assert session.state.entities == ()
        assert [s.text for s in session.state.segments] == [session.state.text]
        assert session.is_dirty

    def test_remove_uses_painted_order(self, memory_store):
        """Test the index of a segment removes the entity painted there."""
        session = open_session(memory_store)
        annotate(session, 17, 26)
        annotate(session, 7, 12, class_index=1)
        # "Obama" is painted first although it was added second
        session.dispatch(RemoveEntity(0))
        assert [e.text for e in session.state.entities] == ["president"]

    def test_remove_out_of_range(self, memory_store):
        """Test an invalid index changes nothing."""
        session = open_session(memory_store)
        annotate(session, 7, 12)
        assert session.dispatch(RemoveEntity(3)) == []
        assert len(session.state.entities) == 1


class TestPopover:
    """Test cases for the reclassification popover."""

    def test_open_filter_and_choose(self, memory_store):
        """Test reclassifying an entity through the popover."""
        session = open_session(memory_store)
        annotate(session, 7, 12)
        session.buffer.discard()

        assert session.dispatch(OpenPopover(0)) == [Render()]
        assert session.state.popover.index == 0
        assert session.state.filtered_classes == (PERSON, ORG)

        session.dispatch(FilterClasses("or"))
        assert session.state.filtered_classes == (ORG,)

        assert session.dispatch(ChooseClass("ORG")) == [Render()]
        entity = session.state.entities[0]
        assert (entity.label, entity.color, entity.text) == ("ORG", "#00ff00", "Obama")
        assert session.state.popover is None
        assert session.is_dirty

    def test_filter_is_case_insensitive(self, memory_store):
        """Test the filter ignores case."""
        session = open_session(memory_store)
        annotate(session, 7, 12)
        session.dispatch(OpenPopover(0))
        session.dispatch(FilterClasses("PeR"))
        assert session.state.filtered_classes == (PERSON,)
        session.dispatch(FilterClasses("xyz"))
        assert session.state.filtered_classes == ()

    def test_reopen_clears_filter(self, memory_store):
        """Test a new opening starts with an empty filter."""
        session = open_session(memory_store)
        annotate(session, 7, 12)
        session.dispatch(OpenPopover(0))
        session.dispatch(FilterClasses("org"))
        session.dispatch(ClosePopover())
        session.dispatch(OpenPopover(0))
        assert session.state.popover.term == ""
        assert session.state.filtered_classes == (PERSON, ORG)

    def test_reclassify_uses_painted_order(self, memory_store):
        """Test the popover changes the entity painted at its index."""
        session = open_session(memory_store)
        annotate(session, 17, 26)
        annotate(session, 7, 12)
        session.dispatch(OpenPopover(0))
        session.dispatch(ChooseClass("ORG"))
        assert [(e.text, e.label) for e in session.state.entities] == [
            ("president", "PERSON"),
            ("Obama", "ORG"),
        ]

    def test_close(self, memory_store):
        """Test closing the popover changes no entity."""
        session = open_session(memory_store)
        annotate(session, 7, 12)
        session.dispatch(OpenPopover(0))
        assert session.dispatch(ClosePopover()) == [Render()]
        assert session.state.popover is None
        assert session.state.entities[0].label == "PERSON"
        assert session.dispatch(ClosePopover()) == []

    def test_unknown_class(self, memory_store):
        """Test choosing a class not in the list only closes the popover."""
        session = open_session(memory_store)
        annotate(session, 7, 12)
        session.dispatch(OpenPopover(0))
        session.dispatch(ChooseClass("PLACE"))
        assert session.state.entities[0].label == "PERSON"
        assert session.state.popover is None

    def test_open_on_missing_entity(self, memory_store):
        """Test a popover cannot open on an index without entity."""
        session = open_session(memory_store)
        assert session.dispatch(OpenPopover(0)) == []
        assert session.state.popover is None

    def test_remove_from_popover(self, memory_store):
        """Test removing the focused entity closes the popover."""
        session = open_session(memory_store)
        annotate(session, 7, 12)
        session.dispatch(OpenPopover(0))
        session.dispatch(RemoveEntity(0))
        assert session.state.entities == ()
        assert session.state.popover is None


class TestToggleComplete:
    """Test cases for the completion toggle."""

    def test_mark_complete_and_back(self, memory_store):
        """Test the status is written remotely and then shown."""
        session = open_session(memory_store)
        effects = session.dispatch(ToggleComplete())
        assert effects == [
            Notify(NotifyLevel.SUCCESS, "Document marked as complete"),
            Render(),
        ]
        assert session.state.completed
        assert memory_store.documents[1]["status"] == DocumentStatus.COMPLETED
        assert session.state.documents[0]["status"] == DocumentStatus.COMPLETED

        effects = session.dispatch(ToggleComplete())
        assert effects[0] == Notify(NotifyLevel.SUCCESS, "Document marked as in progress")
        assert not session.state.completed
        assert memory_store.documents[1]["status"] == DocumentStatus.IN_PROGRESS

    def test_failure_keeps_state(self, memory_store, caplog):
        """Test a failed status update changes nothing locally."""
        memory_store.fail_updates.add(1)
        session = open_session(memory_store)
        with caplog.at_level(logging.ERROR):
            effects = session.dispatch(ToggleComplete())
        assert effects == [Notify(NotifyLevel.ERROR, "Failed to update document status")]
        assert not session.state.completed
        assert session.state.documents[0]["status"] == DocumentStatus.IN_PROGRESS
        assert "Updating status of document" in caplog.text

    def test_does_not_save_annotations(self, memory_store):
        """Test the toggle only sends the status."""
        session = open_session(memory_store)
        annotate(session, 7, 12)
        session.dispatch(ToggleComplete())
        assert memory_store.updates == [(1, {"status": DocumentStatus.COMPLETED})]
        assert session.is_dirty


class TestSaving:
    """Test cases for saving."""

    def test_save_document(self, memory_store):
        """Test saving sends the snapshot and cleans the document."""
        session = open_session(memory_store)
        annotate(session, 7, 12)
        effects = session.dispatch(SaveDocument())
        assert effects == [
            Notify(NotifyLevel.SUCCESS, "Changes saved successfully"),
            Render(),
        ]
        assert not session.is_dirty
        assert memory_store.documents[1]["annotations"] == [
            wire(7, 12, "PERSON", "Obama")
        ]

    def test_save_clean_document(self, memory_store):
        """Test saving without edits does nothing."""
        session = open_session(memory_store)
        assert session.dispatch(SaveDocument()) == []
        assert memory_store.updates == []

    def test_save_failure(self, memory_store):
        """Test a failed save keeps the edits dirty."""
        memory_store.fail_updates.add(1)
        session = open_session(memory_store)
        annotate(session, 7, 12)
        effects = session.dispatch(SaveDocument())
        assert effects[0] == Notify(NotifyLevel.ERROR, "Failed to save annotations")
        assert session.is_dirty
        assert len(session.state.entities) == 1

    def test_edits_survive_navigation(self, memory_store):
        """Test edits of a document left unsaved are there when it is reopened."""
        session = open_session(memory_store)
        annotate(session, 7, 12)
        session.dispatch(OpenDocument(2))
        assert not session.is_dirty
        assert session.buffer.dirty_ids == frozenset({1})
        session.dispatch(OpenDocument(1))
        assert [e.text for e in session.state.entities] == ["Obama"]
        assert session.is_dirty

    def test_save_all(self, memory_store):
        """Test Save All saves every dirty document."""
        session = open_session(memory_store)
        annotate(session, 7, 12)
        session.dispatch(OpenDocument(2))
        annotate(session, 0, 5, class_index=1)
        effects = session.dispatch(SaveAll())
        assert effects == [
            Notify(NotifyLevel.SUCCESS, "All documents saved successfully"),
            Render(),
        ]
        assert sorted(memory_store.updated_ids()) == [1, 2]
        assert not session.buffer.has_changes

    def test_save_all_failure(self, memory_store):
        """Test a partial failure keeps the failed document dirty."""
        memory_store.fail_updates.add(2)
        session = open_session(memory_store)
        annotate(session, 7, 12)
        session.dispatch(OpenDocument(2))
        annotate(session, 0, 5)
        effects = session.dispatch(SaveAll())
        assert effects[0] == Notify(NotifyLevel.ERROR, "Failed to save all documents")
        assert session.buffer.dirty_ids == frozenset({2})

    def test_set_autosave(self, memory_store):
        """Test the autosave switch is kept on the context."""
        session = open_session(memory_store)
        assert session.dispatch(SetAutosave(True)) == [Render()]
        assert session.context.autosave


class TestDocumentNavigation:
    """Test cases for previous/next navigation."""

    def test_next_and_previous(self, memory_store):
        """Test navigation targets the neighbouring documents."""
        session = open_session(memory_store, 2)
        assert session.state.has_previous
        assert session.state.has_next
        assert session.dispatch(NavigateDocument(1)) == [Navigate(DocumentTarget(3))]
        assert session.dispatch(NavigateDocument(-1)) == [Navigate(DocumentTarget(1))]

    def test_bounds(self, memory_store):
        """Test there is no previous of the first or next of the last document."""
        session = open_session(memory_store, 1)
        assert not session.state.has_previous
        assert session.dispatch(NavigateDocument(-1)) == []
        session.dispatch(OpenDocument(3))
        assert not session.state.has_next
        assert session.dispatch(NavigateDocument(1)) == []

    def test_without_autosave_keeps_edits_buffered(self, memory_store):
        """Test moving on without autosave saves nothing."""
        session = open_session(memory_store)
        annotate(session, 7, 12)
        assert session.dispatch(NavigateDocument(1)) == [Navigate(DocumentTarget(2))]
        assert memory_store.updates == []
        assert session.buffer.is_dirty(1)

    def test_autosave_saves_before_moving(self, memory_store):
        """Test autosave saves the document and then navigates."""
        session = open_session(memory_store, autosave=True)
        annotate(session, 7, 12)
        effects = session.dispatch(NavigateDocument(1))
        assert effects == [
            Notify(NotifyLevel.SUCCESS, "Changes saved successfully"),
            Navigate(DocumentTarget(2)),
        ]
        assert memory_store.updated_ids() == [1]
        assert not session.buffer.has_changes

    def test_autosave_clean_document(self, memory_store):
        """Test autosave does not save a document without edits."""
        session = open_session(memory_store, autosave=True)
        assert session.dispatch(NavigateDocument(1)) == [Navigate(DocumentTarget(2))]
        assert memory_store.updates == []

    def test_autosave_failure_stays(self, memory_store):
        """Test a failed autosave does not navigate."""
        memory_store.fail_updates.add(1)
        session = open_session(memory_store, autosave=True)
        annotate(session, 7, 12)
        effects = session.dispatch(NavigateDocument(1))
        assert effects == [Notify(NotifyLevel.ERROR, "Failed to save annotations")]
        assert session.is_dirty


class TestLeaving:
    """Test cases for leaving the session."""

    def test_leave_without_changes(self, memory_store):
        """Test leaving a clean session navigates at once."""
        session = open_session(memory_store)
        effects = session.dispatch(RequestLeave(ProjectTarget(1)))
        assert effects == [Navigate(ProjectTarget(1))]

    def test_leave_with_changes_prompts(self, memory_store):
        """Test leaving with unsaved edits asks first."""
        session = open_session(memory_store)
        annotate(session, 7, 12)
        assert session.dispatch(RequestLeave(ProjectTarget(1))) == [PromptLeave()]
        assert session.context.pending_navigation == ProjectTarget(1)

    def test_prompt_when_only_another_document_is_dirty(self, memory_store):
        """Test edits to documents no longer shown also prompt."""
        session = open_session(memory_store)
        annotate(session, 7, 12)
        session.dispatch(OpenDocument(2))
        assert session.dispatch(RequestLeave(ProjectTarget(1))) == [PromptLeave()]

    def test_save_and_leave(self, memory_store):
        """Test saving from the prompt saves A and B and then navigates."""
        session = open_session(memory_store)
        annotate(session, 7, 12)
        session.dispatch(OpenDocument(2))
        annotate(session, 0, 5)
        session.dispatch(RequestLeave(ProjectTarget(1)))
        effects = session.dispatch(ResolveLeave(LeaveDecision.SAVE))
        assert effects == [
            Notify(NotifyLevel.SUCCESS, "All documents saved successfully"),
            Render(),
            Navigate(ProjectTarget(1)),
        ]
        assert sorted(memory_store.updated_ids()) == [1, 2]
        assert session.context.pending_navigation is None

    def test_save_and_leave_failure_stays(self, memory_store):
        """Test a failed save from the prompt does not navigate."""
        memory_store.fail_updates.add(1)
        session = open_session(memory_store)
        annotate(session, 7, 12)
        session.dispatch(RequestLeave(ExitTarget()))
        effects = session.dispatch(ResolveLeave(LeaveDecision.SAVE))
        assert not any(isinstance(effect, Navigate) for effect in effects)
        assert session.context.pending_navigation is None
        assert session.is_dirty

    def test_discard_and_leave(self, memory_store):
        """Test discarding drops the edits and navigates."""
        session = open_session(memory_store)
        annotate(session, 7, 12)
        session.dispatch(RequestLeave(ProjectTarget(1)))
        effects = session.dispatch(ResolveLeave(LeaveDecision.DISCARD))
        assert effects == [Navigate(ProjectTarget(1))]
        assert not session.buffer.has_changes
        assert memory_store.updates == []

    def test_cancel(self, memory_store):
        """Test cancelling stays with the edits kept."""
        session = open_session(memory_store)
        annotate(session, 7, 12)
        session.dispatch(RequestLeave(ProjectTarget(1)))
        assert session.dispatch(ResolveLeave(LeaveDecision.CANCEL)) == []
        assert session.context.pending_navigation is None
        assert session.is_dirty

    def test_unload(self, memory_store):
        """Test closing asks only when edits would be lost."""
        session = open_session(memory_store)
        assert not session.needs_unload_confirmation
        assert session.dispatch(RequestUnload()) == []
        annotate(session, 7, 12)
        assert session.needs_unload_confirmation
        assert session.dispatch(RequestUnload()) == [PromptLeave()]

    def test_context_close(self, memory_store):
        """Test closing the context drops the buffer."""
        session = open_session(memory_store)
        annotate(session, 7, 12)
        session.context.close()
        assert session.context.closed
        assert not session.buffer.has_changes


class TestWithDatabase:
    """Test cases running the session on the SQL store."""

    def test_annotate_save_and_reload(self, store, sample_project):
        """Test saved annotations come back with their colors."""
        doc_id = sample_project.documents[0].id
        session = open_session(store, doc_id)
        annotate(session, 7, 12)
        session.dispatch(SaveDocument())

        reopened = open_session(store, doc_id)
        entity = reopened.state.entities[0]
        assert (entity.text, entity.label, entity.color) == ("Obama", "PERSON", "#ff0000")

    def test_save_all_on_database(self, store, sample_project):
        """Test concurrent saves through the SQL store."""
        ids = [d.id for d in sample_project.documents]
        session = open_session(store, ids[0])
        annotate(session, 7, 12)
        session.dispatch(OpenDocument(ids[1]))
        annotate(session, 0, 5, class_index=1)
        session.dispatch(OpenDocument(ids[2]))
        annotate(session, 0, 7)
        session.dispatch(SaveAll())
        assert not session.buffer.has_changes
        assert [len(store.get_document(i)["annotations"]) for i in ids] == [1, 1, 1]
