import logging

import pytest

from conftest import pw_gone, pw_node
from models import Event, ReconcileState
from pw_dump import classify_message
from pw_filter import IgnoreFilter
from reconciler import apply_message


def apply(state, value, ignore=()):
    return apply_message(state, classify_message(value), IgnoreFilter(ignore))


@pytest.fixture
def state():
    return ReconcileState()


# ---------------------------------------------------------------------------
# Batches (partial deltas)
# ---------------------------------------------------------------------------

class TestBatch:
    def test_adds_capture_stream(self, state):
        assert apply(state, [pw_node(123, app="TestApp")]) == {123}
        assert state.active == {123: "TestApp"}

    def test_absence_does_not_remove(self, state):
        apply(state, [pw_node(123, app="TestApp")])
        changed = apply(state, [pw_node(999, media_class="Stream/Output/Audio")])
        assert changed == set()
        assert 123 in state.active

    def test_empty_batch_does_not_remove(self, state):
        apply(state, [pw_node(123, app="TestApp")])
        assert apply(state, []) == set()
        assert 123 in state.active

    def test_class_change_removes(self, state):
        apply(state, [pw_node(123, app="TestApp")])
        assert apply(state, [pw_node(123, media_class="Stream/Output/Audio", app="TestApp")]) == {123}
        assert 123 not in state.active

    def test_missing_class_removes(self, state):
        apply(state, [pw_node(123, app="TestApp")])
        assert apply(state, [pw_node(123, media_class=None, app="TestApp")]) == {123}
        assert state.active == {}

    def test_null_info_removes(self, state):
        apply(state, [pw_node(123, app="TestApp")])
        apply(state, [pw_gone(123)])
        assert state.active == {}

    def test_non_capture_for_untracked_id_is_noop(self, state):
        assert apply(state, [pw_node(5, media_class="Audio/Sink")]) == set()
        assert state.active == {}

    def test_refresh_with_same_name_reports_no_change(self, state):
        apply(state, [pw_node(123, app="TestApp")])
        assert apply(state, [pw_node(123, app="TestApp")]) == set()

    def test_rename_uses_freshest_descriptor(self, state):
        apply(state, [pw_node(123, node_name="alsa_capture")])
        assert apply(state, [pw_node(123, app="Zoom", node_name="alsa_capture")]) == {123}
        assert state.active[123] == "Zoom"


# ---------------------------------------------------------------------------
# Events and single objects
# ---------------------------------------------------------------------------

class TestEvents:
    def test_added_event_inserts(self, state):
        apply(state, {"type": "added", "object": pw_node(123, app="App1")})
        assert state.active == {123: "App1"}

    def test_changed_event_keeps_capture(self, state):
        apply(state, {"type": "added", "object": pw_node(123, app="App1")})
        apply(state, {"type": "changed", "object": pw_node(123, app="App1", **{"media.name": "rec"})})
        assert state.active == {123: "App1"}

    def test_changed_event_class_change_removes(self, state):
        apply(state, {"type": "added", "object": pw_node(123, app="App1")})
        apply(state, {"type": "changed", "object": pw_node(123, media_class="Stream/Output/Audio")})
        assert state.active == {}

    def test_removed_event_is_unconditional(self, state):
        apply(state, [pw_node(123, app="TestApp")])
        changed = apply(state, {"type": "removed", "id": 123, "object": pw_node(123, app="TestApp")})
        assert changed == {123}
        assert state.active == {}

    def test_removing_untracked_id_is_silent(self, state):
        assert apply(state, {"type": "removed", "id": 404}) == set()

    def test_event_without_object_is_noop(self, state):
        apply(state, [pw_node(1, app="A")])
        assert apply_message(state, Event(kind="changed", id=1), IgnoreFilter()) == set()
        assert state.active == {1: "A"}

    def test_single_object_is_authoritative(self, state):
        apply(state, pw_node(8, app="Rec"))
        assert state.active == {8: "Rec"}
        apply(state, pw_node(8, media_class="Audio/Source"))
        assert state.active == {}

    def test_unknown_message_type_raises(self, state):
        with pytest.raises(TypeError):
            apply_message(state, "not a message", IgnoreFilter())


# ---------------------------------------------------------------------------
# Ignore list
# ---------------------------------------------------------------------------

class TestIgnored:
    def test_ignored_stream_is_never_tracked(self, state):
        assert apply(state, [pw_node(1, app="cava")], ignore=["cava"]) == set()
        assert state.active == {}

    def test_rename_into_ignored_name_removes(self, state):
        apply(state, [pw_node(1, node_name="capture")], ignore=["browser"])
        assert 1 in state.active
        apply(state, {"type": "changed", "object": pw_node(1, app="Some Web Browser")}, ignore=["browser"])
        assert state.active == {}

    def test_ignore_does_not_touch_other_streams(self, state):
        apply(state, [pw_node(1, app="Zoom"), pw_node(2, app="cava")], ignore=["cava"])
        assert state.active == {1: "Zoom"}

    def test_ignored_stream_logged_at_info_once(self, state, caplog):
        ignore = IgnoreFilter(["cava"])
        with caplog.at_level(logging.DEBUG, logger="reconciler"):
            for _ in range(3):
                apply_message(state, classify_message([pw_node(1, app="cava")]), ignore, log_ignored=True)
        levels = [r.levelno for r in caplog.records if "Ignoring capture stream 1" in r.getMessage()]
        assert levels == [logging.INFO, logging.DEBUG, logging.DEBUG]

    def test_removed_stream_is_reported_again_when_reused(self, state, caplog):
        ignore = IgnoreFilter(["cava"])
        apply_message(state, classify_message([pw_node(1, app="cava")]), ignore, log_ignored=True)
        apply_message(state, classify_message({"type": "removed", "id": 1}), ignore)
        with caplog.at_level(logging.INFO, logger="reconciler"):
            apply_message(state, classify_message([pw_node(1, app="cava")]), ignore, log_ignored=True)
        assert "Ignoring capture stream 1 from cava" in caplog.text
