import pytest

from midialign.models import AlignmentSet, AlignmentTuple as T, Axis, Panel, Selection, ViewState, VisibilityMode
from midialign.session import Session


@pytest.fixture
def loaded(session, make_notes):
    session.set_notes(Panel.SCORE, make_notes([(60, 0.0, 2.0), (62, 2.0, 1.0), (64, 3.0, 1.0)]))
    session.set_notes(Panel.PERF, make_notes([(60, 3.0, 1.0), (62, 4.5, 1.0), (64, 6.0, 1.0)]))
    session.set_alignment([T(0, 0, 0), T(1, 1, 1), T(2, 2, -1)])
    return session


# --------------------- playback ---------------------
def test_playback_pins_driving_panel(session, clock):
    assert session.toggle_playback(Panel.SCORE) is True
    assert session.playback.state.start_offset == pytest.approx(1.0)
    clock.advance(0.5)
    assert session.tick() is True
    assert session.playback.position == pytest.approx(1.5)
    assert session.views[Panel.SCORE].scroll_x == pytest.approx(0.5)
    assert session.anchor_time(Panel.SCORE) == pytest.approx(1.5)
    assert session.views[Panel.PERF].scroll_x == 0.0


def test_offset_follows_current_scroll_and_zoom(session):
    session.views[Panel.PERF] = ViewState(zoom_x=200.0, scroll_x=4.0)
    session.toggle_playback(Panel.PERF)
    assert session.playback.state.start_offset == pytest.approx(4.5)


def test_same_panel_toggle_stops(session, clock):
    session.toggle_playback(Panel.SCORE)
    clock.advance(0.25); session.tick()
    assert session.toggle_playback(Panel.SCORE) is False
    assert not session.playback.is_playing
    scroll = session.views[Panel.SCORE].scroll_x
    clock.advance(1.0)
    assert session.tick() is False
    assert session.views[Panel.SCORE].scroll_x == scroll
    # playhead stays on the panel that played last
    assert session.playhead_panel is Panel.SCORE


def test_switching_panels_rederives_offset(session, clock):
    session.toggle_playback(Panel.SCORE)
    clock.advance(0.5); session.tick()
    session.pan(Panel.PERF, 3.0)
    assert session.toggle_playback(Panel.PERF) is True
    assert session.driving(Panel.PERF) and not session.driving(Panel.SCORE)
    assert session.playback.state.start_offset == pytest.approx(4.0)
    clock.advance(0.5); session.tick()
    assert session.playback.position == pytest.approx(4.5)
    assert session.views[Panel.PERF].scroll_x == pytest.approx(3.5)
    assert session.views[Panel.SCORE].scroll_x == pytest.approx(0.5)


def test_play_pause_resumes_last_panel(session, clock):
    assert session.play_pause() is True
    assert session.driving(Panel.SCORE)
    session.toggle_playback(Panel.PERF)
    assert session.play_pause() is False
    assert session.play_pause() is True
    assert session.driving(Panel.PERF)


def test_sync_follows_counterpart_onset(loaded, clock):
    loaded.toggle_sync()
    loaded.toggle_playback(Panel.SCORE)
    clock.advance(0.5); loaded.tick()
    # score note 0 holds 1.5s; its partner perf 0 starts at 3.0
    assert loaded.views[Panel.PERF].scroll_x == pytest.approx(2.0)
    assert loaded.anchor_time(Panel.PERF) == pytest.approx(3.0)


def test_sync_respects_other_zoom(loaded, clock):
    loaded.views[Panel.PERF] = ViewState(zoom_x=50.0)
    loaded.toggle_sync()
    loaded.toggle_playback(Panel.SCORE)
    clock.advance(1.5); loaded.tick()
    # 2.5s lies in score note 1 -> perf 1 at 4.5
    assert loaded.views[Panel.PERF].scroll_x == pytest.approx(4.5 - 100 / 50.0)


def test_sync_leaves_other_panel_without_counterpart(loaded, clock):
    loaded.toggle_sync()
    loaded.pan(Panel.PERF, 7.0)
    loaded.toggle_playback(Panel.SCORE)
    clock.advance(2.5); loaded.tick()
    # 3.5s lies in score note 2, which has no partner
    assert loaded.views[Panel.PERF].scroll_x == pytest.approx(7.0)


def test_sync_leaves_other_panel_in_a_gap(session, make_notes, clock):
    session.set_notes(Panel.SCORE, make_notes([(60, 5.0, 1.0)]))
    session.set_notes(Panel.PERF, make_notes([(60, 8.0, 1.0)]))
    session.set_alignment([T(0, 0, 0)])
    session.toggle_sync()
    session.toggle_playback(Panel.SCORE)
    clock.advance(0.5); session.tick()
    assert session.views[Panel.PERF].scroll_x == 0.0


def test_no_follow_without_sync(loaded, clock):
    loaded.toggle_playback(Panel.SCORE)
    clock.advance(0.5); loaded.tick()
    assert loaded.views[Panel.PERF].scroll_x == 0.0


def test_perf_can_drive_the_score(loaded, clock):
    loaded.toggle_sync()
    loaded.pan(Panel.PERF, 4.0)
    loaded.toggle_playback(Panel.PERF)
    clock.advance(0.2); loaded.tick()
    # 5.2s lies in perf note 1 -> score 1 at 2.0
    assert loaded.views[Panel.SCORE].scroll_x == pytest.approx(1.0)


# --------------------- data ---------------------
def test_set_notes_clears_selection_on_that_panel(loaded, make_notes):
    loaded.select(Panel.PERF, 1)
    loaded.set_notes(Panel.SCORE, make_notes([(48, 0.0, 1.0)]))
    assert loaded.selection == Selection(1, Panel.PERF)
    loaded.set_notes(Panel.PERF, make_notes([(48, 0.0, 1.0)]))
    assert loaded.selection is None


def test_data_changes_rebuild_the_index(loaded):
    assert loaded.index.unmapped(Panel.SCORE) == {2}
    loaded.set_ground_truth([T(0, 0, 0)])
    assert loaded.index.has_ground_truth
    loaded.set_alignment([T(0, 0, 0)])
    assert loaded.index.unmapped(Panel.SCORE) == {1, 2}


def test_clear_resets_everything(loaded, clock):
    loaded.select(Panel.SCORE, 1)
    loaded.zoom(Panel.SCORE, Axis.X, 2.0, 0.0)
    loaded.toggle_sync()
    loaded.toggle_playback(Panel.SCORE)
    clock.advance(1.0); loaded.tick()
    loaded.clear()
    assert loaded.score is None and loaded.perf is None
    assert loaded.alignment == () and loaded.ground_truth == ()
    assert loaded.selection is None
    assert not loaded.playback.is_playing
    assert loaded.playhead_panel is None
    assert loaded.views[Panel.SCORE] == ViewState()
    assert loaded.views[Panel.PERF] == ViewState()
    assert loaded.index.summary()["tuples"] == 0


def test_default_view_is_copied(clock):
    base = ViewState(zoom_x=250.0, scroll_y=40.0)
    s = Session(default_view=base, clock=clock)
    s.pan(Panel.SCORE, 1.0, 1.0)
    assert base == ViewState(zoom_x=250.0, scroll_y=40.0)
    assert s.views[Panel.PERF] == base
    s.clear()
    assert s.views[Panel.SCORE] == base


# --------------------- selection ---------------------
def test_select_toggles(loaded):
    loaded.select(Panel.SCORE, 1)
    assert loaded.selected_note.pitch == 62
    loaded.select(Panel.PERF, 1)
    assert loaded.selection == Selection(1, Panel.PERF)
    loaded.select(Panel.PERF, 1)
    assert loaded.selection is None
    assert loaded.selected_note is None


def test_step_selection_bounds(loaded):
    loaded.select(Panel.SCORE, 0)
    assert loaded.step_selection(-1) is False
    assert loaded.selection == Selection(0, Panel.SCORE)
    assert loaded.step_selection(+1) is True
    assert loaded.step_selection(+1) is True
    assert loaded.selection == Selection(2, Panel.SCORE)
    assert loaded.step_selection(+1) is False
    assert loaded.selection == Selection(2, Panel.SCORE)


def test_step_without_selection(loaded):
    assert loaded.step_selection(1) is False
    assert loaded.selection is None


# --------------------- modes ---------------------
def test_visibility_cycle(session):
    assert session.visibility is VisibilityMode.FULL
    assert session.cycle_visibility() is VisibilityMode.HALF
    assert session.cycle_visibility() is VisibilityMode.NONE
    assert session.cycle_visibility() is VisibilityMode.FULL
    session.set_visibility("none")
    assert session.visibility is VisibilityMode.NONE


def test_toggle_sync(session):
    assert session.toggle_sync() is True
    assert session.toggle_sync() is False


def test_alignment_set_is_replaced_per_source(loaded):
    gt = [T(0, 0, 0)]
    loaded.set_ground_truth(gt)
    before = loaded.alignments
    loaded.set_alignment([T(1, 1, 1)])
    assert isinstance(loaded.alignments, AlignmentSet)
    assert loaded.alignments is not before
    assert loaded.alignments.working == (T(1, 1, 1),)
    assert loaded.alignments.ground_truth == (T(0, 0, 0),)
    assert before.working == (T(0, 0, 0), T(1, 1, 1), T(2, 2, -1))
    assert loaded.alignment == loaded.alignments.working
    loaded.clear()
    assert loaded.alignments == AlignmentSet()
