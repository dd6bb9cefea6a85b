import pytest

from midialign.controller import Action, InputController, Modifier
from midialign.models import AlignmentTuple as T, Axis, Panel, Selection, VisibilityMode
from midialign.transform import Transform

H = 300.0


@pytest.fixture
def ctl(session):
    return InputController(session)


@pytest.fixture
def notes(session, make_notes):
    # score: id0 = C4 at 1.0s, id1 = E4 at 2.0s
    session.set_notes(Panel.SCORE, make_notes([(60, 1.0, 0.5), (64, 2.0, 0.5)]))
    session.set_notes(Panel.PERF, make_notes([(60, 1.2, 0.5), (64, 2.3, 0.5)]))
    session.set_alignment([T(0, 0, 0), T(1, 1, 1)])
    return session


def _center(session, panel, note_id):
    n = session.notes(panel).get(note_id)
    tr = Transform(session.views[panel], H)
    return tr.time_to_x(n.start + n.duration / 2), tr.pitch_to_y(n.pitch) + session.views[panel].zoom_y / 2


# --------------------- pan ---------------------
def test_pan_converts_pixels(ctl, session):
    ctl.pan(Panel.SCORE, 50.0, 30.0)
    v = session.views[Panel.SCORE]
    assert v.scroll_x == pytest.approx(0.5)
    assert v.scroll_y == pytest.approx(60.0 - 2.0)
    assert session.views[Panel.PERF].scroll_x == 0.0


def test_drag_moves_content_with_pointer(ctl, session):
    ctl.drag(Panel.PERF, 100.0, -15.0)
    v = session.views[Panel.PERF]
    assert v.scroll_x == pytest.approx(-1.0)
    assert v.scroll_y == pytest.approx(59.0)


def test_sync_mirrors_horizontal_pan_only(ctl, session):
    session.toggle_sync()
    ctl.pan(Panel.SCORE, 200.0, 45.0)
    assert session.views[Panel.SCORE].scroll_x == pytest.approx(2.0)
    assert session.views[Panel.PERF].scroll_x == pytest.approx(2.0)
    assert session.views[Panel.PERF].scroll_y == 60.0


def test_sync_mirror_uses_seconds_not_pixels(ctl, session):
    session.toggle_sync()
    session.zoom(Panel.PERF, Axis.X, 2.0, 0.0)
    ctl.pan(Panel.PERF, 100.0, 0.0)
    assert session.views[Panel.PERF].scroll_x == pytest.approx(0.5)
    assert session.views[Panel.SCORE].scroll_x == pytest.approx(0.5)


def test_no_mirror_while_playing(ctl, session):
    session.toggle_sync()
    session.toggle_playback(Panel.SCORE)
    ctl.pan(Panel.PERF, 100.0, 0.0)
    assert session.views[Panel.PERF].scroll_x == pytest.approx(1.0)
    assert session.views[Panel.SCORE].scroll_x == 0.0


def test_driving_panel_ignores_horizontal_pan(ctl, session):
    session.toggle_playback(Panel.SCORE)
    ctl.pan(Panel.SCORE, 300.0, 15.0)
    v = session.views[Panel.SCORE]
    assert v.scroll_x == 0.0
    assert v.scroll_y == pytest.approx(59.0)


# --------------------- wheel ---------------------
def test_plain_wheel_pans(ctl, session):
    ctl.wheel(Panel.SCORE, 0.0, 30.0, Modifier.NONE, 10.0, 10.0, H)
    assert session.views[Panel.SCORE].scroll_y == pytest.approx(58.0)
    assert session.views[Panel.SCORE].zoom_y == 15.0


def test_zoom_wheel_keeps_time_under_cursor(ctl, session):
    before = Transform(session.views[Panel.SCORE], H).x_to_time(250.0)
    ctl.wheel(Panel.SCORE, 0.0, -10.0, Modifier.ZOOM, 250.0, 40.0, H)
    v = session.views[Panel.SCORE]
    assert v.zoom_x == pytest.approx(110.0)
    assert Transform(v, H).x_to_time(250.0) == pytest.approx(before)

    ctl.wheel(Panel.SCORE, 0.0, 10.0, Modifier.ZOOM, 250.0, 40.0, H)
    assert v.zoom_x == pytest.approx(100.0)


def test_fine_wheel_zooms_pitch_under_cursor(ctl, session):
    before = Transform(session.views[Panel.PERF], H).y_to_pitch(120.0)
    ctl.wheel(Panel.PERF, 0.0, -5.0, Modifier.FINE, 10.0, 120.0, H)
    v = session.views[Panel.PERF]
    assert v.zoom_y == pytest.approx(16.5)
    assert v.zoom_x == 100.0
    assert Transform(v, H).y_to_pitch(120.0) == pytest.approx(before)


def test_horizontal_only_zoom_gesture(ctl, session):
    ctl.wheel(Panel.SCORE, -4.0, 0.0, Modifier.ZOOM, 0.0, 0.0, H)
    assert session.views[Panel.SCORE].zoom_x == pytest.approx(110.0)


def test_zoom_is_clamped(ctl, session):
    for _ in range(200):
        ctl.wheel(Panel.SCORE, 0.0, -1.0, Modifier.FINE, 0.0, 150.0, H)
    assert session.views[Panel.SCORE].zoom_y == 100.0


def test_zero_wheel_is_ignored(ctl, session):
    ctl.wheel(Panel.SCORE, 0.0, 0.0, Modifier.ZOOM, 0.0, 0.0, H)
    assert session.views[Panel.SCORE].zoom_x == 100.0


# --------------------- click ---------------------
def test_click_selects_and_deselects(ctl, notes):
    x, y = _center(notes, Panel.SCORE, 1)
    hit = ctl.click(Panel.SCORE, x, y, H)
    assert hit.id == 1
    assert notes.selection == Selection(1, Panel.SCORE)
    ctl.click(Panel.SCORE, x, y, H)
    assert notes.selection is None


def test_click_on_empty_space_clears(ctl, notes):
    x, y = _center(notes, Panel.PERF, 0)
    ctl.click(Panel.PERF, x, y, H)
    assert notes.selection == Selection(0, Panel.PERF)
    assert ctl.click(Panel.PERF, x, y - 3 * 15.0, H) is None
    assert notes.selection is None


def test_click_without_notes(ctl, session):
    assert ctl.click(Panel.SCORE, 10.0, 10.0, H) is None


# --------------------- keys ---------------------
def test_keys(ctl, notes):
    ctl.key(Action.TOGGLE_SYNC)
    assert notes.sync is True
    ctl.key(Action.CYCLE_VISIBILITY)
    assert notes.visibility is VisibilityMode.HALF

    notes.select(Panel.SCORE, 0)
    ctl.key(Action.NEXT_NOTE)
    assert notes.selection.id == 1
    ctl.key(Action.NEXT_NOTE)
    assert notes.selection.id == 1
    ctl.key(Action.PREV_NOTE)
    assert notes.selection.id == 0
    ctl.key(Action.CLEAR_SELECTION)
    assert notes.selection is None


def test_play_key_defaults_to_score(ctl, notes):
    ctl.key(Action.PLAY_PAUSE)
    assert notes.driving(Panel.SCORE)
    ctl.key(Action.PLAY_PAUSE)
    assert not notes.playback.is_playing


def test_zoom_keys_zoom_both_panels_about_center(ctl, session):
    ctl.key(Action.ZOOM_IN, width=800.0)
    for panel in (Panel.SCORE, Panel.PERF):
        v = session.views[panel]
        assert v.zoom_x == pytest.approx(120.0)
        assert Transform(v, H).x_to_time(400.0) == pytest.approx(4.0)
    ctl.key(Action.ZOOM_OUT, width=800.0)
    assert session.views[Panel.SCORE].zoom_x == pytest.approx(100.0)


def test_zoom_button_zooms_one_panel_about_center(ctl, session):
    ctl.zoom_button(Panel.PERF, True, width=600.0)
    v = session.views[Panel.PERF]
    assert v.zoom_x == pytest.approx(120.0)
    assert Transform(v, H).x_to_time(300.0) == pytest.approx(3.0)
    assert session.views[Panel.SCORE].zoom_x == 100.0
    ctl.zoom_button(Panel.PERF, False, width=600.0)
    assert v.zoom_x == pytest.approx(100.0)
    assert v.scroll_x == pytest.approx(0.0)
