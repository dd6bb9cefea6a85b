from __future__ import annotations
import logging
from enum import Enum
from typing import Optional

from .models import Axis, Note, Panel
from .session import Session
from .transform import Transform, raw_to_domain

log = logging.getLogger(__name__)


class Modifier(str, Enum):
    NONE = "none"
    FINE = "fine"    # Alt: pitch zoom
    ZOOM = "zoom"    # Ctrl / Cmd: time zoom


class Action(str, Enum):
    TOGGLE_SYNC = "toggle_sync"
    PLAY_PAUSE = "play_pause"
    PREV_NOTE = "prev_note"
    NEXT_NOTE = "next_note"
    CYCLE_VISIBILITY = "cycle_visibility"
    ZOOM_IN = "zoom_in"
    ZOOM_OUT = "zoom_out"
    CLEAR_SELECTION = "clear_selection"


class InputController:
    """
    Turns pointer and key input into Session operations.

    Raw deltas follow the usual scroll convention: positive dx scrolls towards
    later time, positive dy scrolls down (towards lower pitch).
    """
    def __init__(self, session: Session, zoom_step: float = 1.1, button_zoom_step: float = 1.2):
        self.session = session
        self.zoom_step = float(zoom_step)
        self.button_zoom_step = float(button_zoom_step)

    # --- pan / zoom ---
    def pan(self, panel: Panel, dx_px: float, dy_px: float) -> None:
        s = self.session
        view = s.views[panel]
        dx = raw_to_domain(dx_px, view.zoom_x)
        dy = -raw_to_domain(dy_px, view.zoom_y)
        if s.driving(panel):
            dx = 0.0  # playhead owns the horizontal position
        s.pan(panel, dx, dy)
        if s.sync and not s.playback.is_playing and dx:
            s.pan(panel.other, dx, 0.0)

    def drag(self, panel: Panel, dx_px: float, dy_px: float) -> None:
        # content follows the pointer
        self.pan(panel, -dx_px, -dy_px)

    def wheel(self, panel: Panel, dx_px: float, dy_px: float, modifier: Modifier,
              cursor_x: float, cursor_y: float, height: float) -> None:
        if dx_px == 0.0 and dy_px == 0.0:
            return
        if modifier is Modifier.NONE:
            self.pan(panel, dx_px, dy_px)
            return
        d = dy_px if dy_px != 0.0 else dx_px
        factor = self.zoom_step if d < 0 else 1.0 / self.zoom_step
        if modifier is Modifier.FINE:
            self.session.zoom(panel, Axis.Y, factor, height - cursor_y)
        else:
            self.session.zoom(panel, Axis.X, factor, cursor_x)

    def zoom_time(self, panel: Panel, factor: float, width: float) -> None:
        self.session.zoom(panel, Axis.X, factor, width / 2.0)

    def zoom_button(self, panel: Panel, zoom_in: bool, width: float) -> None:
        """Toolbar zoom of one panel about its horizontal centre."""
        f = self.button_zoom_step if zoom_in else 1.0 / self.button_zoom_step
        self.zoom_time(panel, f, width)

    # --- click ---
    def click(self, panel: Panel, x: float, y: float, height: float) -> Optional[Note]:
        s = self.session
        coll = s.notes(panel)
        if coll is None:
            s.clear_selection()
            return None
        tr = Transform(s.views[panel], height)
        hit = coll.hit_test(tr.x_to_time(x), tr.y_to_pitch(y))
        if hit is None:
            s.clear_selection()
        else:
            s.select(panel, hit.id)
        return hit

    # --- keys ---
    def key(self, action: Action, width: float = 0.0) -> None:
        s = self.session
        if action is Action.TOGGLE_SYNC:
            log.debug("sync %s", "on" if s.toggle_sync() else "off")
        elif action is Action.PLAY_PAUSE:
            s.play_pause()
        elif action is Action.PREV_NOTE:
            s.step_selection(-1)
        elif action is Action.NEXT_NOTE:
            s.step_selection(+1)
        elif action is Action.CYCLE_VISIBILITY:
            s.cycle_visibility()
        elif action in (Action.ZOOM_IN, Action.ZOOM_OUT):
            for panel in Panel:
                self.zoom_button(panel, action is Action.ZOOM_IN, width)
        elif action is Action.CLEAR_SELECTION:
            s.clear_selection()
