from __future__ import annotations
from typing import Dict, Optional, Tuple

from PySide6 import QtCore, QtGui, QtWidgets

from ..controller import Action, InputController, Modifier
from ..models import Panel
from ..scene import RenderSettings, build_overlay, build_panel_scene
from ..session import Session
from .painter import paint_overlay, paint_panel

DEFAULT_KEYS = {
    "toggle_sync": "V",
    "play_pause": "Space",
    "prev_note": "Left",
    "next_note": "Right",
    "cycle_visibility": "Tab",
    "zoom_in": "+",
    "zoom_out": "-",
    "clear_selection": "Esc",
}

TITLES = {Panel.SCORE: "SCORE", Panel.PERF: "PERFORMANCE"}


def key_sequences(keys: Optional[Dict[str, str]] = None) -> Dict[Action, QtGui.QKeySequence]:
    """Action -> key sequence from the defaults overridden by `keys`; unknown names are skipped."""
    out: Dict[Action, QtGui.QKeySequence] = {}
    for name, seq in {**DEFAULT_KEYS, **(keys or {})}.items():
        try:
            action = Action(name)
        except ValueError:
            continue
        ks = QtGui.QKeySequence(seq)
        if ks.isEmpty():
            continue
        out[action] = ks
    return out


class AlignmentView(QtWidgets.QWidget):
    """
    Score roll on top, performance roll below, alignment edges across both.

    Trackpad / wheel:
      • no modifier = pan (horizontal + vertical)
      • Alt = pitch zoom around the cursor row
      • Ctrl / Cmd = time zoom around the cursor column
    Drag pans, a click selects or deselects a note. Keys are window
    shortcuts owned by the main window.
    """
    changed = QtCore.Signal()

    def __init__(self, session: Session, controller: InputController,
                 settings: Optional[RenderSettings] = None,
                 angle_divisor: float = 3.0, drag_threshold_px: float = 4.0,
                 parent=None):
        super().__init__(parent)
        self.session = session
        self.controller = controller
        self.settings = settings or RenderSettings()
        self.angle_divisor = float(angle_divisor) or 3.0
        self.drag_threshold_px = float(drag_threshold_px)
        self._press: Optional[Tuple[Panel, QtCore.QPointF]] = None
        self._last_pos: Optional[QtCore.QPointF] = None
        self._dragging = False

        self.setFocusPolicy(QtCore.Qt.FocusPolicy.StrongFocus)
        self.setMouseTracking(False)
        self.setMinimumSize(400, 300)
        self.setCursor(QtCore.Qt.CursorShape.CrossCursor)

    # --------------------- geometry ---------------------
    def panel_height(self) -> float:
        return max(1.0, self.height() / 2.0)

    def _panel_at(self, y: float) -> Tuple[Panel, float]:
        """Panel under widget-y plus the y inside that panel."""
        h = self.panel_height()
        if y < h:
            return Panel.SCORE, y
        return Panel.PERF, y - h

    # --------------------- painting ---------------------
    def paintEvent(self, ev: QtGui.QPaintEvent):
        p = QtGui.QPainter(self)
        p.setRenderHint(QtGui.QPainter.RenderHint.Antialiasing, True)
        W, H = float(self.width()), self.panel_height()
        for i, panel in enumerate(Panel):
            scene = build_panel_scene(self.session, panel, W, H, self.settings)
            paint_panel(p, scene, y0=i * H, title=TITLES[panel], note_radius=self.settings.note_radius)
        p.setPen(QtGui.QPen(QtGui.QColor(255, 255, 255, 40), 1.0))
        p.drawLine(QtCore.QPointF(0, H), QtCore.QPointF(W, H))
        paint_overlay(p, build_overlay(self.session, W, H, self.settings))
        p.end()

    def _changed(self):
        self.update()
        self.changed.emit()

    # --------------------- wheel ---------------------
    def _wheel_deltas(self, ev: QtGui.QWheelEvent) -> Tuple[float, float]:
        # Pixel bevorzugt (Trackpad), sonst Winkel
        dx_px = dy_px = 0.0
        pix = ev.pixelDelta()
        if not pix.isNull():
            dx_px, dy_px = float(pix.x()), float(pix.y())
        else:
            ang = ev.angleDelta()
            dx_px, dy_px = ang.x() / self.angle_divisor, ang.y() / self.angle_divisor
        # Qt: positive = away from the user; controller expects scroll direction
        return -dx_px, -dy_px

    @staticmethod
    def _modifier(mods) -> Modifier:
        km = QtCore.Qt.KeyboardModifier
        if mods & km.AltModifier:
            return Modifier.FINE
        if mods & (km.ControlModifier | km.MetaModifier):
            return Modifier.ZOOM
        return Modifier.NONE

    def wheelEvent(self, ev: QtGui.QWheelEvent):
        dx, dy = self._wheel_deltas(ev)
        if dx == 0.0 and dy == 0.0:
            ev.ignore(); return
        pos = ev.position()
        panel, local_y = self._panel_at(pos.y())
        self.controller.wheel(panel, dx, dy, self._modifier(ev.modifiers()),
                              pos.x(), local_y, self.panel_height())
        ev.accept()
        self._changed()

    # --------------------- mouse ---------------------
    def mousePressEvent(self, ev: QtGui.QMouseEvent):
        if ev.button() != QtCore.Qt.MouseButton.LeftButton:
            return super().mousePressEvent(ev)
        pos = ev.position()
        panel, _ = self._panel_at(pos.y())
        self._press = (panel, pos)
        self._last_pos = pos
        self._dragging = False
        ev.accept()

    def mouseMoveEvent(self, ev: QtGui.QMouseEvent):
        if self._press is None:
            return super().mouseMoveEvent(ev)
        pos = ev.position()
        panel, start = self._press
        if not self._dragging:
            moved = QtCore.QLineF(start, pos).length()
            if moved < self.drag_threshold_px:
                return
            self._dragging = True
        self.controller.drag(panel, pos.x() - self._last_pos.x(), pos.y() - self._last_pos.y())
        self._last_pos = pos
        self._changed()

    def mouseReleaseEvent(self, ev: QtGui.QMouseEvent):
        if self._press is None:
            return super().mouseReleaseEvent(ev)
        panel, start = self._press
        if not self._dragging:
            _, local_y = self._panel_at(start.y())
            self.controller.click(panel, start.x(), local_y, self.panel_height())
        self._press = None
        self._last_pos = None
        self._dragging = False
        self._changed()

    # --------------------- keys ---------------------
    def focusNextPrevChild(self, next: bool) -> bool:
        return False  # Tab belongs to the window shortcut (overlay visibility)

