from __future__ import annotations
import argparse
import logging
import os
import sys
from typing import Any, Dict, List, Optional, Tuple

import pyqtgraph as pg
from PySide6 import QtCore, QtGui, QtWidgets

from ..config import load_config, section
from ..controller import Action, InputController
from ..ingest import IngestError, load_alignment, load_midi
from ..models import Panel, ViewState, VisibilityMode
from ..scene import RenderSettings
from ..session import Session
from ..watch import FileWatcher
from .view import AlignmentView, key_sequences

log = logging.getLogger(__name__)

# kind -> (dialog title, file filter)
SOURCES = {
    "score": ("Load Score MIDI", "MIDI Files (*.mid *.midi)"),
    "perf": ("Load Performance MIDI", "MIDI Files (*.mid *.midi)"),
    "align": ("Load Alignment", "Alignment (*.csv *.txt *.tsv);;All Files (*)"),
    "gt": ("Load Ground Truth", "Alignment (*.csv *.txt *.tsv);;All Files (*)"),
}

ACTION_LABELS = {
    Action.TOGGLE_SYNC: "Toggle Sync",
    Action.PLAY_PAUSE: "Play / Pause",
    Action.PREV_NOTE: "Previous Note",
    Action.NEXT_NOTE: "Next Note",
    Action.CYCLE_VISIBILITY: "Cycle Line Visibility",
    Action.ZOOM_IN: "Zoom In (time)",
    Action.ZOOM_OUT: "Zoom Out (time)",
    Action.CLEAR_SELECTION: "Clear Selection",
}


def session_from_config(cfg: Dict[str, Any]) -> Session:
    v = section(cfg, "view")
    view = ViewState(
        zoom_x=float(v.get("zoom_x", 100.0)),
        zoom_y=float(v.get("zoom_y", 15.0)),
        scroll_x=float(v.get("scroll_x", 0.0)),
        scroll_y=float(v.get("scroll_y", 60.0)),
    )
    try:
        vis = VisibilityMode(section(cfg, "overlay").get("visibility", "full"))
    except ValueError:
        log.warning("unknown overlay.visibility, using 'full'")
        vis = VisibilityMode.FULL
    anchor = float(section(cfg, "playback").get("anchor_px", 100))
    return Session(anchor_px=anchor, default_view=view, visibility=vis)


class MainWindow(QtWidgets.QMainWindow):
    # Watcher-Thread -> GUI-Thread
    file_changed = QtCore.Signal(str, str)

    def __init__(self, cfg: Optional[Dict[str, Any]] = None):
        super().__init__()
        self.cfg = cfg if cfg is not None else load_config()
        self.setWindowTitle("midialign – Score/Performance Alignment Viewer")
        self.resize(1280, 860)

        inp = section(self.cfg, "input")
        self.session = session_from_config(self.cfg)
        self.controller = InputController(self.session,
                                          zoom_step=float(inp.get("zoom_step", 1.1)),
                                          button_zoom_step=float(inp.get("button_zoom_step", 1.2)))
        self.view = AlignmentView(self.session, self.controller,
                                  settings=RenderSettings.from_config(self.cfg),
                                  angle_divisor=float(inp.get("angle_divisor", 3.0)),
                                  drag_threshold_px=float(inp.get("drag_threshold_px", 4)))
        self.view.changed.connect(self._sync_controls)

        cw = QtWidgets.QWidget(); self.setCentralWidget(cw)
        root = QtWidgets.QVBoxLayout(cw)
        root.setContentsMargins(4, 4, 4, 4)

        # --- Top toolbar ---
        tbar = QtWidgets.QHBoxLayout()
        self.btn_load: Dict[str, QtWidgets.QPushButton] = {}
        for kind, label in (("score", "Score…"), ("perf", "Perf…"), ("align", "Align Map…"), ("gt", "GT Reference…")):
            b = QtWidgets.QPushButton(label)
            b.clicked.connect(lambda _=False, k=kind: self.on_open(k))
            tbar.addWidget(b); self.btn_load[kind] = b
        tbar.addSpacing(16)

        # Play + Zoom je Panel
        self.btn_play: Dict[Panel, QtWidgets.QPushButton] = {}
        self.btn_zoom: Dict[Panel, Tuple[QtWidgets.QPushButton, QtWidgets.QPushButton]] = {}
        for panel, label in ((Panel.SCORE, "Score"), (Panel.PERF, "Perf")):
            play = QtWidgets.QPushButton(f"▶ {label}")
            play.clicked.connect(lambda _=False, p=panel: self.on_play(p))
            zin = QtWidgets.QPushButton("+"); zin.setToolTip(f"Zoom in ({label})")
            zout = QtWidgets.QPushButton("−"); zout.setToolTip(f"Zoom out ({label})")
            zin.clicked.connect(lambda _=False, p=panel: self.on_zoom(p, True))
            zout.clicked.connect(lambda _=False, p=panel: self.on_zoom(p, False))
            for b in (play, zin, zout):
                tbar.addWidget(b)
            tbar.addSpacing(8)
            self.btn_play[panel] = play
            self.btn_zoom[panel] = (zin, zout)
        tbar.addSpacing(8)

        tbar.addWidget(QtWidgets.QLabel("Lines:"))
        self.vis_combo = QtWidgets.QComboBox()
        for mode in VisibilityMode:
            self.vis_combo.addItem(mode.value, userData=mode)
        self.vis_combo.currentIndexChanged.connect(self.on_visibility)
        tbar.addWidget(self.vis_combo)

        self.chk_sync = QtWidgets.QCheckBox("Sync")
        self.chk_sync.toggled.connect(self.on_sync)
        tbar.addWidget(self.chk_sync)
        tbar.addStretch(1)

        self.btn_clear = QtWidgets.QPushButton("Clear")
        self.btn_clear.clicked.connect(self.on_clear)
        tbar.addWidget(self.btn_clear)
        root.addLayout(tbar)
        root.addWidget(self.view, 1)

        # Toolbar nimmt keinen Fokus: Tasten bleiben bei der Ansicht
        for i in range(tbar.count()):
            wdg = tbar.itemAt(i).widget()
            if wdg is not None:
                wdg.setFocusPolicy(QtCore.Qt.FocusPolicy.NoFocus)

        self.status = self.statusBar()
        self.info = QtWidgets.QLabel()
        self.status.addPermanentWidget(self.info)

        self.key_actions = self._install_shortcuts(inp.get("keys") or {})
        self._build_menu()

        # --- Frame-Tick ---
        self._timer = QtCore.QTimer(self)
        self._timer.setInterval(int(section(self.cfg, "playback").get("tick_ms", 16)))
        self._timer.timeout.connect(self._on_tick)
        self._timer.start()

        # --- Watcher ---
        w = section(self.cfg, "watch")
        self.watcher: Optional[FileWatcher] = None
        if w.get("enabled", True):
            self.watcher = FileWatcher(lambda k, p: self.file_changed.emit(k, p),
                                       debounce_s=float(w.get("debounce_s", 0.3)))
            self.file_changed.connect(self._on_file_changed, QtCore.Qt.ConnectionType.QueuedConnection)

        self._sync_controls()
        self.view.setFocus()

    # ------------------ Menü ------------------
    def _build_menu(self):
        file_menu = self.menuBar().addMenu("File")
        for kind, (title, _flt) in SOURCES.items():
            act = QtGui.QAction(title + "…", self)
            act.triggered.connect(lambda _=False, k=kind: self.on_open(k))
            file_menu.addAction(act)
        file_menu.addSeparator()
        act_clear = QtGui.QAction("Clear All", self)
        act_clear.triggered.connect(self.on_clear)
        file_menu.addAction(act_clear)
        act_quit = QtGui.QAction("Quit", self)
        act_quit.setShortcut(QtGui.QKeySequence.StandardKey.Quit)
        act_quit.triggered.connect(self.close)
        file_menu.addAction(act_quit)

        view_menu = self.menuBar().addMenu("View")
        for action in (Action.ZOOM_IN, Action.ZOOM_OUT, Action.CYCLE_VISIBILITY, Action.TOGGLE_SYNC,
                       Action.PLAY_PAUSE, Action.PREV_NOTE, Action.NEXT_NOTE, Action.CLEAR_SELECTION):
            view_menu.addAction(self.key_actions[action])

    def _install_shortcuts(self, keys: Dict[str, str]) -> Dict[Action, QtGui.QAction]:
        """
        One window-wide QAction per key action. Keys fire no matter which
        child has focus; the View menu shows the same actions.
        """
        seqs = key_sequences(keys)
        out: Dict[Action, QtGui.QAction] = {}
        for action in Action:
            act = QtGui.QAction(ACTION_LABELS.get(action, action.value), self)
            if action in seqs:
                act.setShortcut(seqs[action])
            act.setShortcutContext(QtCore.Qt.ShortcutContext.WindowShortcut)
            act.triggered.connect(lambda _=False, a=action: self._key_action(a))
            self.addAction(act)
            out[action] = act
        return out

    def _key_action(self, action: Action):
        self.controller.key(action, width=float(self.view.width()))
        self.view.update(); self._sync_controls()

    # ------------------ Laden ------------------
    def on_open(self, kind: str):
        title, flt = SOURCES[kind]
        path, _ = QtWidgets.QFileDialog.getOpenFileName(self, title, os.getcwd(), flt)
        if path:
            self.load_path(kind, path)

    def _ingest(self, kind: str, path: str) -> None:
        """Decode first, install second: a failure leaves the session untouched."""
        if kind in ("score", "perf"):
            coll = load_midi(path)
            self.session.set_notes(Panel(kind), coll)
        elif kind == "align":
            self.session.set_alignment(load_alignment(path))
        elif kind == "gt":
            self.session.set_ground_truth(load_alignment(path))
        else:
            raise ValueError(f"unknown source kind {kind!r}")

    def load_path(self, kind: str, path: str) -> bool:
        try:
            self._ingest(kind, path)
        except IngestError as e:
            log.error("load %s failed: %s", kind, e)
            QtWidgets.QMessageBox.critical(self, "Load error", str(e))
            return False
        if self.watcher is not None:
            self.watcher.watch(kind, path)
        self.status.showMessage(f"Loaded {kind}: {os.path.basename(path)}", 6000)
        self.view.update(); self._sync_controls()
        return True

    def _on_file_changed(self, kind: str, path: str):
        QtCore.QTimer.singleShot(250, lambda: self._reload(kind, path))

    def _reload(self, kind: str, path: str):
        try:
            self._ingest(kind, path)
        except IngestError as e:
            log.warning("reload %s failed, keeping previous data: %s", kind, e)
            return
        self.status.showMessage(f"{kind} reloaded (file changed): {os.path.basename(path)}", 4000)
        self.view.update(); self._sync_controls()

    # ------------------ Aktionen ------------------
    def on_play(self, panel: Panel):
        self.session.toggle_playback(panel)
        self.view.update(); self._sync_controls()

    def on_zoom(self, panel: Panel, zoom_in: bool):
        self.controller.zoom_button(panel, zoom_in, width=float(self.view.width()))
        self.view.update()

    def on_visibility(self, _idx: int):
        mode = self.vis_combo.currentData()
        if mode is not None:
            self.session.set_visibility(mode)
            self.view.update()

    def on_sync(self, checked: bool):
        if self.session.sync != checked:
            self.session.toggle_sync()

    def on_clear(self):
        self.session.clear()
        if self.watcher is not None:
            self.watcher.unwatch_all()
        self.view.update(); self._sync_controls()

    def _on_tick(self):
        if self.session.tick():
            self.view.update()
            self._update_info()

    # ------------------ Statuszeile ------------------
    def _sync_controls(self):
        s = self.session
        if self.chk_sync.isChecked() != s.sync:
            self.chk_sync.blockSignals(True); self.chk_sync.setChecked(s.sync); self.chk_sync.blockSignals(False)
        idx = self.vis_combo.findData(s.visibility)
        if idx >= 0 and idx != self.vis_combo.currentIndex():
            self.vis_combo.blockSignals(True); self.vis_combo.setCurrentIndex(idx); self.vis_combo.blockSignals(False)
        for panel, label in ((Panel.SCORE, "Score"), (Panel.PERF, "Perf")):
            self.btn_play[panel].setText(f"{'⏸' if s.driving(panel) else '▶'} {label}")
        self._update_info()

    def _update_info(self):
        self.info.setText(" | ".join(status_parts(self.session)))

    # ------------------ Close ------------------
    def closeEvent(self, e: QtGui.QCloseEvent):
        self._timer.stop()
        if self.watcher is not None:
            self.watcher.stop()
        return super().closeEvent(e)


def status_parts(s: Session) -> List[str]:
    parts = [
        f"SCORE {s.anchor_time(Panel.SCORE):.4f}s",
        f"PERF {s.anchor_time(Panel.PERF):.4f}s",
        f"sync {'on' if s.sync else 'off'}",
        f"GT REF {'ACTIVE' if s.index.has_ground_truth else 'IDLE'}",
    ]
    note = s.selected_note
    if note is not None:
        panel = s.selection.panel
        txt = f"{'SCORE' if panel is Panel.SCORE else 'PERF'} note ID-{note.id}, MIDI-{note.pitch}"
        if s.index.is_unmapped(panel, note.id):
            txt += " (unmapped)"
        parts.append(txt)
    return parts


# --------------------- Entry ---------------------
def main(argv=None):
    p = argparse.ArgumentParser(description="Score/performance MIDI alignment viewer")
    p.add_argument("--score", help="Score MIDI file")
    p.add_argument("--perf", help="Performance MIDI file")
    p.add_argument("--align", help="Alignment file (score_id[,annot_id],perf_id per line)")
    p.add_argument("--gt", help="Ground-truth alignment file")
    p.add_argument("--config", default=None, help="YAML config overriding the defaults")
    p.add_argument("-v", "--verbose", action="store_true")
    args = p.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="[%(name)s] %(levelname)s: %(message)s")

    cfg = load_config(args.config)
    pg.setConfigOptions(antialias=True)
    app = QtWidgets.QApplication(sys.argv[:1])
    w = MainWindow(cfg); w.show()

    for kind in ("score", "perf", "align", "gt"):
        path = getattr(args, kind)
        if path:
            w.load_path(kind, path)

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
