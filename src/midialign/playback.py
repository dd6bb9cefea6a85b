from __future__ import annotations
import logging
import time
from typing import Callable, Optional

from .models import Panel, PlaybackState, ViewState
from .transform import Transform

log = logging.getLogger(__name__)


class PlaybackClock:
    """
    Wall-clock driven playhead.

    stopped -> playing(panel) -> stopped, or playing(A) -> playing(B). Starting
    (or switching) always takes the time currently under the anchor column of
    the requested panel; an old position is never resumed.
    """
    def __init__(self, anchor_px: float = 100.0, clock: Callable[[], float] = time.perf_counter):
        self.anchor_px = float(anchor_px)
        self.clock = clock
        self.state = PlaybackState()
        self.position = 0.0
        self.last_panel: Optional[Panel] = None

    @property
    def is_playing(self) -> bool:
        return self.state.is_playing

    def driving(self, panel: Panel) -> bool:
        return self.state.is_playing and self.state.active_panel is panel

    def start(self, panel: Panel, view: ViewState) -> None:
        offset = Transform(view, 0).anchor_time(self.anchor_px)
        self.state = PlaybackState(is_playing=True, start_time=self.clock(),
                                   start_offset=offset, active_panel=panel)
        self.position = offset
        self.last_panel = panel
        log.debug("play %s from %.4fs", panel.value, offset)

    def stop(self) -> None:
        if self.state.is_playing:
            log.debug("stop at %.4fs", self.position)
        self.state.is_playing = False

    def toggle(self, panel: Panel, view: ViewState) -> bool:
        """Play/pause request on `panel`. Returns True if playing afterwards."""
        if self.driving(panel):
            self.stop()
            return False
        self.start(panel, view)
        return True

    def advance(self) -> Optional[float]:
        """Per-frame update; the new playhead time, or None when stopped."""
        if not self.state.is_playing:
            return None
        self.position = self.state.start_offset + (self.clock() - self.state.start_time)
        return self.position

    def reset(self) -> None:
        self.state = PlaybackState()
        self.position = 0.0
        self.last_panel = None
