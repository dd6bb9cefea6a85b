from __future__ import annotations
import math
from typing import TYPE_CHECKING, Tuple

if TYPE_CHECKING:
    from .models import ViewState


def zoom_about(scroll: float, zoom: float, anchor: float, factor: float,
               lo: float, hi: float) -> Tuple[float, float]:
    """
    Anchor-preserving zoom on one axis.

    The domain value under the pixel `anchor` is taken *before* the zoom
    changes, the new zoom is clamped to [lo, hi], then scroll is re-derived so
    the same value sits under the anchor again. Returns (new_scroll, new_zoom).
    """
    center = scroll + anchor / zoom
    new_zoom = max(lo, min(hi, zoom * factor))
    return center - anchor / new_zoom, new_zoom


def raw_to_domain(delta_px: float, zoom: float) -> float:
    """Raw wheel/drag pixels -> seconds or semitones at the current zoom."""
    return delta_px / zoom


class Transform:
    """time/pitch <-> pixel mapping for one panel of pixel height `height`."""
    __slots__ = ("view", "height")

    def __init__(self, view: "ViewState", height: float):
        self.view = view
        self.height = float(height)

    # --- X ---
    def time_to_x(self, t: float) -> float:
        return (t - self.view.scroll_x) * self.view.zoom_x

    def x_to_time(self, x: float) -> float:
        return x / self.view.zoom_x + self.view.scroll_x

    # --- Y ---
    def pitch_to_y(self, p: float) -> float:
        return self.height - (p - self.view.scroll_y + 1) * self.view.zoom_y

    def y_to_pitch(self, y: float) -> float:
        return self.view.scroll_y + (self.height - y) / self.view.zoom_y

    # --- ranges ---
    def anchor_time(self, anchor_px: float) -> float:
        return self.view.scroll_x + anchor_px / self.view.zoom_x

    def visible_time_range(self, width: float) -> Tuple[float, float]:
        return self.view.scroll_x, self.view.scroll_x + width / self.view.zoom_x

    def visible_pitch_range(self) -> Tuple[int, int]:
        lo = math.floor(self.view.scroll_y)
        hi = math.ceil(self.view.scroll_y + self.height / self.view.zoom_y)
        return lo, hi
