from __future__ import annotations
import logging
import os
import time
from typing import Callable, Dict, Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers.polling import PollingObserver

log = logging.getLogger(__name__)


class _FileHandler(FileSystemEventHandler):
    """Signals when one specific file in a watched directory changes."""
    def __init__(self, path: str, on_change: Callable[[], None], debounce_s: float = 0.3):
        super().__init__()
        self.path = os.path.abspath(path)
        self.on_change = on_change
        self.debounce_s = debounce_s
        self._last_sig = float("-inf")

    def _maybe_signal(self, candidate_path: str):
        # src oder dest muss genau die beobachtete Datei sein
        if os.path.abspath(candidate_path) != self.path:
            return
        now = time.monotonic()
        if now - self._last_sig > self.debounce_s:
            self._last_sig = now
            self.on_change()

    def on_modified(self, event):
        self._maybe_signal(event.src_path)

    def on_created(self, event):
        self._maybe_signal(event.src_path)

    def on_moved(self, event):
        # atomic save: dest_path is the watched file
        dest = getattr(event, "dest_path", None)
        self._maybe_signal(dest or event.src_path)


class FileWatcher:
    """
    Watches a set of named input files (score, perf, alignment, ...).

    `on_change(key, path)` runs on the observer thread; the GUI forwards it to
    its own thread before touching any state.
    """
    def __init__(self, on_change: Callable[[str, str], None], debounce_s: float = 0.3):
        self.on_change = on_change
        self.debounce_s = float(debounce_s)
        self._paths: Dict[str, str] = {}
        self._observer: Optional[PollingObserver] = None

    @property
    def paths(self) -> Dict[str, str]:
        return dict(self._paths)

    def watch(self, key: str, path: str) -> None:
        self._paths[key] = os.path.abspath(path)
        self._restart()

    def unwatch_all(self) -> None:
        self._paths.clear()
        self._stop_observer()

    def _stop_observer(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(1)
            self._observer = None

    def _restart(self) -> None:
        self._stop_observer()
        if not self._paths:
            return
        obs = PollingObserver()
        for key, path in self._paths.items():
            handler = _FileHandler(path, lambda k=key, p=path: self.on_change(k, p), self.debounce_s)
            obs.schedule(handler, os.path.dirname(path), recursive=False)
        obs.start()
        self._observer = obs
        log.debug("watching %s", ", ".join(sorted(self._paths)))

    def stop(self) -> None:
        self._stop_observer()
