"""
Triggers that call the analysis entry point.

- DebouncedTrigger: runs the callback once changes have settled
- PollingTrigger: runs the callback on a fixed interval
- ChangeWatcher: polls source file mtimes and fires a trigger on change
"""

import logging
import os
import threading
from typing import Callable, Dict, Optional

from .errors import DiscoveryError
from .parsing.file_finder import find_project_files

logger = logging.getLogger(__name__)


class DebouncedTrigger:
    """
    Delays the callback until `delay_ms` have passed since the last trigger.
    """

    def __init__(self, callback: Callable[[], object], delay_ms: int):
        self.callback = callback
        self.delay = delay_ms / 1000.0
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    def trigger(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.delay, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def _fire(self) -> None:
        with self._lock:
            self._timer = None
        self.callback()

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None


class PollingTrigger:
    """Calls the callback every `interval_seconds` on a daemon thread."""

    def __init__(self, callback: Callable[[], object], interval_seconds: float):
        self.callback = callback
        self.interval = interval_seconds
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="dependency-tracker-poll", daemon=True)
        self._thread.start()
        logger.info("Polling every %ss", self.interval)

    def _loop(self) -> None:
        while not self._stop.wait(self.interval):
            logger.debug("Polling trigger fired")
            self.callback()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self.interval + 1)
            self._thread = None


class ChangeWatcher:
    """
    Detects saved source files by comparing modification times.

    Each detected change calls `on_change`, normally a DebouncedTrigger.
    """

    def __init__(self, project_root: str, settings, on_change: Callable[[], None],
                 interval_seconds: float = 1.0):
        self.project_root = project_root
        self.settings = settings
        self.on_change = on_change
        self.interval = interval_seconds
        self._snapshot: Dict[str, float] = {}
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def snapshot(self) -> Dict[str, float]:
        """Current mtime of every discovered source file."""
        mtimes = {}
        for path in find_project_files(self.project_root, self.settings):
            try:
                mtimes[path] = os.path.getmtime(path)
            except OSError:
                continue  # deleted between walk and stat
        return mtimes

    def check(self) -> bool:
        """Compare against the previous snapshot; fire on_change if different."""
        try:
            current = self.snapshot()
        except DiscoveryError as e:
            logger.warning("Change detection skipped: %s", e)
            return False
        changed = current != self._snapshot
        self._snapshot = current
        if changed:
            logger.debug("Source changes detected")
            self.on_change()
        return changed

    def start(self) -> None:
        try:
            self._snapshot = self.snapshot()
        except DiscoveryError as e:
            logger.warning("Initial snapshot failed: %s", e)
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="dependency-tracker-watch", daemon=True)
        self._thread.start()

    def _loop(self) -> None:
        while not self._stop.wait(self.interval):
            self.check()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self.interval + 1)
            self._thread = None
