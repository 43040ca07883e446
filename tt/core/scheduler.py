"""Interval scheduling, kept apart from any particular event loop.

The core only ever asks for "call this every N milliseconds until I cancel
it". ``QtScheduler`` answers that with QTimers on the running Qt event loop,
``ManualScheduler`` answers it with a virtual clock that the caller advances,
which is what headless hosts and the test-suite use.
"""

from __future__ import annotations

from collections.abc import Callable

from tt.common.logger import log


class ScheduledTask:
    """Handle for one repeating callback."""

    def __init__(self, name: str, interval_ms: int, callback: Callable[[], None]):
        self.name = name
        self.interval_ms = interval_ms
        self.callback = callback
        self.active = True
        self._on_cancel = None

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        if self._on_cancel is not None:
            self._on_cancel()
        log.debug(f"Cancelled scheduled task '{self.name}'")


class Scheduler:
    """Base interface, ``every`` must be implemented by subclasses."""

    def every(self, interval_ms: int, callback: Callable[[], None], name: str = "task") -> ScheduledTask:
        raise NotImplementedError


class QtScheduler(Scheduler):
    """Drives callbacks from QTimers, so they run on the thread owning the Qt event loop."""

    def __init__(self, parent=None):
        self._parent = parent
        self._timers = []

    def every(self, interval_ms, callback, name="task"):
        # Imported lazily so the core stays importable without Qt installed
        from PySide6.QtCore import QTimer

        task = ScheduledTask(name, interval_ms, callback)
        qtimer = QTimer(self._parent)
        qtimer.setInterval(interval_ms)
        qtimer.timeout.connect(callback)
        qtimer.start()
        self._timers.append(qtimer)

        def _stop():
            qtimer.stop()
            self._timers.remove(qtimer)

        task._on_cancel = _stop
        log.debug(f"Scheduled '{name}' every {interval_ms} ms on the Qt event loop")
        return task


class ManualScheduler(Scheduler):
    """Virtual-time scheduler. Nothing runs until ``advance`` is called."""

    def __init__(self):
        self.now_ms = 0
        self._due = []  # [next_due_ms, order, task]
        self._order = 0

    def every(self, interval_ms, callback, name="task"):
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        task = ScheduledTask(name, interval_ms, callback)
        self._due.append([self.now_ms + interval_ms, self._order, task])
        self._order += 1
        return task

    @property
    def tasks(self):
        return [entry[2] for entry in self._due if entry[2].active]

    # Moves virtual time forward by `ms`, firing every callback that falls due, in time order.
    def advance(self, ms: int) -> int:
        target = self.now_ms + ms
        fired = 0
        while True:
            pending = [entry for entry in self._due if entry[2].active and entry[0] <= target]
            if not pending:
                break
            entry = min(pending, key=lambda e: (e[0], e[1]))
            self.now_ms = entry[0]
            entry[0] += entry[2].interval_ms
            entry[2].callback()
            fired += 1
        self.now_ms = target
        self._due = [entry for entry in self._due if entry[2].active]
        return fired
