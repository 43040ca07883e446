import threading
from tt.common.logger import log
from tt.core import persistence
from tt.core.errors import Corrupt
from tt.core.registry import TimerRegistry
from tt.core.selection import SelectionController
from tt.util import now as _wall_clock


# The one object that owns all timer state. It gets built once at startup and handed to whoever needs it. Every
# mutation, snapshot and restore runs under a single re-entrant lock, so there's only ever one writer at a time.
class TimerTracker:

    def __init__(self, store=None, clock=None):
        self.store = store
        self.clock = clock or _wall_clock
        self.registry = TimerRegistry()
        self.selection = SelectionController(self.registry)
        self._lock = threading.RLock()
        self._tasks = []

    # -- Observer hooks --

    @property
    def ticked(self):
        return self.registry.ticked

    @property
    def selection_changed(self):
        return self.selection.changed

    # -- Queries --

    def list_timers(self):
        return self.registry.list()

    def get(self, timer_id):
        return self.registry.get(timer_id)

    @property
    def selected(self):
        return self.selection.selected

    # Timers whose names contain `text`, ignoring case. Blank text matches everything.
    def filter_timers(self, text):
        needle = (text or "").strip().casefold()
        return tuple(t for t in self.registry.list() if needle in t.name.casefold())

    def has_exact_match(self, text):
        return self.registry.find_by_name(text or "") is not None

    def elapsed(self, timer_id):
        timer = self.registry.get(timer_id)
        return timer.effective_elapsed(self.clock()) if timer else None

    # -- Mutations --

    # Creates a timer. When nothing is selected yet, the new timer becomes the selection.
    def create(self, name):
        with self._lock:
            timer = self.registry.create(name)
            if self.selection.selected_id is None:
                self.selection.select(timer.id)
            return timer

    # Selects the timer whose name matches `name` ignoring case, creating it first if there isn't one. An existing
    # timer keeps the casing it was first created with.
    def create_or_select(self, name):
        with self._lock:
            timer = self.registry.find_by_name(name) if isinstance(name, str) else None
            if timer is None:
                timer = self.registry.create(name)
            else:
                log.debug(f"'{name}' matched existing timer '{timer.name}', selecting it")
            self.selection.select(timer.id)
            return timer

    def start(self, timer_id):
        with self._lock:
            timer = self._lookup(timer_id, "start")
            return timer.start(self.clock()) if timer else False

    def pause(self, timer_id):
        with self._lock:
            timer = self._lookup(timer_id, "pause")
            return timer.pause(self.clock()) if timer else False

    def reset(self, timer_id):
        with self._lock:
            timer = self._lookup(timer_id, "reset")
            if timer:
                timer.reset()
            return timer is not None

    # Removes the timer, moving the selection on to its neighbour if it was the selected one.
    def remove(self, timer_id):
        with self._lock:
            timer = self.registry.get(timer_id)
            index = self.registry.remove(timer_id)
            if index is None:
                return None
            self.selection.handle_removal(timer, index)
            return index

    # Removes every timer through the normal remove path, so the selection walks down and ends up cleared.
    def clear_all(self):
        with self._lock:
            timers = self.registry.list()
            for timer in timers:
                self.remove(timer.id)
            if timers:
                log.info(f"Cleared all {len(timers)} timer(s)")
            return len(timers)

    def select(self, timer_id):
        with self._lock:
            self.selection.select(timer_id)

    # Starts the selected timer if it's paused, pauses it if it's running.
    def toggle_selected(self):
        with self._lock:
            timer = self.selection.selected
            if timer is None:
                return None
            if timer.running:
                timer.pause(self.clock())
            else:
                timer.start(self.clock())
            return timer.running

    def reset_selected(self):
        with self._lock:
            timer = self.selection.selected
            if timer is not None:
                timer.reset()
            return timer

    def pause_all(self):
        with self._lock:
            now = self.clock()
            paused = [t for t in self.registry.list() if t.pause(now)]
            if paused:
                log.info(f"Paused {len(paused)} running timer(s)")
            return paused

    def _lookup(self, timer_id, action):
        timer = self.registry.get(timer_id)
        if timer is None:
            log.debug(f"Ignoring {action} of unknown timer id {timer_id}")
        return timer

    # -- Snapshots --

    def snapshot(self):
        with self._lock:
            selected = self.selection.selected
            return persistence.encode(self.registry.list(), selected.name if selected else None)

    # Replaces all state with what's in `data`. Raises Corrupt and leaves the current state alone if it can't be read.
    def restore(self, data):
        timers, selected_name = persistence.decode(data)
        with self._lock:
            self.selection.clear()
            self.registry.clear()
            for timer in timers:
                self.registry.add(timer)
            if selected_name is not None:
                match = next((t for t in timers if t.name == selected_name), None) or self.registry.find_by_name(selected_name)
                if match is not None:
                    self.selection.select(match.id)
                else:
                    log.warning(f"Saved selection '{selected_name}' doesn't match any restored timer, leaving selection empty.")
        log.info(f"Restored {len(timers)} timer(s), selected {selected_name!r}")

    # Loads the saved snapshot from disk. Never raises: a missing file means empty state, an unreadable one is moved
    # aside and also means empty state.
    def load(self):
        if self.store is None:
            return False
        try:
            data = self.store.read()
            if data is None:
                log.info(f"No existing snapshot found at '{self.store.path}', starting with no timers.")
                return False
            self.restore(data)
            return True
        except Corrupt:
            log.warning(f"Snapshot at '{self.store.path}' is corrupt, starting with no timers.", exc_info=True)
            self._quarantine()
        except OSError:
            log.warning(f"Couldn't read snapshot at '{self.store.path}', starting with no timers.", exc_info=True)
        return False

    def _quarantine(self):
        try:
            self.store.quarantine()
        except OSError:
            log.warning(f"Couldn't move corrupt snapshot '{self.store.path}' aside.", exc_info=True)

    # Writes the current state to disk. A failed write is logged and skipped, the next autosave tries again.
    def save(self):
        if self.store is None:
            return False
        data = self.snapshot()
        try:
            self.store.write(data)
        except OSError:
            log.warning(f"Failed to save snapshot to '{self.store.path}', will retry on the next cycle.", exc_info=True)
            return False
        log.debug(f"Saved {len(self.registry)} timer(s) to '{self.store.path}'")
        return True

    # -- Scheduling and shutdown --

    # Hooks the tick notification and autosave onto the given scheduler.
    def start_schedules(self, scheduler, tick_interval_ms=100, autosave_seconds=5):
        self.stop_schedules()
        self._tasks = [
            scheduler.every(tick_interval_ms, self.registry.tick, name="tick"),
            scheduler.every(autosave_seconds * 1000, self.save, name="autosave"),
        ]
        log.info(f"Ticking every {tick_interval_ms} ms, autosaving every {autosave_seconds} s")
        return self._tasks

    def stop_schedules(self):
        for task in self._tasks:
            task.cancel()
        self._tasks = []

    # Stops the schedules, pauses everything that's running and does one last save, so a closed app never leaves
    # timers persisted as still counting.
    def shutdown(self):
        self.stop_schedules()
        with self._lock:
            self.pause_all()
            saved = self.save()
        log.info("Tracker shut down" + ("" if saved else " without a final save"))
        return saved
