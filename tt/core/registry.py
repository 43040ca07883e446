from tt.common.logger import log
from tt.core.errors import InvalidName
from tt.core.events import Signal
from tt.core.timer import Timer


# The ordered collection of every timer. Order is display order, and is what the selection falls back on when a
# timer is removed. The registry doesn't deduplicate names, that's the job of the create-or-select flow.
class TimerRegistry:

    def __init__(self):
        self._timers = {}  # id -> Timer, insertion ordered
        # Fired on the tick cadence, carries no payload. Observers recompute durations themselves.
        self.ticked = Signal("ticked")

    def __len__(self):
        return len(self._timers)

    def __iter__(self):
        return iter(self.list())

    def __contains__(self, timer_id):
        return timer_id in self._timers

    # Creates a new timer with the given name and appends it at the end.
    def create(self, name):
        if not isinstance(name, str) or not name.strip():
            raise InvalidName(f"Timer name must not be blank, got {name!r}")
        timer = Timer(name.strip())
        self._timers[timer.id] = timer
        log.info(f"Created timer '{timer.name}' ({timer.id})")
        return timer

    # Appends an already-built timer, used when restoring from a snapshot.
    def add(self, timer):
        self._timers[timer.id] = timer
        return timer

    # Removes the timer and returns the index it had before removal, or None if it wasn't here.
    def remove(self, timer_id):
        index = self.index_of(timer_id)
        if index is None:
            log.debug(f"Ignoring removal of unknown timer id {timer_id}")
            return None
        timer = self._timers.pop(timer_id)
        log.info(f"Removed timer '{timer.name}' ({timer_id}) from index {index}")
        return index

    def clear(self):
        self._timers.clear()

    def list(self):
        return tuple(self._timers.values())

    def get(self, timer_id):
        return self._timers.get(timer_id)

    def index_of(self, timer_id):
        for i, tid in enumerate(self._timers):
            if tid == timer_id:
                return i
        return None

    # First timer whose name matches case-insensitively, or None.
    def find_by_name(self, name):
        if not isinstance(name, str):
            return None
        for timer in self._timers.values():
            if timer.matches(name):
                return timer
        return None

    def tick(self):
        self.ticked.emit()
