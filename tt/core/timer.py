import threading
import uuid
from datetime import datetime, timedelta
from tt.common.logger import log

_ZERO = timedelta(0)


# Returns now - since, clamped to zero in case the wall clock went backwards.
def _run_delta(now: datetime, since: datetime) -> timedelta:
    delta = now - since
    return delta if delta > _ZERO else _ZERO


# This object handles time tracking for a single named timer. Time is measured against wall-clock datetimes so that a
# running timer can be persisted and keep counting across restarts. Every read and transition happens under the
# timer's own lock, so accumulated and run_since are always observed together.
class Timer:

    # Simple __init__, with options to restore an already-banked duration and an in-progress run.
    def __init__(self, name, accumulated=_ZERO, run_since=None, last_run_start=None, timer_id=None):
        self._id = timer_id or uuid.uuid4().hex
        self._name = name
        self._lock = threading.Lock()
        self.accumulated = max(_ZERO, accumulated)
        self.run_since = run_since
        self.last_run_start = last_run_start
        self.running = run_since is not None

        log.debug(f"Initialized timer '{name}' ({self._id}) with accumulated {self.accumulated}, running_since {run_since}")

    @property
    def id(self):
        return self._id

    @property
    def name(self):
        return self._name

    def __repr__(self):
        return f"Timer({self._name!r}, id={self._id!r}, running={self.running})"

    # Returns the total elapsed time as of `now`, including the current run if there is one.
    def effective_elapsed(self, now: datetime) -> timedelta:
        with self._lock:
            if self.running and self.run_since is not None:
                return self.accumulated + _run_delta(now, self.run_since)
            return self.accumulated

    # Start and pause methods for the timer. Both are no-ops if the timer is already in the requested state.
    def start(self, now: datetime):
        with self._lock:
            if self.running:
                return False
            self.run_since = now
            self.last_run_start = now
            self.running = True
        log.debug(f"Started timer '{self._name}' at {now.isoformat()}")
        return True
    def pause(self, now: datetime):
        with self._lock:
            if not self.running:
                return False
            self.accumulated += _run_delta(now, self.run_since)
            self.run_since = None
            self.running = False
        log.debug(f"Paused timer '{self._name}' at {now.isoformat()}, accumulated {self.accumulated}")
        return True
    # Restores the timer to 0:00 and forgets when it last ran.
    def reset(self):
        with self._lock:
            self.accumulated = _ZERO
            self.run_since = None
            self.last_run_start = None
            self.running = False
        log.debug(f"Reset timer '{self._name}' to 0")

    # Returns (accumulated, running, run_since, last_run_start) read under one lock acquisition.
    def state(self):
        with self._lock:
            return self.accumulated, self.running, self.run_since, self.last_run_start

    def matches(self, name: str) -> bool:
        return self._name.casefold() == name.strip().casefold()
