from tt.common.logger import log
from tt.core.errors import NotFound
from tt.core.events import Signal


class SelectionController:
    """Tracks which timer is current.

    The selection is either None or the id of a timer present in the
    registry. ``changed`` fires with ``(previous, next)`` Timer objects (either
    may be None) every time the selection actually moves.
    """

    def __init__(self, registry):
        self._registry = registry
        self._selected_id = None
        self.changed = Signal("selection_changed")

    @property
    def selected_id(self):
        return self._selected_id

    @property
    def selected(self):
        if self._selected_id is None:
            return None
        return self._registry.get(self._selected_id)

    def select(self, timer_id):
        timer = self._registry.get(timer_id)
        if timer is None:
            raise NotFound(f"No timer with id {timer_id!r}")
        if timer_id == self._selected_id:
            return
        self._move_to(self.selected, timer)

    def clear(self):
        if self._selected_id is not None:
            self._move_to(self.selected, None)

    def handle_removal(self, removed, index):
        """Reassign the selection after ``removed`` left the registry from ``index``.

        Removing a non-last timer selects its successor, removing the last one
        selects its predecessor, removing the only one clears the selection.
        Removing an unselected timer changes nothing.
        """
        if removed.id != self._selected_id:
            return
        remaining = self._registry.list()
        if not remaining:
            successor = None
        elif index < len(remaining):
            successor = remaining[index]
        else:
            successor = remaining[index - 1]
        self._move_to(removed, successor)

    def _move_to(self, previous, timer):
        self._selected_id = timer.id if timer is not None else None
        log.debug(f"Selection moved from {previous.name if previous else None!r} to {timer.name if timer else None!r}")
        self.changed.emit(previous, timer)
