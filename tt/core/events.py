"""Plain publish/subscribe signals for the core.

Listeners run synchronously, in the order they connected, before ``emit``
returns. The core never imports Qt, so the window bridges these onto its own
widgets.
"""

from __future__ import annotations

from collections.abc import Callable


class Signal:
    """An ordered list of listeners sharing one call signature."""

    def __init__(self, name: str = "signal"):
        self.name = name
        self._listeners: list[Callable] = []

    def connect(self, listener: Callable) -> Callable:
        if listener not in self._listeners:
            self._listeners.append(listener)
        return listener

    def disconnect(self, listener: Callable) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def emit(self, *args) -> None:
        # Copy so a listener may disconnect itself mid-emit
        for listener in list(self._listeners):
            listener(*args)

    def __len__(self):
        return len(self._listeners)

    def __repr__(self):
        return f"Signal({self.name!r}, listeners={len(self._listeners)})"
