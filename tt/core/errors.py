"""Errors raised by the timer core."""


class TrackerError(Exception):
    """Base class for everything the core raises on purpose."""


class InvalidName(TrackerError, ValueError):
    """A timer name was empty or only whitespace."""


class NotFound(TrackerError, KeyError):
    """An operation referenced a timer id that isn't in the registry."""

    def __str__(self):
        # KeyError would otherwise repr() the message
        return str(self.args[0]) if self.args else ""


class Corrupt(TrackerError):
    """A snapshot could not be decoded into timers."""
