from datetime import datetime, timedelta
from urllib.parse import quote

# Number of 100ns ticks in one microsecond, the finest step a timedelta can hold.
TICKS_PER_MICROSECOND = 10


# Simply returns the current local time as a timezone aware datetime. This is the default clock for the whole core.
def now():
    return datetime.now().astimezone()


# Simply returns the current local time as an ISO8601 string with timezone offset.
def now_iso():
    return now().isoformat()


# Converts a duration into whole 100ns ticks, which is how elapsed time gets persisted.
def to_ticks(duration: timedelta) -> int:
    whole_seconds = duration.days * 86400 + duration.seconds
    return (whole_seconds * 1_000_000 + duration.microseconds) * TICKS_PER_MICROSECOND


def from_ticks(ticks: int) -> timedelta:
    return timedelta(microseconds=ticks // TICKS_PER_MICROSECOND)


# Parses an ISO8601 timestamp. Naive timestamps are taken to be local time.
def parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed


def format_elapsed(duration: timedelta, tenths=False):
    """Format a duration as HH:MM:SS (hours keep counting past 24). Negative values clamp to zero."""
    total_us = max(0, to_ticks(duration) // TICKS_PER_MICROSECOND)
    seconds, us = divmod(total_us, 1_000_000)
    h, rem = divmod(seconds, 3600)
    m, s = divmod(rem, 60)
    if tenths:
        return f"{h:02d}:{m:02d}:{s:02d}.{us // 100_000}"
    return f"{h:02d}:{m:02d}:{s:02d}"


# Formats when a timer was last started, as dd.mm.yyyy HH:MM:SS. Timers that never ran get a placeholder.
def format_started(started):
    if started is None:
        return "Not started yet"
    return started.strftime("%d.%m.%Y %H:%M:%S")


# Builds the issue-tracker link for a ticket from a template such as "https://jira.example.com/browse/{name}".
# An empty template means ticket links are turned off.
def ticket_url(template, name):
    if not template or not name.strip():
        return None
    return template.format(name=quote(name.strip(), safe=""))
