import json
import os
from datetime import datetime
from pathlib import Path
from tt.common.logger import log
from tt.core.errors import Corrupt
from tt.core.timer import Timer
from tt.util import now_iso, to_ticks, from_ticks, parse_timestamp

_SCHEMA_VERSION = 1

#region === Encoding and Decoding ===

def _encode_timer(timer):
    accumulated, running, run_since, last_run_start = timer.state()
    return {
        "name": timer.name,
        "elapsedTicks": to_ticks(accumulated),
        "isRunning": running,
        "startTime": run_since.isoformat() if run_since else None,
        "lastStartTime": last_run_start.isoformat() if last_run_start else None,
    }

# Serializes the given timers (in order) and the selected timer's name to snapshot bytes.
def encode(timers, selected_name=None) -> bytes:
    document = {
        "meta": {
            "schema_version": _SCHEMA_VERSION,
            "saved_at": now_iso(),
        },
        "timers": [_encode_timer(timer) for timer in timers],
        "selectedTimerName": selected_name,
    }
    return json.dumps(document, indent=2, ensure_ascii=False).encode("utf-8")

def _timestamp_field(entry, key, position):
    value = entry.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise Corrupt(f"timers[{position}].{key} must be a timestamp string or null")
    try:
        return parse_timestamp(value)
    except (ValueError, OverflowError) as e:
        raise Corrupt(f"timers[{position}].{key} is not an ISO8601 timestamp: {value!r}") from e

def _decode_timer(entry, position):
    if not isinstance(entry, dict):
        raise Corrupt(f"timers[{position}] must be an object")

    for key in ("name", "elapsedTicks", "isRunning"):
        if key not in entry:
            raise Corrupt(f"timers[{position}] is missing '{key}'")

    name = entry["name"]
    if not isinstance(name, str) or not name.strip():
        raise Corrupt(f"timers[{position}].name must be a non-empty string")
    ticks = entry["elapsedTicks"]
    if isinstance(ticks, bool) or not isinstance(ticks, int) or ticks < 0:
        raise Corrupt(f"timers[{position}].elapsedTicks must be a non-negative integer")
    running = entry["isRunning"]
    if not isinstance(running, bool):
        raise Corrupt(f"timers[{position}].isRunning must be a boolean")
    run_since = _timestamp_field(entry, "startTime", position)
    last_run_start = _timestamp_field(entry, "lastStartTime", position)

    # Guard against inconsistent but well-typed entries, a run period needs both the flag and its start.
    if running and run_since is None:
        log.warning(f"Timer '{name}' was saved as running without a startTime, loading it paused.")
    elif not running and run_since is not None:
        log.warning(f"Timer '{name}' was saved as paused with a startTime, dropping the startTime.")
        run_since = None

    try:
        accumulated = from_ticks(ticks)
    except (OverflowError, ValueError) as e:
        raise Corrupt(f"timers[{position}].elapsedTicks is out of range: {ticks}") from e

    return Timer(
        name,
        accumulated=accumulated,
        run_since=run_since,
        last_run_start=last_run_start,
    )

# Parses snapshot bytes back into (timers, selected_name). Raises Corrupt if the bytes don't match the schema.
def decode(data: bytes):
    try:
        document = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise Corrupt(f"Snapshot is not valid JSON: {e}") from e

    if not isinstance(document, dict):
        raise Corrupt("Snapshot must be a JSON object")
    if "timers" not in document:
        raise Corrupt("Snapshot is missing the 'timers' list")
    entries = document["timers"]
    if not isinstance(entries, list):
        raise Corrupt("Snapshot 'timers' must be a list")
    selected_name = document.get("selectedTimerName")
    if selected_name is not None and not isinstance(selected_name, str):
        raise Corrupt("Snapshot 'selectedTimerName' must be a string or null")

    timers = [_decode_timer(entry, i) for i, entry in enumerate(entries)]
    return timers, selected_name or None

#endregion === Encoding and Decoding ===

#region === Disk Access ===

class PersistenceStore:
    """Reads and writes one snapshot file.

    Writes go to a sibling ``.tmp`` file that is then moved over the target
    with ``os.replace``, so an interrupted write never damages the last good
    snapshot.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    @property
    def tmp_path(self) -> Path:
        return self.path.with_name(self.path.name + ".tmp")

    # Returns the stored snapshot bytes, or None if nothing has been saved yet.
    def read(self):
        try:
            return self.path.read_bytes()
        except FileNotFoundError:
            return None

    def write(self, data: bytes):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.tmp_path
        with open(tmp_path, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, self.path)
        log.debug(f"Wrote {len(data)} bytes to '{self.path}'")

    # Moves an unreadable snapshot out of the way so the next save can't overwrite it. Returns the new path.
    def quarantine(self):
        if not self.path.exists():
            return None
        ts = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        target = self.path.with_name(f"{self.path.stem}.corrupt_{ts}{self.path.suffix}")
        os.replace(self.path, target)
        log.warning(f"Moved unreadable snapshot '{self.path}' to '{target}'")
        return target

#endregion === Disk Access ===
