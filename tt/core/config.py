import copy
import json
import os
from tt.common.logger import log
from tt.common.setup import PATHS


#region === Defaults and Paths ===

SETTINGS_PATH = PATHS.settings_file

# Default values for every user setting. Anything missing from settings.json gets filled from here.
_SETTINGS_DEFAULTS = {
    "tick_interval_ms": 100,
    "autosave_seconds": 5,
    "always_on_top": False,
    "confirm_delete": True,
    "confirm_reset": True,
    "show_tenths": False,
    "ticket_url_template": "",
    "window": {"width": 420, "height": 360, "x": None, "y": None},
}

# Expected type for each setting, bool has to be checked before int since bool is an int subclass.
_SETTINGS_TYPES = {
    "tick_interval_ms": int,
    "autosave_seconds": int,
    "always_on_top": bool,
    "confirm_delete": bool,
    "confirm_reset": bool,
    "show_tenths": bool,
    "ticket_url_template": str,
    "window": dict,
}

# Helper to return a truly fresh, default settings dict.
def build_default_settings():
    return copy.deepcopy(_SETTINGS_DEFAULTS)

def _valid(key, value):
    expected = _SETTINGS_TYPES[key]
    if expected is int:
        return isinstance(value, int) and not isinstance(value, bool) and value > 0
    return isinstance(value, expected)

#endregion === Defaults and Paths ===

#region === Saving and Loading Settings ===

# Loads settings from PATHS.current / settings.json, defaulting anything missing or malformed.
def load_settings(path=None):
    path = path or SETTINGS_PATH
    try:
        if not path.exists():
            log.info("No existing settings.json found in `current`, loading default settings.")
            return build_default_settings()

        with open(path, "r", encoding="utf-8") as f:
            settings = json.load(f)
        if not isinstance(settings, dict):
            raise TypeError(f"Expected a JSON object in '{path}', got {type(settings).__name__}")

        defaulted_values = set()
        for key, default in _SETTINGS_DEFAULTS.items():
            if key not in settings or not _valid(key, settings[key]):
                defaulted_values.add(key)
                settings[key] = copy.deepcopy(default)

        # Geometry keys are filled individually, so one bad value doesn't lose the rest
        window = settings["window"]
        for key, default in _SETTINGS_DEFAULTS["window"].items():
            if key not in window or not (window[key] is None or (isinstance(window[key], int) and not isinstance(window[key], bool))):
                defaulted_values.add(f"window.{key}")
                window[key] = default

        if defaulted_values:
            log.warning(f"Loaded settings from '{path}', but with missing values that were defaulted: {', '.join(sorted(defaulted_values))}")
        else:
            log.info(f"Successfully loaded settings from '{path}'.")
        return settings
    # Fall back to defaults in case of error, but warn in log
    except (json.JSONDecodeError, OSError, TypeError):
        log.warning(f"Ran into an error while trying to load '{path}', falling back to default settings.",exc_info=True)
        return build_default_settings()

# Write the given settings to disk, through a temp file so a crash can't leave half a file behind.
def save_settings(settings, path=None):
    path = path or SETTINGS_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(settings, f, indent=2)
        f.flush()
        os.fsync(f.fileno())
    os.replace(tmp_path, path)
    log.info(f"Successfully saved settings to '{path}'")

#endregion === Saving and Loading Settings ===
