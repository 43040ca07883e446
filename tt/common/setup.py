import os
from pathlib import Path
from dataclasses import dataclass

# Lil helper function to create missing directories if missing, and optionally error out when a path
# doesn't exist.
def ensure_directory(path: Path,must_exist=False):
    if must_exist:
        if not path.exists():
            raise FileNotFoundError(f"Required directory is missing: {path}")
        if not path.is_dir():
            raise NotADirectoryError(f"Expected a directory, got a file: {path}")
    else:
        path.mkdir(parents=True,exist_ok=True)
    return path

# Works out where user data lives. TICKETTIMER_HOME wins, then the Windows roaming APPDATA folder, then a dotfolder
# in the home directory for everything else.
def resolve_data_root() -> Path:
    override = os.getenv("TICKETTIMER_HOME")
    if override:
        return Path(override)
    appdata = os.getenv("APPDATA")
    if appdata:
        return Path(appdata) / "TicketTimer"
    return Path.home() / ".tickettimer"

# Dataclass for accessing paths across program.
@dataclass(frozen=False)
class ProjectPaths:

    data: Path
    logs: Path
    current: Path

    @property
    def timers_file(self) -> Path:
        return self.current / "timers.json"

    @property
    def settings_file(self) -> Path:
        return self.current / "settings.json"

    @staticmethod
    def build(root: Path | None = None):
        # Folder for all user-specific data
        data = ensure_directory(root or resolve_data_root())

        # Folders within the data folder
        logs = ensure_directory(data / "logs")
        current = ensure_directory(data / "current")

        return ProjectPaths(
            data = data,
            logs = logs,
            current = current,
        )
PATHS = ProjectPaths.build()
