import logging
import os
from pathlib import Path
from logging.handlers import RotatingFileHandler
from tt.common.setup import PATHS
from datetime import datetime

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s:%(filename)s:%(lineno)d] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Attaches the given handler under a unique name, unless a handler with that name is already on the logger. Keeps
# repeated get_logger() calls from stacking duplicate handlers.
def _attach(logger: logging.Logger, handler_name: str, handler: logging.Handler, level, fmt):
    handler.setLevel(level)
    handler.setFormatter(fmt)
    handler.set_name(handler_name)
    logger.addHandler(handler)

def _has_handler(logger: logging.Logger, handler_name: str) -> bool:
    return any(h.get_name() == handler_name for h in logger.handlers)

# Removes all but the newest `keep` per-run debug logs.
def _prune_runs(run_dir: Path, name: str, keep: int):
    runs = sorted(run_dir.glob(f"{name}_*.log"),key=lambda p: p.stat().st_mtime,reverse=True)
    for run in runs[keep:]:
        try: run.unlink()
        except OSError: pass

def get_logger(
        name = "tickettimer",
        level = logging.INFO,
        log_dir: Path | None = None,
        max_bytes = 2 * 1024 * 1024,
        backup_count = 3,
        persistent = True,
        console = False,
        run_logs: int = 10
) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.propagate = False
    logger.setLevel(min(level, logging.DEBUG) if run_logs > 0 else level)

    log_dir = log_dir or PATHS.logs
    log_dir.mkdir(parents=True,exist_ok=True)
    fmt = logging.Formatter(LOG_FORMAT,LOG_DATE_FORMAT)

    # Rotating log that survives across runs
    if persistent and not _has_handler(logger, f"{name}:persistent"):
        _attach(logger, f"{name}:persistent", RotatingFileHandler(
            filename=log_dir / f"{name}.log",
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        ), level, fmt)

    # latest.log only ever holds the current run
    if not _has_handler(logger, f"{name}:latest"):
        _attach(logger, f"{name}:latest", logging.FileHandler(
            filename=log_dir / "latest.log",
            mode="w",
            encoding="utf-8",
        ), level, fmt)

    # One full debug log per run, the oldest ones get pruned
    if run_logs > 0 and not _has_handler(logger, f"{name}:run"):
        run_dir = log_dir / "debug"
        run_dir.mkdir(parents=True,exist_ok=True)
        _attach(logger, f"{name}:run", logging.FileHandler(
            filename=run_dir / f"{name}_{datetime.now():%Y-%m-%d_%H-%M-%S}.log",
            encoding="utf-8",
        ), logging.DEBUG, fmt)
        _prune_runs(run_dir, name, run_logs)

    if console and not _has_handler(logger, f"{name}:console"):
        _attach(logger, f"{name}:console", logging.StreamHandler(), level, fmt)

    return logger

# TICKETTIMER_LOG_LEVEL accepts any stdlib level name, TICKETTIMER_LOG_CONSOLE=1 mirrors the log to stderr.
_level = logging.getLevelName(os.getenv("TICKETTIMER_LOG_LEVEL", "INFO").upper())
log = get_logger(
    level=_level if isinstance(_level, int) else logging.INFO,
    console=os.getenv("TICKETTIMER_LOG_CONSOLE") == "1",
    run_logs=10,
)
log.info("=== INITIALIZED NEW SESSION ===")
