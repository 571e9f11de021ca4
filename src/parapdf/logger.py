# src/parapdf/logger.py

import logging
import sys
from pathlib import Path
from multiprocessing import Queue as MPQueue # The process-safe queue for workers
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from typing import Optional, TextIO, Union

# --- Custom Log Level for Progress ---
PROGRESS = 25
logging.addLevelName(PROGRESS, "PROGRESS")

def progress(self, msg, *args, **kwargs):
    if self.isEnabledFor(PROGRESS):
        self._log(PROGRESS, msg, args, **kwargs)

logging.Logger.progress = progress

# --- Custom Filters ---
class ExcludeLevelFilter(logging.Filter):
    def __init__(self, levelno: int):
        super().__init__()
        self.levelno = levelno
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno != self.levelno

# --- Main Configuration Function ---
def setup_logging(
    log_queue: MPQueue,
    *,
    level: int = logging.INFO,
    stream: Optional[TextIO] = None,
    file_path: Optional[Union[str, Path]] = None,
    file_level: Optional[int] = None,
) -> QueueListener:
    """
    Sets up the logging listener architecture.

    Args:
        log_queue: The process-safe queue that the main process and all workers log to.
        level: The base logging level for the console output.
        stream: Console stream, stderr when omitted.
        file_path: Path to the persistent log file.
        file_level: The logging level for the file.

    Returns:
        A QueueListener instance. You must call .start() on it.
    """
    handlers = []

    # Console handler
    ch = logging.StreamHandler(stream or sys.stderr)
    ch.setLevel(level)
    ch.setFormatter(logging.Formatter("%(levelname)-8s | %(message)s"))
    handlers.append(ch)

    # File handler
    if file_path:
        fp = Path(file_path)
        fp.parent.mkdir(parents=True, exist_ok=True)
        fh = RotatingFileHandler(fp, maxBytes=5*1024*1024, backupCount=2, encoding="utf-8")
        fh.setLevel(file_level if file_level is not None else level)
        fh.setFormatter(logging.Formatter("%(asctime)s | %(processName)-15s | %(levelname)-8s | %(message)s"))
        fh.addFilter(ExcludeLevelFilter(PROGRESS))
        handlers.append(fh)

    # The listener pulls from the process-safe queue and pushes to the configured handlers.
    listener = QueueListener(log_queue, *handlers, respect_handler_level=True)
    return listener

def configure_worker_logging(log_queue: Optional[MPQueue]):
    """
    Routes the "parapdf" logger of the current process into log_queue.
    Used as the multiprocessing.Pool initializer and by the CLI for the main
    process. Without a queue the logger is left as it is.
    """
    if log_queue is None:
        return

    logger = logging.getLogger("parapdf")
    logger.setLevel(logging.DEBUG)

    # Remove any handlers that may have been inherited from the parent process
    logger.handlers.clear()
    logger.propagate = False

    logger.addHandler(QueueHandler(log_queue))
