"""
Unified Logging Configuration for GrammarFix

One stdlib logger, 'GrammarFix', with up to three handlers:
- logs/grammarfix.log   INFO and above, always
- logs/debug_flow.txt   everything, including debug_log() trail messages
- console               everything, only when DEBUG_MODE is on
  (otherwise the log files are the only output)

All modules log through the helpers below rather than creating loggers:
    from grammarfix.logging_config import debug_log, info, warning, error, Timer

debug_log() messages carry a [MODULE] prefix ("[DOWNLOAD] ...", "[OLLAMA CHAT] ...")
so the debug trail can be grepped per component.
"""

import logging
import sys
import time

from grammarfix.config import DEBUG_FLOW_FILE, DEBUG_MODE, LOG_DATE_FORMAT, LOG_FILE, LOG_FORMAT

LOGGER_NAME = 'GrammarFix'

_TRAIL_FORMAT = "[%(asctime)s.%(msecs)03d] %(levelname)s %(message)s"


def _add_file_handler(logger: logging.Logger, path, level: int, fmt: str):
    # delay=True: the file is created on the first record, not on import
    try:
        handler = logging.FileHandler(path, encoding='utf-8', delay=True)
    except OSError:
        return
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=LOG_DATE_FORMAT))
    logger.addHandler(handler)


def _setup_logger() -> logging.Logger:
    """Configure the GrammarFix logger once per process."""
    logger = logging.getLogger(LOGGER_NAME)
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    _add_file_handler(logger, LOG_FILE, logging.INFO, LOG_FORMAT)
    _add_file_handler(logger, DEBUG_FLOW_FILE, logging.DEBUG, _TRAIL_FORMAT)

    if DEBUG_MODE:
        console = logging.StreamHandler(sys.stdout)
        console.setLevel(logging.DEBUG)
        console.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        logger.addHandler(console)

    return logger


_logger = _setup_logger()


def format_elapsed(seconds: float) -> str:
    """
    Human-readable duration for log lines.

    Examples:
        >>> format_elapsed(0.25)
        '250 ms'
        >>> format_elapsed(8.7)
        '8.70s'
        >>> format_elapsed(150)
        '2.5m'
    """
    if seconds < 1:
        return f"{seconds * 1000:.0f} ms"
    if seconds < 60:
        return f"{seconds:.2f}s"
    return f"{seconds / 60:.1f}m"


class Timer:
    """
    Context manager that logs how long a block took.

    Usage:
        with Timer("ModelDownload"):
            downloader.download(url, path)

    Debug trail:
        [14:32:01.120] DEBUG Starting ModelDownload...
        [14:32:09.842] DEBUG ModelDownload took 8.72s

    The elapsed time stays available as .elapsed_seconds after the block.
    """

    def __init__(self, operation_name: str, auto_log: bool = True):
        self.operation_name = operation_name
        self.auto_log = auto_log
        self.start_time: float | None = None
        self.elapsed_seconds: float | None = None

    def __enter__(self):
        if self.auto_log:
            debug_log(f"Starting {self.operation_name}...")
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed_seconds = time.time() - self.start_time
        if self.auto_log:
            outcome = "" if exc_type is None else f" (failed: {exc_type.__name__})"
            debug_timing(f"{self.operation_name}{outcome}", self.elapsed_seconds)
        return False


def debug_log(message: str):
    """
    Write a message to the debug trail (and the console in DEBUG_MODE).

    Example:
        debug_log("[DOWNLOAD] Content-Length: 807690656")
    """
    _logger.debug(message)


def debug(message: str):
    """Alias for debug_log."""
    _logger.debug(message)


def info(message: str):
    _logger.info(message)


def warning(message: str):
    _logger.warning(message)


def error(message: str, exc_info: bool = False):
    """
    Log an error. Tracebacks are only attached in DEBUG_MODE so the user
    log stays readable.
    """
    _logger.error(message, exc_info=exc_info and DEBUG_MODE)


def debug_timing(operation: str, elapsed_seconds: float):
    """Log '<operation> took <duration>' to the debug trail."""
    debug_log(f"{operation} took {format_elapsed(elapsed_seconds)}")


def close_debug_log():
    """Flush and close all log files; call at application shutdown."""
    for handler in list(_logger.handlers):
        handler.flush()
        if isinstance(handler, logging.FileHandler):
            handler.close()


__all__ = [
    'debug_log',
    'debug',
    'debug_timing',
    'info',
    'warning',
    'error',
    'close_debug_log',
    'format_elapsed',
    'Timer',
]
