"""Logging configuration for grovr"""
import logging
import sys
from pathlib import Path
from typing import Optional

LOG_DIR = Path.home() / '.grovr'
LOG_FILE = LOG_DIR / 'grovr.log'

DETAILED_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# GitPython logs every command it spawns; grovr's runner already does
NOISY_LOGGERS = ('git.cmd', 'git.util', 'github.Requester', 'urllib3')


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name when stderr is a terminal."""

    LEVEL_COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def format(self, record):
        if not sys.stderr.isatty() or record.levelname not in self.LEVEL_COLORS:
            return super().format(record)
        # Color a copy so other handlers still see the plain level name
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"{self.LEVEL_COLORS[record.levelname]}{record.levelname}{self.RESET}"
        return super().format(colored)


def setup_logging(verbose: bool = False, debug: bool = False, tui_mode: bool = False) -> Optional[Path]:
    """
    Configure logging for the application.

    Args:
        verbose: If True, show INFO level messages
        debug: If True, show DEBUG level messages and detailed formatting
        tui_mode: If True, log to a file instead of the console (the TUI owns the screen)

    Returns:
        Path of the log file when one is written, else None
    """
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if tui_mode else level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    log_file = None
    if tui_mode or debug:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        log_file = LOG_FILE
        file_handler = logging.FileHandler(log_file, mode='w')  # Overwrite each run
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(fmt=DETAILED_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)

    if not tui_mode:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        if debug:
            console_handler.setFormatter(ColoredFormatter(fmt=DETAILED_FORMAT, datefmt=DATE_FORMAT))
        else:
            console_handler.setFormatter(ColoredFormatter(fmt='[%(name)s] %(message)s'))
        root_logger.addHandler(console_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return log_file


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for the specified module.

    Args:
        name: Name of the module (typically __name__)

    Returns:
        Logger instance
    """
    # Strip the package prefix for cleaner log names
    for prefix in ('grovr.', 'services.'):
        if name.startswith(prefix):
            name = name[len(prefix):]

    return logging.getLogger(name)
