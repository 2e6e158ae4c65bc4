import logging
import os
import sys

from colorama import just_fix_windows_console, Fore, Style

# Enable ANSI colour handling on Windows consoles; a no-op elsewhere
just_fix_windows_console()

LEVEL_COLORS = {
    logging.DEBUG: Style.DIM,
    logging.INFO: Fore.CYAN,
    logging.WARNING: Fore.YELLOW,
    logging.ERROR: Fore.RED,
    logging.CRITICAL: Fore.RED + Style.BRIGHT,
}

ROOT_NAME = "ip_tally"


class ColorFormatter(logging.Formatter):
    """Colour the level name when writing to a terminal"""

    def __init__(self, fmt, use_color=True):
        super().__init__(fmt)
        self.use_color = use_color

    def format(self, record):
        message = super().format(record)
        if not self.use_color:
            return message
        color = LEVEL_COLORS.get(record.levelno, "")
        return message.replace(record.levelname, f"{color}{record.levelname}{Style.RESET_ALL}", 1)


def _initial_level():
    name = os.getenv("IP_TALLY_LOG_LEVEL", "WARNING").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.WARNING


def _root_logger():
    root = logging.getLogger(ROOT_NAME)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(ColorFormatter("%(levelname)s %(name)s: %(message)s", use_color=sys.stderr.isatty()))
        root.addHandler(handler)
        root.setLevel(_initial_level())
        root.propagate = False
    return root


def setup_logger(name):
    """Return a logger that writes through the shared ip_tally stderr handler"""
    root = _root_logger()
    if name == ROOT_NAME or name.startswith(ROOT_NAME + "."):
        return logging.getLogger(name)
    return root.getChild(name)


def set_verbosity(verbose):
    """Map a -v count onto the package log level"""
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = _initial_level()
    _root_logger().setLevel(level)
    return level
