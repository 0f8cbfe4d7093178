"""
utils/logger.py — Engine-wide logging setup
============================================
Every component logs through a child of one ``vitals`` logger:

    logger = get_logger("dsp.peaks")     # → logging.getLogger("vitals.dsp.peaks")

Only the parent carries a handler (colour-coded, stdout), so changing
verbosity at runtime is a single `set_level` call and host applications
can re-route everything by configuring ``logging.getLogger("vitals")``.
The default level comes from `config.LOG_LEVEL` (env `VITALS_LOG_LEVEL`).
"""

import logging
import sys

from config import LOG_LEVEL

ROOT_NAME = "vitals"

# ANSI colour per severity
_LEVEL_COLOURS = {
    logging.DEBUG:    "\033[36m",
    logging.INFO:     "\033[32m",
    logging.WARNING:  "\033[33m",
    logging.ERROR:    "\033[31m",
    logging.CRITICAL: "\033[35m",
}
_PLAIN = "\033[0m"

_FORMAT = "%(asctime)s  %(levelname)s  %(component)-20s  %(message)s"
_DATEFMT = "%H:%M:%S"


class _ColourFormatter(logging.Formatter):
    """Colours the level tag and strips the shared ``vitals.`` prefix."""

    def format(self, record: logging.LogRecord) -> str:
        shown = logging.makeLogRecord(record.__dict__)
        tint = _LEVEL_COLOURS.get(shown.levelno, _PLAIN)
        shown.levelname = f"{tint}{shown.levelname:<8}{_PLAIN}"
        shown.component = shown.name.removeprefix(f"{ROOT_NAME}.")
        return super().format(shown)


def _root() -> logging.Logger:
    root = logging.getLogger(ROOT_NAME)
    if not root.handlers:
        stream = logging.StreamHandler(sys.stdout)
        stream.setFormatter(_ColourFormatter(fmt=_FORMAT, datefmt=_DATEFMT))
        root.addHandler(stream)
        root.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
        root.propagate = False
    return root


def get_logger(name: str, level: int | None = None) -> logging.Logger:
    """
    Parameters
    ----------
    name  : str        Dotted component name, e.g. ``"engine.session"``.
    level : int | None Per-component override; inherits the engine level otherwise.
    """
    _root()
    logger = logging.getLogger(f"{ROOT_NAME}.{name}")
    if level is not None:
        logger.setLevel(level)
    return logger


def set_level(level: int | str) -> None:
    """Change the engine-wide level (CLI `--verbose`)."""
    _root().setLevel(level)
