import logging
import os
import sys

__version__ = "0.1.0"

# The CI workflows speak in these names, default to errors only.
LOG_LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


def log_level_from_name(name):
    """
    Convert a `log_level` input ("error", "warn", "info", "debug") to a
    logging level.  Anything unrecognized means "error".
    """
    return LOG_LEVELS.get((name or "").strip().lower(), logging.ERROR)


log_level = log_level_from_name(os.environ.get("LOG_LEVEL", "error"))
logger = logging.getLogger(__name__)
handler = logging.StreamHandler(sys.stderr)
handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
logger.addHandler(handler)
logger.setLevel(log_level)

# These are chatty at debug-level, and we log our own requests anyway.
logging.getLogger("urllib3").setLevel("WARN")
logging.getLogger("slack_sdk").setLevel("WARN")


def set_log_level(name) -> None:
    """Change the console verbosity of everything in pr_actions."""
    logger.setLevel(log_level_from_name(name))
