import logging
import sys

from shopadmin.config import settings


def get_logger(name: str, prefix: str) -> logging.Logger:
    """
    Named logger writing "[PREFIX] message" lines to stdout.
    The handler is attached only once, so repeated imports don't duplicate output.
    """
    log = logging.getLogger(name)
    log.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    if not log.handlers:
        h = logging.StreamHandler(sys.stdout)
        h.setFormatter(logging.Formatter(f"[{prefix}] %(message)s"))
        log.addHandler(h)
    return log
