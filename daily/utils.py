import logging
import sys

from daily.core import config

LOG_FORMAT = "[%(asctime)s  %(module)s:%(funcName)s] %(levelname)s: %(message)s"


def get_logger(name: str) -> logging.Logger:
    log = logging.getLogger(name)
    log.setLevel(config.LOG_LEVEL)
    # One handler per logger name
    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log.addHandler(handler)
    return log
