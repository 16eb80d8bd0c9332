import logging
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Send everything to stdout; gunicorn and the platform collect it from there."""
    logger = logging.getLogger("habitcore")
    logger.setLevel(level.upper())
    if not any(getattr(h, "_habitcore", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._habitcore = True
        logger.addHandler(handler)
    return logger
