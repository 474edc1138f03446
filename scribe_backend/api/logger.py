import logging
import sys


def setup_logger(level="INFO"):
    """Configures the "scribe" logger hierarchy to print to stdout."""
    logger = logging.getLogger("scribe")
    logger.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s", datefmt="%H:%M:%S"
    )
    handler.setFormatter(formatter)

    # Reloads must not stack handlers
    if not logger.handlers:
        logger.addHandler(handler)

    return logger


def get_logger(name):
    return logging.getLogger(f"scribe.{name}")
