import logging
import sys

FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

def setup_logging(level: str = "INFO") -> logging.Logger:
    """Attach a stdout handler to the package logger (idempotent)."""
    logger = logging.getLogger("shiftiq")
    logger.setLevel(level.upper())
    if not any(getattr(h, "_shiftiq", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(FORMAT))
        handler._shiftiq = True
        logger.addHandler(handler)
    return logger
