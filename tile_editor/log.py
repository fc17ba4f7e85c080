"""
Logging setup for the tile editor.
"""

import logging

from rich.logging import RichHandler


def setup_logging(level: str = "WARNING") -> logging.Logger:
    """Route the package's loggers through a rich console handler."""
    logger = logging.getLogger("tile_editor")
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = RichHandler(show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.WARNING))
    return logger
