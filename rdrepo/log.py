"""Package logger.

Modules obtain a child logger with ``logger.getChild(__name__)``.
"""

import logging
from typing import Optional

FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

logger = logging.getLogger("rdrepo")

_handler: Optional[logging.Handler] = None


def setup(level: int = logging.INFO) -> None:
    """Attach a stream handler to the package logger.

    Calling this more than once does not add duplicate handlers.

    Args:
        level: Logging level for the package logger.
    """
    global _handler
    if _handler is None:
        _handler = logging.StreamHandler()
        _handler.setFormatter(logging.Formatter(FORMAT))
    if _handler not in logger.handlers:
        logger.addHandler(_handler)
    logger.setLevel(level)
