"""Logging setup for the prototype's command line tools.

Modules log through children of the ``uxr`` logger (``uxr.store``,
``uxr.bridge`` and so on), so one handler here covers all of them.
"""

import logging
import sys


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Attach a stdout handler to the ``uxr`` logger and return it.

    Calling it again returns the already configured logger unchanged.
    """
    logger = logging.getLogger("uxr")
    if logger.handlers:
        return logger  # already configured
    logger.setLevel(level)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("[%(asctime)s] %(levelname)s %(name)s: %(message)s"))
    logger.addHandler(handler)
    # fetches are logged by the static site source itself
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    return logger
