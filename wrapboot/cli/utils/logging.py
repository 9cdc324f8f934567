import logging
import sys
from typing import Optional, TextIO

logger = logging.getLogger("wrapboot")

CONSOLE_HANDLER = "wrapboot-console"


def configure_logging(debug: bool, stream: Optional[TextIO] = None) -> logging.Handler:
    """
    Send wrapboot's log records to the console as bare messages.

    Debug mode adds every state transition, detected package directory and
    loaded module. The console handler is replaced on each call so records go
    to the stream current at that time.

    Args:
        debug: Log at DEBUG instead of INFO
        stream: Where to write (stdout by default)

    Returns:
        The installed handler
    """
    for handler in [h for h in logger.handlers if h.get_name() == CONSOLE_HANDLER]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.set_name(CONSOLE_HANDLER)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    return handler
