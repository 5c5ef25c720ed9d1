from __future__ import annotations

import logging


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Attach a stream handler to the ``orderdesk`` logger tree.

    The library never calls this itself; host applications opt in.
    """
    logger = logging.getLogger("orderdesk")
    logger.setLevel(level)
    if any(getattr(handler, "_orderdesk", False) for handler in logger.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._orderdesk = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
