# app/core/logging_config.py
import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """
    Configure root logging once for the process.

    Uvicorn installs its own handlers for its loggers; this only makes sure
    application loggers (`app.*`) end up somewhere readable.
    """
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    else:
        root.setLevel(level.upper())
    logging.getLogger("app").setLevel(level.upper())
