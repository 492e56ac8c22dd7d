"""JSON logging for the engine and the SDKs it drives."""

import logging
import sys
from pythonjsonlogger import jsonlogger
from agentic_tools.infra.config import config

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

# SDK loggers that are chatty at INFO (one line per HTTP request)
QUIET_LOGGERS = ("sqlalchemy", "httpx", "httpcore", "anthropic", "openai")


def setup_logging(level=None):
    """
    Attach a JSON stdout handler to the agentic_tools logger.

    Safe to call more than once: previous handlers are replaced.
    """
    engine_logger = logging.getLogger("agentic_tools")
    engine_logger.setLevel(level or (logging.DEBUG if config.DEBUG else logging.INFO))
    engine_logger.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(jsonlogger.JsonFormatter(
        LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        rename_fields={"levelname": "level", "name": "logger"},
    ))
    engine_logger.addHandler(handler)

    logging.getLogger("uvicorn").setLevel(logging.INFO)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return engine_logger
