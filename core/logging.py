# WORKFLOW: Logging setup shared by scripts and the ingest pipeline.
# Used by: scripts/ingest_rvu.py at startup
# Module loggers use logging.getLogger(__name__); the pipeline emits key/value
# events through structlog, rendered by the same stdlib handlers.

import logging
import sys
from typing import Optional

import structlog

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Configure stdlib logging and route structlog through it.

    Args:
        level: Root log level name
        log_file: Optional file that receives a copy of every record
    """
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.KeyValueRenderer(key_order=["event"], drop_missing=True),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
