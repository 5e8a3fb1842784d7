"""
Structured logging configuration using structlog.
JSON lines in production, coloured console when DEBUG. Every record carries
the service name and version so API and worker logs can be told apart.
"""

import logging
import sys
from typing import Optional

import structlog
from structlog.types import EventDict, Processor

from imageresize.config import Settings, get_settings

# Libraries that are chatty at INFO/DEBUG; raised to these levels
QUIET_LOGGERS: dict[str, int] = {
    "PIL": logging.WARNING,  # one record per decoded chunk
    "uvicorn.access": logging.WARNING,
    "rq.worker": logging.INFO,
}


def _service_fields(settings: Settings) -> Processor:
    def add_service(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", settings.APP_NAME)
        event_dict.setdefault("version", settings.APP_VERSION)
        return event_dict

    return add_service


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Route structlog and stdlib logging through one stdout handler."""
    settings = settings or get_settings()

    pre_chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        _service_fields(settings),
    ]

    structlog.configure(
        processors=[
            *pre_chain,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer: Processor = (
        structlog.dev.ConsoleRenderer() if settings.DEBUG
        else structlog.processors.JSONRenderer()
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            # Applied to records from stdlib loggers (uvicorn, sqlalchemy, rq)
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    for name, level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.DB_ECHO else logging.WARNING
    )
