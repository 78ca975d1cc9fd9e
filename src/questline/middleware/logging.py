"""Structured logging configuration with structlog."""

import logging

import structlog

from questline.config import Settings

# Third-party loggers that would duplicate our own request and SQL logging.
QUIET_LOGGERS = ("sqlalchemy.engine", "uvicorn.access")


def _processors(settings: Settings) -> list[structlog.types.Processor]:
    chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if settings.log_format == "json":
        chain += [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        chain += [
            structlog.processors.CallsiteParameterAdder(
                {structlog.processors.CallsiteParameter.MODULE, structlog.processors.CallsiteParameter.LINENO}
            ),
            structlog.dev.ConsoleRenderer(),
        ]
    return chain


def setup_logging(settings: Settings) -> None:
    """JSON lines in production, coloured console output otherwise."""
    level = logging.getLevelNamesMapping().get(settings.log_level.upper(), logging.INFO)

    structlog.configure(
        processors=_processors(settings),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=level, format="%(message)s")
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
