"""structlog configuration for the service."""

import logging

import structlog


def configure_logging(level: str = "info", console: bool = False) -> None:
    """Configure structlog once at startup.

    JSON lines by default; a human readable renderer when ``console`` is set.
    Request scoped values bound with ``structlog.contextvars`` are merged
    into every event.
    """
    renderer: structlog.typing.Processor
    if console:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelNamesMapping()[level.upper()]
        ),
        cache_logger_on_first_use=True,
    )
