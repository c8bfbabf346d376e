"""structlog setup for the scanner.

All output goes through the stdlib root logger, so third-party loggers (ccxt,
aiohttp, uvicorn) share the same renderer. The scanner binds ``cycle`` with
structlog.contextvars for the duration of each poll cycle, so every event an
adapter, the throttle or a notifier emits inside a cycle carries its number.
"""

import logging

import structlog

# Third-party loggers that are too verbose below WARNING.
_QUIET_LOGGERS: tuple[str, ...] = ("ccxt", "aiohttp", "uvicorn.access")

_RENDERERS: dict[str, type] = {
    "console": structlog.dev.ConsoleRenderer,
    "json": structlog.processors.JSONRenderer,
}


def setup_logging(log_level: str = "INFO", log_format: str = "console") -> None:
    """Route structlog and stdlib logging through one ProcessorFormatter.

    Args:
        log_level: Root level name (``DEBUG``, ``INFO``, ...).
        log_format: ``console`` for humans, ``json`` for log shippers.
    """
    renderer_cls = _RENDERERS.get(log_format.lower(), structlog.dev.ConsoleRenderer)

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer_cls(),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger named after the calling module."""
    return structlog.get_logger(name)
