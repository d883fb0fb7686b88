"""Structured logging configuration using structlog.

Event handlers and HTTP routes share one event loop, so context is bound
through structlog.contextvars rather than thread-locals.
"""

import logging
import os

import structlog

# uvicorn installs its own handlers; route them through ours instead.
_UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def setup_logging(log_level: str = "INFO") -> None:
    """Configure structlog and route stdlib (including uvicorn) through it.

    Rendering format is controlled by the LOG_FORMAT environment variable:
    - "json" for production (machine-readable)
    - "console" for development (human-readable, default)
    """
    log_format = os.environ.get("LOG_FORMAT", "console").lower()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # foreign_pre_chain lets plain stdlib records (uvicorn, web3) share the format
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in _UVICORN_LOGGERS:
        uv_logger = logging.getLogger(name)
        uv_logger.handlers.clear()
        uv_logger.propagate = True
    # Per-request access lines are noise next to the trade log.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def bind_curve_context(curve_address: str, rpc_url: str) -> None:
    """Attach the indexed curve to every subsequent log line."""
    structlog.contextvars.bind_contextvars(curve=curve_address or None, rpc=rpc_url)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger with the given name."""
    return structlog.get_logger(name)
