import logging
import sys

import structlog

from .config import EXTENSION_NAME, Settings

_DISABLED_LOGGER_NAME = f"{EXTENSION_NAME}.disabled"


def configure_logging(settings: Settings):
    """
    Configures logging for standalone runs.

    This function sets up structlog to provide structured logging, with
    processors that add context and render logs in either a human-readable
    console format or a machine-readable JSON format. Inside the host, the
    host owns logging and this is not called.
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=shared_processors
        + [
            # This must be the last processor in the chain
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if settings.LOG_FORMAT == "json":
        renderers = [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:  # console
        renderers = [structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]
    formatter = structlog.stdlib.ProcessorFormatter(
        # These run after the processors defined above
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *renderers,
        ],
    )

    # Configure the root logger; stdout is reserved for command output
    root_logger = logging.getLogger()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(settings.LOG_LEVEL)

    # Suppress noisy logs from third-party libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def bind_host_logger(logger: logging.Logger | None):
    """
    Adapt the host's optional logger into a structlog bound logger.

    Without a host logger every message goes to a private logger outside the
    logging hierarchy, so classification logging becomes a no-op.
    """
    if logger is None:
        logger = logging.Logger(_DISABLED_LOGGER_NAME)
        logger.addHandler(logging.NullHandler())
    return structlog.wrap_logger(
        logger, wrapper_class=structlog.stdlib.BoundLogger
    ).bind(extension=EXTENSION_NAME)
