"""Structured Logging for fieldcheck

- Colored, human-readable dev output
- JSON structured output for services
- Context propagation via contextvars
- Redaction of secret-looking keys (field values never reach the logs)

Library code only asks for loggers; applications call configure_logging()
once at startup if they want fieldcheck's formatting.
"""
import logging
import sys

import structlog
from structlog.types import EventDict, Processor

LIBRARY_LOGGER = "fieldcheck"
SENSITIVE_KEYS = frozenset({"password", "token", "secret", "authorization", "card_number", "value"})

# Silent until configured
logging.getLogger(LIBRARY_LOGGER).addHandler(logging.NullHandler())


def _censor_sensitive_keys(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Processor that redacts sensitive information."""

    def _redact(obj: dict | list | str, depth: int = 0) -> dict | list | str:
        if depth > 5:
            return obj
        if isinstance(obj, dict):
            return {
                k: "[REDACTED]" if str(k).lower() in SENSITIVE_KEYS else _redact(v, depth + 1)
                for k, v in obj.items()
            }
        if isinstance(obj, list):
            return [_redact(item, depth + 1) for item in obj]
        return obj

    return _redact(event_dict)


def _add_library_info(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    event_dict.setdefault("library", "fieldcheck")
    return event_dict


def get_shared_processors() -> list[Processor]:
    """Processors used in both dev and JSON configurations."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        _add_library_info,
        _censor_sensitive_keys,
    ]


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """Configure the logging system.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: If True, output JSON format. If False, colored console output.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors = get_shared_processors()

    if json_logs:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.plain_traceback,
        )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    lib_logger = logging.getLogger(LIBRARY_LOGGER)
    lib_logger.handlers = [handler]
    lib_logger.setLevel(log_level)
    lib_logger.propagate = False

    # dnspython is chatty at debug level
    logging.getLogger("dns").setLevel(logging.WARNING)


def configure_from_settings() -> None:
    """Configure logging from FIELDCHECK_LOG_LEVEL and FIELDCHECK_LOG_JSON."""
    from fieldcheck.config import get_settings

    settings = get_settings()
    configure_logging(level=settings.LOG_LEVEL, json_logs=settings.LOG_JSON)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    """Get a structured logger over the stdlib logger ``name``.

    Events travel through stdlib logging, so they only show up once the
    application (or configure_logging) attaches a handler.

    Args:
        name: Logger name (typically __name__ from the calling module)
    """
    return structlog.wrap_logger(logging.getLogger(name), wrapper_class=structlog.stdlib.BoundLogger)


class LoggerRegistry:
    """Registry of pre-configured loggers for the library's domains."""

    _loggers: dict[str, structlog.stdlib.BoundLogger] = {}

    @classmethod
    def get(cls, name: str) -> structlog.stdlib.BoundLogger:
        """Get or create a logger for the given domain."""
        if name not in cls._loggers:
            cls._loggers[name] = get_logger(f"fieldcheck.{name}")
        return cls._loggers[name]


def engine_logger() -> structlog.stdlib.BoundLogger:
    """Logger for check() passes."""
    return LoggerRegistry.get("engine")


def rules_logger() -> structlog.stdlib.BoundLogger:
    """Logger for predicates and their collaborators."""
    return LoggerRegistry.get("rules")


def config_logger() -> structlog.stdlib.BoundLogger:
    """Logger for configuration table loading."""
    return LoggerRegistry.get("config")
