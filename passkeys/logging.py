"""
Structured logging configuration using structlog.

Ceremony events are emitted as snake_case event names with key/value fields.
Binary values (credential ids, user handles) are rendered as base64url so
they stay readable in JSON and console output.

Usage:
    from passkeys.logging import get_logger

    logger = get_logger(__name__)
    logger.info("passkey_created", credential_id=credential_id)

Challenges, signatures and public keys are never passed to the logger.
"""

import logging
import sys
from contextlib import AbstractContextManager
from typing import Any

import structlog
from structlog.types import EventDict, Processor
from webauthn.helpers import bytes_to_base64url

from passkeys.config import get_settings


def _encode_binary_fields(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Render bytes values as base64url strings."""
    for key, value in event_dict.items():
        if isinstance(value, bytes | bytearray | memoryview):
            event_dict[key] = bytes_to_base64url(bytes(value))
    return event_dict


def _shared_processors(json_format: bool) -> list[Processor]:
    """Processors applied to both structlog events and foreign stdlib records."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _encode_binary_fields,
    ]
    if json_format:
        processors.append(structlog.processors.format_exc_info)
    return processors


def configure_logging(json_format: bool | None = None, log_level: str | None = None) -> None:
    """
    Configure structlog for the host application.

    Ceremony events and records from webauthn go through one stdout handler
    on the root logger.

    Args:
        json_format: JSON lines if True, colored console output if False.
            Defaults to PASSKEYS_LOG_JSON.
        log_level: Minimum level name. Defaults to PASSKEYS_LOG_LEVEL.
    """
    settings = get_settings()
    json_format = settings.LOG_JSON if json_format is None else json_format
    level = logging.getLevelName((log_level or settings.LOG_LEVEL).upper())
    if not isinstance(level, int):
        level = logging.INFO

    shared = _shared_processors(json_format)
    renderer: Processor = (
        structlog.processors.JSONRenderer() if json_format else structlog.dev.ConsoleRenderer(colors=True)
    )

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name, typically __name__ of the calling module.

    Returns:
        A bound structlog logger with context support.
    """
    return structlog.get_logger(name)


def bind_contextvars(**kwargs: Any) -> None:
    """
    Bind key-value pairs to the current context.

    Host applications use this to attach request context (e.g. a
    session id) to the ceremony events logged while handling a request.
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_contextvars() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


def bound_contextvars(**kwargs: Any) -> AbstractContextManager[None]:
    """
    Bind context variables for the duration of a `with` block.

    Ceremonies use this so their context does not leak into the caller's
    subsequent log events.
    """
    return structlog.contextvars.bound_contextvars(**kwargs)
