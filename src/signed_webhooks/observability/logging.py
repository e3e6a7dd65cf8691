"""Structured logging configuration for signed webhooks.

Both sides of the protocol log through structlog with dotted event names and
keyword context, for example::

    delivery.attempt_failed   url=... attempt=2 outcome=timeout
    receiver.rejected         reason=replay status_code=401 path=/hooks/tickets

Credential-looking context keys are masked by ``redact_credentials``; use
``signed_webhooks.utils.headers.mask_credential`` when a token has to be
identified.

Examples:
    Configure logging once at startup::

        from signed_webhooks.observability.logging import configure_logging

        configure_logging(level="INFO", json_output=True)

    Use the logger::

        logger = get_logger(__name__)
        logger.info("delivery.succeeded", url=url, attempt=1)
"""

import logging
import sys
from collections.abc import MutableMapping
from typing import Any

import structlog

from signed_webhooks.utils.headers import mask_credential

# Context keys whose values are masked before rendering
CREDENTIAL_KEYS = frozenset({"token", "hmac_secret", "secret", "authorization"})


def redact_credentials(
    _logger: Any,
    _method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Mask credential values that reached the log context.

    Already masked values (``"abcd..."``, ``"<unset>"``) pass through unchanged.
    """
    for key in CREDENTIAL_KEYS.intersection(event_dict):
        value = event_dict[key]
        if isinstance(value, str) and (value == "<unset>" or value.endswith("...")):
            continue
        event_dict[key] = mask_credential(None if value is None else str(value))
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
) -> None:
    """Configure structured logging for senders and receivers.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: If True, emit one JSON object per line; if False, use
            the colored console renderer
    """
    log_level = getattr(logging, level.upper())

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)

    processors: list[object] = [
        structlog.contextvars.merge_contextvars,
        redact_credentials,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    if json_output:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,  # type: ignore[arg-type]
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    return structlog.get_logger(name)
