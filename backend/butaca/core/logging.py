import logging
from typing import Any, Dict

import structlog

from .settings import settings

_REDACTED_KEYS = ("token", "password", "secret", "authorization", "email")


def _redact_sensitive(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Mask credentials before they reach the log output.

    Keeps the first and last two characters so related entries can still be
    correlated while debugging.
    """
    for key in list(event_dict.keys()):
        if key.lower().endswith(_REDACTED_KEYS):
            value = event_dict[key]
            if isinstance(value, str) and len(value) > 4:
                event_dict[key] = value[:2] + "***" + value[-2:]
    return event_dict


def configure_logging(log_level: str = "INFO", json_output: bool = True) -> None:
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _redact_sensitive,
        structlog.processors.StackInfoRenderer(),
    ]
    if json_output:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)


def get_logger(name: str):
    return structlog.get_logger(name)
