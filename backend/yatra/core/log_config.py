"""
Logging setup: structlog JSON events and stdlib records share one set of
handlers, and secrets are scrubbed from both before anything is written.
"""

import logging
import re
from typing import Any, List

import structlog

from yatra.core.settings import Settings

_SECRET_PATTERNS = [
    # query parameters of the weather, maps and photo APIs
    (re.compile(r'([?&](?:key|appid|client_id)=)[^&\s"\']+'), r'\1REDACTED'),
    (re.compile(r'(Bearer\s+)[A-Za-z0-9\-._~+/]+=*'), r'\1REDACTED'),
    (re.compile(r'(Client-ID\s+)[^\s"\']+'), r'\1REDACTED'),
    (re.compile(r'AIza[0-9A-Za-z\-_]{35}'), 'REDACTED'),
]

# HTTP client loggers put full request URLs, keys included, in INFO records
_NOISY_LOGGERS = ("httpx", "httpcore")


def scrub_secrets(value: Any) -> Any:
    if isinstance(value, str):
        for pattern, replacement in _SECRET_PATTERNS:
            value = pattern.sub(replacement, value)
        return value
    if isinstance(value, list):
        return [scrub_secrets(x) for x in value]
    if isinstance(value, dict):
        return {k: scrub_secrets(v) for k, v in value.items()}
    return value


def redact_secrets(logger, method_name, event_dict):
    """Scrub API keys and tokens from every string value in the event dict"""
    for k, v in list(event_dict.items()):
        event_dict[k] = scrub_secrets(v)
    return event_dict


class SecretRedactingFilter(logging.Filter):
    """Scrubs the rendered message and traceback of stdlib records"""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        scrubbed = scrub_secrets(message)
        if scrubbed != message:
            record.msg = scrubbed
            record.args = ()
        if record.exc_info and not record.exc_text:
            record.exc_text = logging.Formatter().formatException(record.exc_info)
        if record.exc_text:
            record.exc_text = scrub_secrets(record.exc_text)
        return True


def build_log_handlers(log_file: str) -> List[logging.Handler]:
    handlers = [logging.StreamHandler(), logging.FileHandler(log_file)]
    for handler in handlers:
        handler.addFilter(SecretRedactingFilter())
    return handlers


def configure_logging(settings: Settings) -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            # after format_exc_info so rendered tracebacks are scrubbed too
            redact_secrets,
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format='%(message)s',  # structlog handles formatting
        handlers=build_log_handlers(settings.LOG_FILE)
    )

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
