"""Logging for the delivery core.

Output goes through the standard library root logger (stdout plus a rotating
activity log and a rotating error log). structlog formats each event: JSON
lines in production and staging, a colored console with rich tracebacks
everywhere else.

Delivery codes, payment signatures and shared secrets must never be written
out, so every event passes through ``redact_sensitive`` before rendering.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path

import structlog

from delivery import config

LEVEL_BY_ENV = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}

# Event keys whose values are masked before rendering
SENSITIVE_KEYS = frozenset(
    {
        "otp",
        "code",
        "delivery_otp",
        "signature",
        "expected_signature",
        "secret",
        "api_key",
        "api_secret",
        "key_secret",
        "authorization",
    }
)

_MAX_BYTES = 10 * 1024 * 1024


def log_level() -> str:
    return os.getenv("LOG_LEVEL") or LEVEL_BY_ENV.get(config.env(), "INFO")


def redact_sensitive(_logger, _method, event_dict: dict) -> dict:
    for key in SENSITIVE_KEYS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = "***"
    return event_dict


def _rotating(path: Path, level) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(path, maxBytes=_MAX_BYTES, backupCount=5, encoding="utf-8")
    handler.setLevel(level)
    return handler


def _route_stdlib(log_dir: Path, level: str) -> None:
    log_dir.mkdir(parents=True, exist_ok=True)

    stdout = logging.StreamHandler(sys.stdout)
    stdout.setLevel(level)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [
        stdout,
        _rotating(log_dir / "fuelstream.log", level),
        _rotating(log_dir / "fuelstream_error.log", logging.ERROR),
    ]

    # Outbound HTTP and the framework are chatty at DEBUG
    for noisy in ("protean", "urllib3", "requests"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def _renderer():
    if config.env() in ("production", "staging"):
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=True,
        exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=False, max_frames=2),
    )


def configure_logging(log_dir: str | Path = "logs") -> None:
    """Configure stdlib handlers and the structlog processor chain."""
    _route_stdlib(Path(log_dir), log_level())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.CallsiteParameterAdder(
                parameters=[
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                    structlog.processors.CallsiteParameter.LINENO,
                ]
            ),
            redact_sensitive,
            _renderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_request(path: str, method: str, **extra) -> None:
    """Start a fresh per-request context; every log line of the request carries it."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(path=path, method=method, **extra)
