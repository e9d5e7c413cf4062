"""Structured logging configuration using structlog."""

import logging
import re
import sys
from pathlib import Path

import structlog

# Secrets that may show up in error strings from the LLM or remote store clients
_REDACT_PATTERNS = [
    (re.compile(r"(sk-ant-[a-zA-Z0-9_-]{10})[a-zA-Z0-9_-]*"), r"\1...REDACTED"),
    (re.compile(r"(Bearer\s+)[a-zA-Z0-9_.-]{20,}"), r"\1REDACTED"),
    # Remote store JWTs (anon keys, access tokens)
    (re.compile(r"eyJ[a-zA-Z0-9_-]{10,}\.[a-zA-Z0-9_-]+\.[a-zA-Z0-9_-]+"), "JWT_REDACTED"),
    (re.compile(r"((?:api[_-]?key|apikey)['\"]?\s*[:=]\s*['\"]?)[a-zA-Z0-9_.-]{10,}"), r"\1REDACTED"),
    (re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"), "REDACTED@email"),
]


def redact(value: str) -> str:
    for pattern, replacement in _REDACT_PATTERNS:
        value = pattern.sub(replacement, value)
    return value


def _redact_sensitive(_, __, event_dict: dict) -> dict:
    """Structlog processor masking keys, tokens and e-mail addresses."""
    for key, value in event_dict.items():
        if isinstance(value, str):
            event_dict[key] = redact(value)
    return event_dict


def setup_logging(json_mode: bool = False, level: str = "INFO", log_file: Path | None = None) -> None:
    """Configure structlog on top of stdlib logging.

    Args:
        json_mode: JSON lines (machine consumption) instead of console output.
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional file that additionally receives JSON lines.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.CallsiteParameterAdder(
            [
                structlog.processors.CallsiteParameter.MODULE,
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            ]
        ),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        _redact_sensitive,
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    def _formatter(renderer) -> structlog.stdlib.ProcessorFormatter:
        return structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )

    console_renderer = (
        structlog.processors.JSONRenderer() if json_mode else structlog.dev.ConsoleRenderer()
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_formatter(console_renderer))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(_formatter(structlog.processors.JSONRenderer()))
        root.addHandler(file_handler)

    root.setLevel(log_level)
