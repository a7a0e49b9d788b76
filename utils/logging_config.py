#!/usr/bin/env python3
"""
Structured logging configuration with JSON output and request tracking
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Optional

# Context variable for request tracking
request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)

_EXTRA_FIELDS = ('duration', 'external_service', 'provider', 'task', 'status_code', 'content_length')


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def __init__(self, debug_mode: bool = False):
        super().__init__()
        self.debug_mode = debug_mode

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON"""
        log_entry = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        request_id = request_id_var.get()
        if request_id:
            log_entry['request_id'] = request_id

        for field in _EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = value

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        # Add module and function info for debugging
        if self.debug_mode:
            log_entry.update({
                'module': record.module,
                'function': record.funcName,
                'line': record.lineno,
            })

        return json.dumps(log_entry, ensure_ascii=False)


def setup_logging(config) -> logging.Logger:
    """Configure logging based on config settings"""
    log_level = getattr(logging, str(config.LOG_LEVEL).upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)

    if config.STRUCTURED_LOGGING:
        formatter = StructuredFormatter(debug_mode=config.DEBUG_MODE)
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Silence noisy third-party loggers
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)
    logging.getLogger('aiohttp.access').setLevel(logging.WARNING)

    return root_logger


def new_request_id() -> str:
    """Create and bind a request ID for the current context"""
    request_id = str(uuid.uuid4())[:8]
    request_id_var.set(request_id)
    return request_id


def clear_request_context():
    request_id_var.set(None)


class TimedLogger:
    """Context manager for timing external calls with structured logging"""

    def __init__(self, logger: logging.Logger, operation: str,
                 external_service: str = None, **extra_fields):
        self.logger = logger
        self.operation = operation
        self.external_service = external_service
        self.extra_fields = extra_fields
        self.start_time = None

    def __enter__(self):
        self.start_time = time.monotonic()
        self.logger.info(
            f"Starting {self.operation}",
            extra={'external_service': self.external_service, **self.extra_fields}
        )
        return self

    def add(self, **fields):
        """Attach fields (e.g. upstream status) reported on exit"""
        self.extra_fields.update(fields)

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = round(time.monotonic() - self.start_time, 3)
        extra = {
            'duration': duration,
            'external_service': self.external_service,
            **self.extra_fields
        }

        if exc_type is None:
            self.logger.info(f"Completed {self.operation}", extra=extra)
        else:
            self.logger.error(f"Failed {self.operation}: {exc_val}", extra=extra)
        return False
