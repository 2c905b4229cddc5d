"""
Logging Setup

Console logging for interactive runs and a structured JSON formatter for log
shipping, both carrying the correlation ID of the collection being processed.
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Optional

from recordsync.utils.correlation import setup_correlation_logging

CONSOLE_FORMAT = '[%(asctime)s] %(levelname)s [%(correlation_id)s] %(name)s - %(message)s'
CONSOLE_DATEFMT = '%Y-%m-%d %H:%M:%S'


class StructuredJSONFormatter(logging.Formatter):
    """JSON formatter with correlation ID support."""

    def format(self, record):
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'correlation_id': getattr(record, 'correlation_id', None),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        # Add extra fields
        if hasattr(record, 'collection'):
            log_data['collection'] = record.collection
        if hasattr(record, 'duration'):
            log_data['duration_seconds'] = record.duration
        if hasattr(record, 'counts'):
            log_data['counts'] = record.counts

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(verbose: bool = False, json_logging: Optional[bool] = None) -> logging.Logger:
    """
    Configure the recordsync logger hierarchy.

    Args:
        verbose: Log at DEBUG instead of INFO
        json_logging: Emit JSON lines; defaults to the JSON_LOGGING env var

    Returns:
        The configured package logger
    """
    if json_logging is None:
        json_logging = os.getenv('JSON_LOGGING', 'false').lower() == 'true'

    handler = logging.StreamHandler()
    if json_logging:
        handler.setFormatter(StructuredJSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=CONSOLE_DATEFMT))
    setup_correlation_logging(handler)

    package_logger = logging.getLogger('recordsync')
    package_logger.handlers.clear()
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    package_logger.propagate = False

    return package_logger
