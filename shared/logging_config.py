"""JSON logging with a per-request correlation id and the service name on every record."""

import logging
import os
import sys
from contextvars import ContextVar
from pythonjsonlogger import jsonlogger

correlation_id_var: ContextVar[str] = ContextVar('correlation_id', default='')


class ContextFilter(logging.Filter):
    """Stamps service and correlation_id onto records"""

    def __init__(self, service_name: str):
        super().__init__()
        self.service_name = service_name

    def filter(self, record):
        record.service = self.service_name
        record.correlation_id = correlation_id_var.get('')
        return True


def setup_logging(service_name: str, level: str = None) -> None:
    """Routes root logging to stdout as JSON; level falls back to LOG_LEVEL, then INFO"""
    root = logging.getLogger()
    root.setLevel((level or os.getenv("LOG_LEVEL", "INFO")).upper())
    root.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(jsonlogger.JsonFormatter(
        '%(asctime)s %(service)s %(name)s %(levelname)s %(correlation_id)s %(message)s',
        rename_fields={
            'asctime': 'timestamp',
            'name': 'logger',
            'levelname': 'level',
        }
    ))
    handler.addFilter(ContextFilter(service_name))
    root.addHandler(handler)
    logging.info("Logging configured", extra={"log_level": logging.getLevelName(root.level)})


def set_correlation_id(correlation_id: str) -> None:
    correlation_id_var.set(correlation_id)


def get_correlation_id() -> str:
    return correlation_id_var.get('')
