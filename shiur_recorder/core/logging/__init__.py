"""Logging setup and the in-memory event log."""

from .logger import setup_logging, setup_production_logging, setup_dev_logging
from .event_log import EventLog, EventRecord

__all__ = [
    'setup_logging',
    'setup_production_logging',
    'setup_dev_logging',
    'EventLog',
    'EventRecord'
]
