# src/core/__init__.py
"""
Ядро трекинга: ошибки и адресация топиков.
Не зависит от инфраструктуры.
"""

from src.core.exceptions import (
    NotFound,
    PersistenceFailure,
    TrackingError,
    TransportUnavailable,
    ValidationError,
)
from src.core.topics import driver_topic, parse_topic, shipment_topic, topic_matches

__all__ = [
    "TrackingError",
    "ValidationError",
    "NotFound",
    "TransportUnavailable",
    "PersistenceFailure",
    "driver_topic",
    "shipment_topic",
    "parse_topic",
    "topic_matches",
]
