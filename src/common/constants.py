# src/common/constants.py
"""
Общие константы и перечисления.
"""

from enum import Enum


class TypeMsg(str, Enum):
    """Типы сообщений для логирования."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class TopicKind(str, Enum):
    """Виды топиков шины публикаций."""
    DRIVER = "driver"
    SHIPMENT = "shipment"


class ClientEvent(str, Enum):
    """События, которые клиент отправляет в WebSocket."""
    SUBSCRIBE_DRIVER = "subscribe:driver"
    SUBSCRIBE_SHIPMENT = "subscribe:shipment"
    UNSUBSCRIBE_DRIVER = "unsubscribe:driver"
    UNSUBSCRIBE_SHIPMENT = "unsubscribe:shipment"
    PING = "ping"


class ServerEvent(str, Enum):
    """События, которые сервер отправляет в WebSocket."""
    CONNECTED = "connected"
    SUBSCRIBED = "subscribed"
    UNSUBSCRIBED = "unsubscribed"
    DRIVER_LOCATION_UPDATED = "driver_location_updated"
    SHIPMENT_LOCATION_UPDATED = "shipment_location_updated"
    PONG = "pong"
    ERROR = "error"
