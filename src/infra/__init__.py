# src/infra/__init__.py
"""
Инфраструктурный слой.
Работа с внешними сервисами: PostgreSQL и Redis Pub/Sub.
"""

from src.infra.database import DatabaseManager, close_db, init_db
from src.infra.publish_channel import (
    InMemoryPublishChannel,
    PublishChannel,
    RedisPublishChannel,
    create_publish_channel,
)

__all__ = [
    "DatabaseManager",
    "init_db",
    "close_db",
    "PublishChannel",
    "RedisPublishChannel",
    "InMemoryPublishChannel",
    "create_publish_channel",
]
