# tests/conftest.py
"""
Общие фикстуры и настройки для тестов.
"""

from __future__ import annotations

import json
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

# Устанавливаем переменные окружения перед импортом модулей
os.environ.setdefault("DB_PASSWORD", "test_password")
os.environ.setdefault("REDIS_PASSWORD", "")

from src.infra.publish_channel import InMemoryPublishChannel


# =============================================================================
# ФИКСТУРЫ КОНФИГУРАЦИИ
# =============================================================================

@pytest.fixture(scope="session")
def project_root() -> Path:
    """Корневая директория проекта."""
    return Path(__file__).parent.parent


@pytest.fixture(scope="session")
def config_path(project_root: Path) -> Path:
    """Путь к файлу конфигурации."""
    return project_root / "config" / "config.json"


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Мок конфигурации для тестов."""
    return {
        "_comment_system": "комментарий",
        "PROJECT_NAME": "dropmate_test",
        "VERSION": "1.0.0-test",
        "DEBUG": True,
        "LOG_LEVEL": "DEBUG",
        "ENVIRONMENT": "test",
        "LOG_TO_FILE": False,
        "LOG_FORMAT": "json",
        "DB_HOST": "localhost",
        "DB_PORT": 5432,
        "DB_NAME": "dropmate_test",
        "DB_USER": "postgres",
        "REDIS_HOST": "localhost",
        "REDIS_PORT": 6379,
        "PUBLISH_QUEUE_SIZE": 100,
        "WS_SEND_TIMEOUT": 1.5,
        "LOCATION_RETENTION_DAYS": 7,
    }


@pytest.fixture
def temp_config_file(tmp_path: Path, mock_config: dict[str, Any]) -> Path:
    """Временный config.json."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    path = config_dir / "config.json"
    path.write_text(json.dumps(mock_config), encoding="utf-8")
    return path


# =============================================================================
# ФИКСТУРЫ ИНФРАСТРУКТУРЫ
# =============================================================================

@pytest.fixture
def mock_conn() -> AsyncMock:
    """Соединение внутри транзакции."""
    conn = AsyncMock()
    conn.fetchrow = AsyncMock(return_value=None)
    conn.fetch = AsyncMock(return_value=[])
    conn.execute = AsyncMock(return_value="UPDATE 1")
    return conn


@pytest.fixture
def mock_db(mock_conn: AsyncMock) -> MagicMock:
    """Мок DatabaseManager: запросы — AsyncMock, transaction() отдаёт mock_conn."""
    db = MagicMock()
    db.execute = AsyncMock(return_value="DELETE 0")
    db.fetch = AsyncMock(return_value=[])
    db.fetchrow = AsyncMock(return_value=None)
    db.fetchval = AsyncMock(return_value=None)
    db.health_check = AsyncMock(return_value=True)
    db.disconnect = AsyncMock()

    @asynccontextmanager
    async def transaction():
        yield mock_conn

    db.transaction = transaction
    db.conn = mock_conn
    return db


@pytest_asyncio.fixture
async def memory_channel() -> InMemoryPublishChannel:
    """Запущенная in-memory шина."""
    channel = InMemoryPublishChannel()
    await channel.start()
    yield channel
    await channel.stop()


# =============================================================================
# ТЕСТОВЫЕ ДАННЫЕ
# =============================================================================

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return NOW


def make_sample_row(
    sample_id: int = 1,
    driver_id: int = 7,
    latitude: float = 50.45,
    longitude: float = 30.52,
    accuracy: float | None = 5.0,
    occurred_at: datetime = NOW,
) -> dict[str, Any]:
    """Строка driver_location_events."""
    return {
        "id": sample_id,
        "driver_id": driver_id,
        "latitude": latitude,
        "longitude": longitude,
        "accuracy": accuracy,
        "occurred_at": occurred_at,
    }


def make_shipment_row(
    shipment_id: int = 5,
    status: str = "pending",
    driver_id: int | None = None,
    tracking_number: str = "DM0123456789",
) -> dict[str, Any]:
    """Строка shipments."""
    return {
        "id": shipment_id,
        "status": status,
        "driver_id": driver_id,
        "order_id": 1,
        "tracking_number": tracking_number,
        "created_at": NOW,
        "updated_at": NOW,
    }


def make_event_row(
    event_id: int = 1,
    shipment_id: int = 5,
    event_type: str = "shipment_created",
    description: str = "Shipment created",
    from_status: str | None = None,
    to_status: str | None = "pending",
    metadata: Any = "{}",
    created_by_user_id: int | None = None,
) -> dict[str, Any]:
    """Строка shipment_events (metadata — как отдаёт asyncpg без кодека)."""
    return {
        "id": event_id,
        "shipment_id": shipment_id,
        "event_type": event_type,
        "description": description,
        "created_by_user_id": created_by_user_id,
        "from_status": from_status,
        "to_status": to_status,
        "latitude": None,
        "longitude": None,
        "metadata": metadata,
        "occurred_at": NOW,
    }


@pytest.fixture
def sample_factory():
    """Фабрика строк driver_location_events."""
    return make_sample_row


@pytest.fixture
def shipment_factory():
    """Фабрика строк shipments."""
    return make_shipment_row


@pytest.fixture
def event_factory():
    """Фабрика строк shipment_events."""
    return make_event_row


@pytest.fixture
def sample_row() -> dict[str, Any]:
    return make_sample_row()


@pytest.fixture
def shipment_row() -> dict[str, Any]:
    return make_shipment_row()
