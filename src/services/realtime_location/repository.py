# src/services/realtime_location/repository.py
"""
Хранилище координат водителей (append-only журнал driver_location_events).
"""

from __future__ import annotations

import json
import math
from datetime import datetime
from typing import Any

from src.common.constants import TypeMsg
from src.common.logger import log_info
from src.core.exceptions import NotFound, ValidationError
from src.infra.database import DatabaseManager, rows_affected, translate_db_errors
from src.shared.models.location import CurrentLocation, LocationSample, ShipmentLocation

MAX_HISTORY_LIMIT = 1000
NO_DRIVER_MESSAGE = "No driver assigned yet"

_SAMPLE_COLUMNS = "id, driver_id, latitude, longitude, accuracy, occurred_at"


def _check_coordinate(name: str, value: Any, bound: float) -> float:
    if value is None:
        raise ValidationError(f"Поле {name} обязательно", details={"field": name})
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"Поле {name} должно быть числом", details={"field": name})
    value = float(value)
    if not math.isfinite(value) or not -bound <= value <= bound:
        raise ValidationError(
            f"Поле {name} вне диапазона [-{bound:g}, {bound:g}]",
            details={"field": name, "value": value},
        )
    return value


def validate_coordinates(latitude: Any, longitude: Any, accuracy: Any = None) -> tuple[float, float, float | None]:
    """
    Проверяет координаты.

    Raises:
        ValidationError: пропущено, не число или вне диапазона
    """
    lat = _check_coordinate("latitude", latitude, 90.0)
    lng = _check_coordinate("longitude", longitude, 180.0)

    if accuracy is None:
        return lat, lng, None
    if isinstance(accuracy, bool) or not isinstance(accuracy, (int, float)):
        raise ValidationError("Поле accuracy должно быть числом", details={"field": "accuracy"})
    if not math.isfinite(accuracy) or accuracy < 0:
        raise ValidationError("Поле accuracy должно быть неотрицательным", details={"field": "accuracy"})
    return lat, lng, float(accuracy)


class LocationRepository:
    """Запись и чтение координат водителей."""

    def __init__(self, db: DatabaseManager) -> None:
        self.db = db

    async def record(
        self,
        driver_id: int,
        latitude: Any,
        longitude: Any,
        accuracy: Any = None,
    ) -> LocationSample:
        """Сохраняет координату с серверным временем. Невалидная координата не пишется."""
        lat, lng, acc = validate_coordinates(latitude, longitude, accuracy)

        async with translate_db_errors("Запись координаты"):
            row = await self.db.fetchrow(
                f"""
                INSERT INTO driver_location_events (driver_id, latitude, longitude, accuracy)
                VALUES ($1, $2, $3, $4)
                RETURNING {_SAMPLE_COLUMNS}
                """,
                driver_id, lat, lng, acc,
            )
        return LocationSample.from_record(row)

    async def latest(self, driver_id: int) -> LocationSample:
        """
        Последняя координата водителя (максимальный occurred_at, при равенстве — последняя вставка).

        Raises:
            NotFound: у водителя нет ни одной координаты
        """
        async with translate_db_errors("Чтение последней координаты"):
            row = await self.db.fetchrow(
                f"""
                SELECT {_SAMPLE_COLUMNS}
                FROM driver_location_events
                WHERE driver_id = $1
                ORDER BY occurred_at DESC, id DESC
                LIMIT 1
                """,
                driver_id,
            )
        if row is None:
            raise NotFound(f"Нет координат для водителя {driver_id}", details={"driver_id": driver_id})
        return LocationSample.from_record(row)

    async def history(
        self,
        driver_id: int,
        limit: int = 100,
        since: datetime | None = None,
    ) -> list[LocationSample]:
        """История координат, новые первыми, не больше limit (1..1000)."""
        if not 1 <= limit <= MAX_HISTORY_LIMIT:
            raise ValidationError(
                f"limit должен быть в диапазоне 1..{MAX_HISTORY_LIMIT}",
                details={"field": "limit", "value": limit},
            )

        async with translate_db_errors("Чтение истории координат"):
            rows = await self.db.fetch(
                f"""
                SELECT {_SAMPLE_COLUMNS}
                FROM driver_location_events
                WHERE driver_id = $1
                  AND ($3::timestamptz IS NULL OR occurred_at >= $3)
                ORDER BY occurred_at DESC, id DESC
                LIMIT $2
                """,
                driver_id, limit, since,
            )
        return [LocationSample.from_record(row) for row in rows]

    async def shipment_location(self, shipment_id: int) -> ShipmentLocation:
        """
        Отправление, его водитель и последняя координата водителя.

        Raises:
            NotFound: отправление не существует
        """
        async with translate_db_errors("Чтение локации отправления"):
            row = await self.db.fetchrow(
                """
                SELECT s.id AS shipment_id, s.tracking_number, s.status, s.driver_id,
                       d.name AS driver_name, d.vehicle_type,
                       (SELECT json_build_object(
                            'latitude', dle.latitude,
                            'longitude', dle.longitude,
                            'accuracy', dle.accuracy,
                            'timestamp', dle.occurred_at
                        )
                        FROM driver_location_events dle
                        WHERE dle.driver_id = s.driver_id
                        ORDER BY dle.occurred_at DESC, dle.id DESC
                        LIMIT 1) AS current_location
                FROM shipments s
                LEFT JOIN drivers d ON d.id = s.driver_id
                WHERE s.id = $1
                """,
                shipment_id,
            )
        if row is None:
            raise NotFound(f"Отправление {shipment_id} не найдено", details={"shipment_id": shipment_id})

        data = dict(row)
        raw_location = data.pop("current_location", None)
        if isinstance(raw_location, str):
            raw_location = json.loads(raw_location)

        location = CurrentLocation.model_validate(raw_location) if raw_location else None
        message = NO_DRIVER_MESSAGE if data.get("driver_id") is None else None
        return ShipmentLocation(**data, current_location=location, message=message)

    async def purge_older_than(self, days: int) -> int:
        """Удаляет координаты старше days дней. Возвращает количество удалённых."""
        if days < 1:
            raise ValidationError("Срок хранения должен быть не меньше 1 дня", details={"days": days})

        async with translate_db_errors("Очистка координат"):
            status = await self.db.execute(
                """
                DELETE FROM driver_location_events
                WHERE occurred_at < NOW() - make_interval(days => $1)
                """,
                days,
            )
        deleted = rows_affected(status)
        await log_info(f"Удалено координат старше {days} дн.: {deleted}", type_msg=TypeMsg.INFO)
        return deleted
