# src/services/realtime_location/service.py
"""
Бизнес-логика приёма геолокации.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from src.common.constants import TypeMsg
from src.common.logger import log_error, log_info
from src.core.topics import driver_topic, shipment_topic
from src.infra.publish_channel import PublishChannel
from src.services.realtime_location.repository import LocationRepository
from src.services.realtime_location.resolver import ActiveShipmentResolver
from src.shared.models.location import LocationSample, ShipmentLocation


@dataclass
class IngestResult:
    """Результат приёма координаты."""
    sample: LocationSample
    broadcasted_to_shipments: list[int] = field(default_factory=list)


class LocationIngestService:
    """
    Сервис приёма и обработки геолокации водителей.

    Ответственности:
    - Валидация и сохранение координаты
    - Поиск активных отправлений водителя
    - Публикация в топик водителя и в топик каждого активного отправления
    """

    def __init__(
        self,
        repository: LocationRepository,
        resolver: ActiveShipmentResolver,
        channel: PublishChannel,
    ) -> None:
        self._repository = repository
        self._resolver = resolver
        self._channel = channel

        # Статистика
        self._total_updates = 0
        self._published = 0
        self._dropped = 0
        self._drivers: set[int] = set()

    async def ingest(
        self,
        driver_id: int,
        latitude: Any,
        longitude: Any,
        accuracy: Any = None,
    ) -> IngestResult:
        """
        Принять координату водителя.

        1. Запись (ValidationError — ничего не пишется и не публикуется)
        2. Активные отправления водителя (свежий запрос)
        3. Публикация: сначала driver:<id>:location, затем shipment:<sid>:location

        Ошибка шины не пробрасывается: координата уже сохранена.
        """
        sample = await self._repository.record(driver_id, latitude, longitude, accuracy)
        self._total_updates += 1
        self._drivers.add(driver_id)

        shipment_ids = sorted(await self._resolver.active_shipments_for(driver_id))

        payload = sample.to_broadcast_payload()
        await self._publish(driver_topic(driver_id), payload)
        for shipment_id in shipment_ids:
            await self._publish(shipment_topic(shipment_id), {**payload, "shipmentId": shipment_id})

        await log_info(
            f"Координата водителя {driver_id} сохранена, отправлений: {len(shipment_ids)}",
            type_msg=TypeMsg.DEBUG,
        )
        return IngestResult(sample=sample, broadcasted_to_shipments=shipment_ids)

    async def _publish(self, topic: str, payload: dict[str, Any]) -> None:
        try:
            delivered = await self._channel.publish(topic, payload)
        except Exception as e:
            await log_error(f"Шина публикаций вернула ошибку для {topic}: {e}")
            delivered = False

        if delivered:
            self._published += 1
        else:
            self._dropped += 1

    async def latest(self, driver_id: int) -> LocationSample:
        return await self._repository.latest(driver_id)

    async def history(
        self,
        driver_id: int,
        limit: int = 100,
        since: datetime | None = None,
    ) -> list[LocationSample]:
        return await self._repository.history(driver_id, limit=limit, since=since)

    async def shipment_location(self, shipment_id: int) -> ShipmentLocation:
        return await self._repository.shipment_location(shipment_id)

    def get_stats(self) -> dict[str, int]:
        """Статистика приёма с момента старта процесса."""
        return {
            "total_updates": self._total_updates,
            "unique_drivers": len(self._drivers),
            "published": self._published,
            "dropped": self._dropped,
        }
