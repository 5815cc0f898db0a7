# src/worker/retention.py
"""
Очистка устаревших данных трекинга.
"""

from __future__ import annotations

from src.common.constants import TypeMsg
from src.common.logger import log_info
from src.infra.database import DatabaseManager
from src.services.realtime_location.repository import LocationRepository
from src.services.shipment_events.repository import ShipmentEventRepository
from src.worker.base import BaseWorker


class RetentionWorker(BaseWorker):
    """
    Периодически удаляет:
    - координаты водителей старше LOCATION_RETENTION_DAYS
    - события location_updated старше LOCATION_EVENTS_RETENTION_DAYS

    На живую трансляцию не влияет: удаляются только давние записи.
    """

    def __init__(
        self,
        db: DatabaseManager,
        location_days: int = 30,
        location_events_days: int = 30,
        interval_seconds: float = 3600,
    ) -> None:
        super().__init__(db, interval_seconds=interval_seconds)
        self.location_days = location_days
        self.location_events_days = location_events_days
        self.locations = LocationRepository(db)
        self.events = ShipmentEventRepository(db)

    @property
    def name(self) -> str:
        return "RetentionWorker"

    async def run_once(self) -> dict[str, int]:
        samples = await self.locations.purge_older_than(self.location_days)
        events = await self.events.purge_location_updates(self.location_events_days)
        await log_info(
            f"Очистка: координат {samples}, событий location_updated {events}",
            type_msg=TypeMsg.INFO,
        )
        return {"location_samples": samples, "location_events": events}


def create_retention_worker(db: DatabaseManager) -> RetentionWorker:
    """Воркер с параметрами из конфигурации."""
    from src.config import settings

    tracking = settings.tracking
    return RetentionWorker(
        db,
        location_days=tracking.LOCATION_RETENTION_DAYS,
        location_events_days=tracking.LOCATION_EVENTS_RETENTION_DAYS,
        interval_seconds=tracking.RETENTION_INTERVAL_SECONDS,
    )
