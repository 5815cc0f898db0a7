# src/services/realtime_location/resolver.py
"""
Определение активных отправлений водителя.
"""

from __future__ import annotations

from src.infra.database import DatabaseManager, translate_db_errors
from src.shared.models.enums import ACTIVE_SHIPMENT_STATUSES

_ACTIVE_STATUSES = sorted(status.value for status in ACTIVE_SHIPMENT_STATUSES)


class ActiveShipmentResolver:
    """
    driver_id -> множество активных shipment_id.
    Запрос выполняется на каждую координату, без кэша: отправление,
    только что вышедшее из активного статуса, не должно получить трансляцию.
    """

    def __init__(self, db: DatabaseManager) -> None:
        self.db = db

    async def active_shipments_for(self, driver_id: int) -> set[int]:
        async with translate_db_errors("Поиск активных отправлений"):
            rows = await self.db.fetch(
                """
                SELECT id FROM shipments
                WHERE driver_id = $1
                  AND status = ANY($2::varchar[])
                """,
                driver_id, _ACTIVE_STATUSES,
            )
        return {row["id"] for row in rows}
