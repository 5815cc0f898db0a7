# src/services/shipments/repository.py
"""
Таблица shipments. Единственное место, где меняются status и driver_id.
"""

from __future__ import annotations

from typing import Any

from asyncpg import Connection

from src.infra.database import DatabaseManager, translate_db_errors
from src.shared.models.enums import ShipmentStatus
from src.shared.models.shipment import Shipment


class ShipmentRepository:
    def __init__(self, db: DatabaseManager):
        self.db = db

    def _executor(self, conn: Connection | None) -> Any:
        return conn if conn is not None else self.db

    async def create(
        self,
        tracking_number: str,
        order_id: int | None = None,
        conn: Connection | None = None,
    ) -> Shipment:
        """Creates a pending shipment."""
        async with translate_db_errors("Создание отправления"):
            row = await self._executor(conn).fetchrow(
                """
                INSERT INTO shipments (order_id, tracking_number, status)
                VALUES ($1, $2, $3)
                RETURNING *
                """,
                order_id, tracking_number, ShipmentStatus.PENDING.value,
            )
        return Shipment.from_record(row)

    async def get(
        self,
        shipment_id: int,
        conn: Connection | None = None,
        for_update: bool = False,
    ) -> Shipment | None:
        """Retrieves a shipment by ID; for_update locks the row inside a transaction."""
        query = "SELECT * FROM shipments WHERE id = $1"
        if for_update:
            query += " FOR UPDATE"
        async with translate_db_errors("Чтение отправления"):
            row = await self._executor(conn).fetchrow(query, shipment_id)
        return Shipment.from_record(row) if row else None

    async def get_by_tracking_number(self, tracking_number: str) -> Shipment | None:
        async with translate_db_errors("Чтение отправления"):
            row = await self.db.fetchrow(
                "SELECT * FROM shipments WHERE tracking_number = $1",
                tracking_number,
            )
        return Shipment.from_record(row) if row else None

    async def assign_driver(self, shipment_id: int, driver_id: int, conn: Connection) -> Shipment:
        """Assigns a driver and moves the shipment to assigned."""
        async with translate_db_errors("Назначение водителя"):
            row = await conn.fetchrow(
                """
                UPDATE shipments
                SET driver_id = $1, status = $2, updated_at = NOW()
                WHERE id = $3
                RETURNING *
                """,
                driver_id, ShipmentStatus.ASSIGNED.value, shipment_id,
            )
        return Shipment.from_record(row)

    async def update_status(
        self,
        shipment_id: int,
        status: ShipmentStatus,
        conn: Connection,
        clear_driver: bool = False,
    ) -> Shipment:
        """Updates the status of a shipment (optionally unassigning the driver)."""
        if clear_driver:
            query = "UPDATE shipments SET status = $1, driver_id = NULL, updated_at = NOW() WHERE id = $2 RETURNING *"
        else:
            query = "UPDATE shipments SET status = $1, updated_at = NOW() WHERE id = $2 RETURNING *"
        async with translate_db_errors("Смена статуса отправления"):
            row = await conn.fetchrow(query, ShipmentStatus(status).value, shipment_id)
        return Shipment.from_record(row)
