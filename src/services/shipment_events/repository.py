# src/services/shipment_events/repository.py
"""
Журнал событий отправлений (append-only таблица shipment_events).
"""

from __future__ import annotations

import json
from typing import Any, Mapping

import pydantic
from asyncpg import Connection

from src.common.constants import TypeMsg
from src.common.logger import log_info
from src.core.exceptions import ValidationError
from src.infra.database import DatabaseManager, rows_affected, translate_db_errors
from src.shared.models.enums import CUSTOMER_HIDDEN_EVENT_TYPES, ShipmentEventType, UserRole
from src.shared.models.shipment_event import CustomerVisibleEvent, NewShipmentEvent, ShipmentEvent

_HIDDEN_TYPES = sorted(event_type.value for event_type in CUSTOMER_HIDDEN_EVENT_TYPES)


def build_event(data: Mapping[str, Any]) -> NewShipmentEvent:
    """
    Собирает NewShipmentEvent из словаря.

    Raises:
        ValidationError: неизвестный тип события или некорректные поля
    """
    try:
        return NewShipmentEvent.model_validate(dict(data))
    except pydantic.ValidationError as e:
        raise ValidationError(
            "Некорректное событие отправления",
            details={"errors": [
                {"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()
            ]},
        ) from None


class ShipmentEventRepository:
    """Запись и чтение журнала событий."""

    def __init__(self, db: DatabaseManager) -> None:
        self.db = db

    async def append(
        self,
        event: NewShipmentEvent | Mapping[str, Any],
        conn: Connection | None = None,
    ) -> ShipmentEvent:
        """
        Добавить событие в журнал.

        Args:
            event: событие или словарь его полей
            conn: открытое соединение (для записи в одной транзакции со сменой статуса)

        Raises:
            ValidationError: неизвестный тип или несуществующее отправление
        """
        if not isinstance(event, NewShipmentEvent):
            event = build_event(event)

        executor = conn if conn is not None else self.db
        async with translate_db_errors(f"Запись события {event.event_type.value}"):
            row = await executor.fetchrow(
                """
                INSERT INTO shipment_events
                    (shipment_id, event_type, description, created_by_user_id,
                     from_status, to_status, latitude, longitude, metadata, occurred_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9::jsonb, NOW())
                RETURNING *
                """,
                event.shipment_id,
                event.event_type.value,
                event.resolved_description,
                event.created_by_user_id,
                event.from_status.value if event.from_status else None,
                event.to_status.value if event.to_status else None,
                event.latitude,
                event.longitude,
                json.dumps(event.metadata, default=str),
            )
        return ShipmentEvent.from_record(row)

    async def list_for(
        self,
        shipment_id: int,
        limit: int = 100,
        include_location_updates: bool = False,
    ) -> list[ShipmentEvent]:
        """Все события отправления, новые первыми. location_updated исключается в самом запросе."""
        if limit < 1:
            raise ValidationError("limit должен быть положительным", details={"field": "limit", "value": limit})

        params: list[Any] = [shipment_id, UserRole.DRIVER.value, UserRole.CUSTOMER.value]
        query = """
            SELECT e.*,
                   u.email AS created_by_email,
                   CASE
                       WHEN u.role = $2 THEN d.name
                       WHEN u.role = $3 THEN c.name
                       ELSE u.email
                   END AS created_by_name
            FROM shipment_events e
            LEFT JOIN users u ON u.id = e.created_by_user_id
            LEFT JOIN drivers d ON d.user_id = u.id
            LEFT JOIN customers c ON c.user_id = u.id
            WHERE e.shipment_id = $1
        """
        if not include_location_updates:
            params.append(ShipmentEventType.LOCATION_UPDATED.value)
            query += f" AND e.event_type <> ${len(params)}"

        params.append(limit)
        query += f" ORDER BY e.occurred_at DESC, e.id DESC LIMIT ${len(params)}"

        async with translate_db_errors("Чтение событий отправления"):
            rows = await self.db.fetch(query, *params)
        return [ShipmentEvent.from_record(row) for row in rows]

    async def customer_visible(self, shipment_id: int) -> list[CustomerVisibleEvent]:
        """
        Клиентская история: старые первыми, без служебных типов.
        Имя водителя, только если автор события — водитель.
        """
        async with translate_db_errors("Чтение клиентской истории"):
            rows = await self.db.fetch(
                """
                SELECT e.event_type, e.description, e.occurred_at, e.to_status,
                       CASE
                           WHEN u.role = $3 THEN d.name
                           ELSE NULL
                       END AS driver_name
                FROM shipment_events e
                LEFT JOIN users u ON u.id = e.created_by_user_id
                LEFT JOIN drivers d ON d.user_id = u.id
                WHERE e.shipment_id = $1
                  AND e.event_type <> ALL($2::varchar[])
                ORDER BY e.occurred_at ASC, e.id ASC
                """,
                shipment_id, _HIDDEN_TYPES, UserRole.DRIVER.value,
            )
        return [CustomerVisibleEvent.from_record(row) for row in rows]

    async def purge_location_updates(self, days_to_keep: int = 30) -> int:
        """Удаляет события location_updated старше days_to_keep дней."""
        if days_to_keep < 1:
            raise ValidationError("Срок хранения должен быть не меньше 1 дня", details={"days": days_to_keep})

        async with translate_db_errors("Очистка событий location_updated"):
            status = await self.db.execute(
                """
                DELETE FROM shipment_events
                WHERE event_type = $1
                  AND occurred_at < NOW() - make_interval(days => $2)
                """,
                ShipmentEventType.LOCATION_UPDATED.value, days_to_keep,
            )
        deleted = rows_affected(status)
        await log_info(f"Удалено событий location_updated старше {days_to_keep} дн.: {deleted}", type_msg=TypeMsg.INFO)
        return deleted
