# src/services/shipments/service.py
"""
Бизнес-логика отправлений: смена статуса и назначение водителя
всегда пишутся в одной транзакции с событием журнала.
"""

from __future__ import annotations

import uuid
from typing import Any

from src.common.constants import TypeMsg
from src.common.logger import log_info
from src.core.exceptions import NotFound, ValidationError
from src.infra.database import DatabaseManager
from src.services.shipment_events import transitions
from src.services.shipment_events.repository import ShipmentEventRepository
from src.services.shipments.repository import ShipmentRepository
from src.services.shipments.state_machine import ShipmentStateMachine
from src.shared.models.enums import ShipmentStatus
from src.shared.models.shipment import Shipment, StatusChangeResponse
from src.shared.models.shipment_event import CustomerVisibleEvent, ShipmentEvent


def generate_tracking_number() -> str:
    return f"DM{uuid.uuid4().hex[:10].upper()}"


class ShipmentService:
    def __init__(
        self,
        db: DatabaseManager,
        repository: ShipmentRepository,
        events: ShipmentEventRepository,
    ):
        self.db = db
        self.repository = repository
        self.events = events

    async def get_shipment(self, shipment_id: int) -> Shipment:
        shipment = await self.repository.get(shipment_id)
        if shipment is None:
            raise NotFound(f"Отправление {shipment_id} не найдено", details={"shipment_id": shipment_id})
        return shipment

    async def track(self, tracking_number: str) -> Shipment:
        shipment = await self.repository.get_by_tracking_number(tracking_number)
        if shipment is None:
            raise NotFound(f"Отправление {tracking_number} не найдено", details={"tracking_number": tracking_number})
        return shipment

    async def create_shipment(
        self,
        order_id: int | None = None,
        tracking_number: str | None = None,
        user_id: int | None = None,
    ) -> StatusChangeResponse:
        """Создаёт отправление в статусе pending и событие shipment_created."""
        async with self.db.transaction() as conn:
            shipment = await self.repository.create(
                tracking_number=tracking_number or generate_tracking_number(),
                order_id=order_id,
                conn=conn,
            )
            event = await self.events.append(
                transitions.shipment_created(shipment.id, user_id=user_id),
                conn=conn,
            )

        await log_info(f"Создано отправление {shipment.id} ({shipment.tracking_number})", type_msg=TypeMsg.INFO)
        return StatusChangeResponse(shipment=shipment, event=event)

    async def assign_driver(
        self,
        shipment_id: int,
        driver_id: int,
        user_id: int | None = None,
    ) -> StatusChangeResponse:
        """
        Назначить водителя.
        Повторное назначение того же водителя ничего не пишет.
        """
        async with self.db.transaction() as conn:
            shipment = await self.repository.get(shipment_id, conn=conn, for_update=True)
            if shipment is None:
                raise NotFound(f"Отправление {shipment_id} не найдено", details={"shipment_id": shipment_id})

            if shipment.status == ShipmentStatus.ASSIGNED and shipment.driver_id == driver_id:
                return StatusChangeResponse(shipment=shipment, event=None)

            if shipment.status not in (ShipmentStatus.PENDING, ShipmentStatus.ASSIGNED):
                raise ValidationError(
                    f"Нельзя назначить водителя в статусе {shipment.status.value}",
                    details={"status": shipment.status.value},
                )

            updated = await self.repository.assign_driver(shipment_id, driver_id, conn=conn)
            event = await self.events.append(
                transitions.driver_allocated(
                    shipment_id,
                    driver_id,
                    user_id=user_id,
                    from_status=shipment.status,
                ),
                conn=conn,
            )

        await log_info(f"Отправлению {shipment_id} назначен водитель {driver_id}", type_msg=TypeMsg.INFO)
        return StatusChangeResponse(shipment=updated, event=event)

    async def update_status(
        self,
        shipment_id: int,
        new_status: ShipmentStatus,
        user_id: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> StatusChangeResponse:
        """
        Сменить статус.

        Ровно одно событие на переход (тип по таблице переходов),
        ни одного для перехода в тот же статус.
        """
        new_status = ShipmentStatus(new_status)

        async with self.db.transaction() as conn:
            shipment = await self.repository.get(shipment_id, conn=conn, for_update=True)
            if shipment is None:
                raise NotFound(f"Отправление {shipment_id} не найдено", details={"shipment_id": shipment_id})

            if not ShipmentStateMachine.can_transition(shipment.status, new_status):
                raise ValidationError(
                    f"Недопустимый переход {shipment.status.value} -> {new_status.value}",
                    details={"from": shipment.status.value, "to": new_status.value},
                )

            event_data = transitions.status_changed(
                shipment_id,
                shipment.status,
                new_status,
                user_id=user_id,
                metadata=metadata,
            )
            if event_data is None:
                return StatusChangeResponse(shipment=shipment, event=None)

            if new_status == ShipmentStatus.ASSIGNED and shipment.driver_id is None:
                raise ValidationError("Для статуса assigned нужно назначить водителя через assign-driver")

            unassign = new_status == ShipmentStatus.PENDING
            if unassign and shipment.driver_id is not None:
                event_data.metadata.setdefault("driver_id", shipment.driver_id)

            updated = await self.repository.update_status(shipment_id, new_status, conn=conn, clear_driver=unassign)
            event = await self.events.append(event_data, conn=conn)

        await log_info(
            f"Отправление {shipment_id}: {shipment.status.value} -> {new_status.value}",
            type_msg=TypeMsg.INFO,
        )
        return StatusChangeResponse(shipment=updated, event=event)

    async def add_note(
        self,
        shipment_id: int,
        note: str,
        user_id: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ShipmentEvent:
        return await self.events.append(
            transitions.note_added(shipment_id, note, user_id=user_id, metadata=metadata)
        )

    async def report_issue(
        self,
        shipment_id: int,
        issue: str,
        user_id: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ShipmentEvent:
        return await self.events.append(
            transitions.issue_reported(shipment_id, issue, user_id=user_id, metadata=metadata)
        )

    async def list_events(
        self,
        shipment_id: int,
        limit: int = 100,
        include_location_updates: bool = False,
    ) -> list[ShipmentEvent]:
        await self.get_shipment(shipment_id)
        return await self.events.list_for(
            shipment_id,
            limit=limit,
            include_location_updates=include_location_updates,
        )

    async def customer_history(self, shipment_id: int) -> list[CustomerVisibleEvent]:
        await self.get_shipment(shipment_id)
        return await self.events.customer_visible(shipment_id)
