# src/services/shipment_events/transitions.py
"""
Каноническое соответствие действий и событий журнала.

Смена статуса отображается в тип события только через STATUS_EVENT_TYPES.
Таблица обязана покрывать все ShipmentStatus; проверяется при импорте.
"""

from __future__ import annotations

from typing import Any

from src.shared.models.enums import ShipmentEventType, ShipmentStatus
from src.shared.models.shipment_event import NewShipmentEvent

STATUS_EVENT_TYPES: dict[ShipmentStatus, ShipmentEventType] = {
    ShipmentStatus.PENDING: ShipmentEventType.STATUS_CHANGED,
    ShipmentStatus.ASSIGNED: ShipmentEventType.DRIVER_ALLOCATED,
    ShipmentStatus.IN_TRANSIT: ShipmentEventType.OUT_FOR_DELIVERY,
    ShipmentStatus.DELIVERED: ShipmentEventType.DELIVERED,
    ShipmentStatus.CANCELLED: ShipmentEventType.STATUS_CHANGED,
}

_uncovered = set(ShipmentStatus) - set(STATUS_EVENT_TYPES)
if _uncovered:
    raise RuntimeError(f"Нет типа события для статусов: {sorted(s.value for s in _uncovered)}")


def event_type_for_status(status: ShipmentStatus) -> ShipmentEventType:
    return STATUS_EVENT_TYPES[ShipmentStatus(status)]


# =============================================================================
# КОНСТРУКТОРЫ СОБЫТИЙ
# =============================================================================

def shipment_created(
    shipment_id: int,
    user_id: int | None = None,
    metadata: dict[str, Any] | None = None,
) -> NewShipmentEvent:
    return NewShipmentEvent(
        shipment_id=shipment_id,
        event_type=ShipmentEventType.SHIPMENT_CREATED,
        created_by_user_id=user_id,
        to_status=ShipmentStatus.PENDING,
        metadata=metadata or {},
    )


def driver_allocated(
    shipment_id: int,
    driver_id: int,
    user_id: int | None = None,
    from_status: ShipmentStatus = ShipmentStatus.PENDING,
    metadata: dict[str, Any] | None = None,
) -> NewShipmentEvent:
    """Назначение водителя: from_status -> assigned, driver_id в metadata."""
    return NewShipmentEvent(
        shipment_id=shipment_id,
        event_type=STATUS_EVENT_TYPES[ShipmentStatus.ASSIGNED],
        created_by_user_id=user_id,
        from_status=from_status,
        to_status=ShipmentStatus.ASSIGNED,
        metadata={"driver_id": driver_id, **(metadata or {})},
    )


def status_changed(
    shipment_id: int,
    from_status: ShipmentStatus,
    to_status: ShipmentStatus,
    user_id: int | None = None,
    metadata: dict[str, Any] | None = None,
) -> NewShipmentEvent | None:
    """
    Событие смены статуса по таблице STATUS_EVENT_TYPES.

    Returns:
        None, если статус не меняется: для no-op событие не пишется
    """
    from_status = ShipmentStatus(from_status)
    to_status = ShipmentStatus(to_status)
    if from_status == to_status:
        return None

    return NewShipmentEvent(
        shipment_id=shipment_id,
        event_type=STATUS_EVENT_TYPES[to_status],
        created_by_user_id=user_id,
        from_status=from_status,
        to_status=to_status,
        metadata=metadata or {},
    )


def package_picked_up(
    shipment_id: int,
    user_id: int | None = None,
    latitude: float | None = None,
    longitude: float | None = None,
    metadata: dict[str, Any] | None = None,
) -> NewShipmentEvent:
    return NewShipmentEvent(
        shipment_id=shipment_id,
        event_type=ShipmentEventType.PACKAGE_PICKED_UP,
        created_by_user_id=user_id,
        latitude=latitude,
        longitude=longitude,
        metadata=metadata or {},
    )


def arrived_at_destination(
    shipment_id: int,
    user_id: int | None = None,
    latitude: float | None = None,
    longitude: float | None = None,
    metadata: dict[str, Any] | None = None,
) -> NewShipmentEvent:
    return NewShipmentEvent(
        shipment_id=shipment_id,
        event_type=ShipmentEventType.ARRIVED_AT_DESTINATION,
        created_by_user_id=user_id,
        latitude=latitude,
        longitude=longitude,
        metadata=metadata or {},
    )


def delivery_attempted(
    shipment_id: int,
    reason: str,
    user_id: int | None = None,
    metadata: dict[str, Any] | None = None,
) -> NewShipmentEvent:
    return NewShipmentEvent(
        shipment_id=shipment_id,
        event_type=ShipmentEventType.DELIVERY_ATTEMPTED,
        description=f"Delivery attempted: {reason}",
        created_by_user_id=user_id,
        metadata={"reason": reason, **(metadata or {})},
    )


def note_added(
    shipment_id: int,
    note: str,
    user_id: int | None = None,
    metadata: dict[str, Any] | None = None,
) -> NewShipmentEvent:
    return NewShipmentEvent(
        shipment_id=shipment_id,
        event_type=ShipmentEventType.NOTE_ADDED,
        description=note,
        created_by_user_id=user_id,
        metadata=metadata or {},
    )


def issue_reported(
    shipment_id: int,
    issue: str,
    user_id: int | None = None,
    metadata: dict[str, Any] | None = None,
) -> NewShipmentEvent:
    return NewShipmentEvent(
        shipment_id=shipment_id,
        event_type=ShipmentEventType.ISSUE_REPORTED,
        description=issue,
        created_by_user_id=user_id,
        metadata=metadata or {},
    )


def location_updated(
    shipment_id: int,
    latitude: float,
    longitude: float,
    user_id: int | None = None,
    metadata: dict[str, Any] | None = None,
) -> NewShipmentEvent:
    return NewShipmentEvent(
        shipment_id=shipment_id,
        event_type=ShipmentEventType.LOCATION_UPDATED,
        created_by_user_id=user_id,
        latitude=latitude,
        longitude=longitude,
        metadata=metadata or {},
    )
