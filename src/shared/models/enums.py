# src/shared/models/enums.py
"""
Перечисления доменной модели трекинга.
"""

from __future__ import annotations

from enum import Enum


class ShipmentStatus(str, Enum):
    """Статусы отправления."""
    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    def __str__(self) -> str:
        return self.value


# Статусы, при которых локация водителя транслируется на отправление
ACTIVE_SHIPMENT_STATUSES: frozenset[ShipmentStatus] = frozenset({
    ShipmentStatus.ASSIGNED,
    ShipmentStatus.IN_TRANSIT,
})


class ShipmentEventType(str, Enum):
    """Закрытый набор типов событий жизненного цикла отправления."""
    # Создание и назначение
    SHIPMENT_CREATED = "shipment_created"
    DRIVER_ALLOCATED = "driver_allocated"
    DRIVER_UNASSIGNED = "driver_unassigned"

    # Забор
    DRIVER_EN_ROUTE_TO_PICKUP = "driver_en_route_to_pickup"
    ARRIVED_AT_PICKUP = "arrived_at_pickup"
    PACKAGE_PICKED_UP = "package_picked_up"

    # Доставка
    OUT_FOR_DELIVERY = "out_for_delivery"
    IN_TRANSIT = "in_transit"
    DRIVER_EN_ROUTE_TO_DELIVERY = "driver_en_route_to_delivery"
    ARRIVED_AT_DESTINATION = "arrived_at_destination"
    DELIVERY_ATTEMPTED = "delivery_attempted"
    DELIVERED = "delivered"

    STATUS_CHANGED = "status_changed"

    # Проблемы и заметки
    PACKAGE_DELAYED = "package_delayed"
    ISSUE_REPORTED = "issue_reported"
    NOTE_ADDED = "note_added"
    CANCELLED = "cancelled"

    # Высокочастотные, скрыты из истории по умолчанию
    LOCATION_UPDATED = "location_updated"

    @classmethod
    def _missing_(cls, value: object) -> ShipmentEventType | None:
        # Старые записи хранят driver_assigned
        if value == LEGACY_DRIVER_ASSIGNED:
            return cls.DRIVER_ALLOCATED
        return None

    @property
    def description(self) -> str:
        """Описание по умолчанию для клиента."""
        return EVENT_DESCRIPTIONS[self]

    def __str__(self) -> str:
        return self.value


LEGACY_DRIVER_ASSIGNED = "driver_assigned"

EVENT_DESCRIPTIONS: dict[ShipmentEventType, str] = {
    ShipmentEventType.SHIPMENT_CREATED: "Package created and awaiting driver",
    ShipmentEventType.DRIVER_ALLOCATED: "Driver accepted delivery request",
    ShipmentEventType.DRIVER_UNASSIGNED: "Driver unassigned from package",
    ShipmentEventType.DRIVER_EN_ROUTE_TO_PICKUP: "Driver is heading to pickup location",
    ShipmentEventType.ARRIVED_AT_PICKUP: "Driver arrived at pickup location",
    ShipmentEventType.PACKAGE_PICKED_UP: "Package picked up from sender",
    ShipmentEventType.OUT_FOR_DELIVERY: "Package is out for delivery",
    ShipmentEventType.IN_TRANSIT: "Package is in transit",
    ShipmentEventType.DRIVER_EN_ROUTE_TO_DELIVERY: "Driver is heading to delivery location",
    ShipmentEventType.ARRIVED_AT_DESTINATION: "Driver arrived at delivery location",
    ShipmentEventType.DELIVERY_ATTEMPTED: "Delivery attempted but unsuccessful",
    ShipmentEventType.DELIVERED: "Package delivered successfully",
    ShipmentEventType.STATUS_CHANGED: "Package status updated",
    ShipmentEventType.PACKAGE_DELAYED: "Package delayed",
    ShipmentEventType.ISSUE_REPORTED: "Issue reported",
    ShipmentEventType.NOTE_ADDED: "Note added",
    ShipmentEventType.CANCELLED: "Package cancelled",
    ShipmentEventType.LOCATION_UPDATED: "Driver location updated",
}

# Типы, скрытые из клиентской истории
CUSTOMER_HIDDEN_EVENT_TYPES: frozenset[ShipmentEventType] = frozenset({
    ShipmentEventType.LOCATION_UPDATED,
})


class UserRole(str, Enum):
    """Роли пользователей."""
    DRIVER = "driver"
    CUSTOMER = "customer"
    ADMIN = "admin"

    def __str__(self) -> str:
        return self.value
