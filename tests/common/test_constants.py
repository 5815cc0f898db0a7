# tests/common/test_constants.py
"""
Тесты для модуля констант и доменных перечислений.
"""

import pytest

from src.common.constants import ClientEvent, ServerEvent, TopicKind, TypeMsg
from src.shared.models.enums import (
    ACTIVE_SHIPMENT_STATUSES,
    ShipmentEventType,
    ShipmentStatus,
    UserRole,
)


class TestTypeMsg:
    """Тесты для enum TypeMsg."""

    def test_type_msg_values(self) -> None:
        """Проверяет значения типов сообщений."""
        assert [t.value for t in TypeMsg] == ["debug", "info", "warning", "error", "critical"]

    def test_type_msg_is_str_enum(self) -> None:
        assert isinstance(TypeMsg.DEBUG, str)
        assert TypeMsg.INFO == "info"


class TestWebSocketEvents:
    """Имена событий протокола WebSocket."""

    def test_client_events(self) -> None:
        assert ClientEvent("subscribe:driver") is ClientEvent.SUBSCRIBE_DRIVER
        assert ClientEvent("unsubscribe:shipment") is ClientEvent.UNSUBSCRIBE_SHIPMENT

    def test_server_events(self) -> None:
        assert ServerEvent.DRIVER_LOCATION_UPDATED == "driver_location_updated"
        assert ServerEvent.SHIPMENT_LOCATION_UPDATED == "shipment_location_updated"

    def test_topic_kinds(self) -> None:
        assert {kind.value for kind in TopicKind} == {"driver", "shipment"}


class TestShipmentStatus:
    """Статусы отправления."""

    def test_values(self) -> None:
        assert {s.value for s in ShipmentStatus} == {
            "pending", "assigned", "in_transit", "delivered", "cancelled",
        }

    def test_active_statuses(self) -> None:
        """Локация транслируется только для assigned и in_transit."""
        assert ACTIVE_SHIPMENT_STATUSES == {ShipmentStatus.ASSIGNED, ShipmentStatus.IN_TRANSIT}

    def test_str(self) -> None:
        assert str(ShipmentStatus.IN_TRANSIT) == "in_transit"


class TestShipmentEventType:
    """Типы событий журнала."""

    def test_legacy_alias(self) -> None:
        assert ShipmentEventType("driver_assigned") is ShipmentEventType.DRIVER_ALLOCATED

    def test_unknown_value(self) -> None:
        with pytest.raises(ValueError):
            ShipmentEventType("teleported")

    def test_description(self) -> None:
        assert ShipmentEventType.DELIVERED.description == "Package delivered successfully"


class TestUserRole:
    """Тесты для enum UserRole."""

    def test_user_role_values(self) -> None:
        assert {role.value for role in UserRole} == {"driver", "customer", "admin"}
