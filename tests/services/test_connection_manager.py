# tests/services/test_connection_manager.py
"""
Тесты шлюза рассылки (src/services/realtime_ws/connection_manager.py).
"""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import AsyncMock

import pytest

from src.services.realtime_ws.connection_manager import ConnectionManager


class FakeWebSocket:
    """WebSocket, запоминающий отправленные сообщения."""

    def __init__(self) -> None:
        self.accept = AsyncMock()
        self.close = AsyncMock()
        self.sent: list[dict[str, Any]] = []

    async def send_json(self, message: dict[str, Any]) -> None:
        self.sent.append(message)

    def events(self) -> list[str]:
        return [message["event"] for message in self.sent]


@pytest.fixture
def manager() -> ConnectionManager:
    return ConnectionManager(send_timeout=0.05)


async def _connect(manager: ConnectionManager) -> tuple[str, FakeWebSocket]:
    ws = FakeWebSocket()
    connection_id = await manager.connect(ws)
    return connection_id, ws


class TestConnectionLifecycle:
    """Подключение и отключение."""

    @pytest.mark.asyncio
    async def test_connect_sends_single_greeting(self, manager: ConnectionManager) -> None:
        connection_id, ws = await _connect(manager)

        ws.accept.assert_awaited_once()
        assert ws.events() == ["connected"]
        assert ws.sent[0]["data"]["connectionId"] == connection_id
        assert manager.active_connections == 1

    @pytest.mark.asyncio
    async def test_disconnect_drops_subscriptions(self, manager: ConnectionManager) -> None:
        connection_id, ws = await _connect(manager)
        await manager.handle_client_message(connection_id, {"event": "subscribe:driver", "data": 7})

        await manager.disconnect(connection_id)

        assert manager.active_connections == 0
        assert manager.registry.subscribers_of("driver:7:location") == set()
        ws.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_disconnect_is_idempotent(self, manager: ConnectionManager) -> None:
        connection_id, ws = await _connect(manager)

        await manager.disconnect(connection_id)
        await manager.disconnect(connection_id)

        ws.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_all(self, manager: ConnectionManager) -> None:
        await _connect(manager)
        await _connect(manager)

        await manager.close_all()

        assert manager.active_connections == 0


class TestClientMessages:
    """Протокол сообщений клиента."""

    @pytest.mark.asyncio
    async def test_subscribe_driver(self, manager: ConnectionManager) -> None:
        connection_id, ws = await _connect(manager)

        await manager.handle_client_message(connection_id, {"event": "subscribe:driver", "data": 7})

        assert ws.sent[-1] == {"event": "subscribed", "data": {"topic": "driver:7:location"}}
        assert manager.get_connection_topics(connection_id) == {"driver:7:location"}

    @pytest.mark.asyncio
    async def test_subscribe_shipment_with_string_id(self, manager: ConnectionManager) -> None:
        connection_id, _ = await _connect(manager)

        await manager.handle_client_message(connection_id, {"event": "subscribe:shipment", "data": "5"})

        assert manager.get_connection_topics(connection_id) == {"shipment:5:location"}

    @pytest.mark.asyncio
    async def test_unsubscribe(self, manager: ConnectionManager) -> None:
        connection_id, ws = await _connect(manager)
        await manager.handle_client_message(connection_id, {"event": "subscribe:shipment", "data": 5})

        await manager.handle_client_message(connection_id, {"event": "unsubscribe:shipment", "data": 5})

        assert ws.sent[-1]["event"] == "unsubscribed"
        assert manager.get_connection_topics(connection_id) == set()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("message", [
        {"event": "dance"},
        {"event": None},
        {"event": 42},
        {"event": "subscribe:driver", "data": "abc"},
        {"event": "subscribe:driver", "data": None},
        {"event": "subscribe:driver", "data": True},
        ["not", "an", "object"],
    ])
    async def test_bad_messages_get_error_without_disconnect(
        self,
        manager: ConnectionManager,
        message: Any,
    ) -> None:
        connection_id, ws = await _connect(manager)

        await manager.handle_client_message(connection_id, message)

        assert ws.sent[-1]["event"] == "error"
        assert manager.is_connected(connection_id)
        ws.close.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_json(self, manager: ConnectionManager) -> None:
        connection_id, ws = await _connect(manager)

        await manager.handle_raw_message(connection_id, "{not json")

        assert ws.sent[-1]["event"] == "error"
        assert manager.is_connected(connection_id)

    @pytest.mark.asyncio
    async def test_ping(self, manager: ConnectionManager) -> None:
        connection_id, ws = await _connect(manager)

        await manager.handle_raw_message(connection_id, '{"event": "ping"}')

        assert ws.sent[-1]["event"] == "pong"


class TestDelivery:
    """Рассылка сообщений шины подписчикам."""

    @pytest.mark.asyncio
    async def test_only_subscribers_receive(self, manager: ConnectionManager) -> None:
        watcher_id, watcher = await _connect(manager)
        _, bystander = await _connect(manager)
        await manager.handle_client_message(watcher_id, {"event": "subscribe:driver", "data": 7})

        await manager.on_channel_message("driver:7:location", {"driverId": 7, "latitude": 50.0})

        assert watcher.sent[-1] == {
            "event": "driver_location_updated",
            "data": {"driverId": 7, "latitude": 50.0},
        }
        assert bystander.events() == ["connected"]

    @pytest.mark.asyncio
    async def test_shipment_event_name(self, manager: ConnectionManager) -> None:
        connection_id, ws = await _connect(manager)
        await manager.handle_client_message(connection_id, {"event": "subscribe:shipment", "data": 5})

        await manager.on_channel_message("shipment:5:location", {"shipmentId": 5, "driverId": 7})

        assert ws.sent[-1]["event"] == "shipment_location_updated"
        assert ws.sent[-1]["data"]["shipmentId"] == 5

    @pytest.mark.asyncio
    async def test_slow_connection_is_disconnected(self, manager: ConnectionManager) -> None:
        slow_id, slow = await _connect(manager)
        fast_id, fast = await _connect(manager)
        for connection_id in (slow_id, fast_id):
            await manager.handle_client_message(connection_id, {"event": "subscribe:driver", "data": 7})

        async def stuck_send(message: dict[str, Any]) -> None:
            await asyncio.sleep(10)

        slow.send_json = stuck_send

        delivered = await manager.deliver("driver:7:location", {"event": "driver_location_updated", "data": {}})

        assert delivered == 1
        assert not manager.is_connected(slow_id)
        assert manager.is_connected(fast_id)
        assert manager.registry.subscribers_of("driver:7:location") == {fast_id}
        assert fast.sent[-1]["event"] == "driver_location_updated"

    @pytest.mark.asyncio
    async def test_broken_connection_is_disconnected(self, manager: ConnectionManager) -> None:
        broken_id, broken = await _connect(manager)
        await manager.handle_client_message(broken_id, {"event": "subscribe:shipment", "data": 5})
        broken.send_json = AsyncMock(side_effect=RuntimeError("socket closed"))

        delivered = await manager.deliver("shipment:5:location", {"event": "x", "data": {}})

        assert delivered == 0
        assert manager.get_stats()["failed_sends"] == 1
        assert manager.registry.stats()["subscriptions"] == 0

    @pytest.mark.asyncio
    async def test_no_subscribers(self, manager: ConnectionManager) -> None:
        assert await manager.deliver("driver:1:location", {}) == 0

    @pytest.mark.asyncio
    async def test_bad_topic_from_channel_is_ignored(self, manager: ConnectionManager) -> None:
        _, ws = await _connect(manager)

        await manager.on_channel_message("driver:7:x:location", {})

        assert ws.events() == ["connected"]


class TestStats:
    """Статистика шлюза."""

    @pytest.mark.asyncio
    async def test_stats(self, manager: ConnectionManager) -> None:
        connection_id, _ = await _connect(manager)
        await manager.handle_client_message(connection_id, {"event": "subscribe:driver", "data": 7})
        await manager.handle_client_message(connection_id, {"event": "subscribe:shipment", "data": 5})

        stats = manager.get_stats()

        assert stats["active_connections"] == 1
        assert stats["total_topics"] == 2
        assert stats["total_subscriptions"] == 2
        assert stats["connections"] == {connection_id: ["driver:7:location", "shipment:5:location"]}
