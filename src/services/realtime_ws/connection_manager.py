# src/services/realtime_ws/connection_manager.py
"""
Менеджер WebSocket соединений.
Управляет подписками и рассылкой сообщений из шины публикаций.
"""

from __future__ import annotations

import asyncio
import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from fastapi import WebSocket

from src.common.constants import ClientEvent, ServerEvent, TopicKind, TypeMsg
from src.common.logger import log_debug, log_info, log_warning
from src.core.exceptions import ValidationError
from src.core.topics import driver_topic, parse_topic, shipment_topic
from src.services.realtime_ws.subscription_registry import SubscriptionRegistry


class ConnectionState(str, Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


@dataclass
class ConnectionInfo:
    """Информация о соединении."""
    connection_id: str
    websocket: WebSocket
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    state: ConnectionState = ConnectionState.CONNECTED


# event клиента -> (подписка?, вид топика)
_SUBSCRIPTION_EVENTS: dict[str, tuple[bool, TopicKind]] = {
    ClientEvent.SUBSCRIBE_DRIVER.value: (True, TopicKind.DRIVER),
    ClientEvent.SUBSCRIBE_SHIPMENT.value: (True, TopicKind.SHIPMENT),
    ClientEvent.UNSUBSCRIBE_DRIVER.value: (False, TopicKind.DRIVER),
    ClientEvent.UNSUBSCRIBE_SHIPMENT.value: (False, TopicKind.SHIPMENT),
}

_UPDATE_EVENTS: dict[TopicKind, ServerEvent] = {
    TopicKind.DRIVER: ServerEvent.DRIVER_LOCATION_UPDATED,
    TopicKind.SHIPMENT: ServerEvent.SHIPMENT_LOCATION_UPDATED,
}


def server_message(event: ServerEvent, data: Any) -> dict[str, Any]:
    return {"event": event.value, "data": data}


def _entity_topic(kind: TopicKind, entity_id: Any) -> str:
    # Идентификаторы: целые числа (или их строковая запись)
    if isinstance(entity_id, bool) or not isinstance(entity_id, (int, str)):
        raise ValidationError(f"Некорректный идентификатор: {entity_id!r}")
    if isinstance(entity_id, str) and not entity_id.strip().isdigit():
        raise ValidationError(f"Некорректный идентификатор: {entity_id!r}")
    if kind is TopicKind.DRIVER:
        return driver_topic(int(entity_id))
    return shipment_topic(int(entity_id))


class ConnectionManager:
    """
    Шлюз рассылки: WebSocket соединения + реестр подписок.

    Поддерживает:
    - Подключение/отключение клиентов (приветствие connected)
    - Подписка/отписка по сообщениям клиента
    - Рассылку сообщения шины всем подписчикам топика
    """

    def __init__(
        self,
        registry: SubscriptionRegistry | None = None,
        send_timeout: float = 2.0,
    ) -> None:
        self.registry = registry or SubscriptionRegistry()
        self._send_timeout = send_timeout

        # connection_id -> ConnectionInfo
        self._connections: dict[str, ConnectionInfo] = {}

        # Для статистики
        self._total_connections: int = 0
        self._total_messages_sent: int = 0
        self._failed_sends: int = 0

    @property
    def active_connections(self) -> int:
        """Количество активных соединений."""
        return len(self._connections)

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self._connections

    # =========================================================================
    # ЖИЗНЕННЫЙ ЦИКЛ СОЕДИНЕНИЯ
    # =========================================================================

    async def connect(self, websocket: WebSocket) -> str:
        """Принять соединение, выдать connection_id и отправить приветствие."""
        await websocket.accept()

        connection_id = uuid.uuid4().hex
        self._connections[connection_id] = ConnectionInfo(connection_id=connection_id, websocket=websocket)
        self._total_connections += 1

        await self.send_personal(connection_id, server_message(ServerEvent.CONNECTED, {
            "message": "Connected to DropMate live tracking",
            "connectionId": connection_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }))
        await log_debug(f"WS подключение {connection_id}")
        return connection_id

    async def disconnect(self, connection_id: str) -> None:
        """Отключить клиента и снять все его подписки. Повторный вызов ничего не делает."""
        conn = self._connections.pop(connection_id, None)
        dropped = self.registry.drop_connection(connection_id)
        if conn is None:
            return

        conn.state = ConnectionState.DISCONNECTED
        await self._close_connection(conn)
        await log_debug(f"WS отключение {connection_id}, снято подписок: {dropped}")

    async def close_all(self) -> None:
        for connection_id in list(self._connections):
            await self.disconnect(connection_id)

    async def _close_connection(self, conn: ConnectionInfo) -> None:
        """Закрыть соединение."""
        try:
            await conn.websocket.close()
        except Exception:
            # Сокет уже закрыт клиентом
            pass

    # =========================================================================
    # СООБЩЕНИЯ КЛИЕНТА
    # =========================================================================

    async def handle_raw_message(self, connection_id: str, raw: str) -> None:
        """Разобрать текстовый кадр клиента. Некорректный JSON — ответ error."""
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            await self._send_error(connection_id, "Сообщение должно быть JSON-объектом")
            return
        await self.handle_client_message(connection_id, data)

    async def handle_client_message(self, connection_id: str, data: Any) -> None:
        """
        Обработать сообщение клиента.

        Входящие сообщения:
        - {"event": "subscribe:driver", "data": 7}
        - {"event": "subscribe:shipment", "data": 5}
        - {"event": "unsubscribe:driver" | "unsubscribe:shipment", "data": id}
        - {"event": "ping"}

        Неизвестное событие не разрывает соединение.
        """
        if not isinstance(data, dict):
            await self._send_error(connection_id, "Сообщение должно быть JSON-объектом")
            return

        event = data.get("event")

        if event == ClientEvent.PING.value:
            await self.send_personal(connection_id, server_message(ServerEvent.PONG, {
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }))
            return

        if not isinstance(event, str) or event not in _SUBSCRIPTION_EVENTS:
            await self._send_error(connection_id, f"Неизвестное событие: {event!r}", event=event)
            return

        is_subscribe, kind = _SUBSCRIPTION_EVENTS[event]
        try:
            topic = _entity_topic(kind, data.get("data"))
        except ValidationError as e:
            await self._send_error(connection_id, e.message, event=event)
            return

        if is_subscribe:
            self.registry.subscribe(connection_id, topic)
            reply = ServerEvent.SUBSCRIBED
        else:
            self.registry.unsubscribe(connection_id, topic)
            reply = ServerEvent.UNSUBSCRIBED

        await self.send_personal(connection_id, server_message(reply, {"topic": topic}))

    async def _send_error(self, connection_id: str, message: str, event: Any = None) -> None:
        await self.send_personal(connection_id, server_message(ServerEvent.ERROR, {
            "message": message,
            "event": event,
        }))

    # =========================================================================
    # ОТПРАВКА
    # =========================================================================

    async def send_personal(self, connection_id: str, message: dict[str, Any]) -> bool:
        """
        Отправить сообщение конкретному соединению.

        Returns:
            True если отправлено; при ошибке или таймауте соединение отключается
        """
        conn = self._connections.get(connection_id)
        if conn is None:
            return False

        try:
            await asyncio.wait_for(conn.websocket.send_json(message), timeout=self._send_timeout)
        except Exception as e:
            self._failed_sends += 1
            await log_warning(f"Отправка в {connection_id} не удалась ({type(e).__name__}), отключаем")
            await self.disconnect(connection_id)
            return False

        self._total_messages_sent += 1
        return True

    async def deliver(self, topic: str, message: dict[str, Any]) -> int:
        """
        Отправить сообщение всем подписчикам топика параллельно.
        Медленное или упавшее соединение отключается и не задерживает остальных.

        Returns:
            Количество успешно отправленных сообщений
        """
        subscribers = self.registry.subscribers_of(topic)
        if not subscribers:
            return 0

        results = await asyncio.gather(
            *(self.send_personal(connection_id, message) for connection_id in subscribers),
        )
        return sum(1 for ok in results if ok)

    async def on_channel_message(self, topic: str, payload: dict[str, Any]) -> None:
        """Обработчик шины: топик -> событие клиента -> рассылка."""
        try:
            kind, _ = parse_topic(topic)
        except ValidationError:
            await log_warning(f"Сообщение из шины с некорректным топиком: {topic!r}")
            return

        sent = await self.deliver(topic, server_message(_UPDATE_EVENTS[kind], payload))
        if sent:
            await log_info(f"{topic}: доставлено {sent}", type_msg=TypeMsg.DEBUG)

    # =========================================================================
    # СТАТИСТИКА
    # =========================================================================

    def get_connection_topics(self, connection_id: str) -> set[str]:
        """Получить все подписки соединения."""
        return self.registry.topics_of(connection_id)

    def get_stats(self) -> dict[str, Any]:
        """Получить статистику."""
        registry_stats = self.registry.stats()
        return {
            "active_connections": len(self._connections),
            "total_topics": registry_stats["topics"],
            "total_subscriptions": registry_stats["subscriptions"],
            "total_connections_ever": self._total_connections,
            "total_messages_sent": self._total_messages_sent,
            "failed_sends": self._failed_sends,
            "connections": {
                connection_id: sorted(self.registry.topics_of(connection_id))
                for connection_id in self._connections
            },
        }
