# src/services/realtime_ws/subscription_registry.py
"""
Реестр подписок: connection_id <-> topic.

Живёт только в памяти процесса шлюза.
Все методы синхронные и вызываются из одного event loop.
"""

from __future__ import annotations

from typing import Any


class SubscriptionRegistry:
    """Двусторонний индекс подписок."""

    def __init__(self) -> None:
        # topic -> connection_ids
        self._by_topic: dict[str, set[str]] = {}
        # connection_id -> topics
        self._by_connection: dict[str, set[str]] = {}

    def subscribe(self, connection_id: str, topic: str) -> bool:
        """Подписать соединение на топик. False — подписка уже была."""
        topics = self._by_connection.setdefault(connection_id, set())
        if topic in topics:
            return False
        topics.add(topic)
        self._by_topic.setdefault(topic, set()).add(connection_id)
        return True

    def unsubscribe(self, connection_id: str, topic: str) -> bool:
        """Отписать соединение от топика. Отсутствующая подписка — не ошибка."""
        topics = self._by_connection.get(connection_id)
        if not topics or topic not in topics:
            return False

        topics.discard(topic)
        if not topics:
            del self._by_connection[connection_id]

        subscribers = self._by_topic.get(topic)
        if subscribers is not None:
            subscribers.discard(connection_id)
            if not subscribers:
                del self._by_topic[topic]
        return True

    def drop_connection(self, connection_id: str) -> int:
        """Снимает все подписки соединения за один шаг. Возвращает их количество."""
        topics = self._by_connection.pop(connection_id, set())
        for topic in topics:
            subscribers = self._by_topic.get(topic)
            if subscribers is None:
                continue
            subscribers.discard(connection_id)
            if not subscribers:
                del self._by_topic[topic]
        return len(topics)

    def subscribers_of(self, topic: str) -> set[str]:
        """Копия множества подписчиков топика."""
        return set(self._by_topic.get(topic, ()))

    def topics_of(self, connection_id: str) -> set[str]:
        return set(self._by_connection.get(connection_id, ()))

    def stats(self) -> dict[str, Any]:
        return {
            "connections": len(self._by_connection),
            "topics": len(self._by_topic),
            "subscriptions": sum(len(topics) for topics in self._by_connection.values()),
        }
