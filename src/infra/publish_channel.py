# src/infra/publish_channel.py
"""
Шина публикаций по топикам (fire-and-forget).

Производственная реализация — Redis Pub/Sub:
- publish кладёт сообщение в ограниченную очередь процесса и сразу возвращается;
- единственная задача-отправитель разбирает очередь по порядку (FIFO),
  сама переподключается с экспоненциальной задержкой;
- подписка по паттерну через PSUBSCRIBE, слушатель тоже переподключается.

InMemoryPublishChannel — та же семантика внутри процесса (тесты, локальный запуск).
"""

from __future__ import annotations

import asyncio
import json
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable

import redis.asyncio as redis
from redis.exceptions import RedisError

from src.common.constants import TypeMsg
from src.common.logger import log_debug, log_error, log_info, log_warning
from src.core.exceptions import TransportUnavailable
from src.core.topics import is_valid_topic, topic_matches

MessageHandler = Callable[[str, dict[str, Any]], Awaitable[None]]

TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (
    RedisError,
    OSError,
    asyncio.TimeoutError,
)


def encode_payload(payload: dict[str, Any]) -> str:
    """Сериализует payload в JSON (datetime и прочее — через str)."""
    return json.dumps(payload, ensure_ascii=False, default=str)


def decode_payload(raw: str | bytes) -> dict[str, Any] | None:
    """Разбирает JSON из шины; None, если это не JSON-объект."""
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


class PublishChannel(ABC):
    """Абстрактная шина публикаций."""

    @abstractmethod
    async def start(self) -> None:
        ...

    @abstractmethod
    async def stop(self) -> None:
        ...

    @abstractmethod
    async def publish(self, topic: str, payload: dict[str, Any]) -> bool:
        """
        Публикует payload в топик.
        Никогда не поднимает исключение; False — сообщение отброшено.
        """

    @abstractmethod
    async def subscribe_pattern(self, pattern: str, handler: MessageHandler) -> None:
        """Регистрирует handler(topic, payload) для всех топиков, подходящих под паттерн."""

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        ...


# =============================================================================
# REDIS
# =============================================================================

class RedisPublishChannel(PublishChannel):
    """
    Шина на Redis Pub/Sub.

    Пока транспорт недоступен, publish отбрасывает сообщения:
    устаревшая координата никому не нужна, следующая придёт через секунды.
    """

    def __init__(
        self,
        url: str,
        queue_size: int = 10000,
        publish_timeout: float = 0.5,
        reconnect_delay: float = 1.0,
        reconnect_delay_max: float = 30.0,
        client_factory: Callable[[], redis.Redis] | None = None,
    ) -> None:
        self._url = url
        self._queue_size = queue_size
        self._publish_timeout = publish_timeout
        self._reconnect_delay = reconnect_delay
        self._reconnect_delay_max = reconnect_delay_max
        self._client_factory = client_factory or self._default_client

        self._queue: asyncio.Queue[tuple[str, str]] | None = None
        self._publisher: redis.Redis | None = None
        self._sender_task: asyncio.Task | None = None
        self._listener_task: asyncio.Task | None = None
        self._pubsub: Any = None

        self._handlers: dict[str, MessageHandler] = {}
        self._running = False
        self._transport_up = False
        self.dropped = 0

    def _default_client(self) -> redis.Redis:
        return redis.from_url(self._url, decode_responses=True)

    @property
    def is_connected(self) -> bool:
        return self._running and self._transport_up

    def _next_delay(self, delay: float) -> float:
        return min(delay * 2, self._reconnect_delay_max)

    # =========================================================================
    # ЖИЗНЕННЫЙ ЦИКЛ
    # =========================================================================

    async def start(self) -> None:
        """Запускает задачу-отправителя и, если есть подписки, слушателя."""
        if self._running:
            return

        self._queue = asyncio.Queue(maxsize=self._queue_size)
        self._running = True
        await self._connect_publisher()

        self._sender_task = asyncio.create_task(self._sender_loop())
        if self._handlers:
            self._listener_task = asyncio.create_task(self._listen_loop())

        await log_info(f"Шина публикаций Redis запущена ({self._url.split('@')[-1]})", type_msg=TypeMsg.INFO)

    async def stop(self) -> None:
        """Останавливает фоновые задачи и закрывает соединения."""
        self._running = False

        for task in (self._sender_task, self._listener_task):
            if task is None:
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._sender_task = None
        self._listener_task = None

        await self._close_publisher()
        self._transport_up = False
        await log_info("Шина публикаций Redis остановлена", type_msg=TypeMsg.INFO)

    async def _connect_publisher(self) -> bool:
        """Пытается открыть соединение для публикации. True — транспорт доступен."""
        try:
            client = self._client_factory()
            await asyncio.wait_for(client.ping(), timeout=self._publish_timeout)
        except TRANSPORT_ERRORS as e:
            self._transport_up = False
            await log_warning(f"Redis недоступен для публикации: {e}")
            return False

        self._publisher = client
        self._transport_up = True
        return True

    async def _close_publisher(self) -> None:
        if self._publisher is None:
            return
        try:
            await self._publisher.aclose()
        except TRANSPORT_ERRORS as e:
            await log_debug(f"Ошибка при закрытии соединения Redis: {e}")
        self._publisher = None

    # =========================================================================
    # ПУБЛИКАЦИЯ
    # =========================================================================

    async def publish(self, topic: str, payload: dict[str, Any]) -> bool:
        if not self._running or self._queue is None:
            await self._report_drop(topic, "шина не запущена")
            return False
        if not is_valid_topic(topic):
            await log_warning(f"Публикация в некорректный топик отклонена: {topic!r}")
            return False
        if not self._transport_up:
            await self._report_drop(topic, "транспорт недоступен")
            return False

        try:
            self._queue.put_nowait((topic, encode_payload(payload)))
        except asyncio.QueueFull:
            await self._report_drop(topic, "очередь публикаций переполнена")
            return False
        return True

    async def _report_drop(self, topic: str, reason: str) -> None:
        self.dropped += 1
        error = TransportUnavailable(f"Сообщение для {topic} отброшено: {reason}")
        await log_warning(error.message, extra={"error_code": error.error_code, "dropped": self.dropped})

    async def _sender_loop(self) -> None:
        """Разбирает очередь; при потере транспорта переподключается с back-off."""
        assert self._queue is not None
        delay = self._reconnect_delay

        while self._running:
            if not self._transport_up:
                await asyncio.sleep(delay)
                if await self._connect_publisher():
                    await log_info("Соединение с Redis для публикации восстановлено", type_msg=TypeMsg.INFO)
                    delay = self._reconnect_delay
                else:
                    delay = self._next_delay(delay)
                continue

            topic, message = await self._queue.get()
            try:
                await asyncio.wait_for(
                    self._publisher.publish(topic, message),
                    timeout=self._publish_timeout,
                )
            except TRANSPORT_ERRORS as e:
                self.dropped += 1
                self._transport_up = False
                await log_error(f"Ошибка публикации в {topic}, сообщение отброшено: {e}")
                await self._close_publisher()
            finally:
                self._queue.task_done()

    # =========================================================================
    # ПОДПИСКА
    # =========================================================================

    async def subscribe_pattern(self, pattern: str, handler: MessageHandler) -> None:
        self._handlers[pattern] = handler

        if not self._running:
            return
        if self._listener_task is None:
            self._listener_task = asyncio.create_task(self._listen_loop())
        elif self._pubsub is not None:
            try:
                await self._pubsub.psubscribe(pattern)
            except TRANSPORT_ERRORS as e:
                # Слушатель переподпишется на все паттерны после переподключения
                await log_warning(f"Не удалось подписаться на {pattern}: {e}")

    async def _listen_loop(self) -> None:
        """PSUBSCRIBE на все паттерны и чтение сообщений; переподключение с back-off."""
        delay = self._reconnect_delay

        while self._running:
            client = None
            try:
                client = self._client_factory()
                self._pubsub = client.pubsub()
                await self._pubsub.psubscribe(*self._handlers.keys())
                await log_info(f"Подписка на паттерны: {sorted(self._handlers)}", type_msg=TypeMsg.INFO)
                delay = self._reconnect_delay

                while self._running:
                    message = await self._pubsub.get_message(
                        ignore_subscribe_messages=True,
                        timeout=1.0,
                    )
                    if message is None:
                        continue
                    await self._dispatch(message)
            except asyncio.CancelledError:
                raise
            except TRANSPORT_ERRORS as e:
                await log_error(f"Слушатель Redis потерял соединение: {e}; повтор через {delay:.1f} с")
                await asyncio.sleep(delay)
                delay = self._next_delay(delay)
            finally:
                await self._close_pubsub(client)

    async def _close_pubsub(self, client: Any) -> None:
        pubsub, self._pubsub = self._pubsub, None
        try:
            if pubsub is not None:
                await pubsub.aclose()
            if client is not None:
                await client.aclose()
        except TRANSPORT_ERRORS as e:
            await log_debug(f"Ошибка при закрытии подписки Redis: {e}")

    async def _dispatch(self, message: dict[str, Any]) -> None:
        """Проверяет топик по грамматике и передаёт payload обработчику паттерна."""
        if message.get("type") != "pmessage":
            return

        pattern = message.get("pattern")
        topic = message.get("channel")
        if isinstance(pattern, bytes):
            pattern = pattern.decode("utf-8")
        if isinstance(topic, bytes):
            topic = topic.decode("utf-8")

        handler = self._handlers.get(pattern)
        if handler is None:
            return
        if not is_valid_topic(topic) or not topic_matches(pattern, topic):
            await log_debug(f"Пропущен топик вне грамматики: {topic!r} (паттерн {pattern!r})")
            return

        payload = decode_payload(message.get("data", ""))
        if payload is None:
            await log_warning(f"Некорректный payload в {topic}, сообщение пропущено")
            return

        try:
            await handler(topic, payload)
        except Exception as e:
            await log_error(f"Ошибка обработчика для {topic}: {e}", exc_info=True)


# =============================================================================
# IN-MEMORY
# =============================================================================

class InMemoryPublishChannel(PublishChannel):
    """
    Шина внутри процесса.
    Payload проходит через JSON, как и в Redis, чтобы получатели видели те же типы.
    """

    def __init__(self) -> None:
        self._handlers: list[tuple[str, MessageHandler]] = []
        self._running = False
        self.published: list[tuple[str, dict[str, Any]]] = []

    @property
    def is_connected(self) -> bool:
        return self._running

    async def start(self) -> None:
        self._running = True

    async def stop(self) -> None:
        self._running = False

    async def publish(self, topic: str, payload: dict[str, Any]) -> bool:
        if not self._running:
            await log_warning(f"Шина не запущена, сообщение для {topic} отброшено")
            return False
        if not is_valid_topic(topic):
            await log_warning(f"Публикация в некорректный топик отклонена: {topic!r}")
            return False

        wire_payload = decode_payload(encode_payload(payload)) or {}
        self.published.append((topic, wire_payload))

        for pattern, handler in list(self._handlers):
            if not topic_matches(pattern, topic):
                continue
            try:
                await handler(topic, dict(wire_payload))
            except Exception as e:
                await log_error(f"Ошибка обработчика для {topic}: {e}", exc_info=True)
        return True

    async def subscribe_pattern(self, pattern: str, handler: MessageHandler) -> None:
        self._handlers.append((pattern, handler))

    def topics_published(self) -> list[str]:
        return [topic for topic, _ in self.published]


def create_publish_channel(url: str | None = None) -> PublishChannel:
    """Создаёт Redis-шину по настройкам из конфигурации."""
    from src.config import settings

    tracking = settings.tracking
    return RedisPublishChannel(
        url=url or settings.redis.url,
        queue_size=tracking.PUBLISH_QUEUE_SIZE,
        publish_timeout=tracking.PUBLISH_TIMEOUT,
        reconnect_delay=tracking.RECONNECT_DELAY,
        reconnect_delay_max=tracking.RECONNECT_DELAY_MAX,
    )
