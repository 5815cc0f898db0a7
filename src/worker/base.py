# src/worker/base.py
"""
Базовый класс для периодических воркеров.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any

from src.common.constants import TypeMsg
from src.common.logger import log_error, log_info
from src.infra.database import DatabaseManager


class BaseWorker(ABC):
    """
    Базовый класс для всех воркеров.
    Выполняет run_once() с заданным интервалом, пока воркер запущен.
    """

    def __init__(self, db: DatabaseManager, interval_seconds: float = 3600) -> None:
        """
        Инициализирует воркер.

        Args:
            db: Менеджер БД
            interval_seconds: Пауза между запусками
        """
        self.db = db
        self.interval_seconds = interval_seconds
        self._running = False
        self._tasks: list[asyncio.Task] = []
        self.runs = 0
        self.last_result: Any = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Имя воркера."""
        pass

    @abstractmethod
    async def run_once(self) -> Any:
        """Один проход работы воркера."""
        pass

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Запускает воркер."""
        if self._running:
            return

        self._running = True
        self._tasks.append(asyncio.create_task(self._loop()))
        await log_info(
            f"Воркер {self.name} запущен (интервал {self.interval_seconds} с)",
            type_msg=TypeMsg.INFO,
        )

    async def stop(self) -> None:
        """Останавливает воркер."""
        if not self._running:
            return

        self._running = False

        # Отменяем все задачи
        for task in self._tasks:
            task.cancel()

        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

        self._tasks.clear()
        await log_info(f"Воркер {self.name} остановлен", type_msg=TypeMsg.INFO)

    async def _loop(self) -> None:
        while self._running:
            await self._run_safely()
            await asyncio.sleep(self.interval_seconds)

    async def _run_safely(self) -> None:
        """Выполняет run_once; ошибка одного прохода не останавливает воркер."""
        try:
            self.last_result = await self.run_once()
            self.runs += 1
        except asyncio.CancelledError:
            raise
        except Exception as e:
            await log_error(f"Ошибка в воркере {self.name}: {e}", exc_info=True)
