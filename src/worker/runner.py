# src/worker/runner.py
"""
Запускалка фоновых воркеров.
"""

from __future__ import annotations

import asyncio

from src.common.constants import TypeMsg
from src.common.logger import log_error, log_info
from src.infra.database import DatabaseManager, close_db, init_db
from src.worker.base import BaseWorker
from src.worker.retention import create_retention_worker


async def run_workers(db: DatabaseManager | None = None) -> None:
    """
    Запускает RetentionWorker и ждёт отмены.

    Args:
        db: Готовый менеджер БД. Если None, подключение создаётся и закрывается здесь.
    """
    await log_info("Запуск воркеров...", type_msg=TypeMsg.INFO)

    owned_db = db is None
    if owned_db:
        db = await init_db()

    workers: list[BaseWorker] = [
        create_retention_worker(db),
    ]

    try:
        for worker in workers:
            await worker.start()

        await log_info(f"Запущено {len(workers)} воркеров", type_msg=TypeMsg.INFO)

        # Ждём завершения (Ctrl+C)
        while True:
            await asyncio.sleep(1)

    except asyncio.CancelledError:
        await log_info("Получен сигнал остановки", type_msg=TypeMsg.INFO)
    except Exception as e:
        await log_error(f"Критическая ошибка: {e}")
    finally:
        for worker in workers:
            await worker.stop()

        if owned_db:
            await close_db(db)

        await log_info("Воркеры остановлены", type_msg=TypeMsg.INFO)
