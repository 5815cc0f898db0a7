#!/usr/bin/env python3
# main.py
"""
Главная точка входа DropMate Tracking.
Запускает HTTP-сервисы трекинга, WebSocket-шлюз или воркер в зависимости от режима.
"""

from __future__ import annotations

import asyncio
import signal
import sys

from src.config import settings
from src.common.logger import setup_logging, log_info, log_error
from src.common.constants import TypeMsg


# Глобальный флаг для graceful shutdown
_shutdown_event: asyncio.Event | None = None
_running_tasks: list[asyncio.Task] = []

VALID_MODES = ("realtime_location", "realtime_ws", "shipments", "worker", "all")


def setup_signal_handlers() -> None:
    """Настраивает обработчики сигналов для graceful shutdown."""
    global _shutdown_event
    _shutdown_event = asyncio.Event()

    def signal_handler(sig: int) -> None:
        """Обработчик сигналов SIGINT и SIGTERM."""
        if _shutdown_event and not _shutdown_event.is_set():
            print(f"\nПолучен сигнал остановки (sig={sig}), завершаем работу...")
            _shutdown_event.set()
            # Отменяем все запущенные задачи
            for task in _running_tasks:
                if not task.done():
                    task.cancel()

    try:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))
    except NotImplementedError:
        # Windows не поддерживает add_signal_handler
        signal.signal(signal.SIGINT, lambda s, f: signal_handler(s))
        signal.signal(signal.SIGTERM, lambda s, f: signal_handler(s))


async def _serve(app_path: str, port: int, title: str) -> None:
    """Запускает uvicorn-сервер внутри текущего event loop."""
    import uvicorn

    await log_info(f"Запуск {title} на порту {port}...", type_msg=TypeMsg.INFO)

    config = uvicorn.Config(
        app_path,
        host="0.0.0.0",
        port=port,
        log_level="debug" if settings.system.DEBUG else "info",
    )

    server = uvicorn.Server(config)
    try:
        await server.serve()
    except asyncio.CancelledError:
        await log_info(f"{title}: graceful shutdown", type_msg=TypeMsg.DEBUG)
        await server.shutdown()


# === Сервисы ===

async def run_realtime_location() -> None:
    """Приём координат водителей и их трансляция."""
    await _serve(
        "src.services.realtime_location.app:app",
        settings.deployment.REALTIME_LOCATION_INGEST_PORT,
        "Realtime Location Ingest",
    )


async def run_realtime_ws() -> None:
    """WebSocket-шлюз подписок."""
    await _serve(
        "src.services.realtime_ws.app:app",
        settings.deployment.REALTIME_WS_GATEWAY_PORT,
        "Realtime WebSocket Gateway",
    )


async def run_shipments() -> None:
    """Статусы отправлений и журнал событий."""
    await _serve(
        "src.services.shipments.app:app",
        settings.deployment.SHIPMENTS_SERVICE_PORT,
        "Shipments Service",
    )


async def run_worker() -> None:
    """Фоновая очистка устаревших координат и событий."""
    from src.worker.runner import run_workers

    await log_info("Запуск воркеров...", type_msg=TypeMsg.INFO)
    await run_workers()


RUNNERS = {
    "realtime_location": run_realtime_location,
    "realtime_ws": run_realtime_ws,
    "shipments": run_shipments,
    "worker": run_worker,
}


async def main(mode: str | None = None) -> None:
    """
    Главная функция запуска.

    Args:
        mode: Режим запуска (realtime_location, realtime_ws, shipments, worker, all).
              Если None, берётся COMPONENT_MODE из настроек.
    """
    global _running_tasks

    setup_logging()
    setup_signal_handlers()

    if mode is None:
        mode = settings.system.COMPONENT_MODE

    if mode not in VALID_MODES:
        await log_error(f"Неизвестный режим: {mode}. Допустимые: {', '.join(VALID_MODES)}")
        sys.exit(2)

    await log_info(
        f"DropMate Tracking v{settings.system.VERSION}: запуск в режиме '{mode}'",
        type_msg=TypeMsg.INFO
    )

    runners = list(RUNNERS.values()) if mode == "all" else [RUNNERS[mode]]
    _running_tasks = [asyncio.create_task(runner()) for runner in runners]

    try:
        await asyncio.gather(*_running_tasks, return_exceptions=True)
    except asyncio.CancelledError:
        await log_info("Отмена всех компонентов...", type_msg=TypeMsg.INFO)
        for task in _running_tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*_running_tasks, return_exceptions=True)
    finally:
        await log_info("Приложение остановлено", type_msg=TypeMsg.INFO)


if __name__ == "__main__":
    cli_mode = sys.argv[1] if len(sys.argv) > 1 else None
    try:
        asyncio.run(main(mode=cli_mode))
    except KeyboardInterrupt:
        pass
