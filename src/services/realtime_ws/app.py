# src/services/realtime_ws/app.py
"""
FastAPI приложение для Realtime WebSocket Gateway.

WebSocket endpoints:
- /ws — подписки на driver:<id>:location и shipment:<id>:location

REST endpoints:
- GET /health — проверка здоровья
- GET /stats — статистика соединений и подписок
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from src.common.logger import log_error
from src.config import settings
from src.core.topics import DRIVER_LOCATION_PATTERN, SHIPMENT_LOCATION_PATTERN
from src.infra.publish_channel import PublishChannel, create_publish_channel
from src.services.errors import install_exception_handlers
from src.services.realtime_ws.connection_manager import ConnectionManager
from src.shared.models.common import HealthStatus

SERVICE_NAME = "realtime_ws_gateway"


# === MODELS ===

class StatsResponse(BaseModel):
    """Статистика соединений."""
    active_connections: int
    total_topics: int
    total_subscriptions: int
    total_connections_ever: int
    total_messages_sent: int
    failed_sends: int
    connections: dict[str, list[str]]


# === APP FACTORY ===

def create_app(channel: PublishChannel | None = None) -> FastAPI:
    """Собирает приложение; переданная шина считается внешней и не останавливается."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned_channel = channel is None
        app_channel = create_publish_channel() if owned_channel else channel

        manager = ConnectionManager(send_timeout=settings.tracking.WS_SEND_TIMEOUT)
        await app_channel.subscribe_pattern(DRIVER_LOCATION_PATTERN, manager.on_channel_message)
        await app_channel.subscribe_pattern(SHIPMENT_LOCATION_PATTERN, manager.on_channel_message)
        await app_channel.start()

        app.state.channel = app_channel
        app.state.manager = manager

        yield

        await manager.close_all()
        if owned_channel:
            await app_channel.stop()

    app = FastAPI(
        title="Realtime WebSocket Gateway",
        description="WebSocket сервис для live-tracking водителей и отправлений.",
        version=settings.system.VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    install_exception_handlers(app)

    # === HEALTH CHECK ===

    @app.get("/health", response_model=HealthStatus, tags=["Health"])
    async def health_check() -> HealthStatus:
        """Проверка здоровья сервиса."""
        return HealthStatus.from_checks(
            SERVICE_NAME,
            {"publish_channel": app.state.channel.is_connected},
            version=settings.system.VERSION,
        )

    # === STATS ===

    @app.get("/stats", response_model=StatsResponse, tags=["Stats"])
    async def get_stats() -> StatsResponse:
        """Получить статистику соединений."""
        return StatsResponse(**app.state.manager.get_stats())

    # === WEBSOCKET ===

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket) -> None:
        """
        WebSocket для наблюдателей.

        Входящие сообщения:
        - {"event": "subscribe:driver", "data": 7}
        - {"event": "subscribe:shipment", "data": 5}
        - {"event": "unsubscribe:driver" | "unsubscribe:shipment", "data": id}
        - {"event": "ping"}

        Исходящие:
        - {"event": "driver_location_updated", "data": {...}}
        - {"event": "shipment_location_updated", "data": {..., "shipmentId": 5}}
        """
        manager: ConnectionManager = websocket.app.state.manager
        connection_id = await manager.connect(websocket)

        try:
            while manager.is_connected(connection_id):
                raw = await websocket.receive_text()
                await manager.handle_raw_message(connection_id, raw)
        except WebSocketDisconnect:
            pass
        except Exception as e:
            if manager.is_connected(connection_id):
                await log_error(f"Ошибка WebSocket {connection_id}: {e}")
        finally:
            await manager.disconnect(connection_id)

    return app


app = create_app()


# === STARTUP ===

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.deployment.REALTIME_WS_GATEWAY_PORT)
