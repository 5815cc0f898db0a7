# src/services/realtime_location/app.py
"""
FastAPI приложение для Realtime Location Ingest.

Приём координат водителей и их трансляция наблюдателям.

Endpoints:
- POST /api/location/{driver_id} - записать координату и разослать её
- GET /api/location/{driver_id}/latest - последняя координата
- GET /api/location/{driver_id}/history - история координат
- GET /api/location/shipment/{shipment_id} - отправление + водитель + координата
- GET /health, GET /stats
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import Depends, FastAPI, Query
from pydantic import BaseModel

from src.config import settings
from src.infra.database import DatabaseManager, close_db, init_db
from src.infra.publish_channel import PublishChannel, create_publish_channel
from src.services.errors import install_exception_handlers
from src.services.realtime_location.dependencies import get_location_service
from src.services.realtime_location.repository import LocationRepository, MAX_HISTORY_LIMIT
from src.services.realtime_location.resolver import ActiveShipmentResolver
from src.services.realtime_location.service import LocationIngestService
from src.shared.models.common import HealthStatus
from src.shared.models.location import (
    LocationHistoryResponse,
    LocationIngestResponse,
    LocationInput,
    LocationSample,
    ShipmentLocation,
)

SERVICE_NAME = "realtime_location_ingest"


# === MODELS ===

class StatsResponse(BaseModel):
    """Статистика сервиса."""
    total_updates: int
    unique_drivers: int
    published: int
    dropped: int


# === APP FACTORY ===

def create_app(
    db: DatabaseManager | None = None,
    channel: PublishChannel | None = None,
) -> FastAPI:
    """
    Собирает приложение.
    Переданные db/channel считаются внешними: приложение их не закрывает.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned_db = db is None
        owned_channel = channel is None

        app_db = await init_db() if owned_db else db
        app_channel = create_publish_channel() if owned_channel else channel
        await app_channel.start()

        app.state.db = app_db
        app.state.channel = app_channel
        app.state.location_service = LocationIngestService(
            repository=LocationRepository(app_db),
            resolver=ActiveShipmentResolver(app_db),
            channel=app_channel,
        )

        yield

        if owned_channel:
            await app_channel.stop()
        if owned_db:
            await close_db(app_db)

    app = FastAPI(
        title="Realtime Location Ingest",
        description="Приём координат водителей и их трансляция наблюдателям.",
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
            {
                "postgres": await app.state.db.health_check(),
                "publish_channel": app.state.channel.is_connected,
            },
            version=settings.system.VERSION,
        )

    # === STATS ===

    @app.get("/stats", response_model=StatsResponse, tags=["Stats"])
    async def get_stats(
        service: LocationIngestService = Depends(get_location_service),
    ) -> StatsResponse:
        """Получить статистику сервиса."""
        return StatsResponse(**service.get_stats())

    # === LOCATION ENDPOINTS ===

    @app.get(
        "/api/location/shipment/{shipment_id}",
        response_model=ShipmentLocation,
        responses={404: {"description": "Отправление не найдено"}},
        tags=["Location"],
        summary="Локация отправления",
    )
    async def get_shipment_location(
        shipment_id: int,
        service: LocationIngestService = Depends(get_location_service),
    ) -> ShipmentLocation:
        """Отправление, назначенный водитель и его последняя координата."""
        return await service.shipment_location(shipment_id)

    @app.post(
        "/api/location/{driver_id}",
        response_model=LocationIngestResponse,
        status_code=201,
        responses={400: {"description": "Некорректные координаты"}},
        tags=["Location"],
        summary="Записать координату",
    )
    async def record_location(
        driver_id: int,
        body: LocationInput,
        service: LocationIngestService = Depends(get_location_service),
    ) -> LocationIngestResponse:
        """
        Записать координату водителя.

        Сохраняет в PostgreSQL и публикует в топик водителя
        и в топики всех его активных отправлений.
        """
        result = await service.ingest(driver_id, body.latitude, body.longitude, body.accuracy)
        return LocationIngestResponse(
            event=result.sample,
            broadcasted_to_shipments=result.broadcasted_to_shipments,
        )

    @app.get(
        "/api/location/{driver_id}/latest",
        response_model=LocationSample,
        responses={404: {"description": "Нет координат"}},
        tags=["Location"],
        summary="Последняя координата водителя",
    )
    async def get_latest_location(
        driver_id: int,
        service: LocationIngestService = Depends(get_location_service),
    ) -> LocationSample:
        return await service.latest(driver_id)

    @app.get(
        "/api/location/{driver_id}/history",
        response_model=LocationHistoryResponse,
        tags=["Location"],
        summary="История координат водителя",
    )
    async def get_location_history(
        driver_id: int,
        limit: int = Query(default=settings.tracking.HISTORY_DEFAULT_LIMIT, ge=1, le=MAX_HISTORY_LIMIT),
        since: datetime | None = Query(default=None),
        service: LocationIngestService = Depends(get_location_service),
    ) -> LocationHistoryResponse:
        """История координат, новые первыми."""
        locations = await service.history(driver_id, limit=limit, since=since)
        return LocationHistoryResponse(driver_id=driver_id, count=len(locations), locations=locations)

    return app


app = create_app()


# === STARTUP ===

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.deployment.REALTIME_LOCATION_INGEST_PORT)
