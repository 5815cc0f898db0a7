# src/services/shipments/app.py
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.config import settings
from src.infra.database import DatabaseManager, close_db, init_db
from src.services.errors import install_exception_handlers
from src.services.shipments.routes import router
from src.shared.models.common import HealthStatus

SERVICE_NAME = "shipments_service"


def create_app(db: DatabaseManager | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned_db = db is None
        app.state.db = await init_db() if owned_db else db
        yield
        if owned_db:
            await close_db(app.state.db)

    app = FastAPI(
        title="Shipments Service",
        version=settings.system.VERSION,
        lifespan=lifespan,
    )
    install_exception_handlers(app)

    app.include_router(router, prefix="/api")

    @app.get("/health", response_model=HealthStatus)
    async def health_check():
        return HealthStatus.from_checks(
            SERVICE_NAME,
            {"postgres": await app.state.db.health_check()},
            version=settings.system.VERSION,
            failed_status="unhealthy",
        )

    return app


app = create_app()
