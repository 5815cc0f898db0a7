# src/services/realtime_location/dependencies.py
from fastapi import Request

from src.services.realtime_location.service import LocationIngestService


def get_location_service(request: Request) -> LocationIngestService:
    service = getattr(request.app.state, "location_service", None)
    if service is None:
        raise RuntimeError("Service not initialized")
    return service
