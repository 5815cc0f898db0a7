# src/services/shipments/dependencies.py
from fastapi import Request

from src.infra.database import DatabaseManager
from src.services.shipment_events.repository import ShipmentEventRepository
from src.services.shipments.repository import ShipmentRepository
from src.services.shipments.service import ShipmentService


def get_db(request: Request) -> DatabaseManager:
    return request.app.state.db


def get_shipment_service(request: Request) -> ShipmentService:
    db = get_db(request)
    return ShipmentService(db, ShipmentRepository(db), ShipmentEventRepository(db))
