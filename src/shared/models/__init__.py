# src/shared/models/__init__.py
"""
Общие DTO и Pydantic-модели для межсервисного взаимодействия.
"""

from src.shared.models.enums import (
    ACTIVE_SHIPMENT_STATUSES,
    ShipmentEventType,
    ShipmentStatus,
    UserRole,
)
from src.shared.models.location import (
    CurrentLocation,
    LocationHistoryResponse,
    LocationIngestResponse,
    LocationInput,
    LocationSample,
    ShipmentLocation,
)
from src.shared.models.shipment_event import (
    CustomerVisibleEvent,
    NewShipmentEvent,
    ShipmentEvent,
)
from src.shared.models.shipment import Shipment
from src.shared.models.common import ErrorResponse, HealthStatus

__all__ = [
    # Enums
    "ShipmentStatus",
    "ShipmentEventType",
    "UserRole",
    "ACTIVE_SHIPMENT_STATUSES",
    # Location
    "LocationInput",
    "LocationSample",
    "CurrentLocation",
    "ShipmentLocation",
    "LocationIngestResponse",
    "LocationHistoryResponse",
    # Events
    "NewShipmentEvent",
    "ShipmentEvent",
    "CustomerVisibleEvent",
    # Shipment
    "Shipment",
    # Common
    "ErrorResponse",
    "HealthStatus",
]
