# src/shared/models/location.py
"""
DTO геолокации водителей.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field

from src.shared.models.enums import ShipmentStatus


class LocationInput(BaseModel):
    """
    Входящая координата от водителя.
    Диапазоны проверяет хранилище: ошибка должна быть ValidationError (400), а не 422.
    """
    latitude: float | None = None
    longitude: float | None = None
    accuracy: float | None = None


class LocationSample(BaseModel):
    """Сохранённая координата водителя (неизменяемая)."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    driver_id: int
    latitude: float
    longitude: float
    accuracy: float | None = None
    occurred_at: datetime

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> LocationSample:
        return cls.model_validate(dict(record))

    def to_broadcast_payload(self) -> dict[str, Any]:
        """Payload для топика водителя."""
        return {
            "driverId": self.driver_id,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "accuracy": self.accuracy,
            "timestamp": self.occurred_at.isoformat(),
        }


class CurrentLocation(BaseModel):
    """Последняя координата водителя в составе ответа по отправлению."""
    latitude: float
    longitude: float
    accuracy: float | None = None
    timestamp: datetime


class ShipmentLocation(BaseModel):
    """Отправление + назначенный водитель + его последняя координата."""

    model_config = ConfigDict(populate_by_name=True)

    shipment_id: int = Field(alias="shipmentId")
    tracking_number: str | None = Field(default=None, alias="trackingNumber")
    status: ShipmentStatus
    driver_id: int | None = Field(default=None, alias="driverId")
    driver_name: str | None = Field(default=None, alias="driverName")
    vehicle_type: str | None = Field(default=None, alias="vehicleType")
    current_location: CurrentLocation | None = Field(default=None, alias="currentLocation")
    message: str | None = None


class LocationIngestResponse(BaseModel):
    """Ответ на запись координаты."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    event: LocationSample
    broadcasted_to_shipments: list[int] = Field(default_factory=list, alias="broadcastedToShipments")


class LocationHistoryResponse(BaseModel):
    """История координат водителя, новые первыми."""

    model_config = ConfigDict(populate_by_name=True)

    driver_id: int = Field(alias="driverId")
    count: int
    locations: list[LocationSample]
