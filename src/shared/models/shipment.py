# src/shared/models/shipment.py
"""
DTO отправления (владелец — сервис shipments).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field

from src.shared.models.enums import ShipmentStatus
from src.shared.models.shipment_event import ShipmentEvent


class Shipment(BaseModel):
    """Отправление."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    status: ShipmentStatus
    driver_id: int | None = None
    order_id: int | None = None
    tracking_number: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Shipment:
        return cls.model_validate(dict(record))


class CreateShipmentRequest(BaseModel):
    """Создание отправления."""

    model_config = ConfigDict(populate_by_name=True)

    order_id: int | None = Field(default=None, alias="orderId")
    tracking_number: str | None = Field(default=None, alias="trackingNumber", max_length=64)
    user_id: int | None = Field(default=None, alias="userId")


class AssignDriverRequest(BaseModel):
    """Назначение водителя."""

    model_config = ConfigDict(populate_by_name=True)

    driver_id: int = Field(alias="driverId")
    user_id: int | None = Field(default=None, alias="userId")


class UpdateStatusRequest(BaseModel):
    """Смена статуса."""

    model_config = ConfigDict(populate_by_name=True)

    status: ShipmentStatus
    user_id: int | None = Field(default=None, alias="userId")
    metadata: dict[str, Any] = Field(default_factory=dict)


class EventNoteRequest(BaseModel):
    """Заметка или проблема по отправлению."""

    model_config = ConfigDict(populate_by_name=True)

    text: str = Field(..., min_length=1, max_length=2000)
    user_id: int | None = Field(default=None, alias="userId")
    metadata: dict[str, Any] = Field(default_factory=dict)


class StatusChangeResponse(BaseModel):
    """Результат смены статуса: отправление и записанное событие (None для no-op)."""

    shipment: Shipment
    event: ShipmentEvent | None = None
