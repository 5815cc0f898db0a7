# src/shared/models/shipment_event.py
"""
DTO журнала событий отправления.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.shared.models.enums import ShipmentEventType, ShipmentStatus


def _coerce_metadata(value: Any) -> dict[str, Any]:
    # asyncpg без кодека отдаёт JSONB строкой
    if value is None:
        return {}
    if isinstance(value, (str, bytes)):
        value = json.loads(value)
    if not isinstance(value, dict):
        raise ValueError("metadata должен быть JSON-объектом")
    return value


class NewShipmentEvent(BaseModel):
    """Событие до записи в журнал."""

    shipment_id: int
    event_type: ShipmentEventType
    description: str | None = None
    created_by_user_id: int | None = None
    from_status: ShipmentStatus | None = None
    to_status: ShipmentStatus | None = None
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("event_type", mode="before")
    @classmethod
    def normalize_event_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return ShipmentEventType(value)
        return value

    @field_validator("metadata", mode="before")
    @classmethod
    def parse_metadata(cls, value: Any) -> dict[str, Any]:
        return _coerce_metadata(value)

    @property
    def resolved_description(self) -> str:
        """Своё описание или описание типа по умолчанию."""
        return self.description or self.event_type.description


class ShipmentEvent(BaseModel):
    """Запись журнала (только чтение)."""

    model_config = ConfigDict(frozen=True)

    id: int
    shipment_id: int
    event_type: ShipmentEventType
    description: str
    created_by_user_id: int | None = None
    from_status: ShipmentStatus | None = None
    to_status: ShipmentStatus | None = None
    latitude: float | None = None
    longitude: float | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    occurred_at: datetime
    created_by_email: str | None = None
    created_by_name: str | None = None

    @field_validator("event_type", mode="before")
    @classmethod
    def normalize_event_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return ShipmentEventType(value)
        return value

    @field_validator("metadata", mode="before")
    @classmethod
    def parse_metadata(cls, value: Any) -> dict[str, Any]:
        return _coerce_metadata(value)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> ShipmentEvent:
        return cls.model_validate(dict(record))


class CustomerVisibleEvent(BaseModel):
    """
    Проекция события для клиента.
    Имя водителя вместо его идентификатора; только если автор события — водитель.
    """

    event_type: ShipmentEventType
    description: str
    occurred_at: datetime
    to_status: ShipmentStatus | None = None
    driver_name: str | None = None

    @field_validator("event_type", mode="before")
    @classmethod
    def normalize_event_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return ShipmentEventType(value)
        return value

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> CustomerVisibleEvent:
        return cls.model_validate(dict(record))


class ShipmentEventsResponse(BaseModel):
    """Внутренний список событий."""

    model_config = ConfigDict(populate_by_name=True)

    shipment_id: int = Field(alias="shipmentId")
    count: int
    events: list[ShipmentEvent]


class ShipmentHistoryResponse(BaseModel):
    """Клиентская история отправления."""

    model_config = ConfigDict(populate_by_name=True)

    shipment_id: int = Field(alias="shipmentId")
    events: list[CustomerVisibleEvent]
