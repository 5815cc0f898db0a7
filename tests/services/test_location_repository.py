# tests/services/test_location_repository.py
"""
Тесты хранилища координат и резолвера активных отправлений.
"""

from __future__ import annotations

import json
import math
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from src.core.exceptions import NotFound, ValidationError
from src.services.realtime_location.repository import (
    NO_DRIVER_MESSAGE,
    LocationRepository,
    validate_coordinates,
)
from src.services.realtime_location.resolver import ActiveShipmentResolver
from src.shared.models.enums import ShipmentStatus


class TestValidateCoordinates:
    """Проверка координат до записи."""

    def test_valid(self) -> None:
        assert validate_coordinates(50.45, 30.52, 5) == (50.45, 30.52, 5.0)

    def test_bounds_inclusive(self) -> None:
        assert validate_coordinates(-90, 180) == (-90.0, 180.0, None)
        assert validate_coordinates(90, -180) == (90.0, -180.0, None)

    @pytest.mark.parametrize("lat, lng", [
        (None, 30.0),
        (50.0, None),
        (90.0001, 0.0),
        (-91, 0.0),
        (0.0, 180.5),
        (0.0, -181),
        ("50", 30.0),
        (True, 30.0),
        (math.nan, 30.0),
        (50.0, math.inf),
    ])
    def test_invalid(self, lat, lng) -> None:
        with pytest.raises(ValidationError):
            validate_coordinates(lat, lng)

    def test_negative_accuracy(self) -> None:
        with pytest.raises(ValidationError):
            validate_coordinates(50.0, 30.0, -1)


class TestLocationRepository:
    """Запись и чтение driver_location_events."""

    @pytest.mark.asyncio
    async def test_record_returns_stored_sample(self, mock_db: MagicMock, sample_row: dict) -> None:
        mock_db.fetchrow.return_value = sample_row
        repository = LocationRepository(mock_db)

        sample = await repository.record(7, 50.45, 30.52, 5.0)

        assert sample.id == 1
        assert sample.driver_id == 7
        assert sample.occurred_at == sample_row["occurred_at"]
        query, *args = mock_db.fetchrow.await_args.args
        assert "INSERT INTO driver_location_events" in query
        assert args == [7, 50.45, 30.52, 5.0]

    @pytest.mark.asyncio
    async def test_record_invalid_writes_nothing(self, mock_db: MagicMock) -> None:
        repository = LocationRepository(mock_db)

        with pytest.raises(ValidationError):
            await repository.record(7, 95.0, 30.0)

        mock_db.fetchrow.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_latest(self, mock_db: MagicMock, sample_factory) -> None:
        mock_db.fetchrow.return_value = sample_factory(sample_id=3)
        repository = LocationRepository(mock_db)

        sample = await repository.latest(7)

        assert sample.id == 3
        query = mock_db.fetchrow.await_args.args[0]
        assert "ORDER BY occurred_at DESC, id DESC" in query
        assert "LIMIT 1" in query

    @pytest.mark.asyncio
    async def test_latest_not_found(self, mock_db: MagicMock) -> None:
        repository = LocationRepository(mock_db)

        with pytest.raises(NotFound):
            await repository.latest(404)

    @pytest.mark.asyncio
    async def test_history_newest_first(self, mock_db: MagicMock, sample_factory) -> None:
        mock_db.fetch.return_value = [sample_factory(sample_id=2), sample_factory(sample_id=1)]
        repository = LocationRepository(mock_db)
        since = datetime(2026, 10, 1, tzinfo=timezone.utc)

        samples = await repository.history(7, limit=10, since=since)

        assert [s.id for s in samples] == [2, 1]
        query, *args = mock_db.fetch.await_args.args
        assert "occurred_at >= $3" in query
        assert args == [7, 10, since]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [0, 1001])
    async def test_history_limit_bounds(self, mock_db: MagicMock, limit: int) -> None:
        repository = LocationRepository(mock_db)

        with pytest.raises(ValidationError):
            await repository.history(7, limit=limit)

    @pytest.mark.asyncio
    async def test_shipment_location_with_driver(self, mock_db: MagicMock, now: datetime) -> None:
        mock_db.fetchrow.return_value = {
            "shipment_id": 5,
            "tracking_number": "DM0123456789",
            "status": "in_transit",
            "driver_id": 7,
            "driver_name": "Ivan",
            "vehicle_type": "van",
            "current_location": json.dumps({
                "latitude": 50.45,
                "longitude": 30.52,
                "accuracy": 5.0,
                "timestamp": now.isoformat(),
            }),
        }
        repository = LocationRepository(mock_db)

        result = await repository.shipment_location(5)

        assert result.status == ShipmentStatus.IN_TRANSIT
        assert result.current_location is not None
        assert result.current_location.latitude == 50.45
        assert result.message is None
        dumped = result.model_dump(by_alias=True)
        assert dumped["shipmentId"] == 5
        assert dumped["driverName"] == "Ivan"

    @pytest.mark.asyncio
    async def test_shipment_location_without_driver(self, mock_db: MagicMock) -> None:
        mock_db.fetchrow.return_value = {
            "shipment_id": 5,
            "tracking_number": "DM0123456789",
            "status": "pending",
            "driver_id": None,
            "driver_name": None,
            "vehicle_type": None,
            "current_location": None,
        }
        repository = LocationRepository(mock_db)

        result = await repository.shipment_location(5)

        assert result.driver_id is None
        assert result.current_location is None
        assert result.message == NO_DRIVER_MESSAGE

    @pytest.mark.asyncio
    async def test_shipment_location_not_found(self, mock_db: MagicMock) -> None:
        repository = LocationRepository(mock_db)

        with pytest.raises(NotFound):
            await repository.shipment_location(404)

    @pytest.mark.asyncio
    async def test_purge_older_than(self, mock_db: MagicMock) -> None:
        mock_db.execute.return_value = "DELETE 12"
        repository = LocationRepository(mock_db)

        assert await repository.purge_older_than(30) == 12
        assert mock_db.execute.await_args.args[1] == 30

    @pytest.mark.asyncio
    async def test_purge_requires_positive_days(self, mock_db: MagicMock) -> None:
        repository = LocationRepository(mock_db)

        with pytest.raises(ValidationError):
            await repository.purge_older_than(0)


class TestActiveShipmentResolver:
    """driver_id -> активные отправления."""

    @pytest.mark.asyncio
    async def test_returns_set_of_ids(self, mock_db: MagicMock) -> None:
        mock_db.fetch.return_value = [{"id": 5}, {"id": 6}, {"id": 9}]
        resolver = ActiveShipmentResolver(mock_db)

        assert await resolver.active_shipments_for(7) == {5, 6, 9}

        _, driver_id, statuses = mock_db.fetch.await_args.args
        assert driver_id == 7
        assert statuses == ["assigned", "in_transit"]

    @pytest.mark.asyncio
    async def test_empty_when_nothing_active(self, mock_db: MagicMock) -> None:
        resolver = ActiveShipmentResolver(mock_db)
        assert await resolver.active_shipments_for(7) == set()

    @pytest.mark.asyncio
    async def test_queries_every_call(self, mock_db: MagicMock) -> None:
        mock_db.fetch.side_effect = [[{"id": 5}], []]
        resolver = ActiveShipmentResolver(mock_db)

        assert await resolver.active_shipments_for(7) == {5}
        assert await resolver.active_shipments_for(7) == set()
        assert mock_db.fetch.await_count == 2
