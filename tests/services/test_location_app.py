# tests/services/test_location_app.py
"""
Тесты HTTP API Realtime Location Ingest.
"""

from __future__ import annotations

from typing import Iterator
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from src.infra.publish_channel import InMemoryPublishChannel
from src.services.realtime_location.app import create_app


@pytest.fixture
def channel() -> InMemoryPublishChannel:
    return InMemoryPublishChannel()


@pytest.fixture
def client(mock_db: MagicMock, channel: InMemoryPublishChannel) -> Iterator[TestClient]:
    app = create_app(db=mock_db, channel=channel)
    with TestClient(app) as test_client:
        yield test_client


class TestRecordLocation:
    """POST /api/location/{driver_id}"""

    def test_created(
        self,
        client: TestClient,
        mock_db: MagicMock,
        sample_row: dict,
        channel: InMemoryPublishChannel,
    ) -> None:
        mock_db.fetchrow.return_value = sample_row
        mock_db.fetch.return_value = [{"id": 6}, {"id": 5}]

        response = client.post("/api/location/7", json={"latitude": 50.45, "longitude": 30.52, "accuracy": 5})

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["broadcastedToShipments"] == [5, 6]
        assert body["event"]["driver_id"] == 7
        assert channel.topics_published() == [
            "driver:7:location",
            "shipment:5:location",
            "shipment:6:location",
        ]

    @pytest.mark.parametrize("payload", [
        {"latitude": 95.0, "longitude": 30.0},
        {"latitude": 50.0, "longitude": -200.0},
        {"longitude": 30.0},
        {"latitude": "north", "longitude": 30.0},
        {},
    ])
    def test_invalid_coordinates_return_400(
        self,
        client: TestClient,
        mock_db: MagicMock,
        channel: InMemoryPublishChannel,
        payload: dict,
    ) -> None:
        response = client.post("/api/location/7", json=payload)

        assert response.status_code == 400
        assert response.json()["error_code"] == "validation_error"
        mock_db.fetchrow.assert_not_awaited()
        assert channel.published == []

    def test_channel_not_running_still_created(self, mock_db: MagicMock, sample_row: dict) -> None:
        """Недоступная шина не влияет на ответ записи."""
        mock_db.fetchrow.return_value = sample_row
        channel = InMemoryPublishChannel()
        app = create_app(db=mock_db, channel=channel)

        with TestClient(app) as test_client:
            app.state.channel._running = False
            response = test_client.post("/api/location/7", json={"latitude": 50.0, "longitude": 30.0})

        assert response.status_code == 201
        assert channel.published == []

    def test_persistence_failure_returns_500(self, client: TestClient, mock_db: MagicMock) -> None:
        from src.core.exceptions import PersistenceFailure

        mock_db.fetchrow.side_effect = PersistenceFailure("База данных недоступна")

        response = client.post("/api/location/7", json={"latitude": 50.0, "longitude": 30.0})

        assert response.status_code == 500
        assert response.json()["error_code"] == "persistence_failure"


class TestReadLocation:
    """GET latest / history / shipment."""

    def test_latest(self, client: TestClient, mock_db: MagicMock, sample_row: dict) -> None:
        mock_db.fetchrow.return_value = sample_row

        response = client.get("/api/location/7/latest")

        assert response.status_code == 200
        assert response.json()["latitude"] == 50.45

    def test_latest_not_found(self, client: TestClient) -> None:
        response = client.get("/api/location/7/latest")

        assert response.status_code == 404
        assert response.json()["error_code"] == "not_found"

    def test_history(self, client: TestClient, mock_db: MagicMock, sample_factory) -> None:
        mock_db.fetch.return_value = [sample_factory(sample_id=2), sample_factory(sample_id=1)]

        response = client.get("/api/location/7/history", params={"limit": 2})

        assert response.status_code == 200
        body = response.json()
        assert body["driverId"] == 7
        assert body["count"] == 2
        assert [item["id"] for item in body["locations"]] == [2, 1]

    @pytest.mark.parametrize("limit", [0, 1001])
    def test_history_limit_out_of_range(self, client: TestClient, limit: int) -> None:
        response = client.get("/api/location/7/history", params={"limit": limit})
        assert response.status_code == 400

    def test_shipment_location_without_driver(self, client: TestClient, mock_db: MagicMock) -> None:
        mock_db.fetchrow.return_value = {
            "shipment_id": 5,
            "tracking_number": "DM0123456789",
            "status": "pending",
            "driver_id": None,
            "driver_name": None,
            "vehicle_type": None,
            "current_location": None,
        }

        response = client.get("/api/location/shipment/5")

        assert response.status_code == 200
        body = response.json()
        assert body["shipmentId"] == 5
        assert body["currentLocation"] is None
        assert body["message"] == "No driver assigned yet"


class TestServiceEndpoints:
    """/health и /stats."""

    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["dependencies"] == {"postgres": "healthy", "publish_channel": "healthy"}

    def test_health_degraded_when_db_down(self, client: TestClient, mock_db: MagicMock) -> None:
        mock_db.health_check.return_value = False

        body = client.get("/health").json()

        assert body["status"] == "degraded"
        assert body["dependencies"]["postgres"] == "unhealthy"

    def test_stats(self, client: TestClient, mock_db: MagicMock, sample_row: dict) -> None:
        mock_db.fetchrow.return_value = sample_row
        client.post("/api/location/7", json={"latitude": 50.0, "longitude": 30.0})

        stats = client.get("/stats").json()

        assert stats == {"total_updates": 1, "unique_drivers": 1, "published": 1, "dropped": 0}
