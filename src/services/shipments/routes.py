# src/services/shipments/routes.py
from fastapi import APIRouter, Depends, Query

from src.config import settings
from src.services.shipments.dependencies import get_shipment_service
from src.services.shipments.service import ShipmentService
from src.shared.models.shipment import (
    AssignDriverRequest,
    CreateShipmentRequest,
    EventNoteRequest,
    Shipment,
    StatusChangeResponse,
    UpdateStatusRequest,
)
from src.shared.models.shipment_event import (
    ShipmentEvent,
    ShipmentEventsResponse,
    ShipmentHistoryResponse,
)

router = APIRouter(prefix="/shipments", tags=["Shipments"])


@router.post("", response_model=StatusChangeResponse, status_code=201)
async def create_shipment(
    request: CreateShipmentRequest,
    service: ShipmentService = Depends(get_shipment_service),
):
    return await service.create_shipment(
        order_id=request.order_id,
        tracking_number=request.tracking_number,
        user_id=request.user_id,
    )


@router.get("/track/{tracking_number}", response_model=Shipment)
async def track_shipment(
    tracking_number: str,
    service: ShipmentService = Depends(get_shipment_service),
):
    return await service.track(tracking_number)


@router.get("/{shipment_id}", response_model=Shipment)
async def get_shipment(
    shipment_id: int,
    service: ShipmentService = Depends(get_shipment_service),
):
    return await service.get_shipment(shipment_id)


@router.post("/{shipment_id}/assign-driver", response_model=StatusChangeResponse)
async def assign_driver(
    shipment_id: int,
    request: AssignDriverRequest,
    service: ShipmentService = Depends(get_shipment_service),
):
    return await service.assign_driver(shipment_id, request.driver_id, user_id=request.user_id)


@router.patch("/{shipment_id}/status", response_model=StatusChangeResponse)
async def update_shipment_status(
    shipment_id: int,
    request: UpdateStatusRequest,
    service: ShipmentService = Depends(get_shipment_service),
):
    return await service.update_status(
        shipment_id,
        request.status,
        user_id=request.user_id,
        metadata=request.metadata,
    )


@router.post("/{shipment_id}/events/notes", response_model=ShipmentEvent, status_code=201)
async def add_note(
    shipment_id: int,
    request: EventNoteRequest,
    service: ShipmentService = Depends(get_shipment_service),
):
    return await service.add_note(shipment_id, request.text, user_id=request.user_id, metadata=request.metadata)


@router.post("/{shipment_id}/events/issues", response_model=ShipmentEvent, status_code=201)
async def report_issue(
    shipment_id: int,
    request: EventNoteRequest,
    service: ShipmentService = Depends(get_shipment_service),
):
    return await service.report_issue(shipment_id, request.text, user_id=request.user_id, metadata=request.metadata)


@router.get("/{shipment_id}/events", response_model=ShipmentEventsResponse)
async def list_events(
    shipment_id: int,
    limit: int = Query(default=settings.tracking.EVENTS_DEFAULT_LIMIT, ge=1, le=1000),
    include_location_updates: bool = Query(default=False, alias="includeLocationUpdates"),
    service: ShipmentService = Depends(get_shipment_service),
):
    events = await service.list_events(
        shipment_id,
        limit=limit,
        include_location_updates=include_location_updates,
    )
    return ShipmentEventsResponse(shipment_id=shipment_id, count=len(events), events=events)


@router.get("/{shipment_id}/history", response_model=ShipmentHistoryResponse)
async def customer_history(
    shipment_id: int,
    service: ShipmentService = Depends(get_shipment_service),
):
    events = await service.customer_history(shipment_id)
    return ShipmentHistoryResponse(shipment_id=shipment_id, events=events)
