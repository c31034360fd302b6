"""Sensor routes - telemetry reads are gated by the box access policy."""
from fastapi import APIRouter, Depends, Query, status

from neosafe.auth import get_current_user
from neosafe.config import settings
from neosafe.dependencies import get_registry, get_telemetry_gateway
from neosafe.models.safe_box import SafeBox
from neosafe.models.user import User
from neosafe.schemas.sensor import (
    CameraStream,
    HistoricalReadings,
    LatestReadings,
    ReadingCreate,
    ReadingPoint,
)
from neosafe.services.access_policy import Operation, ensure_permitted
from neosafe.services.box_registry import BoxRegistry
from neosafe.services.telemetry import TelemetryGateway

router = APIRouter(prefix="/sensors", tags=["Sensors"])


def check_box_permissions(registry: BoxRegistry, user: User, box_id: int) -> SafeBox:
    """Load a box and make sure the user may see its telemetry."""
    box = registry.find_by_id(box_id)
    ensure_permitted(user, box, Operation.VIEW)
    return box


@router.get("/latest", response_model=LatestReadings)
async def get_latest_data(
    box_id: int = Query(..., alias="boxId"),
    registry: BoxRegistry = Depends(get_registry),
    gateway: TelemetryGateway = Depends(get_telemetry_gateway),
    current_user: User = Depends(get_current_user)
):
    """Latest temperature, humidity and weight of a box."""
    box = check_box_permissions(registry, current_user, box_id)
    return gateway.latest(box)


@router.get("/historical", response_model=HistoricalReadings)
async def get_historical_data(
    box_id: int = Query(..., alias="boxId"),
    sensor: str = Query(..., description="temperature, humidity or weight"),
    hours: int = Query(24, description="How far back to look"),
    registry: BoxRegistry = Depends(get_registry),
    gateway: TelemetryGateway = Depends(get_telemetry_gateway),
    current_user: User = Depends(get_current_user)
):
    """Readings of one sensor over the last ``hours`` hours."""
    box = check_box_permissions(registry, current_user, box_id)
    return gateway.historical(box, sensor, hours)


@router.post("/readings", response_model=ReadingPoint, status_code=status.HTTP_201_CREATED)
async def record_reading(
    body: ReadingCreate,
    registry: BoxRegistry = Depends(get_registry),
    gateway: TelemetryGateway = Depends(get_telemetry_gateway),
    current_user: User = Depends(get_current_user)
):
    """Store a measurement for a box the caller can see."""
    box = check_box_permissions(registry, current_user, body.box_id)
    reading = gateway.record(box, body.sensor, body.value, body.timestamp)
    return reading.to_dict()


@router.get("/camera", response_model=CameraStream)
async def get_camera_stream(
    box_id: int = Query(..., alias="boxId"),
    registry: BoxRegistry = Depends(get_registry),
    current_user: User = Depends(get_current_user)
):
    """Where the box's live camera stream can be watched."""
    box = check_box_permissions(registry, current_user, box_id)
    return CameraStream(box_id=box.id, url=settings.CAMERA_STREAM_URL.format(box_id=box.id))
