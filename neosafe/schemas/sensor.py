"""Telemetry schemas."""
from datetime import datetime
from typing import List, Literal, Optional

from neosafe.models.box_sensor import SensorType
from neosafe.schemas.base import CamelModel

TelemetryStatus = Literal["ok", "unavailable"]


class ReadingPoint(CamelModel):
    value: float
    timestamp: datetime


class LatestReadings(CamelModel):
    """Most recent value of every sensor of a box.

    ``status`` is ``unavailable`` when the time-series store could not be
    reached; the values are then all null.
    """
    box_id: int
    status: TelemetryStatus
    temperature: Optional[ReadingPoint] = None
    humidity: Optional[ReadingPoint] = None
    weight: Optional[ReadingPoint] = None


class HistoricalReadings(CamelModel):
    box_id: int
    sensor: SensorType
    status: TelemetryStatus
    readings: List[ReadingPoint] = []


class ReadingCreate(CamelModel):
    """A measurement pushed for a box."""
    box_id: int
    sensor: SensorType
    value: float
    timestamp: Optional[datetime] = None


class CameraStream(CamelModel):
    box_id: int
    url: str
