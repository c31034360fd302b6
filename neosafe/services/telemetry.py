"""Sensor telemetry: time-series store and the permission-gated gateway."""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from neosafe.database import TelemetryBase, make_engine
from neosafe.errors import UnavailableError, ValidationError
from neosafe.models.box_sensor import SensorType
from neosafe.models.sensor_reading import SensorReading
from neosafe.models.safe_box import SafeBox

logger = logging.getLogger(__name__)

MAX_HISTORY_HOURS = 720


def as_utc(value: datetime) -> datetime:
    """Aware UTC datetime; naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class Reading:
    """A sensor value at a point in time."""
    value: float
    timestamp: datetime

    def to_dict(self):
        return {"value": self.value, "timestamp": self.timestamp}


class SensorReadingStore:
    """Time-series store for sensor readings.

    Owns its engine; create it at startup and ``close`` it at shutdown.
    Timestamps are stored and returned in UTC so ordering holds on backends
    that keep no offset (SQLite).
    Driver failures surface as UnavailableError.
    """

    def __init__(self, engine):
        self.engine = engine
        self._sessions = sessionmaker(bind=engine, autoflush=False)

    @classmethod
    def from_url(cls, url: str) -> "SensorReadingStore":
        return cls(make_engine(url))

    def create_schema(self) -> None:
        TelemetryBase.metadata.create_all(bind=self.engine)

    def close(self) -> None:
        self.engine.dispose()

    def insert(self, sensor_type: SensorType, box_id: int, value: float,
               timestamp: Optional[datetime] = None) -> Reading:
        recorded_at = as_utc(timestamp) if timestamp else datetime.now(timezone.utc)
        try:
            with self._sessions() as session:
                session.add(SensorReading(
                    box_id=box_id,
                    sensor_type=sensor_type.value,
                    value=value,
                    recorded_at=recorded_at,
                ))
                session.commit()
        except SQLAlchemyError as e:
            raise UnavailableError("Telemetry store unavailable") from e
        return Reading(value=value, timestamp=recorded_at)

    def find_latest(self, sensor_type: SensorType, box_id: int) -> Optional[Reading]:
        try:
            with self._sessions() as session:
                row = (
                    session.query(SensorReading)
                    .filter(SensorReading.sensor_type == sensor_type.value, SensorReading.box_id == box_id)
                    .order_by(SensorReading.recorded_at.desc(), SensorReading.id.desc())
                    .first()
                )
                return Reading(row.value, as_utc(row.recorded_at)) if row else None
        except SQLAlchemyError as e:
            raise UnavailableError("Telemetry store unavailable") from e

    def find_range(self, sensor_type: SensorType, box_id: int,
                   start: datetime, end: datetime) -> List[Reading]:
        """Readings with ``start <= recorded_at <= end``, oldest first."""
        try:
            with self._sessions() as session:
                rows = (
                    session.query(SensorReading)
                    .filter(
                        SensorReading.sensor_type == sensor_type.value,
                        SensorReading.box_id == box_id,
                        SensorReading.recorded_at >= as_utc(start),
                        SensorReading.recorded_at <= as_utc(end),
                    )
                    .order_by(SensorReading.recorded_at.asc(), SensorReading.id.asc())
                    .all()
                )
                return [Reading(row.value, as_utc(row.recorded_at)) for row in rows]
        except SQLAlchemyError as e:
            raise UnavailableError("Telemetry store unavailable") from e


def parse_sensor_type(sensor: str) -> SensorType:
    try:
        return SensorType(sensor)
    except ValueError:
        raise ValidationError("Invalid sensor type")


class TelemetryGateway:
    """Reads and writes telemetry for a box the caller was already cleared for.

    Permission checks happen before the gateway is called; the gateway only
    talks to the store. A store outage on the read path yields a result with
    ``status="unavailable"`` and no data instead of an error.
    """

    def __init__(self, store: SensorReadingStore):
        self.store = store

    def latest(self, box: SafeBox) -> dict:
        result = {"box_id": box.id, "status": "ok"}
        try:
            for sensor_type in SensorType:
                reading = self.store.find_latest(sensor_type, box.id)
                result[sensor_type.value] = reading.to_dict() if reading else None
        except UnavailableError:
            logger.warning("Telemetry store unavailable while reading latest data for box %s", box.id)
            result = {"box_id": box.id, "status": "unavailable"}
            for sensor_type in SensorType:
                result[sensor_type.value] = None
        return result

    def historical(self, box: SafeBox, sensor: str, hours: int = 24,
                   now: Optional[datetime] = None) -> dict:
        sensor_type = parse_sensor_type(sensor)
        if hours < 1 or hours > MAX_HISTORY_HOURS:
            raise ValidationError(f"hours must be between 1 and {MAX_HISTORY_HOURS}")
        end = now or datetime.now(timezone.utc)
        start = end - timedelta(hours=hours)
        try:
            readings = self.store.find_range(sensor_type, box.id, start, end)
        except UnavailableError:
            logger.warning("Telemetry store unavailable while reading history for box %s", box.id)
            return {"box_id": box.id, "sensor": sensor_type, "status": "unavailable", "readings": []}
        return {
            "box_id": box.id,
            "sensor": sensor_type,
            "status": "ok",
            "readings": [r.to_dict() for r in readings],
        }

    def record(self, box: SafeBox, sensor: SensorType, value: float,
               timestamp: Optional[datetime] = None) -> Reading:
        """Store a reading; a store outage is reported to the caller."""
        return self.store.insert(sensor, box.id, value, timestamp)
