"""Sensor reading model - time-series store."""
from sqlalchemy import Column, Integer, String, Float, DateTime, Index

from neosafe.database import TelemetryBase


class SensorReading(TelemetryBase):
    """A single measurement taken by a box sensor."""
    __tablename__ = "sensor_readings"
    __table_args__ = (
        Index("ix_sensor_readings_series", "sensor_type", "box_id", "recorded_at"),
    )
    
    id = Column(Integer, primary_key=True)
    box_id = Column(Integer, nullable=False)
    sensor_type = Column(String(20), nullable=False)
    value = Column(Float, nullable=False)
    recorded_at = Column(DateTime(timezone=True), nullable=False)
