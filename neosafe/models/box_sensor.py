"""Box sensor model."""
import enum
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from neosafe.database import Base


class SensorType(str, enum.Enum):
    """Kinds of sensors a box can carry."""
    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"
    WEIGHT = "weight"


DEFAULT_SENSOR_TYPES = [SensorType.TEMPERATURE, SensorType.HUMIDITY]


class BoxSensor(Base):
    """A sensor fitted to a box, at most one per type."""
    __tablename__ = "box_sensors"
    __table_args__ = (UniqueConstraint("box_id", "type", name="uq_box_sensors_box_type"),)
    
    id = Column(Integer, primary_key=True, index=True)
    box_id = Column(Integer, ForeignKey("safe_boxes.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(20), nullable=False)
    serial_number = Column(String(100), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    
    # Relationships
    box = relationship("SafeBox", back_populates="sensors")
