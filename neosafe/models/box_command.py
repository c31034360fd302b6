"""Box command model - remote signals sent to a device."""
import enum
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from neosafe.database import Base


class CommandType(str, enum.Enum):
    UNLOCK = "unlock"


class BoxCommand(Base):
    """A command queued for a box."""
    __tablename__ = "box_commands"
    
    id = Column(Integer, primary_key=True, index=True)
    box_id = Column(Integer, ForeignKey("safe_boxes.id", ondelete="CASCADE"), nullable=False)
    command = Column(String(20), nullable=False)
    issued_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    issued_at = Column(DateTime(timezone=True), server_default=func.now())
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    
    # Relationships
    box = relationship("SafeBox", back_populates="commands")
