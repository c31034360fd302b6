"""Box transfer request model - provider-approved ownership transfer."""
import enum
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from neosafe.database import Base


class TransferStatus(str, enum.Enum):
    """Transfer request status enum."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class BoxTransferRequest(Base):
    """A user's request to take over a box identified by its property code."""
    __tablename__ = "box_transfer_requests"
    
    id = Column(Integer, primary_key=True, index=True)
    box_id = Column(Integer, ForeignKey("safe_boxes.id", ondelete="CASCADE"), nullable=False)
    requestor_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    provider_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    property_code = Column(String(6), nullable=False)
    status = Column(String(20), default=TransferStatus.PENDING.value, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    
    # Relationships
    box = relationship("SafeBox", back_populates="transfer_requests")
