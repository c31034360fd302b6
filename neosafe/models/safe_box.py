"""Safe box model."""
import enum
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from neosafe.database import Base

CLAIM_CODE_LENGTH = 8
PROPERTY_CODE_LENGTH = 6
DEFAULT_MODEL = "NeoSafe Basic"


class BoxStatus(str, enum.Enum):
    """Transfer status of a box."""
    AVAILABLE = "available"
    PENDING_TRANSFER = "pending_transfer"
    TRANSFERRED = "transferred"


class SafeBox(Base):
    """A physical safe box registered by a provider and claimed by a user."""
    __tablename__ = "safe_boxes"
    __table_args__ = (
        CheckConstraint(
            "(is_claimed AND owner_id IS NOT NULL) OR (NOT is_claimed AND owner_id IS NULL)",
            name="ck_safe_boxes_claimed_has_owner",
        ),
    )
    
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    model = Column(String(100), default=DEFAULT_MODEL, nullable=False)
    code_nfc = Column(String(100), unique=True, nullable=True)
    # Unique across all boxes, claimed or not: a code is never reissued
    claim_code = Column(String(CLAIM_CODE_LENGTH), unique=True, index=True, nullable=False)
    property_code = Column(String(PROPERTY_CODE_LENGTH), unique=True, index=True, nullable=True)
    is_claimed = Column(Boolean, default=False, nullable=False)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    provider_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    status = Column(String(20), default=BoxStatus.AVAILABLE.value, nullable=False)
    transfer_requested_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    
    # Relationships
    sensors = relationship(
        "BoxSensor", back_populates="box", cascade="all, delete-orphan", lazy="selectin"
    )
    transfer_requests = relationship(
        "BoxTransferRequest", back_populates="box", cascade="all, delete-orphan"
    )
    commands = relationship("BoxCommand", back_populates="box", cascade="all, delete-orphan")
