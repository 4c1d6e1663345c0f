"""BookingApproval ORM model — one row per approval decision event."""
import uuid
import enum
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Enum as SAEnum
from sqlalchemy.orm import relationship
from app.database import Base


class ApprovalDecision(str, enum.Enum):
    approved = "approved"
    rejected = "rejected"


class BookingApproval(Base):
    __tablename__ = "booking_approvals"

    approval_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    booking_id = Column(String(36), ForeignKey("bookings.booking_id"), nullable=False, index=True)
    approver_id = Column(String(36), nullable=False)
    decision = Column(SAEnum(ApprovalDecision), nullable=False)
    notes = Column(Text, nullable=True)
    decided_at = Column(DateTime(timezone=True), nullable=False)

    booking = relationship("Booking", back_populates="approvals")
